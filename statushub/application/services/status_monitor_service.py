from __future__ import annotations

"""statushub/application/services/status_monitor_service.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Orchestrateur du pipeline d'alertes :

- `process_service_events(...)` : UN service pour UN cycle
    snapshot précédent -> détection -> tri -> pour chaque évènement et chaque
    abonné éligible : filtre sévérité -> rate limit (sinon file d'attente)
    -> récap -> composition -> envoi -> journal + purge des pending
    -> upsert du snapshot (toujours, même sans évènement).
- `run_poll_pass(...)` : tous les services (fetch batché + préchargement
  des abonnés et snapshots pour éviter le N+1).
- `process_webhook_service(...)` : un seul service, données fraîches (sans cache).

Notes importantes :
- On utilise **get_sync_session** : ce service tourne hors requête FastAPI.
  → Les tests unitaires patchent `get_sync_session` dans ce module.
- Unités transactionnelles : insert pending ; (insert journal + delete pending) ;
  upsert snapshot. Chacune est commitée séparément.
- Un échec d'envoi ne touche NI le journal NI les pending (retry propre au cycle suivant).
- Une erreur SQLAlchemy remonte à l'appelant ; le passage complet la traite
  service par service (slug reporté dans `failed`).
- Verrou en mémoire par (user, service) autour de can_send -> send -> log :
  un webhook et un poll concurrents dans le même process ne peuvent pas
  envoyer deux fois.
"""

import logging
import smtplib
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from statushub.application.services.email_composer import compose
from statushub.application.services.live_cache import LiveCache
from statushub.application.services.rate_limiter import RateLimiter
from statushub.application.services.status_source import get_all_live, get_service_live
from statushub.core.config import settings
from statushub.core.utils.datetime import as_utc, utcnow
from statushub.domain.event_detector import build_snapshot_entries, detect_events, sort_events
from statushub.domain.models import (
    IncidentEvent,
    LiveServiceStatus,
    PreviousSnapshot,
    StatusEvent,
    event_summary,
)
from statushub.domain.policies import allows
from statushub.infrastructure.notifications.providers.email_provider import EmailProvider, EmailSendError
from statushub.infrastructure.persistence.database.session import get_sync_session
from statushub.infrastructure.persistence.repositories.alert_log_repository import AlertLogRepository
from statushub.infrastructure.persistence.repositories.pending_event_repository import PendingEventRepository
from statushub.infrastructure.persistence.repositories.snapshot_repository import SnapshotRepository
from statushub.infrastructure.persistence.repositories.subscriber_repository import (
    Subscriber,
    SubscriberRepository,
)

logger = logging.getLogger(__name__)

Event = Union[StatusEvent, IncidentEvent]
EmailSender = Callable[..., bool]

SEND_ERRORS = (EmailSendError, smtplib.SMTPException, OSError)

__all__ = [
    "PreloadedContext",
    "ProcessServiceResult",
    "PollPassResult",
    "process_service_events",
    "run_poll_pass",
    "process_webhook_service",
]


# ──────────────────────────────────────────────────────────────────────────────
# Types de résultat
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class PreloadedContext:
    snapshots: Dict[str, PreviousSnapshot]
    subscribers: List[Subscriber]


@dataclass
class ProcessServiceResult:
    events: List[Event] = field(default_factory=list)
    emails_sent: int = 0
    pending_flushed: int = 0
    pending_queued: int = 0


@dataclass
class PollPassResult:
    checked: int = 0
    events: List[Event] = field(default_factory=list)
    emails_sent: int = 0
    pending_flushed: int = 0
    failed: List[str] = field(default_factory=list)

    def to_response(self) -> dict:
        return {
            "checked": self.checked,
            "events": len(self.events),
            "emailsSent": self.emails_sent,
            "pendingFlushed": self.pending_flushed,
            "detectedEvents": [event_summary(e) for e in self.events],
            "failed": list(self.failed),
        }


# ──────────────────────────────────────────────────────────────────────────────
# Verrous (user, service)
# ──────────────────────────────────────────────────────────────────────────────

_locks_guard = threading.Lock()


@dataclass
class _PairLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


# entrée retirée quand plus aucun thread ne tient ni n'attend le verrou
_pair_locks: Dict[Tuple[UUID, str], _PairLock] = {}


@contextmanager
def _pair_lock(user_id: UUID, service_slug: str) -> Iterator[None]:
    key = (user_id, service_slug)
    with _locks_guard:
        entry = _pair_locks.get(key)
        if entry is None:
            entry = _pair_locks[key] = _PairLock()
        entry.holders += 1
    try:
        with entry.lock:
            yield
    finally:
        with _locks_guard:
            entry.holders -= 1
            if entry.holders == 0:
                del _pair_locks[key]


# ──────────────────────────────────────────────────────────────────────────────
# Utilitaires internes
# ──────────────────────────────────────────────────────────────────────────────

def _default_sender() -> EmailSender:
    """Provider SMTP réel (patché par la fixture mock_email en tests)."""
    return EmailProvider().send


class _Delivery:
    """Envoi pour un service : sender résolu au premier besoin."""

    def __init__(self, db: Session, sender: Optional[EmailSender], now: datetime) -> None:
        self.db = db
        self.now = now
        self._sender = sender
        self.limiter = RateLimiter(db)
        self.pending = PendingEventRepository(db)
        self.alert_log = AlertLogRepository(db)

    def _send(self, **kw) -> bool:
        if self._sender is None:
            self._sender = _default_sender()
        return bool(self._sender(**kw))

    def deliver(self, event: Event, sub: Subscriber, result: ProcessServiceResult) -> None:
        slug = event.service_slug
        with _pair_lock(sub.user_id, slug):
            if not self.limiter.can_send(sub.user_id, slug, now=self.now):
                self.pending.enqueue(sub.user_id, slug, event, now=self.now)
                self.db.commit()
                result.pending_queued += 1
                logger.info(
                    "email rate limited, event queued",
                    extra={"user_id": str(sub.user_id), "service": slug, "event_type": event.event_type.value},
                )
                return

            rows = self.pending.drain_for(sub.user_id, slug)
            email = compose(event, self.pending.to_events(rows), now=self.now, site_url=settings.SITE_URL)

            try:
                sent = self._send(to=sub.email_address, subject=email.subject, html=email.html, text=email.text)
            except (*SEND_ERRORS, ValueError):
                # journal et pending intacts : l'évènement reste éligible au prochain cycle
                logger.error(
                    "email send failed",
                    extra={"user_id": str(sub.user_id), "service": slug, "event_type": event.event_type.value},
                    exc_info=True,
                )
                return

            if not sent:
                # refus du provider : même traitement qu'un échec d'envoi
                logger.error(
                    "email provider refused message",
                    extra={"user_id": str(sub.user_id), "service": slug, "event_type": event.event_type.value},
                )
                return

            self.alert_log.add(user_id=sub.user_id, event=event, sent_at=self.now)
            flushed = self.pending.delete(r.id for r in rows)
            self.db.commit()

            result.emails_sent += 1
            result.pending_flushed += flushed
            logger.info(
                "alert email sent",
                extra={
                    "user_id": str(sub.user_id),
                    "service": slug,
                    "event_type": event.event_type.value,
                    "recap": len(rows),
                },
            )


# ──────────────────────────────────────────────────────────────────────────────
# API principale du service
# ──────────────────────────────────────────────────────────────────────────────

def process_service_events(
    db: Session,
    live: LiveServiceStatus,
    *,
    preloaded: Optional[PreloadedContext] = None,
    sender: Optional[EmailSender] = None,
    now: Optional[datetime] = None,
) -> ProcessServiceResult:
    """
    Traite un service pour un cycle. Lève SQLAlchemyError (après rollback)
    si une écriture échoue ; les échecs d'envoi sont absorbés et journalisés.
    """
    now = as_utc(now) or utcnow()

    if preloaded is not None:
        prev = preloaded.snapshots.get(live.slug)
    else:
        prev = SnapshotRepository(db).get(live.slug)

    events = sort_events(detect_events(live, prev))
    result = ProcessServiceResult(events=events)

    try:
        if events:
            subscribers = (
                preloaded.subscribers if preloaded is not None
                else SubscriberRepository(db).load_email_subscribers()
            )
            watchers = [s for s in subscribers if s.watches(live.slug)]
            delivery = _Delivery(db, sender, now)

            for event in events:
                for sub in watchers:
                    if not allows(event.event_type, sub.threshold):
                        continue
                    delivery.deliver(event, sub, result)

        entries = build_snapshot_entries(
            live, prev, now=now,
            resolved_retention=timedelta(hours=settings.RESOLVED_RETENTION_HOURS),
        )
        SnapshotRepository(db).upsert(live, entries, now=now)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if events:
        logger.info(
            "service events processed",
            extra={
                "service": live.slug,
                "events": [e.event_type.value for e in events],
                "emails_sent": result.emails_sent,
                "pending_queued": result.pending_queued,
            },
        )
    return result


def run_poll_pass(
    cache: LiveCache,
    *,
    sender: Optional[EmailSender] = None,
    now: Optional[datetime] = None,
    transport=None,
) -> PollPassResult:
    """
    Passage complet sur tous les services du catalogue.
    Toute exception AVANT le traitement par service remonte (=> 500 côté endpoint).
    """
    now = as_utc(now) or utcnow()
    lives = get_all_live(cache, transport=transport)
    out = PollPassResult(checked=len(lives))

    with get_sync_session() as s:
        preloaded = PreloadedContext(
            snapshots=SnapshotRepository(s).load_many(),
            subscribers=SubscriberRepository(s).load_email_subscribers(),
        )

        for live in lives:
            try:
                r = process_service_events(s, live, preloaded=preloaded, sender=sender, now=now)
            except SQLAlchemyError:
                logger.exception("service processing failed", extra={"service": live.slug})
                out.failed.append(live.slug)
                continue
            out.events.extend(r.events)
            out.emails_sent += r.emails_sent
            out.pending_flushed += r.pending_flushed

    logger.info(
        "poll pass done",
        extra={
            "checked": out.checked,
            "events": len(out.events),
            "emails_sent": out.emails_sent,
            "failed": out.failed,
        },
    )
    return out


def process_webhook_service(
    slug: str,
    cache: LiveCache,
    *,
    sender: Optional[EmailSender] = None,
    now: Optional[datetime] = None,
    transport=None,
) -> Optional[ProcessServiceResult]:
    """Données fraîches (cache ignoré), sans préchargement. None si slug inconnu."""
    live = get_service_live(slug, cache, bypass_cache=True, transport=transport)
    if live is None:
        return None
    with get_sync_session() as s:
        return process_service_events(s, live, sender=sender, now=now)
