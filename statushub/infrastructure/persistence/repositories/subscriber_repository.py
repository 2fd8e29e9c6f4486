from __future__ import annotations

"""statushub/infrastructure/persistence/repositories/subscriber_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Lecture des abonnés email (notification_preferences + user_stacks).

Tables gérées par la partie comptes : lecture seule ici.
Le seuil de sévérité est converti en Preset | ExplicitSet dès la lecture ;
un seuil NULL vaut "all" (valeur par défaut côté comptes).

Services actifs dérivés du plan : les N premiers services du stack, dans
l'ordre stocké (free: 5, pro: 7). Les suivants sont "gelés" et ignorés sans bruit.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from statushub.domain.policies import Preset, Threshold, parse_threshold
from statushub.infrastructure.persistence.database.models.notification_preference import NotificationPreference
from statushub.infrastructure.persistence.database.models.user_stack import UserStack

PLAN_SERVICE_LIMITS = {"free": 5, "pro": 7}
DEFAULT_PLAN = "free"


def active_services(services: List[str], plan: str | None) -> FrozenSet[str]:
    limit = PLAN_SERVICE_LIMITS.get((plan or DEFAULT_PLAN).lower(), PLAN_SERVICE_LIMITS[DEFAULT_PLAN])
    return frozenset(services[:limit])


@dataclass(frozen=True)
class Subscriber:
    user_id: UUID
    email_address: str
    threshold: Threshold
    services: Tuple[str, ...] = ()
    plan: str = DEFAULT_PLAN
    active: FrozenSet[str] = field(default_factory=frozenset)

    def watches(self, service_slug: str) -> bool:
        """Dans le stack ET dans l'ensemble actif du plan."""
        return service_slug in self.services and service_slug in self.active


class SubscriberRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def load_email_subscribers(self) -> List[Subscriber]:
        """Abonnés email actifs avec adresse non vide (une seule requête)."""
        stmt = (
            select(NotificationPreference, UserStack)
            .join(UserStack, UserStack.user_id == NotificationPreference.user_id)
            .where(NotificationPreference.email_enabled.is_(True))
        )
        out: List[Subscriber] = []
        for pref, stack in self.db.execute(stmt).all():
            address = (pref.email_address or "").strip()
            if not address:
                continue
            services = [s for s in (stack.services or []) if isinstance(s, str)]
            threshold = (
                Preset("all") if pref.severity_threshold is None
                else parse_threshold(pref.severity_threshold)
            )
            out.append(Subscriber(
                user_id=pref.user_id,
                email_address=address,
                threshold=threshold,
                services=tuple(services),
                plan=stack.plan or DEFAULT_PLAN,
                active=active_services(services, stack.plan),
            ))
        return out
