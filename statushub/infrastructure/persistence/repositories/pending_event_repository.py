from __future__ import annotations

"""statushub/infrastructure/persistence/repositories/pending_event_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Évènements en attente (retenus par le rate limiter) par (user, service).

- `enqueue` : insertion pure, jamais de fusion ni de dédoublonnage ;
- `drain_for` : lecture ordonnée (created_at, id) ; NE supprime PAS ;
- `delete` : appelé par l'orchestrateur après un envoi confirmé.

At-least-once : si la confirmation d'envoi est perdue, les lignes restent et
réapparaissent dans le récap suivant (doublon acceptable, perte non).
Ne commit pas.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from statushub.domain.models import IncidentEvent, StatusEvent, dump_event, load_event
from statushub.infrastructure.persistence.database.models.pending_event import PendingEvent

logger = logging.getLogger(__name__)


class PendingEventRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def enqueue(
        self,
        user_id: UUID,
        service_slug: str,
        event: Union[StatusEvent, IncidentEvent],
        *,
        now: Optional[datetime] = None,
    ) -> PendingEvent:
        row = PendingEvent(
            user_id=user_id,
            service_slug=service_slug,
            event_type=event.event_type.value,
            event_data=dump_event(event),
            created_at=now or datetime.now(timezone.utc),
        )
        self.db.add(row)
        return row

    def drain_for(self, user_id: UUID, service_slug: str) -> List[PendingEvent]:
        stmt = (
            select(PendingEvent)
            .where(
                PendingEvent.user_id == user_id,
                PendingEvent.service_slug == service_slug,
            )
            .order_by(PendingEvent.created_at.asc(), PendingEvent.id.asc())
        )
        return list(self.db.scalars(stmt).all())

    def delete(self, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        res = self.db.execute(delete(PendingEvent).where(PendingEvent.id.in_(ids)))
        return res.rowcount or 0

    @staticmethod
    def to_events(rows: Iterable[PendingEvent]) -> List[Union[StatusEvent, IncidentEvent]]:
        """
        event_data -> évènements typés (union discriminée sur `scope`).
        Une ligne illisible est ignorée (journalisée) : elle ne doit pas
        bloquer le récap des autres.
        """
        events: List[Union[StatusEvent, IncidentEvent]] = []
        for row in rows:
            try:
                events.append(load_event(row.event_data))
            except ValidationError:
                logger.warning("unreadable pending event skipped", extra={"pending_id": row.id})
        return events
