from __future__ import annotations
"""statushub/infrastructure/persistence/database/models/pending_event.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table pending_events : évènements retenus par le rate limiter, repliés dans
le récap du prochain envoi réussi pour (user, service).
"""
import datetime as dt
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from statushub.infrastructure.persistence.database.base import Base
from statushub.infrastructure.persistence.database.models.types import (
    JSONPortable,
    TstzPortable,
    UUIDPortable,
)


class PendingEvent(Base):
    __tablename__ = "pending_events"
    __table_args__ = (
        sa.Index("ix_pending_events_user_service", "user_id", "service_slug", "created_at"),
    )

    # entier auto-incrémenté : départage l'ordre d'insertion à created_at égal
    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(UUIDPortable(), nullable=False)
    service_slug: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    event_type: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    event_data: Mapped[dict] = mapped_column(JSONPortable(), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        TstzPortable(), nullable=False, default=lambda: dt.datetime.now(dt.timezone.utc)
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<PendingEvent id={self.id} user={self.user_id} service={self.service_slug} type={self.event_type}>"
