from __future__ import annotations
"""statushub/infrastructure/persistence/database/models/email_alert_log.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table email_alert_log (append-only) : journal des envois réussis,
seule source de vérité du rate limiter.
"""
import datetime as dt
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from statushub.infrastructure.persistence.database.base import Base
from statushub.infrastructure.persistence.database.models.types import TstzPortable, UUIDPortable


class EmailAlertLog(Base):
    __tablename__ = "email_alert_log"
    __table_args__ = (
        sa.Index("ix_email_alert_log_user_sent", "user_id", "sent_at"),
        sa.Index("ix_email_alert_log_user_service_sent", "user_id", "service_slug", "sent_at"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(UUIDPortable(), nullable=False)
    service_slug: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    old_status: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    new_status: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    event_type: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    sent_at: Mapped[dt.datetime] = mapped_column(
        TstzPortable(), nullable=False, default=lambda: dt.datetime.now(dt.timezone.utc)
    )
