from __future__ import annotations
"""statushub/infrastructure/persistence/database/models/notification_preference.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table notification_preferences (gérée par la partie comptes ; lecture seule ici).
"""
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from statushub.infrastructure.persistence.database.base import Base
from statushub.infrastructure.persistence.database.models.types import UUIDPortable


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    user_id: Mapped[uuid.UUID] = mapped_column(UUIDPortable(), primary_key=True)
    email_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    email_address: Mapped[str | None] = mapped_column(sa.String(320), nullable=True)
    # preset ('all', 'outages_only', 'major_only') ou liste "type1,type2"
    severity_threshold: Mapped[str | None] = mapped_column(sa.String(512), nullable=True, default="all")
