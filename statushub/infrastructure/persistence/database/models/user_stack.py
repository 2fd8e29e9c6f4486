from __future__ import annotations
"""statushub/infrastructure/persistence/database/models/user_stack.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table user_stacks : services suivis par utilisateur (ordre conservé) et plan.
Lecture seule pour le pipeline.
"""
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from statushub.infrastructure.persistence.database.base import Base
from statushub.infrastructure.persistence.database.models.types import JSONPortable, UUIDPortable


class UserStack(Base):
    __tablename__ = "user_stacks"

    user_id: Mapped[uuid.UUID] = mapped_column(UUIDPortable(), primary_key=True)
    services: Mapped[list] = mapped_column(JSONPortable(), nullable=False, default=list)
    plan: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="free")
