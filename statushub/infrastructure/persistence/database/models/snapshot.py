from __future__ import annotations
"""statushub/infrastructure/persistence/database/models/snapshot.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table service_status_snapshots (une ligne par service, réécrite à chaque poll).
"""
import datetime as dt

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from statushub.infrastructure.persistence.database.base import Base
from statushub.infrastructure.persistence.database.models.types import JSONPortable, TstzPortable


class ServiceStatusSnapshot(Base):
    __tablename__ = "service_status_snapshots"

    service_slug: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="OPERATIONAL")
    incident_title: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    # NULL = jamais capturé : pas de diff incident au prochain cycle
    incidents_json: Mapped[list | None] = mapped_column(JSONPortable(), nullable=True)
    snapshot_at: Mapped[dt.datetime] = mapped_column(
        TstzPortable(), nullable=False, default=lambda: dt.datetime.now(dt.timezone.utc)
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ServiceStatusSnapshot {self.service_slug} status={self.status}>"
