from __future__ import annotations

"""statushub/infrastructure/persistence/repositories/snapshot_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Repository des snapshots de statut (baseline du diff).

Principes :
- reçoit une Session gérée par l'appelant, ne commit pas ;
- `load_many()` : préchargement en une requête pour tout un passage de poll ;
- `upsert(...)` : réécriture intégrale de la ligne du service (jamais partielle).
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from statushub.domain.enums import ServiceStatus
from statushub.domain.models import LiveServiceStatus, PreviousSnapshot, SnapshotEntry
from statushub.infrastructure.persistence.database.models.snapshot import ServiceStatusSnapshot

logger = logging.getLogger(__name__)


def _to_previous(row: ServiceStatusSnapshot) -> PreviousSnapshot:
    incidents: Optional[List[SnapshotEntry]] = None
    if row.incidents_json is not None:
        incidents = []
        for raw in row.incidents_json:
            try:
                incidents.append(SnapshotEntry.model_validate(raw))
            except ValidationError:
                logger.warning("ignoring malformed snapshot entry", extra={"service": row.service_slug})
    return PreviousSnapshot(status=ServiceStatus.parse(row.status), incidents=incidents)


class SnapshotRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, service_slug: str) -> Optional[PreviousSnapshot]:
        row = self.db.get(ServiceStatusSnapshot, service_slug)
        return _to_previous(row) if row is not None else None

    def load_many(self, slugs: Optional[Iterable[str]] = None) -> Dict[str, PreviousSnapshot]:
        """{slug: PreviousSnapshot} ; tous les snapshots si slugs est None."""
        stmt = select(ServiceStatusSnapshot)
        if slugs is not None:
            stmt = stmt.where(ServiceStatusSnapshot.service_slug.in_(list(slugs)))
        return {row.service_slug: _to_previous(row) for row in self.db.scalars(stmt).all()}

    def upsert(
        self,
        live: LiveServiceStatus,
        entries: List[SnapshotEntry],
        *,
        now: datetime,
    ) -> ServiceStatusSnapshot:
        row = self.db.get(ServiceStatusSnapshot, live.slug)
        if row is None:
            row = ServiceStatusSnapshot(service_slug=live.slug)
            self.db.add(row)
        row.status = live.current_status.value
        row.incident_title = live.latest_incident_title
        row.incidents_json = [e.to_json() for e in entries]
        row.snapshot_at = now
        return row
