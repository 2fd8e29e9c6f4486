from __future__ import annotations
"""
statushub/infrastructure/status_sources/gcp.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Source Google Cloud Status (`incidents.json`).

Incident actif = pas de `end` ET `currently_affected_locations` non vide.
Statut : MAJOR_OUTAGE si un incident actif est SERVICE_OUTAGE ou severity=high,
sinon PARTIAL_OUTAGE. Les derniers incidents terminés sont aussi remontés
(statut RESOLVED) pour permettre la détection de résolution.
"""

from typing import List, Optional

import httpx
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from statushub.domain.enums import IncidentImpact, IncidentStatus, ServiceStatus
from statushub.domain.models import ComponentState, IncidentSummary, LiveServiceStatus
from statushub.infrastructure.status_sources.base import (
    FetchError,
    FetchResult,
    ServiceConfig,
)

GCP_INCIDENTS_URL = "https://status.cloud.google.com/incidents.json"
RECENT_RESOLVED_LIMIT = 10


class GcpRef(BaseModel):
    id: Optional[str] = None
    title: str = ""


class GcpUpdate(BaseModel):
    created: Optional[str] = None
    text: Optional[str] = None
    status: Optional[str] = None


class GcpIncident(BaseModel):
    id: str
    begin: Optional[str] = None
    end: Optional[str] = None
    external_desc: str = "Unknown incident"
    status_impact: Optional[str] = None
    severity: Optional[str] = None
    affected_products: List[GcpRef] = Field(default_factory=list)
    currently_affected_locations: List[GcpRef] = Field(default_factory=list)
    updates: List[GcpUpdate] = Field(default_factory=list)
    most_recent_update: Optional[GcpUpdate] = None

    @property
    def is_active(self) -> bool:
        return not self.end and len(self.currently_affected_locations) > 0

    @property
    def is_outage(self) -> bool:
        return self.status_impact == "SERVICE_OUTAGE" or self.severity == "high"


_incidents_adapter = TypeAdapter(List[GcpIncident])


def _to_incident_summary(inc: GcpIncident) -> IncidentSummary:
    if inc.updates:
        update_count = len(inc.updates)
    else:
        update_count = 1 if inc.most_recent_update else 0
    latest = (inc.most_recent_update.text if inc.most_recent_update else None) or (
        inc.updates[0].text if inc.updates else None
    )
    return IncidentSummary(
        id=inc.id,
        title=inc.external_desc,
        status=IncidentStatus.RESOLVED if inc.end else IncidentStatus.INVESTIGATING,
        impact=IncidentImpact.CRITICAL if inc.severity == "high" else IncidentImpact.MAJOR,
        update_count=update_count,
        started_at=inc.begin,
        latest_update_body=latest or None,
    )


def build_live_status(config: ServiceConfig, incidents: List[GcpIncident]) -> LiveServiceStatus:
    active = [i for i in incidents if i.is_active]
    resolved = [i for i in incidents if i.end][:RECENT_RESOLVED_LIMIT]

    status = ServiceStatus.OPERATIONAL
    if active:
        status = ServiceStatus.MAJOR_OUTAGE if any(i.is_outage for i in active) else ServiceStatus.PARTIAL_OUTAGE

    # Produits touchés par un incident actif (ordre d'apparition, sans doublon)
    affected: dict[str, None] = {}
    for inc in active:
        for product in inc.affected_products:
            if product.title:
                affected.setdefault(product.title, None)

    return LiveServiceStatus(
        slug=config.slug,
        name=config.name,
        current_status=status,
        active_incidents=[_to_incident_summary(i) for i in active + resolved],
        components=[ComponentState(name=t, status=ServiceStatus.PARTIAL_OUTAGE) for t in affected],
    )


async def fetch_gcp(client: httpx.AsyncClient, config: ServiceConfig) -> FetchResult:
    url = config.api_endpoint or GCP_INCIDENTS_URL
    try:
        resp = await client.get(url)
    except httpx.TimeoutException:
        return FetchResult.failure(config, FetchError(config.slug, "timeout"))
    except httpx.HTTPError as exc:
        return FetchResult.failure(config, FetchError(config.slug, f"transport error: {exc}"))

    if resp.status_code != 200:
        return FetchResult.failure(config, FetchError(config.slug, f"HTTP {resp.status_code}"))

    try:
        incidents = _incidents_adapter.validate_python(resp.json())
    except (ValueError, ValidationError) as exc:
        return FetchResult.failure(config, FetchError(config.slug, f"malformed body: {exc}"))

    return FetchResult.success(config, build_live_status(config, incidents))
