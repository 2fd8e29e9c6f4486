from __future__ import annotations
"""
statushub/infrastructure/status_sources/statuspage.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Source Atlassian Statuspage (`/api/v2/summary.json`).

- modèles pydantic du payload (champs inconnus ignorés)
- normalisation des vocabulaires vendor -> enums internes
- recalcul du statut global depuis les incidents *réellement actifs*
  (non résolus, hors `monitoring`, impact != none)
"""

from typing import List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from statushub.domain.enums import IncidentImpact, IncidentStatus, ServiceStatus
from statushub.domain.models import ComponentState, IncidentSummary, LiveServiceStatus
from statushub.infrastructure.status_sources.base import (
    FetchError,
    FetchResult,
    ServiceConfig,
)

INDICATOR_MAP = {
    "none": ServiceStatus.OPERATIONAL,
    "minor": ServiceStatus.DEGRADED,
    "major": ServiceStatus.PARTIAL_OUTAGE,
    "critical": ServiceStatus.MAJOR_OUTAGE,
    "maintenance": ServiceStatus.MAINTENANCE,
}

COMPONENT_STATUS_MAP = {
    "operational": ServiceStatus.OPERATIONAL,
    "degraded_performance": ServiceStatus.DEGRADED,
    "partial_outage": ServiceStatus.PARTIAL_OUTAGE,
    "major_outage": ServiceStatus.MAJOR_OUTAGE,
    "under_maintenance": ServiceStatus.MAINTENANCE,
}

# Pire impact des incidents actifs -> statut global
IMPACT_TO_STATUS = {
    IncidentImpact.CRITICAL: ServiceStatus.MAJOR_OUTAGE,
    IncidentImpact.MAJOR: ServiceStatus.PARTIAL_OUTAGE,
    IncidentImpact.MINOR: ServiceStatus.DEGRADED,
}


# ---------------------------------------------------------------------------
# Payload amont
# ---------------------------------------------------------------------------
class PageStatus(BaseModel):
    indicator: str = "none"
    description: Optional[str] = None


class SummaryComponent(BaseModel):
    id: Optional[str] = None
    name: str
    status: str = "operational"
    group: bool = False


class SummaryIncidentUpdate(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    body: Optional[str] = None
    created_at: Optional[str] = None


class SummaryIncident(BaseModel):
    id: str
    name: str = "Unknown incident"
    status: str = "investigating"
    impact: str = "none"
    started_at: Optional[str] = None
    resolved_at: Optional[str] = None
    shortlink: Optional[str] = None
    incident_updates: List[SummaryIncidentUpdate] = Field(default_factory=list)


class StatuspageSummary(BaseModel):
    status: PageStatus = Field(default_factory=PageStatus)
    components: List[SummaryComponent] = Field(default_factory=list)
    incidents: List[SummaryIncident] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------
def map_indicator(indicator: Optional[str]) -> ServiceStatus:
    return INDICATOR_MAP.get((indicator or "").lower(), ServiceStatus.UNKNOWN)


def map_component_status(status: Optional[str]) -> ServiceStatus:
    return COMPONENT_STATUS_MAP.get((status or "").lower(), ServiceStatus.UNKNOWN)


def _is_truly_active(inc: SummaryIncident) -> bool:
    return (
        not inc.resolved_at
        and inc.status.lower() != "monitoring"
        and inc.impact.lower() != "none"
    )


def _to_incident_summary(inc: SummaryIncident) -> IncidentSummary:
    latest = inc.incident_updates[0].body if inc.incident_updates else None
    return IncidentSummary(
        id=inc.id,
        title=inc.name,
        status=IncidentStatus.parse(inc.status),
        impact=IncidentImpact.parse(inc.impact),
        update_count=len(inc.incident_updates),
        started_at=inc.started_at,
        latest_update_body=latest or None,
    )


def build_live_status(config: ServiceConfig, summary: StatuspageSummary) -> LiveServiceStatus:
    """summary.json validé -> LiveServiceStatus normalisé."""
    status = map_indicator(summary.status.indicator)

    active = [i for i in summary.incidents if _is_truly_active(i)]
    if status == ServiceStatus.OPERATIONAL and active:
        worst = max((IncidentImpact.parse(i.impact) for i in active), key=lambda x: x.rank)
        status = IMPACT_TO_STATUS.get(worst, status)

    return LiveServiceStatus(
        slug=config.slug,
        name=config.name,
        current_status=status,
        active_incidents=[_to_incident_summary(i) for i in summary.incidents],
        components=[
            ComponentState(name=c.name, status=map_component_status(c.status))
            for c in summary.components
            if not c.group
        ],
    )


def summary_url(config: ServiceConfig) -> str:
    if config.api_endpoint:
        return config.api_endpoint
    return f"{config.status_page_url.rstrip('/')}/api/v2/summary.json"


async def fetch_statuspage(client: httpx.AsyncClient, config: ServiceConfig) -> FetchResult:
    """GET summary.json ; toute anomalie devient FetchResult.failure (jamais d'exception)."""
    try:
        resp = await client.get(summary_url(config))
    except httpx.TimeoutException:
        return FetchResult.failure(config, FetchError(config.slug, "timeout"))
    except httpx.HTTPError as exc:
        return FetchResult.failure(config, FetchError(config.slug, f"transport error: {exc}"))

    if resp.status_code != 200:
        return FetchResult.failure(config, FetchError(config.slug, f"HTTP {resp.status_code}"))

    try:
        summary = StatuspageSummary.model_validate(resp.json())
    except (ValueError, ValidationError) as exc:
        return FetchResult.failure(config, FetchError(config.slug, f"malformed body: {exc}"))

    return FetchResult.success(config, build_live_status(config, summary))
