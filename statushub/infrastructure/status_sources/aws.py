from __future__ import annotations
"""
statushub/infrastructure/status_sources/aws.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Source AWS Health (page publique, pas d'API Statuspage).

Deux documents lus en parallèle :
- `services.json` : catalogue (un enregistrement par service ET par région) ;
  obligatoire, son échec fait échouer le fetch ;
- `public/currentevents` : évènements en cours, servi en UTF-16 avec BOM ;
  optionnel, illisible ou absent => aucun évènement.

Un évènement est résolu quand l'entrée la plus récente de son `event_log`
porte le statut "0". Tout évènement non résolu met le service concerné en
PARTIAL_OUTAGE, et AWS dans son ensemble aussi.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

import httpx
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from statushub.domain.enums import IncidentImpact, IncidentStatus, ServiceStatus
from statushub.domain.models import ComponentState, IncidentSummary, LiveServiceStatus
from statushub.infrastructure.status_sources.base import (
    FetchError,
    FetchResult,
    ServiceConfig,
)

logger = logging.getLogger(__name__)

AWS_SERVICES_URL = "https://servicedata-us-east-1-prod.s3.amazonaws.com/services.json"
AWS_EVENTS_URL = "https://health.aws.amazon.com/public/currentevents"

RESOLVED_LOG_STATUS = "0"


class AwsService(BaseModel):
    service: Optional[str] = None
    service_name: Optional[str] = None
    region_id: Optional[str] = None


class AwsLogEntry(BaseModel):
    timestamp: Optional[float] = None
    status: Union[int, str, None] = None
    summary: Optional[str] = None
    message: Optional[str] = None


class AwsEvent(BaseModel):
    service: Optional[str] = None
    service_name: Optional[str] = None
    summary: Optional[str] = None
    date: Optional[float] = None
    region: Optional[str] = None
    description: Optional[str] = None
    event_log: List[AwsLogEntry] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.service_name or self.service or "Unknown"

    @property
    def latest_log(self) -> Optional[AwsLogEntry]:
        return self.event_log[0] if self.event_log else None

    @property
    def is_resolved(self) -> bool:
        latest = self.latest_log
        return latest is not None and str(latest.status) == RESOLVED_LOG_STATUS

    @property
    def incident_id(self) -> str:
        # stable d'un cycle à l'autre ; deux régions d'un même service ont des dates distinctes
        key = self.service or self.display_name
        return f"aws-{key}-{int(self.date)}" if self.date is not None else f"aws-{key}"


_services_adapter = TypeAdapter(List[AwsService])
_events_adapter = TypeAdapter(List[AwsEvent])


def decode_events_body(content: bytes) -> str:
    """currentevents : UTF-16 (BOM BE ou LE) en pratique, UTF-8 sinon."""
    if content[:2] == b"\xfe\xff":
        return content[2:].decode("utf-16-be")
    if content[:2] == b"\xff\xfe":
        return content[2:].decode("utf-16-le")
    return content.decode("utf-8-sig")


def parse_events(content: bytes) -> List[AwsEvent]:
    """Corps illisible => liste vide (les évènements sont optionnels)."""
    try:
        return _events_adapter.validate_json(decode_events_body(content))
    except (ValueError, ValidationError):
        logger.warning("aws currentevents unreadable, assuming no events")
        return []


def _to_incident_summary(evt: AwsEvent) -> IncidentSummary:
    latest = evt.latest_log
    started_at = (
        datetime.fromtimestamp(evt.date, tz=timezone.utc).isoformat() if evt.date is not None else None
    )
    return IncidentSummary(
        id=evt.incident_id,
        title=evt.summary or (latest.summary if latest else None) or evt.display_name,
        status=IncidentStatus.RESOLVED if evt.is_resolved else IncidentStatus.INVESTIGATING,
        impact=IncidentImpact.MAJOR,
        update_count=max(1, len(evt.event_log)),
        started_at=started_at,
        latest_update_body=evt.description or (latest.message if latest else None) or None,
    )


def build_live_status(config: ServiceConfig, services: List[AwsService], events: List[AwsEvent]) -> LiveServiceStatus:
    affected = {e.display_name for e in events if not e.is_resolved}
    names = sorted({s.service_name for s in services if s.service_name})

    return LiveServiceStatus(
        slug=config.slug,
        name=config.name,
        current_status=ServiceStatus.PARTIAL_OUTAGE if affected else ServiceStatus.OPERATIONAL,
        active_incidents=[_to_incident_summary(e) for e in events],
        components=[
            ComponentState(
                name=n,
                status=ServiceStatus.PARTIAL_OUTAGE if n in affected else ServiceStatus.OPERATIONAL,
            )
            for n in names
        ],
    )


async def fetch_aws(client: httpx.AsyncClient, config: ServiceConfig) -> FetchResult:
    services_resp, events_resp = await asyncio.gather(
        client.get(config.api_endpoint or AWS_SERVICES_URL),
        client.get(AWS_EVENTS_URL),
        return_exceptions=True,
    )

    if isinstance(services_resp, httpx.TimeoutException):
        return FetchResult.failure(config, FetchError(config.slug, "timeout"))
    if isinstance(services_resp, httpx.HTTPError):
        return FetchResult.failure(config, FetchError(config.slug, f"transport error: {services_resp}"))
    if isinstance(services_resp, BaseException):
        raise services_resp
    if services_resp.status_code != 200:
        return FetchResult.failure(config, FetchError(config.slug, f"HTTP {services_resp.status_code}"))

    try:
        services = _services_adapter.validate_python(services_resp.json())
    except (ValueError, ValidationError) as exc:
        return FetchResult.failure(config, FetchError(config.slug, f"malformed body: {exc}"))

    events: List[AwsEvent] = []
    if isinstance(events_resp, httpx.Response) and events_resp.status_code == 200:
        events = parse_events(events_resp.content)
    elif isinstance(events_resp, httpx.HTTPError):
        logger.warning("aws currentevents unreachable, assuming no events", extra={"reason": str(events_resp)})
    elif isinstance(events_resp, BaseException):
        raise events_resp
    else:
        logger.warning("aws currentevents unavailable", extra={"status_code": events_resp.status_code})

    return FetchResult.success(config, build_live_status(config, services, events))
