from __future__ import annotations
"""
statushub/domain/models.py
~~~~~~~~~~~~~~~~~~~~~~~~~~
Modèles métier (pydantic) échangés entre les étapes du pipeline :

- LiveServiceStatus / IncidentSummary / ComponentState : état live d'un service,
  recalculé à chaque poll (jamais persisté tel quel).
- SnapshotEntry / PreviousSnapshot : baseline de diff (forme de incidents_json).
- StatusEvent / IncidentEvent : union taguée (`scope`) des évènements détectés.
  C'est aussi la forme sérialisée dans pending_events.event_data.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from statushub.domain.enums import (
    EventType,
    IncidentImpact,
    IncidentStatus,
    ServiceStatus,
)


class ComponentState(BaseModel):
    name: str
    status: ServiceStatus = ServiceStatus.UNKNOWN


class IncidentSummary(BaseModel):
    id: str
    title: str = "Unknown incident"
    status: IncidentStatus = IncidentStatus.INVESTIGATING
    impact: IncidentImpact = IncidentImpact.NONE
    update_count: int = 0
    started_at: Optional[str] = None
    latest_update_body: Optional[str] = None


class LiveServiceStatus(BaseModel):
    slug: str
    name: str
    current_status: ServiceStatus = ServiceStatus.OPERATIONAL
    active_incidents: List[IncidentSummary] = Field(default_factory=list)
    components: List[ComponentState] = Field(default_factory=list)
    # False quand la valeur vient de la politique "assume operational"
    fetched: bool = True

    @property
    def affected_components(self) -> List[ComponentState]:
        return [c for c in self.components if c.status != ServiceStatus.OPERATIONAL]

    @property
    def latest_incident_title(self) -> Optional[str]:
        return self.active_incidents[0].title if self.active_incidents else None


class SnapshotEntry(BaseModel):
    """Une ligne de incidents_json (clés camelCase conservées pour le format stocké)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: IncidentStatus = IncidentStatus.INVESTIGATING
    impact: IncidentImpact = IncidentImpact.NONE
    update_count: int = Field(0, alias="updateCount")
    resolved_at: Optional[datetime] = Field(None, alias="resolvedAt")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PreviousSnapshot(BaseModel):
    """Baseline d'un service ; incidents=None => jamais capturé (pas de diff incident)."""

    status: ServiceStatus = ServiceStatus.OPERATIONAL
    incidents: Optional[List[SnapshotEntry]] = None


class _EventBase(BaseModel):
    event_type: EventType
    service_slug: str
    service_name: str
    affected_components: List[ComponentState] = Field(default_factory=list)
    latest_update_body: Optional[str] = None
    incident_started_at: Optional[str] = None


class StatusEvent(_EventBase):
    scope: Literal["status"] = "status"
    old_status: ServiceStatus
    new_status: ServiceStatus
    # Titre de l'incident principal en cours (contexte du mail)
    incident_title: Optional[str] = None


class IncidentEvent(_EventBase):
    scope: Literal["incident"] = "incident"
    incident_id: str
    incident_title: str = "Unknown incident"
    incident_status: IncidentStatus = IncidentStatus.INVESTIGATING
    incident_impact: IncidentImpact = IncidentImpact.NONE
    old_impact: Optional[IncidentImpact] = None


DetectedEvent = Annotated[Union[StatusEvent, IncidentEvent], Field(discriminator="scope")]

_event_adapter: TypeAdapter = TypeAdapter(DetectedEvent)


def dump_event(event: Union[StatusEvent, IncidentEvent]) -> dict:
    return event.model_dump(mode="json")


def load_event(data: dict) -> Union[StatusEvent, IncidentEvent]:
    return _event_adapter.validate_python(data)


def event_summary(event: Union[StatusEvent, IncidentEvent]) -> dict:
    """Forme compacte `{slug, type, from?, to?, incident?}` renvoyée par les endpoints."""
    out = {"slug": event.service_slug, "type": event.event_type.value}
    if isinstance(event, StatusEvent):
        out["from"] = event.old_status.value
        out["to"] = event.new_status.value
    if event.incident_title:
        out["incident"] = event.incident_title
    return out
