from __future__ import annotations
"""
statushub/domain/event_detector.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Diff (état live, snapshot précédent) -> liste ordonnée d'évènements typés.

Fonctions pures, sans I/O :
    detect_events(live, prev)   -> list[StatusEvent | IncidentEvent]
    sort_events(events)         -> tri stable par EventType.priority
    build_snapshot_entries(...) -> incidents_json à persister pour le cycle suivant

Deux machines à états sont diffées indépendamment à chaque cycle :
- le statut global du service (STABLE -> TRANSITIONING -> STABLE) ;
- chaque incident (NEW -> escalades/désescalades/updates* -> RESOLVED, terminal).
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from statushub.core.utils.datetime import as_utc
from statushub.domain.enums import (
    STATUS_TO_EVENT,
    EventType,
    IncidentStatus,
    ServiceStatus,
)
from statushub.domain.models import (
    IncidentEvent,
    LiveServiceStatus,
    PreviousSnapshot,
    SnapshotEntry,
    StatusEvent,
)

Event = Union[StatusEvent, IncidentEvent]


def _status_event(live: LiveServiceStatus, old: ServiceStatus) -> Optional[StatusEvent]:
    new = live.current_status
    if old == new:
        return None

    if new == ServiceStatus.OPERATIONAL:
        event_type = (
            EventType.MAINTENANCE_COMPLETED
            if old == ServiceStatus.MAINTENANCE
            else EventType.RECOVERY
        )
        latest_body = None
    else:
        event_type = STATUS_TO_EVENT.get(new)
        if event_type is None:
            # UNKNOWN (ou valeur non mappée) : pas d'évènement
            return None
        latest_body = live.active_incidents[0].latest_update_body if live.active_incidents else None

    return StatusEvent(
        event_type=event_type,
        service_slug=live.slug,
        service_name=live.name,
        old_status=old,
        new_status=new,
        incident_title=live.latest_incident_title,
        affected_components=live.affected_components,
        latest_update_body=latest_body,
    )


def _incident_events(live: LiveServiceStatus, previous: List[SnapshotEntry]) -> List[IncidentEvent]:
    prev_map = {e.id: e for e in previous}
    affected = live.affected_components
    out: List[IncidentEvent] = []

    for inc in live.active_incidents:
        prev = prev_map.get(inc.id)

        def _emit(event_type: EventType, old_impact=None) -> None:
            out.append(IncidentEvent(
                event_type=event_type,
                service_slug=live.slug,
                service_name=live.name,
                incident_id=inc.id,
                incident_title=inc.title,
                incident_status=inc.status,
                incident_impact=inc.impact,
                old_impact=old_impact,
                affected_components=affected,
                latest_update_body=inc.latest_update_body,
                incident_started_at=inc.started_at,
            ))

        if prev is None:
            _emit(EventType.NEW_INCIDENT)
            continue

        # Résolution déjà notifiée : identité close, plus aucun évènement
        if prev.status == IncidentStatus.RESOLVED:
            continue

        if inc.status == IncidentStatus.RESOLVED:
            _emit(EventType.INCIDENT_RESOLVED)
            continue

        if inc.impact.rank > prev.impact.rank:
            _emit(EventType.INCIDENT_ESCALATED, old_impact=prev.impact)
            continue

        if inc.impact.rank < prev.impact.rank:
            _emit(EventType.INCIDENT_DE_ESCALATED, old_impact=prev.impact)
            continue

        if inc.update_count > prev.update_count:
            _emit(EventType.INCIDENT_UPDATE)

    return out


def detect_events(live: LiveServiceStatus, prev: Optional[PreviousSnapshot]) -> List[Event]:
    """
    Évènements du cycle courant (non triés).

    - Statut : ancien = prev.status (OPERATIONAL si aucun snapshot).
    - Incidents : ignorés si prev est None ou prev.incidents est None
      (première observation : on ne fabrique pas d'historique).
    """
    events: List[Event] = []

    old_status = prev.status if prev is not None else ServiceStatus.OPERATIONAL
    status_event = _status_event(live, old_status)
    if status_event is not None:
        events.append(status_event)

    if prev is None or prev.incidents is None:
        return events

    events.extend(_incident_events(live, prev.incidents))
    return events


def sort_events(events: Iterable[Event]) -> List[Event]:
    """Tri stable par priorité (major_outage d'abord, maintenance_completed en dernier)."""
    return sorted(events, key=lambda e: e.event_type.priority)


def build_snapshot_entries(
    live: LiveServiceStatus,
    prev: Optional[PreviousSnapshot],
    *,
    now: datetime,
    resolved_retention: timedelta,
) -> List[SnapshotEntry]:
    """
    incidents_json du prochain cycle.

    Les incidents live remplacent les précédents, sauf un id déjà stocké
    RESOLVED : son entrée est reprise à l'identique (statut, resolvedAt) même
    si l'amont le re-publie ouvert. Une fois l'amont muet, l'entrée est
    conservée pendant `resolved_retention`, pour qu'il ne revienne jamais
    comme "new_incident" ni ne re-déclenche "incident_resolved".
    """
    previous = {e.id: e for e in (prev.incidents or [])} if prev is not None else {}
    entries: List[SnapshotEntry] = []
    seen: set[str] = set()

    for inc in live.active_incidents:
        before = previous.get(inc.id)
        if before is not None and before.status == IncidentStatus.RESOLVED:
            # Identité close : l'entrée RESOLVED reste telle quelle tant que
            # l'amont liste l'id, quel que soit son statut live.
            entries.append(before.model_copy(update={"resolved_at": as_utc(before.resolved_at) or now}))
            seen.add(inc.id)
            continue

        resolved_at = now if inc.status == IncidentStatus.RESOLVED else None
        entries.append(SnapshotEntry(
            id=inc.id,
            status=inc.status,
            impact=inc.impact,
            update_count=inc.update_count,
            resolved_at=resolved_at,
        ))
        seen.add(inc.id)

    for entry in previous.values():
        if entry.id in seen or entry.status != IncidentStatus.RESOLVED:
            continue
        resolved_at = as_utc(entry.resolved_at) or now
        if now - resolved_at < resolved_retention:
            entries.append(entry.model_copy(update={"resolved_at": resolved_at}))

    return entries
