# statushub/domain/policies.py

from __future__ import annotations
"""
Règles métier de filtrage par sévérité (préférences de notification).

Le champ `severity_threshold` stocké est une chaîne :
- soit un preset historique (`all`, `outages_only`, `major_only`) ;
- soit un ensemble explicite "major_outage,recovery,...".

La chaîne est convertie dès la lecture en union taguée `Preset | ExplicitSet`,
puis on ne manipule plus que l'ensemble résolu.

Fonctions principales :
    parse_threshold(raw)            -> Preset | ExplicitSet
    resolve(threshold)              -> frozenset[EventType]
    allows(event_type, threshold)   -> bool
"""

from dataclasses import dataclass
from typing import FrozenSet, Literal, Optional, Union

from statushub.domain.enums import EventType

PresetName = Literal["all", "outages_only", "major_only"]

PRESETS: dict[str, FrozenSet[EventType]] = {
    "all": frozenset(EventType),
    "outages_only": frozenset({
        EventType.PARTIAL_OUTAGE,
        EventType.MAJOR_OUTAGE,
        EventType.NEW_INCIDENT,
        EventType.INCIDENT_ESCALATED,
        EventType.INCIDENT_DE_ESCALATED,
        EventType.INCIDENT_RESOLVED,
        EventType.RECOVERY,
    }),
    "major_only": frozenset({
        EventType.MAJOR_OUTAGE,
        EventType.RECOVERY,
        EventType.INCIDENT_ESCALATED,
        EventType.INCIDENT_RESOLVED,
    }),
}


@dataclass(frozen=True)
class Preset:
    name: PresetName


@dataclass(frozen=True)
class ExplicitSet:
    types: FrozenSet[EventType]


Threshold = Union[Preset, ExplicitSet]


def parse_threshold(raw: Optional[str]) -> Threshold:
    """
    Chaîne persistée -> Preset | ExplicitSet.
    Les noms inconnus sont ignorés ; vide/malformé -> ExplicitSet vide (rien ne passe).
    """
    value = (raw or "").strip()
    if value in PRESETS:
        return Preset(value)  # type: ignore[arg-type]

    types = set()
    for part in value.split(","):
        event_type = EventType.from_name(part)
        if event_type is not None:
            types.add(event_type)
    return ExplicitSet(frozenset(types))


def resolve(threshold: Threshold) -> FrozenSet[EventType]:
    if isinstance(threshold, Preset):
        return PRESETS[threshold.name]
    return threshold.types


def allows(event_type: EventType, threshold: Union[Threshold, str, None]) -> bool:
    """Appartenance simple ; accepte aussi la chaîne brute pour les appels ponctuels."""
    if threshold is None or isinstance(threshold, str):
        threshold = parse_threshold(threshold)
    return event_type in resolve(threshold)


def to_wire(threshold: Threshold) -> str:
    """Forme persistée (inverse de parse_threshold)."""
    if isinstance(threshold, Preset):
        return threshold.name
    return ",".join(t.value for t in sorted(threshold.types, key=lambda t: t.priority))
