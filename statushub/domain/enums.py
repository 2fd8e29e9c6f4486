from __future__ import annotations
"""
statushub/domain/enums.py
~~~~~~~~~~~~~~~~~~~~~~~~~
Vocabulaire normalisé du pipeline (statuts de service, statut/impact
d'incident, types d'évènements).

Les vocabulaires des fournisseurs (Statuspage, GCP, ...) sont convertis vers
ces enums dès la frontière d'entrée ; tout le reste du code ne manipule plus
que ces valeurs.
"""

import enum
from typing import Optional


class ServiceStatus(str, enum.Enum):
    OPERATIONAL = "OPERATIONAL"
    DEGRADED = "DEGRADED"
    PARTIAL_OUTAGE = "PARTIAL_OUTAGE"
    MAJOR_OUTAGE = "MAJOR_OUTAGE"
    MAINTENANCE = "MAINTENANCE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ServiceStatus":
        try:
            return cls(str(value or "").upper())
        except ValueError:
            return cls.UNKNOWN


class IncidentStatus(str, enum.Enum):
    INVESTIGATING = "INVESTIGATING"
    IDENTIFIED = "IDENTIFIED"
    MONITORING = "MONITORING"
    RESOLVED = "RESOLVED"
    POSTMORTEM = "POSTMORTEM"

    @classmethod
    def parse(cls, value: Optional[str]) -> "IncidentStatus":
        try:
            return cls(str(value or "").upper())
        except ValueError:
            return cls.INVESTIGATING


class IncidentImpact(str, enum.Enum):
    """Impact d'incident ; `rank` donne l'ordre NONE < MINOR < MAJOR < CRITICAL."""

    NONE = "NONE"
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _IMPACT_RANK[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "IncidentImpact":
        try:
            return cls(str(value or "").upper())
        except ValueError:
            return cls.NONE


_IMPACT_RANK = {
    IncidentImpact.NONE: 0,
    IncidentImpact.MINOR: 1,
    IncidentImpact.MAJOR: 2,
    IncidentImpact.CRITICAL: 3,
}


class EventType(str, enum.Enum):
    """
    Les onze types d'évènements détectables.

    Chaque membre est déclaré avec sa priorité (plus petit = plus important) :
    impossible d'ajouter un type sans lui donner un rang. La priorité décide
    de l'ordre d'affichage ET de l'évènement qui gagne le créneau d'envoi
    quand le rate limiter ne laisse passer qu'un seul mail par (user, service).
    """

    def __new__(cls, value: str, priority: int):
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.priority = priority
        return obj

    MAJOR_OUTAGE = ("major_outage", 0)
    PARTIAL_OUTAGE = ("partial_outage", 1)
    INCIDENT_ESCALATED = ("incident_escalated", 2)
    NEW_INCIDENT = ("new_incident", 3)
    DEGRADED = ("degraded", 4)
    INCIDENT_UPDATE = ("incident_update", 5)
    INCIDENT_DE_ESCALATED = ("incident_de_escalated", 6)
    MAINTENANCE = ("maintenance", 7)
    INCIDENT_RESOLVED = ("incident_resolved", 8)
    RECOVERY = ("recovery", 9)
    MAINTENANCE_COMPLETED = ("maintenance_completed", 10)

    @classmethod
    def from_name(cls, name: str) -> Optional["EventType"]:
        """'major_outage' -> EventType.MAJOR_OUTAGE ; None si inconnu."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


# Statut "dégradé" -> évènement direct (OPERATIONAL/UNKNOWN n'ont pas d'entrée)
STATUS_TO_EVENT = {
    ServiceStatus.DEGRADED: EventType.DEGRADED,
    ServiceStatus.PARTIAL_OUTAGE: EventType.PARTIAL_OUTAGE,
    ServiceStatus.MAJOR_OUTAGE: EventType.MAJOR_OUTAGE,
    ServiceStatus.MAINTENANCE: EventType.MAINTENANCE,
}
