from __future__ import annotations
"""
statushub/infrastructure/status_sources/base.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Types communs aux sources de statut amont.

- ServiceConfig : entrée du catalogue des services surveillés.
- FetchError    : échec amont (timeout, non-200, corps illisible).
- FetchResult   : ok | error ; jamais d'exception au-delà de la source.
- assume_operational_on_error : SEUL endroit où une erreur amont est
  convertie en "OPERATIONAL, zéro incident" (fail-open).
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from statushub.domain.enums import ServiceStatus
from statushub.domain.models import LiveServiceStatus

logger = logging.getLogger(__name__)

USER_AGENT = "StatusHub/1.0"


class SourceType(str, enum.Enum):
    STATUSPAGE = "STATUSPAGE"
    GCP_STATUS = "GCP_STATUS"
    AWS_HEALTH = "AWS_HEALTH"
    AZURE_HTML = "AZURE_HTML"
    NONE = "NONE"  # pas d'intégration : toujours OPERATIONAL


@dataclass(frozen=True)
class ServiceConfig:
    slug: str
    name: str
    category: str
    status_page_url: str
    source_type: SourceType = SourceType.STATUSPAGE
    api_endpoint: Optional[str] = None

    @property
    def normalized_status_page_url(self) -> str:
        return self.status_page_url.rstrip("/").lower()


class FetchError(Exception):
    """Échec de récupération amont ; porte le slug et la cause."""

    def __init__(self, slug: str, reason: str):
        super().__init__(f"{slug}: {reason}")
        self.slug = slug
        self.reason = reason


@dataclass
class FetchResult:
    config: ServiceConfig
    live: Optional[LiveServiceStatus] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.live is not None and self.error is None

    @classmethod
    def success(cls, config: ServiceConfig, live: LiveServiceStatus) -> "FetchResult":
        return cls(config=config, live=live)

    @classmethod
    def failure(cls, config: ServiceConfig, error: FetchError) -> "FetchResult":
        return cls(config=config, error=error)


def fallback_status(config: ServiceConfig) -> LiveServiceStatus:
    return LiveServiceStatus(
        slug=config.slug,
        name=config.name,
        current_status=ServiceStatus.OPERATIONAL,
        active_incidents=[],
        components=[],
        fetched=False,
    )


def assume_operational_on_error(result: FetchResult) -> LiveServiceStatus:
    """
    Politique fail-open : une alerte de panne fausse est pire qu'une alerte manquée.
    Toute erreur amont devient OPERATIONAL sans incident.
    """
    if result.ok:
        return result.live  # type: ignore[return-value]
    if result.error is not None:
        logger.warning(
            "status fetch failed, assuming operational",
            extra={"service": result.config.slug, "reason": result.error.reason},
        )
    return fallback_status(result.config)
