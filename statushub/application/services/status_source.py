from __future__ import annotations
"""statushub/application/services/status_source.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Récupération de l'état live des services :

- fetch concurrent sur un seul httpx.AsyncClient, par batches de FETCH_BATCH_SIZE
  (chaque batch attendu avant le suivant) ;
- chaque fetch a un timeout et ne lève jamais : FetchResult ok | error ;
- l'erreur est convertie en "OPERATIONAL" à un seul endroit
  (assume_operational_on_error) ;
- LiveCache devant le tout (`live:all`, `live:<slug>`).

Les points d'entrée publics sont synchrones (appelés depuis une tâche Celery
ou un endpoint FastAPI sync) et pilotent la boucle avec asyncio.run.
`transport` permet aux tests d'injecter un httpx.MockTransport.
"""

import asyncio
import logging
from typing import Iterable, List, Optional

import httpx

from statushub.application.services.live_cache import ALL_KEY, LiveCache, service_key
from statushub.core.config import settings
from statushub.core.services import SERVICES, get_service
from statushub.domain.models import LiveServiceStatus
from statushub.infrastructure.status_sources.base import (
    USER_AGENT,
    FetchError,
    FetchResult,
    ServiceConfig,
    SourceType,
    assume_operational_on_error,
    fallback_status,
)
from statushub.infrastructure.status_sources.aws import fetch_aws
from statushub.infrastructure.status_sources.azure import fetch_azure
from statushub.infrastructure.status_sources.gcp import fetch_gcp
from statushub.infrastructure.status_sources.statuspage import fetch_statuspage

logger = logging.getLogger(__name__)

__all__ = [
    "fetch_all",
    "get_all_live",
    "get_service_live",
]


def _make_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.FETCH_TIMEOUT_SECONDS,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        transport=transport,
    )


async def _fetch_one(client: httpx.AsyncClient, config: ServiceConfig) -> FetchResult:
    if config.source_type == SourceType.STATUSPAGE:
        return await fetch_statuspage(client, config)
    if config.source_type == SourceType.GCP_STATUS:
        return await fetch_gcp(client, config)
    if config.source_type == SourceType.AWS_HEALTH:
        return await fetch_aws(client, config)
    if config.source_type == SourceType.AZURE_HTML:
        return await fetch_azure(client, config)
    # Pas d'intégration supportée : toujours OPERATIONAL
    return FetchResult.success(config, fallback_status(config))


async def fetch_all(
    configs: Iterable[ServiceConfig],
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    batch_size: Optional[int] = None,
) -> List[FetchResult]:
    """Un FetchResult par config, dans l'ordre du catalogue."""
    configs = list(configs)
    size = max(1, batch_size or settings.FETCH_BATCH_SIZE)
    results: List[FetchResult] = []

    async with _make_client(transport) as client:
        for start in range(0, len(configs), size):
            batch = configs[start:start + size]
            outcomes = await asyncio.gather(
                *(_fetch_one(client, c) for c in batch),
                return_exceptions=True,
            )
            for config, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    outcome = FetchResult.failure(config, FetchError(config.slug, repr(outcome)))
                results.append(outcome)

    return results


def get_all_live(
    cache: LiveCache,
    *,
    configs: Optional[List[ServiceConfig]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[LiveServiceStatus]:
    """État live de tous les services (cache `live:all` si frais)."""
    cached = cache.get(ALL_KEY)
    if cached is not None:
        return cached

    results = asyncio.run(fetch_all(configs if configs is not None else SERVICES, transport=transport))
    lives = [assume_operational_on_error(r) for r in results]

    failed = sum(1 for r in results if not r.ok)
    logger.info("live status fetched", extra={"services": len(lives), "fetch_failures": failed})

    cache.set(ALL_KEY, lives)
    for live in lives:
        cache.set(service_key(live.slug), live)
    return lives


def get_service_live(
    slug: str,
    cache: LiveCache,
    *,
    bypass_cache: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[LiveServiceStatus]:
    """
    État live d'un seul service ; None si le slug est inconnu.
    bypass_cache=True (webhook) force un fetch frais et rafraîchit `live:<slug>`.
    """
    config = get_service(slug)
    if config is None:
        return None

    if not bypass_cache:
        cached = cache.get(service_key(slug))
        if cached is not None:
            return cached
        for live in cache.get(ALL_KEY) or []:
            if live.slug == slug:
                return live

    [result] = asyncio.run(fetch_all([config], transport=transport))
    live = assume_operational_on_error(result)
    cache.set(service_key(slug), live)
    return live
