from __future__ import annotations
"""statushub/api/v1/endpoints/deps.py
~~~~~~~~~~~~~~~~~~~~~~~~
Dépendances partagées des endpoints.
"""
from fastapi import Request

from statushub.application.services.live_cache import LiveCache
from statushub.core.config import settings


def get_live_cache(request: Request) -> LiveCache:
    """Instance unique par process, créée au besoin sur app.state."""
    cache = getattr(request.app.state, "live_cache", None)
    if cache is None:
        cache = LiveCache(ttl_seconds=settings.LIVE_CACHE_TTL_SECONDS)
        request.app.state.live_cache = cache
    return cache
