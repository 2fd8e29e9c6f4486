from __future__ import annotations
"""statushub/api/v1/endpoints/webhooks.py
~~~~~~~~~~~~~~~~~~~~~~~~
Récepteur des webhooks Statuspage.

Le service est identifié par `page.status_url` du corps (slash final et casse
ignorés), sinon par `?service=<slug>`. Les données sont re-fetchées sans cache
puis traitées par l'orchestrateur pour ce seul service.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from statushub.api.v1.endpoints.deps import get_live_cache
from statushub.application.services.live_cache import LiveCache
from statushub.application.services.status_monitor_service import process_webhook_service
from statushub.core.security import webhook_authorized
from statushub.core.services import find_by_status_page_url, get_service
from statushub.domain.models import event_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks")


def _identify(payload: Any, service: Optional[str]) -> Optional[str]:
    page = payload.get("page") if isinstance(payload, dict) else None
    url = page.get("status_url") if isinstance(page, dict) else None
    if isinstance(url, str):
        config = find_by_status_page_url(url)
        if config is not None:
            return config.slug
    return service or None


@router.post("/statuspage")
def statuspage_webhook(
    payload: Any = Body(default=None),
    service: Optional[str] = Query(default=None),
    authorized: bool = Depends(webhook_authorized),
    cache: LiveCache = Depends(get_live_cache),
):
    if not authorized:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    slug = _identify(payload, service)
    if not slug:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Could not identify service")
    if get_service(slug) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown service: {slug}")

    result = process_webhook_service(slug, cache)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown service: {slug}")

    logger.info("statuspage webhook processed", extra={"service": slug, "events": len(result.events)})
    return {
        "service": slug,
        "source": "webhook",
        "events": len(result.events),
        "emailsSent": result.emails_sent,
        "pendingFlushed": result.pending_flushed,
        "detectedEvents": [event_summary(e) for e in result.events],
    }
