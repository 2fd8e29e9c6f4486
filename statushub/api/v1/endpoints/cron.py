from __future__ import annotations
"""statushub/api/v1/endpoints/cron.py
~~~~~~~~~~~~~~~~~~~~~~~~
Déclencheur du passage de poll, appelé par un planificateur externe.

- 401 {error} si le secret est absent/faux ;
- 500 {error} si le passage échoue avant le traitement par service ;
- 200 avec les compteurs best-effort sinon (services en échec dans `failed`).

Endpoint sync : FastAPI l'exécute dans son threadpool (le fetch pilote sa
propre boucle asyncio).
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from statushub.api.v1.endpoints.deps import get_live_cache
from statushub.application.services.live_cache import LiveCache
from statushub.application.services.status_monitor_service import run_poll_pass
from statushub.core.security import cron_authorized

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron")


def _check_status(authorized: bool, cache: LiveCache) -> JSONResponse:
    if not authorized:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    try:
        result = run_poll_pass(cache)
    except Exception as exc:  # noqa: BLE001
        logger.exception("poll pass failed")
        return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})
    return JSONResponse(status_code=200, content=result.to_response())


@router.get("/check-status")
def check_status_get(
    authorized: bool = Depends(cron_authorized),
    cache: LiveCache = Depends(get_live_cache),
):
    return _check_status(authorized, cache)


@router.post("/check-status")
def check_status_post(
    authorized: bool = Depends(cron_authorized),
    cache: LiveCache = Depends(get_live_cache),
):
    return _check_status(authorized, cache)
