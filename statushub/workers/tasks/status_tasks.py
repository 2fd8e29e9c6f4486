from __future__ import annotations
"""statushub/workers/tasks/status_tasks.py
~~~~~~~~~~~~~~~~~~~~~~~~
Passage de poll périodique (même pipeline que l'endpoint cron).

Le LiveCache est propre au process worker.
"""
from celery.utils.log import get_task_logger

from statushub.application.services.live_cache import LiveCache
from statushub.application.services.status_monitor_service import run_poll_pass
from statushub.core.config import settings
from statushub.workers.celery_app import celery

logger = get_task_logger(__name__)

live_cache = LiveCache(ttl_seconds=settings.LIVE_CACHE_TTL_SECONDS)


@celery.task(name="tasks.check_status")
def check_status() -> dict:
    result = run_poll_pass(live_cache)
    logger.info(
        "check_status: %d service(s), %d event(s), %d email(s), %d failure(s)",
        result.checked, len(result.events), result.emails_sent, len(result.failed),
    )
    return result.to_response()
