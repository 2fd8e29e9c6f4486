from __future__ import annotations
"""statushub/workers/celery_app.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Celery app + routage + auto-import des modules de tâches + beat schedule.
"""
from celery import Celery

from statushub.core.config import settings
from statushub.workers.scheduler.beat_schedule import beat_schedule

celery = Celery("statushub", broker=settings.REDIS_URL, backend=settings.REDIS_URL)

# Routage par files
celery.conf.task_routes = {
    "tasks.check_status": {"queue": "status"},
}

# Un passage en retard n'a plus de sens après l'intervalle suivant
celery.conf.task_default_expires = settings.POLL_INTERVAL_SECONDS

celery.conf.beat_schedule = beat_schedule

celery.conf.update(
    imports=[
        "statushub.workers.tasks.status_tasks",
    ],
)
