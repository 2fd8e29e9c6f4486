from __future__ import annotations
"""statushub/workers/scheduler/beat_schedule.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Planification périodique des tâches Celery (Beat).
"""
from statushub.core.config import settings

beat_schedule = {
    "check-status-every-poll-interval": {
        "task": "tasks.check_status",
        "schedule": float(settings.POLL_INTERVAL_SECONDS),
    },
}
