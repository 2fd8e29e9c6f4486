from __future__ import annotations
"""statushub/infrastructure/persistence/database/models/__init__.py
~~~~~~~~~~~~~~~~~~~~~~~~
Modèles ORM (register for Alembic).
"""

from .snapshot import ServiceStatusSnapshot
from .pending_event import PendingEvent
from .email_alert_log import EmailAlertLog
from .notification_preference import NotificationPreference
from .user_stack import UserStack

__all__ = ["ServiceStatusSnapshot", "PendingEvent", "EmailAlertLog", "NotificationPreference", "UserStack"]
