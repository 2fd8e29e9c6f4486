from __future__ import annotations

"""statushub/infrastructure/persistence/repositories/alert_log_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Journal append-only des emails envoyés (email_alert_log).

Insertion après un envoi confirmé ; comptages à fenêtre glissante pour le
rate limiter. Ne commit pas.
"""

from datetime import datetime
from typing import Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from statushub.domain.models import IncidentEvent, StatusEvent
from statushub.infrastructure.persistence.database.models.email_alert_log import EmailAlertLog


class AlertLogRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def add(
        self,
        *,
        user_id: UUID,
        event: Union[StatusEvent, IncidentEvent],
        sent_at: datetime,
    ) -> EmailAlertLog:
        is_status = isinstance(event, StatusEvent)
        row = EmailAlertLog(
            user_id=user_id,
            service_slug=event.service_slug,
            old_status=event.old_status.value if is_status else None,
            new_status=event.new_status.value if is_status else None,
            event_type=event.event_type.value,
            sent_at=sent_at,
        )
        self.db.add(row)
        return row

    def count_for_pair_since(self, user_id: UUID, service_slug: str, since: datetime) -> int:
        stmt = select(func.count(EmailAlertLog.id)).where(
            EmailAlertLog.user_id == user_id,
            EmailAlertLog.service_slug == service_slug,
            EmailAlertLog.sent_at >= since,
        )
        return int(self.db.execute(stmt).scalar_one() or 0)

    def count_for_user_since(self, user_id: UUID, since: datetime) -> int:
        stmt = select(func.count(EmailAlertLog.id)).where(
            EmailAlertLog.user_id == user_id,
            EmailAlertLog.sent_at >= since,
        )
        return int(self.db.execute(stmt).scalar_one() or 0)
