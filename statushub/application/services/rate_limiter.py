from __future__ import annotations
"""statushub/application/services/rate_limiter.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Throttle des emails, évalué contre email_alert_log (fenêtres glissantes) :

1. aucun envoi pour ce couple (user, service) depuis RATE_LIMIT_SERVICE_MINUTES ;
2. moins de RATE_LIMIT_USER_MAX envois pour ce user depuis RATE_LIMIT_USER_WINDOW_MINUTES.

Les deux règles doivent passer.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from statushub.core.config import settings
from statushub.core.utils.datetime import as_utc, utcnow
from statushub.infrastructure.persistence.repositories.alert_log_repository import AlertLogRepository

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        db: Session,
        *,
        service_minutes: Optional[int] = None,
        user_window_minutes: Optional[int] = None,
        user_max: Optional[int] = None,
    ) -> None:
        self.log = AlertLogRepository(db)
        if service_minutes is None:
            service_minutes = settings.RATE_LIMIT_SERVICE_MINUTES
        if user_window_minutes is None:
            user_window_minutes = settings.RATE_LIMIT_USER_WINDOW_MINUTES
        if user_max is None:
            user_max = settings.RATE_LIMIT_USER_MAX

        self.service_window = timedelta(minutes=service_minutes)
        self.user_window = timedelta(minutes=user_window_minutes)
        self.user_max = user_max

    def can_send(self, user_id: UUID, service_slug: str, now: Optional[datetime] = None) -> bool:
        now = as_utc(now) or utcnow()

        if self.log.count_for_pair_since(user_id, service_slug, now - self.service_window) > 0:
            logger.debug("rate limited (service window)", extra={"user_id": str(user_id), "service": service_slug})
            return False

        if self.log.count_for_user_since(user_id, now - self.user_window) >= self.user_max:
            logger.debug("rate limited (user cap)", extra={"user_id": str(user_id), "service": service_slug})
            return False

        return True
