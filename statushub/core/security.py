from __future__ import annotations
"""statushub/core/security.py
~~~~~~~~~~~~~~~~~~~~~~~~
Secrets partagés des points d'entrée machine-à-machine :
- cron : `Authorization: Bearer <CRON_SECRET>`, `X-Cron-Secret` ou `?secret=` ;
- webhook Statuspage : `?secret=<WEBHOOK_SECRET>` (repli sur CRON_SECRET).

Un secret non configuré refuse tout.
"""
import hmac
from typing import Optional

from fastapi import Header, Query

from statushub.core.config import settings


def secrets_match(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def cron_authorized(
    authorization: Optional[str] = Header(default=None),
    x_cron_secret: Optional[str] = Header(default=None, alias="X-Cron-Secret"),
    secret: Optional[str] = Query(default=None),
) -> bool:
    """Dépendance FastAPI : True si l'un des trois canaux porte le bon secret."""
    expected = settings.CRON_SECRET
    return any(
        secrets_match(candidate, expected)
        for candidate in (_bearer(authorization), x_cron_secret, secret)
    )


def webhook_authorized(secret: Optional[str] = Query(default=None)) -> bool:
    return secrets_match(secret, settings.webhook_secret)
