# tests/unit/conftest.py
# ─────────────────────────────────────────────────────────────────────────────
# Conftest pour les TESTS UNITAIRES.
#
# Pose les ENV *avant* les imports statushub.* pour que Settings() voie des
# secrets de test et un SMTP factice. Aucun module statushub n'est importé au
# niveau module dans les conftests : Settings() est instancié après ce hook.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

CRON_SECRET = "test-cron-secret"
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config) -> None:  # noqa: ARG001
    os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    os.environ.setdefault("CRON_SECRET", CRON_SECRET)
    os.environ.setdefault("SMTP_HOST", "smtp.example.invalid")
    os.environ.setdefault("SITE_URL", "https://statushub.example")


@pytest.fixture
def now() -> datetime:
    """Horloge figée commune aux tests (15/01/2026 12:00 UTC)."""
    return NOW
