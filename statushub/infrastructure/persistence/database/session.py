from __future__ import annotations

"""statushub/infrastructure/persistence/database/session.py
~~~~~~~~~~~~~~~~~~~~~~~~
Engine + sessions synchrones (poll Celery, cron et webhooks).

Un seul engine par process, créé au premier `get_sync_session()`.
Les tests unitaires remplacent `_engine` / `_SessionLocal` par la base
SQLite in-memory du conftest.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from statushub.core.config import settings

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def _connect_options() -> tuple[dict, dict]:
    """(connect_args, kwargs engine) selon le dialecte de DATABASE_URL."""
    url = make_url(settings.DATABASE_URL)
    backend = url.get_backend_name()
    connect_args: dict = {}
    kwargs: dict = {"pool_pre_ping": True}

    if backend.startswith("postgresql"):
        connect_args["connect_timeout"] = int(settings.DB_CONNECT_TIMEOUT)
    elif backend.startswith("sqlite"):
        # un webhook et le poll peuvent partager le process
        connect_args["check_same_thread"] = False
        if (url.database or "").strip() in ("", ":memory:"):
            kwargs["poolclass"] = StaticPool

    return connect_args, kwargs


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        connect_args, kwargs = _connect_options()
        _engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, **kwargs)
    return _engine


@contextmanager
def get_sync_session() -> Iterator[Session]:
    """`with get_sync_session() as s:` ; les repositories ne commitent pas, l'appelant si."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=True, expire_on_commit=False)

    s = _SessionLocal()
    try:
        yield s
    finally:
        s.close()
