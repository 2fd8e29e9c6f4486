# tests/conftest.py
"""
Conftest *global* pour toute la suite de tests.

Points clés (tests @unit) :
  - ENV sûres (pas d'appels externes) + DATABASE_URL SQLite in-memory.
  - Celery en mode "eager" (exécution in-process).
  - DB SQLite in-memory partagée + Base.metadata.create_all, purgée entre tests.
  - Patch FORT de la pile DB : get_sync_session dans le module session ET dans
    les modules consommateurs (référence figée à l'import).
  - `mock_email` : capture les envois SMTP.
  - `mock_upstream` : httpx.MockTransport à la place du réseau (Statuspage / GCP).
"""

import os
import importlib
import pkgutil
from contextlib import contextmanager

import httpx
import pytest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# ============================================================================
# Helpers
# ============================================================================
def _is_unit(request: pytest.FixtureRequest) -> bool:
    """True si le test courant est marqué @pytest.mark.unit."""
    return request.node.get_closest_marker("unit") is not None


def statuspage_summary(indicator="none", incidents=None, components=None) -> dict:
    """Corps summary.json minimal (forme Statuspage v2)."""
    return {
        "page": {"id": "p1", "name": "Example"},
        "status": {"indicator": indicator, "description": "..."},
        "components": components or [],
        "incidents": incidents or [],
    }


def azure_status_html(rows=(("Virtual Machines", ("Good",)),)) -> str:
    """Page Azure minimale : `rows` = ((service, (data-label par région, ...)), ...)."""
    body = "".join(
        "<tr><td>{}</td>{}</tr>".format(
            name,
            "".join(f'<td class="status-cell"><span data-label="{lbl}"></span></td>' for lbl in labels),
        )
        for name, labels in rows
    )
    return f"<html><body><table class=\"region-status-table\">{body}</table></body></html>"


def statuspage_incident(
    id="i1",
    name="Elevated error rates",
    status="investigating",
    impact="minor",
    updates=1,
    body="We are investigating.",
    resolved_at=None,
) -> dict:
    return {
        "id": id,
        "name": name,
        "status": status,
        "impact": impact,
        "started_at": "2026-01-15T11:50:00.000Z",
        "resolved_at": resolved_at,
        "shortlink": "https://stspg.io/x",
        "incident_updates": [
            {"id": f"u{n}", "status": status, "body": body, "created_at": "2026-01-15T11:55:00.000Z"}
            for n in range(updates)
        ],
    }


# ============================================================================
# UNIT-ONLY: ENV sûres (pas d'appels externes) + DATABASE_URL SQLite
# ============================================================================
@pytest.fixture(autouse=True)
def unit_env(request):
    """
    En unit : fixe des ENV sûres pour ne jamais appeler l'extérieur.
    Hors unit : ne fait rien.
    """
    if not _is_unit(request):
        return
    os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    os.environ.setdefault("SMTP_HOST", "smtp.example.invalid")


# ============================================================================
# UNIT-ONLY: Celery en mode "eager" (tâches exécutées in-process)
# ============================================================================
@pytest.fixture(autouse=True)
def celery_eager(request):
    """
    Active le mode 'eager' de Celery en unit.
    ⚠️ Fixture générateur : DOIT toujours 'yield', même hors unit.
    """
    if not _is_unit(request):
        yield
        return

    from statushub.workers.celery_app import celery

    prev_always = celery.conf.task_always_eager
    prev_propag = celery.conf.task_eager_propagates
    celery.conf.task_always_eager = True
    celery.conf.task_eager_propagates = True
    try:
        yield
    finally:
        celery.conf.task_always_eager = prev_always
        celery.conf.task_eager_propagates = prev_propag


# ============================================================================
# UNIT-ONLY: DB SQLite in-memory partagée + Base.metadata.create_all
# ============================================================================
@pytest.fixture(scope="session")
def _sqlite_engine_unit():
    """Engine in-memory **partagé** entre connexions (StaticPool + check_same_thread=False)."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Charger tous les modèles avant create_all
    from statushub.infrastructure.persistence.database import base as db_base
    from statushub.infrastructure.persistence.database import models as models_pkg

    for _finder, name, _ispkg in pkgutil.walk_packages(
        models_pkg.__path__, models_pkg.__name__ + "."
    ):
        importlib.import_module(name)

    db_base.Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="session")
def _Session_unit(_sqlite_engine_unit):
    return sessionmaker(
        bind=_sqlite_engine_unit,
        future=True,
        autoflush=True,
        expire_on_commit=False,
    )


@pytest.fixture
def Session(request, _Session_unit):
    """
    sessionmaker à utiliser comme `with Session() as s:` dans les tests unitaires.
    Skippé s'il est injecté dans un test non marqué @unit.
    """
    if not _is_unit(request):
        pytest.skip("Session fixture is only available for unit tests")
    return _Session_unit


@pytest.fixture(autouse=True)
def _clear_db_between_unit_tests(request, _Session_unit):
    """Après chaque test unitaire, vide toutes les tables. ⚠️ Générateur."""
    if not _is_unit(request):
        yield
        return

    yield
    from statushub.infrastructure.persistence.database import base as db_base
    with _Session_unit() as s:
        for table in reversed(db_base.Base.metadata.sorted_tables):
            s.execute(table.delete())
        s.commit()


# ============================================================================
# UNIT-ONLY: Patch DB fort (get_sync_session)
# ============================================================================
@pytest.fixture(autouse=True)
def patch_db_stack_for_unit(request, monkeypatch, _Session_unit, _sqlite_engine_unit):
    """
    Rend *impossible* l'usage de Postgres pendant les tests unitaires.
    Les modules consommateurs ont figé `get_sync_session` à l'import :
    on patche donc aussi leur référence locale.
    """
    if not _is_unit(request):
        return

    @contextmanager
    def _fake_get_sync_session():
        with _Session_unit() as s:
            yield s

    sess_mod = importlib.import_module("statushub.infrastructure.persistence.database.session")
    monkeypatch.setattr(sess_mod, "get_sync_session", _fake_get_sync_session)
    monkeypatch.setattr(sess_mod, "_engine", _sqlite_engine_unit)
    monkeypatch.setattr(sess_mod, "_SessionLocal", _Session_unit)

    to_patch = [
        "statushub.application.services.status_monitor_service",
    ]
    for modname in to_patch:
        m = importlib.import_module(modname)
        monkeypatch.setattr(m, "get_sync_session", _fake_get_sync_session, raising=False)


# ============================================================================
# UNIT-ONLY: Mock EmailProvider (capture des envois)
# ============================================================================
@pytest.fixture
def mock_email(request, monkeypatch):
    """
    Remplace EmailProvider là où il est réellement instancié (orchestrateur).
    Retourne la liste des envois capturés : dicts {to, subject, html, text}.
    """
    if not _is_unit(request):
        return None

    calls: list[dict] = []

    class _MockProvider:
        def __init__(self, *args, **kwargs):  # noqa: ARG002
            pass

        def send(self, **kw):
            calls.append(kw)
            return True

    import statushub.application.services.status_monitor_service as sms
    monkeypatch.setattr(sms, "EmailProvider", _MockProvider, raising=True)
    return calls


# ============================================================================
# UNIT-ONLY: amont HTTP simulé (httpx.MockTransport)
# ============================================================================
@pytest.fixture
def mock_upstream(request, monkeypatch):
    """
    Route les requêtes de status_source vers un MockTransport.
    `routes` : {url: (status_code, json_body) | Exception}. Par défaut :
      - */incidents.json (GCP), AWS services.json / currentevents -> []
      - page Azure -> un service "Good"
      - tout le reste -> summary.json opérationnel
    `requests` : URLs effectivement appelées.
    """
    if not _is_unit(request):
        return None

    state = {"routes": {}, "requests": []}

    def handler(req: httpx.Request) -> httpx.Response:
        url = str(req.url)
        state["requests"].append(url)
        route = state["routes"].get(url)
        if isinstance(route, Exception):
            raise route
        if route is not None:
            code, body = route
            if isinstance(body, (bytes, str)):
                return httpx.Response(code, content=body)
            return httpx.Response(code, json=body)
        if url.endswith("/incidents.json") or url.endswith("/services.json") or url.endswith("/currentevents"):
            return httpx.Response(200, json=[])
        if url.startswith("https://azure.status.microsoft"):
            return httpx.Response(200, text=azure_status_html())
        return httpx.Response(200, json=statuspage_summary())

    transport = httpx.MockTransport(handler)

    import statushub.application.services.status_source as src
    original = src._make_client

    def _make_client(_transport=None):
        return original(transport)

    monkeypatch.setattr(src, "_make_client", _make_client)
    return state
