# tests/unit/test_statuspage_source.py
# -------------------------------------------------------------------
# Sources amont (Statuspage / GCP) :
# - normalisation des vocabulaires vendor ;
# - recalcul du statut global depuis les incidents réellement actifs ;
# - fail-open : timeout / non-200 / corps illisible => OPERATIONAL.
# Aucun appel réseau : httpx.MockTransport.
# -------------------------------------------------------------------
import asyncio

import httpx
import pytest

from statushub.application.services.live_cache import ALL_KEY, LiveCache, service_key
from statushub.application.services.status_source import fetch_all, get_all_live, get_service_live
from statushub.core.services import SERVICES, find_by_status_page_url, get_service
from statushub.domain.enums import IncidentImpact, IncidentStatus, ServiceStatus
from statushub.infrastructure.status_sources import gcp, statuspage
from statushub.infrastructure.status_sources.base import ServiceConfig, assume_operational_on_error

pytestmark = pytest.mark.unit

GITHUB = get_service("github")
GITHUB_SUMMARY = "https://www.githubstatus.com/api/v2/summary.json"


def _summary(indicator="none", incidents=None, components=None):
    return statuspage.StatuspageSummary.model_validate({
        "status": {"indicator": indicator},
        "incidents": incidents or [],
        "components": components or [],
    })


def _incident(id="i1", status="investigating", impact="minor", resolved_at=None, updates=("first",)):
    return {
        "id": id,
        "name": f"Incident {id}",
        "status": status,
        "impact": impact,
        "resolved_at": resolved_at,
        "incident_updates": [{"id": f"u{n}", "body": body} for n, body in enumerate(updates)],
    }


def _fetch_one(handler, config=GITHUB):
    [result] = asyncio.run(fetch_all([config], transport=httpx.MockTransport(handler)))
    return result


# ──────────────────────────────────────────────────────────────────────────────
# Normalisation Statuspage
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "indicator,expected",
    [
        ("none", ServiceStatus.OPERATIONAL),
        ("minor", ServiceStatus.DEGRADED),
        ("major", ServiceStatus.PARTIAL_OUTAGE),
        ("critical", ServiceStatus.MAJOR_OUTAGE),
        ("maintenance", ServiceStatus.MAINTENANCE),
        ("weird", ServiceStatus.UNKNOWN),
        (None, ServiceStatus.UNKNOWN),
    ],
)
def test_map_indicator(indicator, expected):
    assert statuspage.map_indicator(indicator) == expected


def test_map_component_status():
    assert statuspage.map_component_status("degraded_performance") == ServiceStatus.DEGRADED
    assert statuspage.map_component_status("under_maintenance") == ServiceStatus.MAINTENANCE
    assert statuspage.map_component_status("???") == ServiceStatus.UNKNOWN


def test_active_incident_overrides_operational_indicator():
    live = statuspage.build_live_status(GITHUB, _summary("none", [
        _incident("a", impact="minor"),
        _incident("b", impact="critical"),
    ]))
    assert live.current_status == ServiceStatus.MAJOR_OUTAGE


@pytest.mark.parametrize(
    "incident",
    [
        _incident(status="monitoring", impact="critical"),
        _incident(impact="none"),
        _incident(status="resolved", impact="major", resolved_at="2026-01-15T11:00:00Z"),
    ],
)
def test_non_active_incidents_never_escalate(incident):
    live = statuspage.build_live_status(GITHUB, _summary("none", [incident]))
    assert live.current_status == ServiceStatus.OPERATIONAL
    # l'incident reste listé pour le diff
    assert [i.id for i in live.active_incidents] == ["i1"]


def test_indicator_not_overridden_when_already_degraded():
    live = statuspage.build_live_status(GITHUB, _summary("minor", [_incident(impact="critical")]))
    assert live.current_status == ServiceStatus.DEGRADED


def test_incident_fields_normalized():
    live = statuspage.build_live_status(GITHUB, _summary("major", [
        _incident(status="identified", impact="major", updates=("latest body", "older body")),
    ]))
    [inc] = live.active_incidents
    assert inc.status == IncidentStatus.IDENTIFIED
    assert inc.impact == IncidentImpact.MAJOR
    assert inc.update_count == 2
    assert inc.latest_update_body == "latest body"


def test_group_components_are_excluded():
    live = statuspage.build_live_status(GITHUB, _summary(components=[
        {"name": "Git Operations", "status": "major_outage"},
        {"name": "All services", "status": "partial_outage", "group": True},
        {"name": "Pages", "status": "operational"},
    ]))
    assert [c.name for c in live.components] == ["Git Operations", "Pages"]
    assert [c.name for c in live.affected_components] == ["Git Operations"]


def test_summary_url_default_and_override():
    assert statuspage.summary_url(GITHUB) == GITHUB_SUMMARY
    custom = ServiceConfig("x", "X", "misc", "https://x.io/", api_endpoint="https://api.x.io/s.json")
    assert statuspage.summary_url(custom) == "https://api.x.io/s.json"


# ──────────────────────────────────────────────────────────────────────────────
# Fetch + fail-open
# ──────────────────────────────────────────────────────────────────────────────

def test_fetch_ok_sends_user_agent():
    seen = {}

    def handler(req):
        seen["url"] = str(req.url)
        seen["ua"] = req.headers.get("user-agent")
        return httpx.Response(200, json={"status": {"indicator": "critical"}, "components": [], "incidents": []})

    result = _fetch_one(handler)

    assert result.ok
    assert result.live.current_status == ServiceStatus.MAJOR_OUTAGE
    assert seen == {"url": GITHUB_SUMMARY, "ua": "StatusHub/1.0"}


@pytest.mark.parametrize(
    "handler,reason",
    [
        (lambda req: httpx.Response(500, text="oops"), "HTTP 500"),
        (lambda req: httpx.Response(200, content=b"<html>not json</html>"), "malformed body"),
        (lambda req: httpx.Response(200, json={"incidents": "nope"}), "malformed body"),
    ],
)
def test_fetch_failures_are_values(handler, reason):
    result = _fetch_one(handler)

    assert not result.ok
    assert reason in result.error.reason

    live = assume_operational_on_error(result)
    assert live.current_status == ServiceStatus.OPERATIONAL
    assert live.active_incidents == []
    assert live.fetched is False


def test_fetch_timeout_is_failure():
    def handler(req):
        raise httpx.ReadTimeout("timed out", request=req)

    result = _fetch_one(handler)
    assert not result.ok
    assert result.error.reason == "timeout"


def test_fetch_transport_error_is_failure():
    def handler(req):
        raise httpx.ConnectError("refused", request=req)

    result = _fetch_one(handler)
    assert not result.ok
    assert result.error.reason.startswith("transport error")


def test_unsupported_source_makes_no_request():
    calls = []

    def handler(req):
        calls.append(req)
        return httpx.Response(500)

    result = _fetch_one(handler, config=get_service("stripe"))
    assert result.ok
    assert result.live.current_status == ServiceStatus.OPERATIONAL
    assert calls == []


def test_fetch_all_keeps_catalog_order_across_batches():
    def handler(req):
        return httpx.Response(200, json={"status": {"indicator": "none"}})

    results = asyncio.run(fetch_all(SERVICES, transport=httpx.MockTransport(handler), batch_size=3))
    assert [r.config.slug for r in results] == [s.slug for s in SERVICES]


# ──────────────────────────────────────────────────────────────────────────────
# Cache (live:all / live:<slug>)
# ──────────────────────────────────────────────────────────────────────────────

def test_get_all_live_uses_cache(mock_upstream):
    mock_upstream["routes"][GITHUB_SUMMARY] = (200, {"status": {"indicator": "major"}})
    cache = LiveCache(ttl_seconds=60)

    lives = get_all_live(cache)
    first_calls = len(mock_upstream["requests"])

    assert len(lives) == len(SERVICES)
    assert {lv.slug: lv.current_status for lv in lives}["github"] == ServiceStatus.PARTIAL_OUTAGE
    assert cache.get(ALL_KEY) is lives
    assert cache.get(service_key("github")).current_status == ServiceStatus.PARTIAL_OUTAGE

    assert get_all_live(cache) is lives
    assert len(mock_upstream["requests"]) == first_calls


def test_get_service_live_bypass_refetches(mock_upstream):
    cache = LiveCache(ttl_seconds=60)
    get_service_live("github", cache)
    assert mock_upstream["requests"] == [GITHUB_SUMMARY]

    get_service_live("github", cache)
    assert len(mock_upstream["requests"]) == 1

    mock_upstream["routes"][GITHUB_SUMMARY] = (200, {"status": {"indicator": "critical"}})
    live = get_service_live("github", cache, bypass_cache=True)
    assert live.current_status == ServiceStatus.MAJOR_OUTAGE
    assert len(mock_upstream["requests"]) == 2
    assert cache.get(service_key("github")) is live


def test_get_service_live_unknown_slug():
    assert get_service_live("nope", LiveCache()) is None


def test_find_by_status_page_url_normalizes():
    assert find_by_status_page_url("https://WWW.GitHubStatus.com/").slug == "github"
    assert find_by_status_page_url("https://example.com") is None
    assert find_by_status_page_url("") is None


# ──────────────────────────────────────────────────────────────────────────────
# GCP
# ──────────────────────────────────────────────────────────────────────────────

def _gcp(id, *, end=None, locations=("us-east1",), impact="SERVICE_DISRUPTION", severity="medium", products=("Compute",)):
    return gcp.GcpIncident.model_validate({
        "id": id,
        "begin": "2026-01-15T10:00:00+00:00",
        "end": end,
        "external_desc": f"GCP incident {id}",
        "status_impact": impact,
        "severity": severity,
        "affected_products": [{"title": p} for p in products],
        "currently_affected_locations": [{"id": loc, "title": loc} for loc in locations],
        "most_recent_update": {"text": "Mitigation in progress."},
    })


def test_gcp_partial_outage_from_active_incident():
    live = gcp.build_live_status(get_service("gcp"), [_gcp("g1")])

    assert live.current_status == ServiceStatus.PARTIAL_OUTAGE
    assert [c.name for c in live.components] == ["Compute"]
    [inc] = live.active_incidents
    assert inc.status == IncidentStatus.INVESTIGATING
    assert inc.latest_update_body == "Mitigation in progress."


def test_gcp_major_outage_on_service_outage_or_high_severity():
    config = get_service("gcp")
    assert gcp.build_live_status(config, [_gcp("g1", impact="SERVICE_OUTAGE")]).current_status == ServiceStatus.MAJOR_OUTAGE
    assert gcp.build_live_status(config, [_gcp("g2", severity="high")]).current_status == ServiceStatus.MAJOR_OUTAGE


def test_gcp_ended_incident_is_listed_resolved():
    live = gcp.build_live_status(get_service("gcp"), [
        _gcp("done", end="2026-01-15T11:00:00+00:00"),
        _gcp("no-locations", locations=()),
    ])
    assert live.current_status == ServiceStatus.OPERATIONAL
    assert [(i.id, i.status) for i in live.active_incidents] == [("done", IncidentStatus.RESOLVED)]
    assert live.components == []


def test_gcp_fetch_through_transport():
    def handler(req):
        assert str(req.url) == gcp.GCP_INCIDENTS_URL
        return httpx.Response(200, json=[{"id": "g1", "currently_affected_locations": [{"title": "eu"}]}])

    result = _fetch_one(handler, config=get_service("gcp"))
    assert result.ok
    assert result.live.current_status == ServiceStatus.PARTIAL_OUTAGE
