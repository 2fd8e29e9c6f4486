# tests/unit/test_email_composer.py
# -------------------------------------------------------------------
# Rendu des emails : sujets, couleur d'en-tête, blocs, échappement HTML,
# extrait "What happened" et récap "While you were away".
# -------------------------------------------------------------------
from datetime import datetime, timezone

import pytest

from statushub.application.services import email_composer as ec
from statushub.domain.enums import EventType, IncidentImpact, IncidentStatus, ServiceStatus
from statushub.domain.models import ComponentState, IncidentEvent, StatusEvent

pytestmark = pytest.mark.unit

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
SITE = "https://statushub.example"


def _status(event_type, old, new, **kw):
    return StatusEvent(
        event_type=event_type, service_slug="github", service_name="GitHub",
        old_status=old, new_status=new, **kw,
    )


def _incident(event_type, **kw):
    kw.setdefault("incident_title", "Webhooks delayed")
    return IncidentEvent(
        event_type=event_type, service_slug="github", service_name="GitHub", incident_id="i1", **kw,
    )


@pytest.mark.parametrize(
    "event,subject",
    [
        (_status(EventType.RECOVERY, ServiceStatus.MAJOR_OUTAGE, ServiceStatus.OPERATIONAL),
         "✅ GitHub is back to Operational"),
        (_status(EventType.MAJOR_OUTAGE, ServiceStatus.OPERATIONAL, ServiceStatus.MAJOR_OUTAGE),
         "\U0001f534 GitHub: Major Outage detected"),
        (_status(EventType.MAINTENANCE_COMPLETED, ServiceStatus.MAINTENANCE, ServiceStatus.OPERATIONAL),
         "✅ GitHub maintenance completed"),
        (_incident(EventType.NEW_INCIDENT), "\U0001f6a8 New incident on GitHub: Webhooks delayed"),
        (_incident(EventType.INCIDENT_RESOLVED), "✅ Resolved on GitHub: Webhooks delayed"),
        (_incident(EventType.INCIDENT_UPDATE), "\U0001f4dd Update on GitHub: Webhooks delayed"),
    ],
)
def test_subjects(event, subject):
    assert ec.build_subject(event) == subject


def test_status_email_timeline_and_links():
    event = _status(
        EventType.PARTIAL_OUTAGE, ServiceStatus.DEGRADED, ServiceStatus.PARTIAL_OUTAGE,
        incident_title="API errors",
    )
    email = ec.compose(event, now=NOW, site_url=SITE)

    assert "Previous" in email.html and "Current" in email.html
    assert "Partial Outage" in email.html
    assert f"{SITE}/?service=github" in email.html
    assert "Thu, Jan 15, 2026 12:00 UTC" in email.html
    assert "Status:  Degraded → Partial Outage" in email.text
    assert "Incident: API errors" in email.text
    assert ec.GREEN_GRADIENT not in email.html


@pytest.mark.parametrize(
    "event",
    [
        _status(EventType.RECOVERY, ServiceStatus.PARTIAL_OUTAGE, ServiceStatus.OPERATIONAL),
        _incident(EventType.INCIDENT_RESOLVED, incident_status=IncidentStatus.RESOLVED),
    ],
)
def test_green_header_for_recovery_and_resolution(event):
    assert ec.GREEN_GRADIENT in ec.compose(event, now=NOW, site_url=SITE).html


def test_escalation_shows_old_and_new_impact():
    event = _incident(
        EventType.INCIDENT_ESCALATED,
        incident_impact=IncidentImpact.CRITICAL,
        old_impact=IncidentImpact.MINOR,
        incident_status=IncidentStatus.MONITORING,
    )
    email = ec.compose(event, now=NOW, site_url=SITE)

    assert "Impact:   Minor → Critical" in email.text
    assert "Fix deployed, monitoring" in email.html
    assert "Incident Escalated" in email.html


def test_upstream_text_is_escaped():
    event = _incident(
        EventType.NEW_INCIDENT,
        incident_title="<script>alert(1)</script>",
        latest_update_body="<b>Bold</b> & <i>more</i>",
        affected_components=[ComponentState(name="<API>", status=ServiceStatus.MAJOR_OUTAGE)],
    )
    email = ec.compose(event, now=NOW, site_url=SITE)

    assert "<script>" not in email.html
    assert "&lt;script&gt;" in email.html
    assert "&lt;API&gt;" in email.html
    assert "Bold &amp; more" in email.html
    # le texte brut n'est pas échappé
    assert "<script>alert(1)</script>" in email.text


def test_operational_components_not_listed():
    event = _status(
        EventType.DEGRADED, ServiceStatus.OPERATIONAL, ServiceStatus.DEGRADED,
        affected_components=[
            ComponentState(name="API", status=ServiceStatus.DEGRADED),
            ComponentState(name="Pages", status=ServiceStatus.OPERATIONAL),
        ],
    )
    email = ec.compose(event, now=NOW, site_url=SITE)
    assert "Affected Components" in email.html
    assert "  - API (Degraded)" in email.text
    assert "Pages" not in email.text


def test_what_happened_excerpt():
    assert ec.what_happened_excerpt(None) is None
    assert ec.what_happened_excerpt("<p>  </p>") is None
    assert ec.what_happened_excerpt("<p>We are\n\n investigating &amp; fixing.</p>") == "We are investigating & fixing."

    long = "word " * 200
    excerpt = ec.what_happened_excerpt(long, max_chars=50)
    assert excerpt.endswith("…")
    assert len(excerpt) <= 51


def test_recap_block():
    recap = [
        _status(EventType.DEGRADED, ServiceStatus.OPERATIONAL, ServiceStatus.DEGRADED),
        _incident(EventType.INCIDENT_ESCALATED, incident_impact=IncidentImpact.MAJOR, old_impact=IncidentImpact.MINOR),
    ]
    event = _status(EventType.RECOVERY, ServiceStatus.DEGRADED, ServiceStatus.OPERATIONAL)
    email = ec.compose(event, recap, now=NOW, site_url=SITE)

    assert "While you were away" in email.html
    assert "While you were away:" in email.text
    assert "  - Degraded Performance: Operational → Degraded" in email.text
    assert "  - Incident Escalated: Webhooks delayed (Minor → Major)" in email.text


def test_no_recap_block_without_pending():
    email = ec.compose(_incident(EventType.NEW_INCIDENT), now=NOW, site_url=SITE)
    assert "While you were away" not in email.html
