# tests/unit/domain/test_severity_filter.py
import pytest

from statushub.domain.enums import EventType
from statushub.domain.policies import (
    PRESETS,
    ExplicitSet,
    Preset,
    allows,
    parse_threshold,
    resolve,
    to_wire,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("name", ["all", "outages_only", "major_only"])
def test_presets_parse_to_preset(name):
    assert parse_threshold(name) == Preset(name)


def test_all_allows_every_type():
    assert all(allows(t, Preset("all")) for t in EventType)


@pytest.mark.parametrize(
    "event_type,expected",
    [
        (EventType.MAJOR_OUTAGE, True),
        (EventType.PARTIAL_OUTAGE, True),
        (EventType.NEW_INCIDENT, True),
        (EventType.INCIDENT_ESCALATED, True),
        (EventType.INCIDENT_DE_ESCALATED, True),
        (EventType.INCIDENT_RESOLVED, True),
        (EventType.RECOVERY, True),
        (EventType.DEGRADED, False),
        (EventType.INCIDENT_UPDATE, False),
        (EventType.MAINTENANCE, False),
        (EventType.MAINTENANCE_COMPLETED, False),
    ],
)
def test_outages_only(event_type, expected):
    assert allows(event_type, "outages_only") is expected


def test_major_only_set():
    assert resolve(Preset("major_only")) == frozenset({
        EventType.MAJOR_OUTAGE,
        EventType.RECOVERY,
        EventType.INCIDENT_ESCALATED,
        EventType.INCIDENT_RESOLVED,
    })
    assert not allows(EventType.PARTIAL_OUTAGE, "major_only")


def test_explicit_list_ignores_unknown_names():
    threshold = parse_threshold("major_outage, recovery,bogus,,NEW_INCIDENT")

    assert isinstance(threshold, ExplicitSet)
    assert threshold.types == frozenset({EventType.MAJOR_OUTAGE, EventType.RECOVERY, EventType.NEW_INCIDENT})
    assert allows(EventType.RECOVERY, threshold)
    assert not allows(EventType.DEGRADED, threshold)


@pytest.mark.parametrize("raw", ["", "   ", "nothing,valid", None])
def test_empty_or_malformed_allows_nothing(raw):
    threshold = parse_threshold(raw)
    assert resolve(threshold) == frozenset()
    assert not any(allows(t, raw) for t in EventType)


def test_wire_format():
    assert to_wire(Preset("outages_only")) == "outages_only"
    assert to_wire(ExplicitSet(frozenset({EventType.RECOVERY, EventType.MAJOR_OUTAGE}))) == "major_outage,recovery"
    assert parse_threshold(to_wire(ExplicitSet(PRESETS["major_only"]))).types == PRESETS["major_only"]
