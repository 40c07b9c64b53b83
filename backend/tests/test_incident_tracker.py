"""Tests for the incident state machine."""
from datetime import timedelta

import pytest

from uptime_engine.models import Incident, IncidentState, MonitorState
from uptime_engine.services.incident_tracker import IncidentTracker, plan_transition

from .conftest import NOW

UNKNOWN, UP, DOWN, DEGRADED = MonitorState.UNKNOWN, MonitorState.UP, MonitorState.DOWN, MonitorState.DEGRADED


@pytest.mark.parametrize(
    "previous, new, opens, closes, notify",
    [
        (UP, UP, False, False, None),
        (DOWN, DOWN, False, False, None),
        (DEGRADED, DEGRADED, False, False, None),
        (UNKNOWN, UP, False, False, None),
        (UNKNOWN, DOWN, True, False, DOWN),
        (UP, DOWN, True, False, DOWN),
        (DEGRADED, DOWN, True, False, DOWN),
        (DOWN, UP, False, True, UP),
        (DOWN, DEGRADED, False, False, DEGRADED),
        (UP, DEGRADED, False, False, DEGRADED),
        (UNKNOWN, DEGRADED, False, False, DEGRADED),
        (DEGRADED, UP, False, False, None),
    ],
)
def test_transition_table(previous, new, opens, closes, notify):
    plan = plan_transition(previous, new)
    assert plan.open_incident is opens
    assert plan.close_incident is closes
    assert plan.notify == notify
    assert plan.changed is (previous != new)


def test_accepts_raw_status_strings():
    plan = plan_transition("down", "up")
    assert plan.close_incident
    assert plan.previous == DOWN


@pytest.mark.asyncio
async def test_open_creates_ongoing_incident(db, make_monitor):
    monitor = await make_monitor()
    tracker = IncidentTracker()
    
    change = await tracker.apply(db, monitor.id, plan_transition(UP, DOWN), "Request timed out", NOW)
    await db.commit()
    
    assert change.opened is not None
    assert change.opened.status == IncidentState.ONGOING.value
    assert change.opened.cause == "Request timed out"
    assert change.opened.started_at == NOW
    assert change.opened.resolved_at is None


@pytest.mark.asyncio
async def test_open_without_cause_records_unknown(db, make_monitor):
    monitor = await make_monitor()
    change = await IncidentTracker().apply(db, monitor.id, plan_transition(UP, DOWN), None, NOW)
    assert change.opened.cause == "Unknown"


@pytest.mark.asyncio
async def test_open_while_ongoing_extends_instead(db, make_monitor):
    monitor = await make_monitor()
    existing = Incident(monitor_id=monitor.id, status="ongoing", cause="first", started_at=NOW)
    db.add(existing)
    await db.commit()
    
    change = await IncidentTracker().apply(db, monitor.id, plan_transition(DEGRADED, DOWN), "second", NOW)
    
    assert change.opened is None
    assert change.extended.id == existing.id


@pytest.mark.asyncio
async def test_close_resolves_with_duration(db, make_monitor):
    monitor = await make_monitor()
    db.add(Incident(monitor_id=monitor.id, status="ongoing", cause="down", started_at=NOW - timedelta(seconds=754)))
    await db.commit()
    
    change = await IncidentTracker().apply(db, monitor.id, plan_transition(DOWN, UP), None, NOW)
    
    assert change.closed.status == IncidentState.RESOLVED.value
    assert change.closed.resolved_at == NOW
    assert change.closed.duration_seconds == 754


@pytest.mark.asyncio
async def test_close_without_ongoing_is_a_no_op(db, make_monitor):
    monitor = await make_monitor()
    change = await IncidentTracker().apply(db, monitor.id, plan_transition(DOWN, UP), None, NOW)
    assert change.closed is None
    assert change.opened is None
