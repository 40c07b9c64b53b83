"""Shared fixtures: a throwaway SQLite database and stub collaborators."""
import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Union

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from uptime_engine import models  # noqa: F401
from uptime_engine.database import Base, build_engine
from uptime_engine.models import Check, DailyStat, Incident, Monitor, MonitorState
from uptime_engine.services.alerter import UptimeAlert
from uptime_engine.services.dispatcher import UptimeDispatcher
from uptime_engine.services.prober import ProbeOutcome

NOW = datetime(2026, 3, 10, 12, 0, 0)

ProbeScript = Union[ProbeOutcome, Exception, List[ProbeOutcome]]


class StubProber:
    """Returns scripted outcomes per URL; 200 in 100ms by default."""
    
    def __init__(self):
        self.outcomes: Dict[str, ProbeScript] = {}
        self.calls: List[str] = []
    
    def script(self, url: str, outcome: ProbeScript):
        self.outcomes[url] = outcome
    
    async def probe(self, url: str, timeout_seconds: float) -> ProbeOutcome:
        self.calls.append(url)
        outcome = self.outcomes.get(url, ProbeOutcome(elapsed_ms=100, status_code=200))
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, list):
            return outcome.pop(0)
        return outcome


class RecordingNotifier:
    """Collects alerts; optionally fails or hangs."""
    
    def __init__(self, fail: bool = False, delay: float = 0):
        self.alerts: List[UptimeAlert] = []
        self.fail = fail
        self.delay = delay
    
    async def send_uptime_alert(self, alert: UptimeAlert) -> bool:
        self.alerts.append(alert)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("delivery failed")
        return True
    
    @property
    def statuses(self) -> List[str]:
        return [MonitorState(a.status).value for a in self.alerts]


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'uptime-test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def prober():
    return StubProber()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher(session_factory, prober, notifier):
    return UptimeDispatcher(
        session_factory=session_factory,
        prober=prober,
        notifier=notifier,
        max_concurrent_checks=1,
        degraded_threshold_ms=2000,
        notify_timeout_seconds=1,
    )


@pytest.fixture
def make_monitor(session_factory):
    async def _make(**overrides) -> Monitor:
        values = dict(
            project_id="proj-1",
            name="Example",
            url="https://example.com/health",
            check_interval=60,
            timeout=5,
            expected_status_code=200,
            is_active=True,
            is_paused=False,
            current_status=MonitorState.UNKNOWN.value,
        )
        values.update(overrides)
        async with session_factory() as session:
            monitor = Monitor(**values)
            session.add(monitor)
            await session.commit()
            await session.refresh(monitor)
            return monitor
    
    return _make


class Store:
    """Fresh-session reads for assertions."""
    
    def __init__(self, session_factory):
        self.session_factory = session_factory
    
    async def monitor(self, monitor_id: int) -> Optional[Monitor]:
        async with self.session_factory() as session:
            return await session.get(Monitor, monitor_id)
    
    async def checks(self, monitor_id: int) -> List[Check]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Check).where(Check.monitor_id == monitor_id).order_by(Check.id)
            )
            return list(result.scalars().all())
    
    async def incidents(self, monitor_id: int) -> List[Incident]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Incident).where(Incident.monitor_id == monitor_id).order_by(Incident.id)
            )
            return list(result.scalars().all())
    
    async def daily_stats(self, monitor_id: int) -> List[DailyStat]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyStat).where(DailyStat.monitor_id == monitor_id).order_by(DailyStat.date)
            )
            return list(result.scalars().all())


@pytest.fixture
def store(session_factory):
    return Store(session_factory)
