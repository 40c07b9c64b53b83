"""Dispatcher - runs the probe -> classify -> incident -> statistics pipeline.

A cycle is a bounded batch over the monitors that are currently due. Each
monitor runs in its own session and transaction, so a failure or cancellation
leaves that monitor either fully checked or untouched. Monitors are independent
and run concurrently up to `max_concurrent_checks`.

Callers must not run overlapping cycles for the same monitor from different
processes; within one process a per-monitor lock skips monitors that are
already being checked.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..database import async_session
from ..models import Check, Monitor, MonitorState
from ..schemas.cycle import CheckOutcome, CycleResult
from ..utils.db_utils import commit_with_retry
from ..utils.time_utils import to_naive_utc, utc_day, utcnow
from .alerter import AlerterService, Notifier, UptimeAlert
from .classifier import classify
from .incident_tracker import IncidentTracker, incident_tracker, plan_transition
from .prober import ProberService, prober_service
from .statistics import StatisticsAggregator

logger = logging.getLogger(__name__)


class MonitorNotFoundError(Exception):
    """Raised when a manual check names a monitor that does not exist."""
    
    def __init__(self, monitor_id: int):
        super().__init__(f"Monitor {monitor_id} not found")
        self.monitor_id = monitor_id


@dataclass(frozen=True)
class DueMonitor:
    """Snapshot of a monitor selected for this cycle."""
    id: int
    name: str
    url: str


def is_due(monitor: Monitor, now: datetime) -> bool:
    """A monitor is due when never checked or its interval has elapsed."""
    if monitor.last_checked_at is None:
        return True
    elapsed = (now - monitor.last_checked_at).total_seconds()
    return elapsed >= monitor.check_interval


class UptimeDispatcher:
    """Selects due monitors and runs each one's pipeline."""
    
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        prober: Optional[ProberService] = None,
        notifier: Optional[Notifier] = None,
        tracker: Optional[IncidentTracker] = None,
        statistics: Optional[StatisticsAggregator] = None,
        max_concurrent_checks: Optional[int] = None,
        degraded_threshold_ms: Optional[int] = None,
        notify_timeout_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory or async_session
        self.prober = prober or prober_service
        self.notifier = notifier or AlerterService.from_settings()
        self.tracker = tracker or incident_tracker
        self.statistics = statistics or StatisticsAggregator()
        self.max_concurrent_checks = max_concurrent_checks or settings.max_concurrent_checks
        self.degraded_threshold_ms = degraded_threshold_ms or settings.degraded_threshold_ms
        self.notify_timeout_seconds = notify_timeout_seconds or settings.notify_timeout_seconds
        self._locks: Dict[int, asyncio.Lock] = {}
        self._lock_holders: Dict[int, int] = {}
    
    async def run_cycle(self, now: Optional[datetime] = None) -> CycleResult:
        """Check every active, unpaused monitor whose interval has elapsed."""
        now = to_naive_utc(now) if now else utcnow()
        due = await self._load_due_monitors(now)
        
        semaphore = asyncio.Semaphore(self.max_concurrent_checks)
        
        async def check_with_limit(due_monitor: DueMonitor) -> Optional[CheckOutcome]:
            async with semaphore:
                return await self._check_due_monitor(due_monitor, now)
        
        outcomes = await asyncio.gather(*[check_with_limit(m) for m in due])
        results = [outcome for outcome in outcomes if outcome is not None]
        
        # Failed pipelines are reported in results but are not counted as checked
        checked = sum(1 for r in results if r.error is None)
        logger.info(
            f"Uptime cycle: checked {checked} of {len(due)} due monitors ({len(results) - checked} failed)"
        )
        
        return CycleResult(
            success=True,
            message=f"Checked {checked} monitors",
            timestamp=now,
            checked=checked,
            results=results,
        )
    
    async def run_single(self, monitor_id: int, now: Optional[datetime] = None) -> CheckOutcome:
        """Check one monitor immediately, regardless of schedule or pause state.
        
        Raises MonitorNotFoundError for unknown ids. Persistence errors propagate.
        """
        now = to_naive_utc(now) if now else utcnow()
        
        async with self.session_factory() as session:
            if await session.get(Monitor, monitor_id) is None:
                raise MonitorNotFoundError(monitor_id)
        
        async with self._monitor_lock(monitor_id):
            async with self.session_factory() as session:
                monitor = await session.get(Monitor, monitor_id)
                if monitor is None:
                    raise MonitorNotFoundError(monitor_id)
                outcome, alert = await self._run_pipeline(session, monitor, now)
        
        if alert is not None:
            await self._notify(alert)
        return outcome
    
    @asynccontextmanager
    async def _monitor_lock(self, monitor_id: int):
        """Serialize checks of one monitor; the entry is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(monitor_id, asyncio.Lock())
        self._lock_holders[monitor_id] = self._lock_holders.get(monitor_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[monitor_id] -= 1
            if not self._lock_holders[monitor_id]:
                del self._lock_holders[monitor_id]
                del self._locks[monitor_id]
    
    async def _load_due_monitors(self, now: datetime) -> List[DueMonitor]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Monitor).where(
                    Monitor.is_active.is_(True),
                    Monitor.is_paused.is_(False),
                )
            )
            monitors = result.scalars().all()
        
        due = [DueMonitor(m.id, m.name, m.url) for m in monitors if is_due(m, now)]
        logger.debug(f"{len(due)} due monitors out of {len(monitors)} active")
        return due
    
    async def _check_due_monitor(self, due_monitor: DueMonitor, now: datetime) -> Optional[CheckOutcome]:
        """Run one scheduled check. Returns None when the monitor was skipped."""
        if due_monitor.id in self._locks:
            logger.warning(f"Monitor {due_monitor.id} is already being checked; skipping")
            return None
        
        alert = None
        try:
            async with self._monitor_lock(due_monitor.id):
                async with self.session_factory() as session:
                    monitor = await session.get(Monitor, due_monitor.id)
                    # Re-verify: the monitor may have been deleted, paused or checked meanwhile
                    if monitor is None or not monitor.is_active or monitor.is_paused or not is_due(monitor, now):
                        logger.debug(f"Monitor {due_monitor.id} no longer due; skipping")
                        return None
                    outcome, alert = await self._run_pipeline(session, monitor, now)
        except SQLAlchemyError as e:
            logger.error(f"Persistence error checking monitor {due_monitor.id}: {e}")
            return self._failed_outcome(due_monitor, f"Persistence error: {type(e).__name__}")
        except Exception as e:
            logger.exception(f"Error checking monitor {due_monitor.id}: {e}")
            return self._failed_outcome(due_monitor, str(e) or type(e).__name__)
        
        if alert is not None:
            await self._notify(alert)
        return outcome
    
    async def _run_pipeline(
        self,
        session: AsyncSession,
        monitor: Monitor,
        now: datetime,
    ) -> Tuple[CheckOutcome, Optional[UptimeAlert]]:
        """Probe, classify and persist one monitor's check in a single transaction."""
        probe = await self.prober.probe(monitor.url, monitor.timeout)
        classification = classify(probe, monitor.expected_status_code, self.degraded_threshold_ms)
        
        previous = MonitorState(monitor.current_status or MonitorState.UNKNOWN.value)
        new = classification.status
        day = utc_day(now)
        
        session.add(Check(
            monitor_id=monitor.id,
            status=new.value,
            status_code=probe.status_code,
            response_time=probe.elapsed_ms,
            error_message=classification.error_message,
            checked_at=now,
        ))
        await self.statistics.record_check(session, monitor.id, day, new, probe.elapsed_ms)
        
        plan = plan_transition(previous, new)
        change = await self.tracker.apply(session, monitor.id, plan, classification.error_message, now)
        if change.opened is not None:
            await self.statistics.record_incident_opened(session, monitor.id, day)
        if change.closed is not None:
            await self.statistics.record_incident_closed(
                session, monitor.id, day, change.closed.duration_seconds
            )
        
        monitor.current_status = new.value
        monitor.last_checked_at = now
        if plan.changed:
            monitor.last_status_change = now
        
        await commit_with_retry(session)
        
        if plan.changed:
            logger.info(f"Monitor {monitor.name} ({monitor.id}): {previous.value} -> {new.value}")
        else:
            logger.debug(f"Monitor {monitor.name} ({monitor.id}): {new.value}")
        
        outcome = CheckOutcome(
            monitor_id=monitor.id,
            name=monitor.name,
            url=monitor.url,
            status=new.value,
            status_code=probe.status_code,
            response_time=probe.elapsed_ms,
            status_changed=plan.changed,
            previous_status=previous.value,
            error_message=classification.error_message,
        )
        
        alert = None
        if plan.notify is not None:
            alert = UptimeAlert(
                monitor_id=monitor.id,
                status=plan.notify,
                monitor_name=monitor.name,
                monitor_url=monitor.url,
                project_id=monitor.project_id,
                error_message=classification.error_message if plan.notify == MonitorState.DOWN else None,
            )
        return outcome, alert
    
    async def _notify(self, alert: UptimeAlert) -> None:
        """Best-effort delivery; never raises."""
        try:
            await asyncio.wait_for(
                self.notifier.send_uptime_alert(alert),
                timeout=self.notify_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Uptime notification for monitor {alert.monitor_id} timed out")
        except Exception as e:
            logger.error(f"Failed to send uptime notification for monitor {alert.monitor_id}: {e}")
    
    @staticmethod
    def _failed_outcome(due_monitor: DueMonitor, error: str) -> CheckOutcome:
        return CheckOutcome(
            monitor_id=due_monitor.id,
            name=due_monitor.name,
            url=due_monitor.url,
            error=error,
        )


_dispatcher: Optional[UptimeDispatcher] = None


def get_dispatcher() -> UptimeDispatcher:
    """Process-wide dispatcher, created on first use."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = UptimeDispatcher()
    return _dispatcher
