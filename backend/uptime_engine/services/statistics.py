"""Statistics aggregator - incremental per-day rollups and rolling availability."""
import logging
import math
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import DailyStat, MonitorState

logger = logging.getLogger(__name__)

UPTIME_WINDOWS = (30, 60, 90)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return math.floor(value + 0.5)


def percentage(part: int, whole: int) -> float:
    """`part` as a percentage of `whole`, rounded half-up to two decimals."""
    return math.floor(part / whole * 10000 + 0.5) / 100


def is_successful(status: MonitorState) -> bool:
    """Up and degraded both count as available."""
    return MonitorState(status) in (MonitorState.UP, MonitorState.DEGRADED)


def new_daily_stat(monitor_id: int, day: date, status: MonitorState, response_time: int) -> DailyStat:
    """First check of the day."""
    success = is_successful(status)
    return DailyStat(
        monitor_id=monitor_id,
        date=day,
        total_checks=1,
        successful_checks=1 if success else 0,
        failed_checks=0 if success else 1,
        uptime_percentage=100.0 if success else 0.0,
        avg_response_time=response_time,
        total_response_time=response_time,
        min_response_time=response_time,
        max_response_time=response_time,
        incidents_count=0,
        total_downtime_seconds=0,
    )


def fold_check(stat: DailyStat, status: MonitorState, response_time: int) -> DailyStat:
    """Fold one more check into an existing rollup."""
    success = is_successful(status)
    old_total = stat.total_checks
    new_total = old_total + 1
    
    stat.total_checks = new_total
    stat.successful_checks += 1 if success else 0
    stat.failed_checks += 0 if success else 1
    stat.uptime_percentage = percentage(stat.successful_checks, new_total)
    # Average is derived from the exact sum, not the previous rounded average
    if stat.total_response_time is None:
        stat.total_response_time = (stat.avg_response_time or 0) * old_total
    stat.total_response_time += response_time
    stat.avg_response_time = round_half_up(stat.total_response_time / new_total)
    stat.min_response_time = (
        response_time if stat.min_response_time is None else min(stat.min_response_time, response_time)
    )
    stat.max_response_time = (
        response_time if stat.max_response_time is None else max(stat.max_response_time, response_time)
    )
    return stat


def rolling_uptime(stats: Iterable[DailyStat], since: date) -> float:
    """Availability over rows dated on or after `since`.
    
    No data in the window means 100: absence of checks is not downtime.
    """
    total = 0
    successful = 0
    for stat in stats:
        if stat.date >= since:
            total += stat.total_checks
            successful += stat.successful_checks
    if total == 0:
        return 100.0
    return percentage(successful, total)


def uptime_windows(stats: Sequence[DailyStat], today: date, windows: Sequence[int] = UPTIME_WINDOWS) -> Dict[int, float]:
    """Rolling uptime for each N-day window ending today."""
    return {days: rolling_uptime(stats, today - timedelta(days=days)) for days in windows}


class StatisticsAggregator:
    """Maintains DailyStat rows inside the caller's session."""
    
    async def get(self, session: AsyncSession, monitor_id: int, day: date) -> Optional[DailyStat]:
        result = await session.execute(
            select(DailyStat).where(
                DailyStat.monitor_id == monitor_id,
                DailyStat.date == day,
            )
        )
        return result.scalar_one_or_none()
    
    async def record_check(
        self,
        session: AsyncSession,
        monitor_id: int,
        day: date,
        status: MonitorState,
        response_time: int,
    ) -> DailyStat:
        stat = await self.get(session, monitor_id, day)
        if stat is None:
            stat = new_daily_stat(monitor_id, day, status, response_time)
            session.add(stat)
            return stat
        return fold_check(stat, status, response_time)
    
    async def record_incident_opened(self, session: AsyncSession, monitor_id: int, day: date) -> None:
        stat = await self.get(session, monitor_id, day)
        if stat is None:
            logger.warning(f"No daily stat for monitor {monitor_id} on {day}; incident not counted")
            return
        stat.incidents_count += 1
    
    async def record_incident_closed(
        self,
        session: AsyncSession,
        monitor_id: int,
        day: date,
        duration_seconds: int,
    ) -> None:
        """Attribute the whole incident duration to the day it closed."""
        stat = await self.get(session, monitor_id, day)
        if stat is None:
            logger.warning(f"No daily stat for monitor {monitor_id} on {day}; downtime not recorded")
            return
        stat.total_downtime_seconds += duration_seconds
    
    async def list_since(
        self,
        session: AsyncSession,
        monitor_ids: List[int],
        since: date,
    ) -> Dict[int, List[DailyStat]]:
        """Daily stats on or after `since`, grouped by monitor, oldest first."""
        grouped: Dict[int, List[DailyStat]] = {monitor_id: [] for monitor_id in monitor_ids}
        if not monitor_ids:
            return grouped
        result = await session.execute(
            select(DailyStat)
            .where(
                DailyStat.monitor_id.in_(monitor_ids),
                DailyStat.date >= since,
            )
            .order_by(DailyStat.date.asc())
        )
        for stat in result.scalars().all():
            grouped.setdefault(stat.monitor_id, []).append(stat)
        return grouped


# Global instance
statistics_aggregator = StatisticsAggregator()
