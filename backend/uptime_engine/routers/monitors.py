"""Monitor management API endpoints."""
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models import Check, DailyStat, Incident, IncidentState, Monitor, MonitorState
from ..schemas.cycle import CheckOutcome
from ..schemas.monitor import (
    CheckResponse,
    DailyStatResponse,
    IncidentResponse,
    MonitorCreate,
    MonitorDetail,
    MonitorResponse,
    MonitorStats,
    MonitorUpdate,
    MonitorWithUptime,
)
from ..schemas.status import ProjectSummary, UptimeSummary
from ..services.dispatcher import MonitorNotFoundError, UptimeDispatcher, get_dispatcher
from ..services.statistics import (
    UPTIME_WINDOWS,
    StatisticsAggregator,
    percentage,
    rolling_uptime,
    round_half_up,
    uptime_windows,
)
from ..utils.db_utils import commit_with_retry
from ..utils.time_utils import utcnow

router = APIRouter(prefix="/api/uptime", tags=["uptime"])

statistics = StatisticsAggregator()

RECENT_CHECKS_LIMIT = 100
RECENT_INCIDENTS_LIMIT = 10
DETAIL_STATS_DAYS = 30


async def _get_monitor_or_404(db: AsyncSession, monitor_id: int) -> Monitor:
    monitor = await db.get(Monitor, monitor_id)
    if not monitor:
        raise HTTPException(status_code=404, detail="Monitor not found")
    return monitor


@router.get("/monitors", response_model=List[MonitorWithUptime])
async def list_monitors(
    project_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List monitors, newest first, with 30/60/90-day rolling uptime."""
    query = select(Monitor).order_by(Monitor.created_at.desc(), Monitor.id.desc())
    if project_id is not None:
        query = query.where(Monitor.project_id == project_id)
    monitors = (await db.execute(query)).scalars().all()
    
    today = utcnow().date()
    stats_by_monitor = await statistics.list_since(
        db, [m.id for m in monitors], today - timedelta(days=max(UPTIME_WINDOWS))
    )
    
    response = []
    for monitor in monitors:
        stats = stats_by_monitor.get(monitor.id, [])
        windows = uptime_windows(stats, today)
        response.append(MonitorWithUptime(
            **MonitorResponse.model_validate(monitor).model_dump(),
            uptime_30d=windows[30],
            uptime_60d=windows[60],
            uptime_90d=windows[90],
            daily_stats=[DailyStatResponse.model_validate(s) for s in stats],
        ))
    return response


@router.post("/monitors", response_model=MonitorResponse, status_code=201)
async def create_monitor(monitor: MonitorCreate, db: AsyncSession = Depends(get_db)):
    """Create a new monitor. It is checked on the next cycle."""
    db_monitor = Monitor(
        project_id=monitor.project_id,
        name=monitor.name,
        url=monitor.url,
        check_interval=monitor.check_interval or settings.default_check_interval,
        timeout=monitor.timeout or settings.default_timeout,
        expected_status_code=monitor.expected_status_code or settings.default_expected_status_code,
        is_active=True,
        is_paused=False,
        current_status=MonitorState.UNKNOWN.value,
    )
    db.add(db_monitor)
    await commit_with_retry(db)
    await db.refresh(db_monitor)
    return db_monitor


@router.get("/monitors/{monitor_id}", response_model=MonitorDetail)
async def get_monitor(monitor_id: int, db: AsyncSession = Depends(get_db)):
    """Get a monitor with recent checks, incidents and 30 days of statistics."""
    monitor = await _get_monitor_or_404(db, monitor_id)
    
    checks = (await db.execute(
        select(Check)
        .where(Check.monitor_id == monitor_id)
        .order_by(Check.checked_at.desc(), Check.id.desc())
        .limit(RECENT_CHECKS_LIMIT)
    )).scalars().all()
    
    incidents = (await db.execute(
        select(Incident)
        .where(Incident.monitor_id == monitor_id)
        .order_by(Incident.started_at.desc(), Incident.id.desc())
        .limit(RECENT_INCIDENTS_LIMIT)
    )).scalars().all()
    
    since = utcnow().date() - timedelta(days=DETAIL_STATS_DAYS)
    daily_stats = (await statistics.list_since(db, [monitor_id], since))[monitor_id]
    
    response_times = [s.avg_response_time for s in daily_stats if s.avg_response_time is not None]
    avg_response_time = round_half_up(sum(response_times) / len(response_times)) if response_times else None
    
    return MonitorDetail(
        **MonitorResponse.model_validate(monitor).model_dump(),
        recent_checks=[CheckResponse.model_validate(c) for c in checks],
        recent_incidents=[IncidentResponse.model_validate(i) for i in incidents],
        daily_stats=[DailyStatResponse.model_validate(s) for s in daily_stats],
        stats=MonitorStats(
            overall_uptime=rolling_uptime(daily_stats, since),
            avg_response_time=avg_response_time,
            total_incidents=len(incidents),
            ongoing_incidents=sum(1 for i in incidents if i.status == IncidentState.ONGOING.value),
        ),
    )


@router.patch("/monitors/{monitor_id}", response_model=MonitorResponse)
async def update_monitor(
    monitor_id: int,
    update: MonitorUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a monitor's configuration. Status fields are owned by the dispatcher."""
    monitor = await _get_monitor_or_404(db, monitor_id)
    
    for field, value in update.model_dump(exclude_none=True).items():
        setattr(monitor, field, value)
    
    await commit_with_retry(db)
    await db.refresh(monitor)
    return monitor


@router.delete("/monitors/{monitor_id}", status_code=204)
async def delete_monitor(monitor_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a monitor together with its checks, incidents and statistics."""
    monitor = await _get_monitor_or_404(db, monitor_id)
    await db.delete(monitor)
    await commit_with_retry(db)


@router.post("/monitors/{monitor_id}/check", response_model=CheckOutcome)
async def check_monitor(
    monitor_id: int,
    dispatcher: UptimeDispatcher = Depends(get_dispatcher),
):
    """Run a manual check now, bypassing the schedule."""
    try:
        return await dispatcher.run_single(monitor_id)
    except MonitorNotFoundError:
        raise HTTPException(status_code=404, detail="Monitor not found")


@router.get("/summary", response_model=UptimeSummary)
async def get_summary(
    project_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Status counts, ongoing incidents and 30-day average uptime."""
    query = select(Monitor)
    if project_id is not None:
        query = query.where(Monitor.project_id == project_id)
    monitors = (await db.execute(query)).scalars().all()
    monitor_ids = [m.id for m in monitors]
    
    counts = {state.value: 0 for state in MonitorState}
    projects = {}
    for monitor in monitors:
        status = monitor.current_status if monitor.current_status in counts else MonitorState.UNKNOWN.value
        counts[status] += 1
        
        project = projects.setdefault(monitor.project_id, ProjectSummary(
            project_id=monitor.project_id,
            total_monitors=0,
            monitors_up=0,
            monitors_down=0,
            monitors_degraded=0,
        ))
        project.total_monitors += 1
        if status == MonitorState.UP.value:
            project.monitors_up += 1
        elif status == MonitorState.DOWN.value:
            project.monitors_down += 1
        elif status == MonitorState.DEGRADED.value:
            project.monitors_degraded += 1
    
    ongoing = 0
    avg_uptime = None
    if monitor_ids:
        ongoing = (await db.execute(
            select(func.count(Incident.id)).where(
                Incident.monitor_id.in_(monitor_ids),
                Incident.status == IncidentState.ONGOING.value,
            )
        )).scalar_one()
        
        since = utcnow().date() - timedelta(days=30)
        total, successful = (await db.execute(
            select(
                func.coalesce(func.sum(DailyStat.total_checks), 0),
                func.coalesce(func.sum(DailyStat.successful_checks), 0),
            ).where(
                DailyStat.monitor_id.in_(monitor_ids),
                DailyStat.date >= since,
            )
        )).one()
        if total:
            avg_uptime = percentage(successful, total)
    
    return UptimeSummary(
        total_monitors=len(monitors),
        monitors_up=counts[MonitorState.UP.value],
        monitors_down=counts[MonitorState.DOWN.value],
        monitors_degraded=counts[MonitorState.DEGRADED.value],
        monitors_unknown=counts[MonitorState.UNKNOWN.value],
        ongoing_incidents=ongoing,
        avg_uptime=avg_uptime,
        projects=list(projects.values()),
    )
