"""Incident tracker - opens and closes incidents on status transitions.

Transition table (previous -> new):

    same -> same              nothing
    any -> down               open incident, "down" alert
    down -> up                close ongoing incident, "up" alert
    down -> degraded          incident stays open, "degraded" alert
    other -> degraded         "degraded" alert
    degraded/unknown -> up    nothing

Only a down -> up transition closes an incident or signals recovery.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Incident, IncidentState, MonitorState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionPlan:
    """Side effects owed for one previous -> new status pair."""
    previous: MonitorState
    new: MonitorState
    open_incident: bool = False
    close_incident: bool = False
    notify: Optional[MonitorState] = None
    
    @property
    def changed(self) -> bool:
        return self.previous != self.new


@dataclass
class IncidentChange:
    """What actually happened to incident rows while applying a plan."""
    opened: Optional[Incident] = None
    closed: Optional[Incident] = None
    extended: Optional[Incident] = None


def plan_transition(previous: MonitorState, new: MonitorState) -> TransitionPlan:
    """Decide incident and notification actions for a status transition."""
    previous = MonitorState(previous)
    new = MonitorState(new)
    
    if previous == new:
        return TransitionPlan(previous, new)
    
    if new == MonitorState.DOWN:
        return TransitionPlan(previous, new, open_incident=True, notify=MonitorState.DOWN)
    
    if new == MonitorState.UP:
        if previous == MonitorState.DOWN:
            return TransitionPlan(previous, new, close_incident=True, notify=MonitorState.UP)
        return TransitionPlan(previous, new)
    
    if new == MonitorState.DEGRADED:
        return TransitionPlan(previous, new, notify=MonitorState.DEGRADED)
    
    return TransitionPlan(previous, new)


class IncidentTracker:
    """Applies transition plans to incident rows inside the caller's session."""
    
    async def get_ongoing(self, session: AsyncSession, monitor_id: int) -> Optional[Incident]:
        result = await session.execute(
            select(Incident)
            .where(
                Incident.monitor_id == monitor_id,
                Incident.status == IncidentState.ONGOING.value,
            )
            .order_by(Incident.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
    
    async def apply(
        self,
        session: AsyncSession,
        monitor_id: int,
        plan: TransitionPlan,
        cause: Optional[str],
        now: datetime,
    ) -> IncidentChange:
        """Open, extend or close the monitor's incident according to `plan`.
        
        Opening while an incident is already ongoing (e.g. down -> degraded -> down)
        extends the existing one, so a monitor never has two ongoing incidents.
        """
        change = IncidentChange()
        
        if plan.open_incident:
            ongoing = await self.get_ongoing(session, monitor_id)
            if ongoing is not None:
                logger.info(f"Monitor {monitor_id}: extending ongoing incident {ongoing.id}")
                change.extended = ongoing
            else:
                incident = Incident(
                    monitor_id=monitor_id,
                    status=IncidentState.ONGOING.value,
                    cause=cause or "Unknown",
                    started_at=now,
                )
                session.add(incident)
                change.opened = incident
                logger.info(f"Monitor {monitor_id}: incident opened ({incident.cause})")
        
        elif plan.close_incident:
            ongoing = await self.get_ongoing(session, monitor_id)
            if ongoing is None:
                logger.warning(f"Monitor {monitor_id}: recovered but no ongoing incident found")
            else:
                ongoing.status = IncidentState.RESOLVED.value
                ongoing.resolved_at = now
                ongoing.duration_seconds = max(0, math.floor((now - ongoing.started_at).total_seconds()))
                change.closed = ongoing
                logger.info(
                    f"Monitor {monitor_id}: incident {ongoing.id} resolved after {ongoing.duration_seconds}s"
                )
        
        return change


# Global instance
incident_tracker = IncidentTracker()
