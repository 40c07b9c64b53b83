"""Uptime summary schemas for dashboard."""
from typing import List, Optional
from pydantic import BaseModel


class ProjectSummary(BaseModel):
    project_id: str
    total_monitors: int
    monitors_up: int
    monitors_down: int
    monitors_degraded: int


class UptimeSummary(BaseModel):
    """Dashboard overview data."""
    total_monitors: int
    monitors_up: int
    monitors_down: int
    monitors_degraded: int
    monitors_unknown: int
    ongoing_incidents: int
    avg_uptime: Optional[float] = None  # Last 30 days; None without data
    projects: List[ProjectSummary]
