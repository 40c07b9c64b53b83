"""Pydantic schemas for API request/response models."""
from .cycle import CheckOutcome, CycleResult
from .monitor import (
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
from .status import ProjectSummary, UptimeSummary

__all__ = [
    "CheckOutcome",
    "CycleResult",
    "CheckResponse",
    "DailyStatResponse",
    "IncidentResponse",
    "MonitorCreate",
    "MonitorDetail",
    "MonitorResponse",
    "MonitorStats",
    "MonitorUpdate",
    "MonitorWithUptime",
    "ProjectSummary",
    "UptimeSummary",
]
