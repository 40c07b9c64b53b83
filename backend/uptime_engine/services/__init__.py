"""Services for probing, classification, incidents, statistics and scheduling."""
from .alerter import AlerterService, UptimeAlert
from .dispatcher import MonitorNotFoundError, UptimeDispatcher
from .incident_tracker import IncidentTracker
from .prober import ProberService
from .scheduler import SchedulerService
from .statistics import StatisticsAggregator

__all__ = [
    "AlerterService",
    "UptimeAlert",
    "MonitorNotFoundError",
    "UptimeDispatcher",
    "IncidentTracker",
    "ProberService",
    "SchedulerService",
    "StatisticsAggregator",
]
