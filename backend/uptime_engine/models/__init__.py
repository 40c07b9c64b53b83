"""Database models."""
from .monitor import Monitor, MonitorState
from .check import Check
from .incident import Incident, IncidentState
from .daily_stat import DailyStat

__all__ = ["Monitor", "MonitorState", "Check", "Incident", "IncidentState", "DailyStat"]
