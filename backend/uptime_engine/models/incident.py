"""Incident model - contiguous down periods."""
import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_utils import utcnow


class IncidentState(str, enum.Enum):
    ONGOING = "ongoing"
    RESOLVED = "resolved"


class Incident(Base):
    """A span during which a monitor was not up.
    
    At most one incident per monitor is ongoing at any time.
    """
    
    __tablename__ = "incidents"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default=IncidentState.ONGOING.value)
    cause = Column(String, nullable=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    resolved_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    
    monitor = relationship("Monitor", back_populates="incidents")
