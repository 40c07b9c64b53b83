"""Monitor model - HTTP endpoints being probed."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_utils import utcnow


class MonitorState(str, enum.Enum):
    """Health of a monitor. UNKNOWN until the first check completes."""
    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"
    DEGRADED = "degraded"


class Monitor(Base):
    """A user-configured HTTP(S) probe target owned by a project."""
    
    __tablename__ = "monitors"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    check_interval = Column(Integer, nullable=False, default=60)  # seconds
    timeout = Column(Integer, nullable=False, default=30)  # seconds
    expected_status_code = Column(Integer, nullable=False, default=200)
    is_active = Column(Boolean, nullable=False, default=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    current_status = Column(String, nullable=False, default=MonitorState.UNKNOWN.value)
    last_checked_at = Column(DateTime, nullable=True)
    last_status_change = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    
    # Relationships
    checks = relationship("Check", back_populates="monitor", cascade="all, delete-orphan", passive_deletes=True)
    incidents = relationship("Incident", back_populates="monitor", cascade="all, delete-orphan", passive_deletes=True)
    daily_stats = relationship("DailyStat", back_populates="monitor", cascade="all, delete-orphan", passive_deletes=True)
