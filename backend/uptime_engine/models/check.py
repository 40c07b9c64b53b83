"""Check model - append-only log of probe executions."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_utils import utcnow


class Check(Base):
    """One executed probe and its classified result. Never updated."""
    
    __tablename__ = "checks"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False)  # up, down, degraded
    status_code = Column(Integer, nullable=True)
    response_time = Column(Integer, nullable=False)  # milliseconds
    error_message = Column(String, nullable=True)
    checked_at = Column(DateTime, default=utcnow, index=True)
    
    monitor = relationship("Monitor", back_populates="checks")
