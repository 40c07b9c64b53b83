"""DailyStat model - per-day availability rollup."""
from sqlalchemy import Column, Date, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base


class DailyStat(Base):
    """Checks and incidents for one monitor on one UTC calendar date."""
    
    __tablename__ = "daily_stats"
    __table_args__ = (
        UniqueConstraint("monitor_id", "date", name="uq_daily_stats_monitor_date"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    total_checks = Column(Integer, nullable=False, default=0)
    successful_checks = Column(Integer, nullable=False, default=0)  # up or degraded
    failed_checks = Column(Integer, nullable=False, default=0)
    uptime_percentage = Column(Float, nullable=False, default=100.0)
    avg_response_time = Column(Integer, nullable=True)
    total_response_time = Column(Integer, nullable=True)  # Exact sum behind the average
    min_response_time = Column(Integer, nullable=True)
    max_response_time = Column(Integer, nullable=True)
    incidents_count = Column(Integer, nullable=False, default=0)
    total_downtime_seconds = Column(Integer, nullable=False, default=0)
    
    monitor = relationship("Monitor", back_populates="daily_stats")
