"""Monitor schemas for API."""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class MonitorCreate(BaseModel):
    """Schema for creating a new monitor. Omitted settings use configured defaults."""
    project_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., pattern=r"^https?://")
    check_interval: Optional[int] = Field(None, ge=1)
    timeout: Optional[int] = Field(None, ge=1)
    expected_status_code: Optional[int] = Field(None, ge=100, le=599)


class MonitorUpdate(BaseModel):
    """Schema for updating a monitor's configuration."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, pattern=r"^https?://")
    check_interval: Optional[int] = Field(None, ge=1)
    timeout: Optional[int] = Field(None, ge=1)
    expected_status_code: Optional[int] = Field(None, ge=100, le=599)
    is_paused: Optional[bool] = None
    is_active: Optional[bool] = None


class MonitorResponse(BaseModel):
    """Schema for monitor in API responses."""
    id: int
    project_id: str
    name: str
    url: str
    check_interval: int
    timeout: int
    expected_status_code: int
    is_active: bool
    is_paused: bool
    current_status: str
    last_checked_at: Optional[datetime] = None
    last_status_change: Optional[datetime] = None
    created_at: datetime
    
    class Config:
        from_attributes = True


class CheckResponse(BaseModel):
    id: int
    status: str
    status_code: Optional[int] = None
    response_time: int
    error_message: Optional[str] = None
    checked_at: datetime
    
    class Config:
        from_attributes = True


class IncidentResponse(BaseModel):
    id: int
    status: str  # ongoing, resolved
    cause: Optional[str] = None
    started_at: datetime
    resolved_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    
    class Config:
        from_attributes = True


class DailyStatResponse(BaseModel):
    date: date
    total_checks: int
    successful_checks: int
    failed_checks: int
    uptime_percentage: float
    avg_response_time: Optional[int] = None
    min_response_time: Optional[int] = None
    max_response_time: Optional[int] = None
    incidents_count: int
    total_downtime_seconds: int
    
    class Config:
        from_attributes = True


class MonitorWithUptime(MonitorResponse):
    """Monitor with rolling availability over the last 30/60/90 days."""
    uptime_30d: float
    uptime_60d: float
    uptime_90d: float
    daily_stats: List[DailyStatResponse] = []


class MonitorStats(BaseModel):
    overall_uptime: float
    avg_response_time: Optional[int] = None
    total_incidents: int
    ongoing_incidents: int


class MonitorDetail(MonitorResponse):
    """Monitor with recent history for the detail page."""
    recent_checks: List[CheckResponse]
    recent_incidents: List[IncidentResponse]
    daily_stats: List[DailyStatResponse]
    stats: MonitorStats
