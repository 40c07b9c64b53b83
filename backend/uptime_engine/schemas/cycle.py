"""Check cycle result schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class CheckOutcome(BaseModel):
    """Result of one monitor's pipeline run."""
    monitor_id: int
    name: Optional[str] = None
    url: Optional[str] = None
    status: Optional[str] = None  # up, down, degraded; None when the pipeline failed
    status_code: Optional[int] = None
    response_time: Optional[int] = None
    status_changed: bool = False
    previous_status: Optional[str] = None
    error_message: Optional[str] = None  # Probe/classification failure reason
    error: Optional[str] = None  # Pipeline failure (nothing persisted)


class CycleResult(BaseModel):
    """Summary returned by every trigger invocation."""
    success: bool = True
    message: str
    timestamp: datetime
    checked: int
    results: List[CheckOutcome]
