"""Classifier - maps a probe outcome to up, down or degraded."""
from dataclasses import dataclass
from typing import Optional

from ..config import settings
from ..models import MonitorState
from .prober import ProbeOutcome


@dataclass(frozen=True)
class Classification:
    status: MonitorState
    error_message: Optional[str] = None


def classify(
    outcome: ProbeOutcome,
    expected_status_code: int,
    degraded_threshold_ms: Optional[int] = None,
) -> Classification:
    """Classify a probe outcome.
    
    Rules, first match wins:
    1. Transport error -> down, with the error as message
    2. Unexpected status code -> down
    3. Slower than the latency threshold -> degraded
    4. Otherwise -> up
    
    A wrong status code always wins over latency.
    """
    if degraded_threshold_ms is None:
        degraded_threshold_ms = settings.degraded_threshold_ms
    
    if outcome.error:
        return Classification(MonitorState.DOWN, outcome.error)
    
    if outcome.status_code != expected_status_code:
        return Classification(
            MonitorState.DOWN,
            f"Expected status {expected_status_code}, got {outcome.status_code}",
        )
    
    if outcome.elapsed_ms > degraded_threshold_ms:
        return Classification(MonitorState.DEGRADED)
    
    return Classification(MonitorState.UP)
