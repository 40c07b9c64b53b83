"""Scheduler service - optional in-process trigger for check cycles.

Production deployments call /api/cron/uptime-check from an external cron.
When SCHEDULER_ENABLED is set, this runs the same cycle on a fixed tick
instead. `max_instances=1` keeps cycles from overlapping in this process.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from .dispatcher import UptimeDispatcher, get_dispatcher

logger = logging.getLogger(__name__)


class SchedulerService:
    """Runs dispatcher cycles periodically."""
    
    def __init__(self, dispatcher: Optional[UptimeDispatcher] = None, tick_seconds: Optional[int] = None):
        self.dispatcher = dispatcher
        self.tick_seconds = tick_seconds or settings.scheduler_tick_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
    
    @property
    def running(self) -> bool:
        return self._running
    
    def start(self):
        """Start the scheduler."""
        if self._running:
            return
        
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._run_cycle,
            trigger=IntervalTrigger(seconds=self.tick_seconds),
            id="uptime_cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.tick_seconds,
        )
        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (tick={self.tick_seconds}s)")
    
    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")
    
    async def _run_cycle(self):
        dispatcher = self.dispatcher or get_dispatcher()
        try:
            await dispatcher.run_cycle()
        except Exception as e:
            # A failed cycle must not kill the job; the next tick retries
            logger.error(f"Error running uptime cycle: {e}")


# Global instance
scheduler_service = SchedulerService()
