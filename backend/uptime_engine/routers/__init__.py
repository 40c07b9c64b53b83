"""API routers."""
from .cron import router as cron_router
from .monitors import router as monitors_router

__all__ = ["cron_router", "monitors_router"]
