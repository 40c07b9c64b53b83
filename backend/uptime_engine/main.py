"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .database import init_db, close_db
from .routers import cron_router, monitors_router
from .services.scheduler import scheduler_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting uptime engine")
    
    await init_db()
    logger.info("Database initialized")
    
    if settings.scheduler_enabled:
        scheduler_service.start()
    else:
        logger.info("In-process scheduler disabled; waiting for external triggers")
    
    yield
    
    scheduler_service.stop()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Uptime Engine",
        description="Periodic HTTP(S) availability checks with incidents and daily statistics",
        version="1.0.0",
        lifespan=lifespan,
    )
    
    app.include_router(cron_router)
    app.include_router(monitors_router)
    
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "scheduler": scheduler_service.running,
        }
    
    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
