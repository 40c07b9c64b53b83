"""Trigger endpoint for the external periodic job."""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..schemas.cycle import CycleResult
from ..services.dispatcher import MonitorNotFoundError, UptimeDispatcher, get_dispatcher
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cron", tags=["cron"])


async def verify_cron_secret(authorization: Optional[str] = Header(None)):
    """Reject callers without the shared bearer secret, when one is configured."""
    secret = settings.cron_secret
    if not secret:
        return
    if not hmac.compare_digest(authorization or "", f"Bearer {secret}"):
        logger.warning("Uptime trigger rejected - invalid credentials")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.api_route(
    "/uptime-check",
    methods=["GET", "POST"],
    response_model=CycleResult,
    dependencies=[Depends(verify_cron_secret)],
)
async def uptime_check(
    monitor_id: Optional[int] = Query(None, description="Check only this monitor, ignoring its schedule"),
    dispatcher: UptimeDispatcher = Depends(get_dispatcher),
):
    """Run a check cycle over all due monitors, or a manual check of one monitor."""
    try:
        if monitor_id is None:
            return await dispatcher.run_cycle()
        
        now = utcnow()
        outcome = await dispatcher.run_single(monitor_id, now)
        return CycleResult(
            message="Checked 1 monitors",
            timestamp=now,
            checked=1,
            results=[outcome],
        )
    except MonitorNotFoundError:
        raise HTTPException(status_code=404, detail="Monitor not found")
    except SQLAlchemyError as e:
        logger.error(f"Uptime check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Check failed", "message": str(e)},
        )
