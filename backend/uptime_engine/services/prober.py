"""Prober service - executes one bounded HTTP GET against a monitor URL."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out"
CONNECTION_FAILED_MESSAGE = "Connection failed"


@dataclass
class ProbeOutcome:
    """Raw result of a probe. `elapsed_ms` is always set, even on failure."""
    elapsed_ms: int
    status_code: Optional[int] = None
    error: Optional[str] = None


def _describe(error: BaseException) -> str:
    """Message of the innermost error, unwrapping exception groups."""
    while getattr(error, "exceptions", None):
        error = error.exceptions[0]
    return str(error) or CONNECTION_FAILED_MESSAGE


class ProberService:
    """Issues single GET requests with a hard deadline. No retries."""
    
    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: Optional[str] = None,
        verify: Optional[bool] = None,
        follow_redirects: Optional[bool] = None,
    ):
        self.transport = transport
        self.user_agent = user_agent or settings.user_agent
        self.verify = settings.verify_ssl if verify is None else verify
        self.follow_redirects = settings.follow_redirects if follow_redirects is None else follow_redirects
    
    async def probe(self, url: str, timeout_seconds: float) -> ProbeOutcome:
        """Probe `url`, aborting once `timeout_seconds` have elapsed."""
        start = time.monotonic()
        
        try:
            # httpx timeouts apply per phase; wait_for bounds the whole request
            response = await asyncio.wait_for(
                self._get(url, timeout_seconds),
                timeout=timeout_seconds,
            )
            return ProbeOutcome(
                elapsed_ms=self._elapsed_ms(start),
                status_code=response.status_code,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ProbeOutcome(elapsed_ms=self._elapsed_ms(start), error=TIMEOUT_MESSAGE)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Probe of {url} failed: {type(e).__name__}: {e}")
            return ProbeOutcome(
                elapsed_ms=self._elapsed_ms(start),
                error=str(e) or CONNECTION_FAILED_MESSAGE,
            )
        except Exception as e:
            # Socket-level failures (bad port, DNS oddities) can surface outside httpx
            logger.warning(f"Probe of {url} failed: {type(e).__name__}: {e}")
            return ProbeOutcome(
                elapsed_ms=self._elapsed_ms(start),
                error=_describe(e),
            )
    
    async def _get(self, url: str, timeout_seconds: float) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=timeout_seconds,
            follow_redirects=self.follow_redirects,
            verify=self.verify,
            transport=self.transport,
            headers={"User-Agent": self.user_agent},
        ) as client:
            return await client.get(url)
    
    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)


# Global instance
prober_service = ProberService()
