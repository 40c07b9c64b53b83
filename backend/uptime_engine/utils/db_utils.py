"""Database utility functions."""
import asyncio
import logging

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "database is locked",
    "timeout",
    "too many clients",
)


def is_transient(error: Exception) -> bool:
    """Whether a database error is worth retrying."""
    message = str(error).lower()
    return any(fragment in message for fragment in TRANSIENT_ERRORS)


async def commit_with_retry(session: AsyncSession, max_retries: int = 3, base_delay: float = 0.1) -> None:
    """Commit, retrying transient errors with exponential backoff.
    
    Non-transient errors, and the last transient one, are re-raised.
    """
    for attempt in range(max_retries):
        try:
            await session.commit()
            return
        except (OperationalError, InterfaceError) as e:
            if not is_transient(e) or attempt == max_retries - 1:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(f"Database transient error, retrying in {delay}s (attempt {attempt + 1}/{max_retries})")
            await asyncio.sleep(delay)
