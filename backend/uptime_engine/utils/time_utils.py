"""Time helpers. All persisted timestamps are naive UTC."""
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utc_day(value: datetime) -> date:
    """Calendar date (UTC) a timestamp falls on."""
    return to_naive_utc(value).date()
