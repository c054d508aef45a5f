"""Time and id helpers shared by models, services and endpoints."""

from datetime import datetime, timezone
from uuid import UUID


def utc_now() -> datetime:
    """Naive UTC now; every stored timestamp is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an aware timestamp to naive UTC; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_valid_uuid(value: str) -> bool:
    """Check whether a path parameter is a well-formed UUID string."""
    try:
        UUID(str(value))
    except (ValueError, TypeError):
        return False
    return True


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours from start to end (negative if end precedes start)."""
    return (end - start).total_seconds() / 3600
