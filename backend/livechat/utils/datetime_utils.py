"""
Timezone-aware datetime utilities.

SQLite hands back naive datetimes; everything leaving the store goes through
ensure_utc so the wire format always carries an offset.
"""

from datetime import datetime, timezone
from typing import Optional

# UTC timezone constant
UTC = timezone.utc


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Replaces datetime.utcnow() which is deprecated in Python 3.12+.
    """
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_naive_utc(dt: datetime) -> datetime:
    """Strip tzinfo after converting to UTC, for storage columns."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def monotonic_after(candidate: datetime, previous: Optional[datetime]) -> datetime:
    """
    Return candidate, or previous if the clock went backwards.

    Keeps per-chat message timestamps non-decreasing in acceptance order.
    """
    if previous is None:
        return candidate
    previous = ensure_utc(previous)
    candidate = ensure_utc(candidate)
    return candidate if candidate >= previous else previous
