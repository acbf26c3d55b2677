"""Timezone handling and Firestore timestamp normalisation."""

from datetime import datetime, time, timezone
from typing import Any

UTC = timezone.utc

# Values above this are treated as epoch milliseconds rather than seconds
_MILLIS_CUTOFF = 10_000_000_000


def utc_now() -> datetime:
    """Get current time in UTC."""
    return datetime.now(UTC)


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time."""
    hour, _, minute = value.partition(":")
    return time(int(hour), int(minute))


def _from_epoch(seconds: float) -> datetime | None:
    # Out-of-range or non-finite values cannot be represented
    try:
        return datetime.fromtimestamp(seconds, UTC)
    except (OverflowError, OSError, ValueError):
        return None


def to_utc_datetime(value: Any) -> datetime | None:
    """Normalise a Firestore timestamp-ish value to an aware UTC datetime.

    Accepts datetimes (including Firestore's DatetimeWithNanoseconds),
    serialized timestamp maps with `_seconds` / `seconds`, and epoch numbers
    in seconds or milliseconds. Returns None for anything else, including
    epoch values outside the representable range.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            return _from_epoch(seconds)
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _MILLIS_CUTOFF else value
        return _from_epoch(seconds)
    return None
