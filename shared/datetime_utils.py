"""
Date/time utilities — framework-agnostic.

MongoDB hands back naive datetimes unless the client is tz-aware, so every
expiry comparison goes through ``ensure_utc`` first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current timezone-aware UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return *dt* as an aware UTC datetime. Naive values are assumed UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a date/time value into a timezone-aware UTC datetime.

    Accepts:
    - ``None`` → ``None``
    - ``datetime`` → normalised to UTC
    - ``int`` / ``float`` → treated as Unix epoch seconds
    - ISO 8601 strings, including a trailing ``"Z"`` (older records store the
      OTP expiry this way)

    Returns:
        A timezone-aware ``datetime`` in UTC, or ``None`` if *value* is
        ``None``, empty or cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        raw = str(value)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(raw))
    except (ValueError, OSError, OverflowError):
        return None
