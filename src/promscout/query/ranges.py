"""
Compact duration tokens ("15m", "6h", "7d") and the time budgets derived from them.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

DEFAULT_RANGE = timedelta(minutes=15)

_RANGE_PATTERN = re.compile(r"^(\d+)([mhd])$")

_UNITS = {
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}


def parse_range(token: str | None) -> timedelta:
    """
    Parse a range token into a duration.

    Supports minutes, hours and days (``Nm``, ``Nh``, ``Nd``). Anything else,
    including an empty or missing token, yields the 15 minute default.
    """
    if not token:
        return DEFAULT_RANGE
    match = _RANGE_PATTERN.match(token.strip())
    if not match:
        return DEFAULT_RANGE
    count, unit = match.groups()
    return int(count) * _UNITS[unit]


def discovery_budget(
    range_duration: timedelta,
    *,
    default: float = 4.0,
    day: float = 10.0,
    week: float = 15.0,
) -> float:
    """Seconds allowed for discovery, scaled up for multi-day ranges."""
    if range_duration >= timedelta(days=7):
        return week
    if range_duration >= timedelta(days=1):
        return day
    return default


def query_window(
    range_token: str | None,
    step: str,
    now: datetime | None = None,
) -> dict[str, str]:
    """Build the start/end/step parameters of a range query ending at ``now``."""
    end = now or datetime.now(timezone.utc)
    start = end - parse_range(range_token)
    return {
        "start": str(int(start.timestamp())),
        "end": str(int(end.timestamp())),
        "step": step,
    }
