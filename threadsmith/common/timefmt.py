"""
Timestamp utilities for consistent time handling across the engine.

All engine timestamps are POSIX seconds.
"""

import math
import time
from datetime import datetime, timezone
from typing import Optional

SECONDS_PER_HOUR = 3600


def to_iso(timestamp: float) -> str:
    """Render a POSIX timestamp as an ISO-8601 UTC string"""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)"""
    return int(math.floor(value + 0.5))


def hours_between(earlier: float, later: float) -> float:
    return (later - earlier) / SECONDS_PER_HOUR


def format_relative_time(timestamp: float, now: Optional[float] = None) -> str:
    """
    Human-readable age of a timestamp.

    Args:
        timestamp: POSIX seconds
        now: Reference time (default: current time)

    Returns:
        "3 days ago", "1 hour ago", "5 minutes ago" or "just now"
    """
    if now is None:
        now = time.time()
    seconds = int(max(0.0, now - timestamp))
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "just now"
