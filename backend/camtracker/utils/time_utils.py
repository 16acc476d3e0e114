# backend/camtracker/utils/time_utils.py
"""
Pure time helpers. All timestamps in the pipeline are timezone-aware UTC.
"""

import time
from datetime import datetime, timezone
from typing import Optional

UTC_TIMEZONE = timezone.utc


def utc_now() -> datetime:
    """Get current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC_TIMEZONE)


def utc_timestamp() -> float:
    return time.time()


def from_timestamp(ts: float) -> datetime:
    """Convert a POSIX timestamp (e.g. a file mtime) to aware UTC datetime."""
    return datetime.fromtimestamp(ts, UTC_TIMEZONE)


def age_seconds(ts: float, now: Optional[float] = None) -> float:
    """Seconds elapsed since ``ts`` (never negative)."""
    current = time.time() if now is None else now
    return max(0.0, current - ts)


def format_duration(seconds: float) -> str:
    """Format a duration for log output, e.g. 1.52s or 340ms."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.2f}s"
