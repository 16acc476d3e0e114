# backend/camtracker/utils/conversion_utils.py
"""
Conversion and Type Safety Utilities

Safe conversions for loosely typed payload values (job payloads, header
values) plus integer clamping for user-supplied parameters.
"""

from typing import Any, Optional


def safe_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Safely convert a value to int, returning default if conversion fails.

    Examples:
        >>> safe_int("123")
        123
        >>> safe_int("invalid", 0)
        0
        >>> safe_int(None)
        None
    """
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def safe_str(value: Any, default: str = "") -> str:
    """Stripped string form of a value, or default for None/blank."""
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp an integer into [lower, upper]."""
    return max(lower, min(upper, value))
