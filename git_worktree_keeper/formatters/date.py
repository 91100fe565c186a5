"""Date and time formatting utilities."""

from datetime import datetime
from typing import Optional


def format_timestamp(millis: Optional[int]) -> str:
    """
    Format epoch milliseconds as local YYYY-MM-DD HH:MM.

    Args:
        millis: Milliseconds since the Unix epoch (0 or None means never)

    Returns:
        Formatted date string, or "never"
    """
    if not millis:
        return "never"
    return datetime.fromtimestamp(millis / 1000).strftime("%Y-%m-%d %H:%M")


def format_age(millis: Optional[int], now_millis: int) -> str:
    """
    Format how long ago a timestamp was, e.g. "5m", "3h", "2d".

    Args:
        millis: Milliseconds since the Unix epoch
        now_millis: Reference time in milliseconds

    Returns:
        Compact age string, or "never"
    """
    if not millis:
        return "never"
    seconds = max(0, (now_millis - millis) // 1000)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
