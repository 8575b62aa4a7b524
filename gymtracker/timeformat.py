from __future__ import annotations

from typing import Optional


def format_duration(seconds: Optional[float]) -> str:
    """Human-readable duration: "< 1 min", "45 min", "2h", "1h 23m".

    Missing, zero or negative values render as "N/A".
    """
    if not seconds or seconds < 0:
        return "N/A"
    if seconds < 60:
        return "< 1 min"

    minutes = int(seconds // 60)
    hours = minutes // 60
    remaining_minutes = minutes % 60

    if hours == 0:
        return f"{minutes} min"
    if remaining_minutes == 0:
        return f"{hours}h"
    return f"{hours}h {remaining_minutes}m"


def format_duration_mmss(seconds: int) -> str:
    """Clock-style duration: "45:30", or "1:23:45" once past an hour."""
    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
