"""
Clock and lap time conversions.

Recording timestamps are wall-clock strings (HH:MM:SS.mmm); internally all
times are milliseconds since midnight.
"""

import math


def parse_time(time_str: str) -> float:
    """
    Parse HH:MM:SS.mmm into milliseconds since midnight.

    Malformed strings parse as 0.
    """
    if not time_str:
        return 0.0

    parts = time_str.split(':')
    if len(parts) != 3:
        return 0.0

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = float(parts[2])
    except ValueError:
        return 0.0

    return (hours * 3600 + minutes * 60 + seconds) * 1000.0


def format_clock(ms: float) -> str:
    """Format milliseconds since midnight as HH:MM:SS.mmm."""
    total_ms = int(round(ms))
    hours, rest = divmod(total_ms, 3600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def format_lap_time(ms: float) -> str:
    """Format a lap time in milliseconds as M:SS.mmm."""
    if ms is None or math.isnan(ms) or ms < 0:
        return '0:00.000'

    minutes, rest = divmod(int(round(ms)), 60_000)
    seconds, millis = divmod(rest, 1000)

    return f"{minutes}:{seconds:02d}.{millis:03d}"
