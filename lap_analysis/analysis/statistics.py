"""
Lap time statistics - reference lap selection and outlier filtering.
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np

from lap_analysis import config


def median_lap_time(times: Iterable[float]) -> Optional[float]:
    """Median of positive lap times, or None if there are none."""
    valid = [t for t in times if t > 0]
    if not valid:
        return None
    return float(np.median(valid))


def is_outlier_time(time_ms: float, median_ms: float, tolerance_percent: float) -> bool:
    """True if time deviates from the median by more than tolerance_percent."""
    return abs(time_ms - median_ms) > median_ms * tolerance_percent / 100.0


def classify_outliers(
    times: Sequence[float],
    tolerance_percent: float = config.OUTLIER_TOLERANCE_PERCENT,
    min_laps: int = config.OUTLIER_MIN_LAPS
) -> List[bool]:
    """
    Flag lap times outside the tolerance band around the median.

    Args:
        times: Lap times in ms, one per lap
        tolerance_percent: Allowed deviation from the median (%)
        min_laps: With fewer laps nothing is flagged

    Returns:
        One flag per lap, True = outlier
    """
    if tolerance_percent < 0:
        raise ValueError(f"Tolerance must be non-negative, got {tolerance_percent}")

    if len(times) < min_laps:
        return [False] * len(times)

    median = median_lap_time(times)
    if median is None:
        return [False] * len(times)

    return [is_outlier_time(t, median, tolerance_percent) for t in times]


def select_fastest_lap(laps, eligible: Iterable[int]) -> Optional[int]:
    """
    Index of the fastest eligible lap.

    Args:
        laps: Laps exposing .index and .time_ms
        eligible: Lap indices allowed as reference

    Returns:
        Index of the eligible lap with minimum positive time (first one on
        ties), or None
    """
    eligible = set(eligible)
    best_index = None
    best_time = None

    for lap in laps:
        if lap.index not in eligible:
            continue
        time_ms = lap.time_ms
        if time_ms <= 0:
            continue
        if best_time is None or time_ms < best_time:
            best_time = time_ms
            best_index = lap.index

    return best_index
