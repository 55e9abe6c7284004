"""
Start/Finish line detection.

The line is placed at the fastest point of the recording, which on a circuit
is almost always the main straight.
"""

import logging
from typing import List, Optional

from lap_analysis import config
from lap_analysis.data.models import Sample, StartFinishLine
from lap_analysis.utils.geometry import Vector2D, normalize_vector, perpendicular

logger = logging.getLogger('vboLaps.start_finish')


def find_max_speed_index(samples: List[Sample], margin: int = config.SF_EDGE_MARGIN) -> int:
    """Index of the first maximum speed sample, ignoring `margin` samples at each end."""
    max_idx = 0
    max_speed = 0.0
    for i in range(margin, len(samples) - margin):
        if samples[i].speed > max_speed:
            max_speed = samples[i].speed
            max_idx = i
    return max_idx


def detect_start_finish(
    samples: List[Sample],
    min_samples: int = config.SF_MIN_SAMPLES,
    margin: int = config.SF_EDGE_MARGIN,
    direction_distance: float = config.SF_DIRECTION_DISTANCE,
    width: float = config.SF_LINE_WIDTH
) -> Optional[StartFinishLine]:
    """
    Detect the start/finish line of an enriched recording.

    Args:
        samples: Enriched samples (metric coordinates and distances set)
        min_samples: Minimum recording length for detection
        margin: Samples skipped at each end when searching for max speed
        direction_distance: Distance before the S/F point used to average
            the travel direction (meters)
        width: Total detection line width (meters)

    Returns:
        StartFinishLine, or None if the recording is too short or no
        travel direction could be derived
    """
    if len(samples) < min_samples:
        logger.warning("Only %d samples, start/finish not detected", len(samples))
        return None

    max_idx = find_max_speed_index(samples, margin)

    # Walk back until enough distance is covered for a stable direction
    covered = 0.0
    start_idx = max_idx
    i = max_idx - 1
    while i >= 0 and covered < direction_distance:
        if samples[i].distance is not None:
            covered += samples[i].distance
        start_idx = i
        i -= 1

    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for i in range(start_idx + 1, max_idx + 1):
        sum_x += samples[i].x - samples[i - 1].x
        sum_y += samples[i].y - samples[i - 1].y
        count += 1

    if count == 0:
        logger.warning("No travel direction at sample %d, start/finish not detected", max_idx)
        return None

    direction = normalize_vector(Vector2D(sum_x / count, sum_y / count))
    sf_sample = samples[max_idx]

    line = StartFinishLine(
        point=(sf_sample.lat, sf_sample.lon),
        point_meters=(sf_sample.x, sf_sample.y),
        direction=direction,
        perpendicular=perpendicular(direction),
        width=width,
    )

    logger.info("Start/finish at sample %d (%.2f, %.2f) m, %.1f km/h",
                max_idx, sf_sample.x, sf_sample.y, sf_sample.speed)
    logger.debug("Start/finish direction (%.4f, %.4f)", direction.x, direction.y)

    return line
