"""
Lap splitting at start/finish line crossings.

Single forward pass over the recording. Every consecutive sample pair is
intersected with the S/F detection segment; a hit closes the current lap
with an interpolated boundary sample and opens the next lap with a copy of
that same sample, so consecutive laps share their boundary point exactly.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from lap_analysis import config
from lap_analysis.data.models import Sample, StartFinishLine
from lap_analysis.utils.geometry import (
    Vector2D,
    haversine_distance,
    lerp,
    meters_to_gps,
    normalize_vector,
    perpendicular,
    segment_intersection,
)

logger = logging.getLogger('vboLaps.laps')


def interpolate_sample(
    p1: Sample,
    p2: Sample,
    t: float,
    origin: Tuple[float, float],
    sector_boundary_index: Optional[int] = None
) -> Sample:
    """
    Synthesize a sample at fraction t between p1 and p2.

    Position is interpolated in metres and converted back to GPS so the
    sample stays consistent with the metric frame. Delta fields are relative
    to p1, direction is the metric direction of the p1->p2 segment.

    Args:
        p1, p2: Consecutive enriched samples
        t: Fraction along p1->p2 (0.0 to 1.0)
        origin: (lat, lon) origin of the metric frame
        sector_boundary_index: Sector boundary tag for the new sample

    Returns:
        New sample with is_interpolated=True
    """
    x = lerp(p1.x, p2.x, t)
    y = lerp(p1.y, p2.y, t)
    lat, lon = meters_to_gps(x, y, origin[0], origin[1])

    direction = normalize_vector(Vector2D(p2.x - p1.x, p2.y - p1.y))
    if direction.length() == 0 and p1.direction is not None:
        direction = p1.direction

    return Sample(
        sats=p1.sats,
        time_ms=lerp(p1.time_ms, p2.time_ms, t),
        lat=lat,
        lon=lon,
        speed=lerp(p1.speed, p2.speed, t),
        heading=lerp(p1.heading, p2.heading, t),
        altitude=lerp(p1.altitude, p2.altitude, t),
        x=x,
        y=y,
        delta_time=t * (p2.time_ms - p1.time_ms),
        distance=haversine_distance(p1.lat, p1.lon, lat, lon),
        direction=direction,
        perpendicular=perpendicular(direction),
        is_interpolated=True,
        sector_boundary_index=sector_boundary_index,
    )


def split_into_laps(
    samples: List[Sample],
    start_finish: Optional[StartFinishLine],
    origin: Tuple[float, float],
    min_lap_points: int = config.MIN_LAP_POINTS,
    min_samples: int = config.MIN_SPLIT_SAMPLES
) -> List[List[Sample]]:
    """
    Split an enriched recording into laps.

    Args:
        samples: Enriched samples in time order
        start_finish: Detected S/F line, or None
        origin: (lat, lon) origin of the metric frame
        min_lap_points: Samples a lap must hold before a crossing closes it
        min_samples: Shorter recordings are never split

    Returns:
        List of per-lap sample lists. Without a S/F line, or if the line is
        never crossed, the whole recording is one lap.
    """
    if not samples:
        return []

    if start_finish is None or len(samples) < min_samples:
        return [list(samples)]

    q1, q2 = start_finish.endpoints()

    laps: List[List[Sample]] = []
    current = [samples[0]]

    for i in range(1, len(samples)):
        p1 = samples[i - 1]
        p2 = samples[i]

        t = segment_intersection(p1.position, p2.position, q1, q2)

        if t is None or len(current) < min_lap_points:
            current.append(p2)
            continue

        boundary = interpolate_sample(p1, p2, t, origin)

        # Boundary on top of p1 replaces it to keep times strictly increasing
        if current[-1].time_ms >= boundary.time_ms:
            current[-1] = boundary
        else:
            current.append(boundary)
        laps.append(current)

        logger.debug("Lap %d closed with %d samples at (%.2f, %.2f) m, t=%.3f",
                     len(laps), len(current), boundary.x, boundary.y, t)

        current = [replace(boundary)]
        if p2.time_ms > boundary.time_ms:
            current.append(p2)

    # A lone seed sample is just the end of the previous lap
    if len(current) > 1:
        laps.append(current)

    if not laps:
        laps.append(list(samples))

    logger.info("Detected %d laps from %d samples", len(laps), len(samples))

    return laps
