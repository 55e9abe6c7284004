"""
Sector computation.

- Create sector boundaries from the fastest lap
- Inject interpolated points where each lap crosses a boundary
- Build track data
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from lap_analysis import config
from lap_analysis.core.lap_splitter import interpolate_sample
from lap_analysis.data.lap import accumulate_lap_fields
from lap_analysis.data.models import Sample, SectorBoundary, StartFinishLine, TrackData
from lap_analysis.utils.geometry import Vector2D, haversine_distance, lerp, segment_intersection

logger = logging.getLogger('vboLaps.sectors')


def find_point_at_distance(
    samples: List[Sample],
    target_distance: float,
    origin: Tuple[float, float]
) -> Optional[Tuple[Sample, int]]:
    """
    Interpolate a sample at a distance from lap start.

    Args:
        samples: Lap samples with lap-relative fields set
        target_distance: Distance from lap start (meters)
        origin: (lat, lon) origin of the metric frame

    Returns:
        (interpolated sample, index of the sample before it), or None if
        the lap is shorter than target_distance
    """
    for i in range(1, len(samples)):
        p1 = samples[i - 1]
        p2 = samples[i]
        d1 = p1.lap_distance_from_start or 0.0
        d2 = p2.lap_distance_from_start or 0.0
        seg = d2 - d1

        if d2 >= target_distance and seg > 0:
            t = (target_distance - d1) / seg
            point = interpolate_sample(p1, p2, t, origin)
            point.lap_distance_from_start = target_distance
            point.lap_time_from_start = lerp(p1.lap_time_from_start, p2.lap_time_from_start, t)
            return point, i - 1

    return None


def compute_sector_boundaries(
    fastest_samples: List[Sample],
    start_finish: StartFinishLine,
    origin: Tuple[float, float],
    sector_count: int = config.SECTOR_COUNT
) -> List[SectorBoundary]:
    """
    Create sector boundaries at equal distance fractions of the fastest lap.

    Boundary lines are half as wide as the start/finish line.
    """
    if not fastest_samples:
        return []

    total_distance = fastest_samples[-1].lap_distance_from_start or 0.0
    if total_distance <= 0:
        return []

    sector_length = total_distance / sector_count
    width = start_finish.width / 2
    sectors = []

    for i in range(1, sector_count):
        boundary_distance = i * sector_length
        result = find_point_at_distance(fastest_samples, boundary_distance, origin)
        if result is None:
            logger.warning("No point at %.1f m on fastest lap, sector boundary %d skipped",
                           boundary_distance, i - 1)
            continue

        point, _ = result
        direction = point.direction or Vector2D(1.0, 0.0)
        perp = point.perpendicular or Vector2D(0.0, 1.0)

        sectors.append(SectorBoundary(
            point=(point.lat, point.lon),
            point_meters=(point.x, point.y),
            direction=direction,
            perpendicular=perp,
            width=width,
            index=i - 1,
            start_distance=boundary_distance,
            length=sector_length,
        ))

    return sectors


def add_sector_points(
    samples: List[Sample],
    sectors: List[SectorBoundary],
    origin: Tuple[float, float],
    epsilon: float = config.SECTOR_CROSSING_EPSILON
) -> List[Sample]:
    """
    Insert interpolated samples where a lap crosses sector boundaries.

    Only the first crossing of each boundary counts; a later crossing of the
    same boundary (GPS noise near the line) is ignored. The input samples
    are not modified, the returned list holds copies.

    Args:
        samples: Lap samples in time order
        sectors: Sector boundaries from compute_sector_boundaries()
        origin: (lat, lon) origin of the metric frame
        epsilon: A crossing closer than this fraction to either sample of a
            pair tags that sample instead of injecting a new one

    Returns:
        New sample list with boundary samples spliced in and distances
        recomputed from the lap start
    """
    result = [replace(s) for s in samples[:1]]
    if len(samples) < 2 or not sectors:
        result.extend(replace(s) for s in samples[1:])
        accumulate_lap_fields(result)
        return result

    lines = [(sector, sector.endpoints()) for sector in sectors]
    crossed = set()

    for i in range(1, len(samples)):
        p1 = samples[i - 1]
        p2 = samples[i]

        crossings = []
        for sector, (q1, q2) in lines:
            t = segment_intersection(p1.position, p2.position, q1, q2)
            if t is None:
                continue
            if sector.index in crossed:
                logger.debug("Repeat crossing of sector boundary %d at %s ignored",
                             sector.index, p2.clock)
                continue
            crossings.append((t, sector.index))

        crossings.sort()
        p2_copy = replace(p2)
        for t, sector_index in crossings:
            crossed.add(sector_index)
            if t <= epsilon and result[-1].sector_boundary_index is None:
                result[-1].sector_boundary_index = sector_index
            elif t >= 1.0 - epsilon and p2_copy.sector_boundary_index is None:
                p2_copy.sector_boundary_index = sector_index
            else:
                result.append(interpolate_sample(p1, p2, t, origin,
                                                 sector_boundary_index=sector_index))

        result.append(p2_copy)

    for i, sample in enumerate(result):
        if i == 0:
            sample.distance = 0.0
        else:
            prev = result[i - 1]
            sample.distance = haversine_distance(prev.lat, prev.lon, sample.lat, sample.lon)
    accumulate_lap_fields(result)

    missing = len(sectors) - len(crossed)
    if missing:
        logger.debug("%d sector boundaries not crossed", missing)

    return result


def create_track_data(
    fastest_samples: List[Sample],
    start_finish: StartFinishLine,
    origin: Tuple[float, float],
    name: str = config.DEFAULT_TRACK_NAME,
    sector_count: int = config.SECTOR_COUNT
) -> TrackData:
    """Create track data from the fastest lap."""
    total_distance = fastest_samples[-1].lap_distance_from_start if fastest_samples else 0.0
    sectors = compute_sector_boundaries(fastest_samples, start_finish, origin, sector_count)

    logger.info("Track '%s': %.1f m, %d sector boundaries", name, total_distance or 0.0, len(sectors))

    return TrackData(
        name=name,
        length=total_distance or 0.0,
        start_finish=start_finish,
        sectors=sectors,
    )
