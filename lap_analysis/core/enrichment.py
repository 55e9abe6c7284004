"""
Sample enrichment - bounding box, metric coordinates and per-sample deltas.

Runs once per recording, before any geometry-dependent detection.
"""

import logging
from typing import List, Optional

from lap_analysis.data.models import BoundingBox, Sample
from lap_analysis.utils.geometry import (
    Vector2D,
    gps_to_meters,
    haversine_distance,
    normalize_vector,
    perpendicular,
)

logger = logging.getLogger('vboLaps.enrichment')


def compute_bounding_box(samples: List[Sample]) -> Optional[BoundingBox]:
    """Return the lat/lon extent of the samples, or None if there are none."""
    if not samples:
        return None

    lats = [s.lat for s in samples]
    lons = [s.lon for s in samples]
    return BoundingBox(
        min_lat=min(lats),
        max_lat=max(lats),
        min_lon=min(lons),
        max_lon=max(lons),
    )


def add_metric_coordinates(samples: List[Sample], bbox: BoundingBox):
    """Set x/y on every sample, using the bounding box minimum corner as origin."""
    origin_lat, origin_lon = bbox.origin
    for sample in samples:
        sample.x, sample.y = gps_to_meters(sample.lat, sample.lon, origin_lat, origin_lon)

    logger.debug("Added metric coordinates for %d samples", len(samples))


def calculate_derived_data(samples: List[Sample]):
    """
    Fill delta_time, distance, direction and perpendicular on every sample.

    Direction is taken from the raw lat/lon delta to the previous sample.
    The first sample has no predecessor, so it borrows the second sample's
    direction and gets zero delta_time and distance.
    """
    for i in range(1, len(samples)):
        prev = samples[i - 1]
        curr = samples[i]

        curr.delta_time = curr.time_ms - prev.time_ms
        curr.distance = haversine_distance(prev.lat, prev.lon, curr.lat, curr.lon)

        direction = normalize_vector(Vector2D(curr.lon - prev.lon, curr.lat - prev.lat))
        curr.direction = direction
        curr.perpendicular = perpendicular(direction)

    if samples:
        first = samples[0]
        first.delta_time = 0.0
        first.distance = 0.0
        if len(samples) > 1:
            first.direction = samples[1].direction
            first.perpendicular = samples[1].perpendicular


def enrich_samples(samples: List[Sample]) -> Optional[BoundingBox]:
    """
    Run the full enrichment pass.

    Returns:
        Bounding box of the recording, or None for an empty recording
    """
    bbox = compute_bounding_box(samples)
    if bbox is None:
        return None

    add_metric_coordinates(samples, bbox)
    calculate_derived_data(samples)

    return bbox
