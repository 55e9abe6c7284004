"""
Shared geometry functions for GPS and local metric calculations.

All lap and sector detection runs in a local metric plane (x east, y north,
meters) anchored at the bounding box minimum corner of the recording.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from lap_analysis import config


@dataclass(frozen=True)
class Vector2D:
    """2D vector for directions and perpendiculars."""
    x: float
    y: float

    def length(self) -> float:
        return math.hypot(self.x, self.y)


ZERO_VECTOR = Vector2D(0.0, 0.0)


def normalize_vector(v: Vector2D) -> Vector2D:
    """
    Scale vector to unit length.

    Returns the zero vector for a zero-length input (stationary samples).
    """
    length = v.length()
    if length == 0:
        return ZERO_VECTOR
    return Vector2D(v.x / length, v.y / length)


def perpendicular(v: Vector2D) -> Vector2D:
    """Rotate vector 90 degrees counter-clockwise."""
    return Vector2D(-v.y, v.x)


def segment_intersection(
    p1: Tuple[float, float],
    p2: Tuple[float, float],
    q1: Tuple[float, float],
    q2: Tuple[float, float],
    epsilon: float = config.PARALLEL_EPSILON,
    tolerance: float = config.INTERSECTION_TOLERANCE
) -> Optional[float]:
    """
    Intersect finite segments p1->p2 and q1->q2.

    Args:
        p1, p2: First segment endpoints (x, y)
        q1, q2: Second segment endpoints (x, y)
        epsilon: Determinant magnitude below which segments are parallel
        tolerance: Rounding slack accepted outside [0, 1] on both segments

    Returns:
        Parameter t in [0, 1] along p1->p2 at the intersection point,
        or None if the segments are parallel or do not intersect
    """
    x1, y1 = p1
    x2, y2 = p2
    x3, y3 = q1
    x4, y4 = q2

    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < epsilon:
        return None

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom

    low = -tolerance
    high = 1.0 + tolerance
    if low <= t <= high and low <= u <= high:
        return min(1.0, max(0.0, t))

    return None


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation between a and b."""
    return a + t * (b - a)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great circle distance between two GPS points in meters.

    Args:
        lat1, lon1: First point (decimal degrees)
        lat2, lon2: Second point (decimal degrees)

    Returns:
        Distance in meters
    """
    R = config.EARTH_RADIUS_M

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def gps_to_meters(lat: float, lon: float,
                  origin_lat: float, origin_lon: float) -> Tuple[float, float]:
    """
    Convert GPS coordinates to meters relative to an origin.

    Local equirectangular projection, good for track-sized areas (a few km).

    Returns:
        (x, y) in meters, x = east-west, y = north-south
    """
    R = config.EARTH_RADIUS_M
    origin_lat_rad = math.radians(origin_lat)

    d_lat = math.radians(lat - origin_lat)
    d_lon = math.radians(lon - origin_lon)

    x = d_lon * R * math.cos(origin_lat_rad)
    y = d_lat * R

    return x, y


def meters_to_gps(x: float, y: float,
                  origin_lat: float, origin_lon: float) -> Tuple[float, float]:
    """
    Convert local metric coordinates back to GPS.

    Returns:
        (lat, lon) in decimal degrees
    """
    R = config.EARTH_RADIUS_M
    origin_lat_rad = math.radians(origin_lat)

    d_lat = y / R
    d_lon = x / (R * math.cos(origin_lat_rad))

    return origin_lat + math.degrees(d_lat), origin_lon + math.degrees(d_lon)
