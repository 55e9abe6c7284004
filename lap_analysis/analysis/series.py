"""
Comparison series - per-lap values queryable by distance, time or position.

Every series is a list of points carrying three parallel x-axes (distance
from lap start, time from lap start, normalized lap position) and a value.
One interpolation engine serves all series types; the types only differ in
how values are extracted from samples:

- RAW: value taken directly from each sample (speed, elapsed time)
- DELTA: sample value minus the reference lap's value at the same distance
- DELTA_RATE: first difference of the DELTA series between samples
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

import numpy as np

from lap_analysis.data.models import Sample

logger = logging.getLogger('vboLaps.series')

AXIS_DISTANCE = 'distance'
AXIS_TIME = 'time'
AXIS_NORMALIZED = 'normalized'


class SeriesKind(Enum):
    RAW = 'raw'
    DELTA = 'delta'
    DELTA_RATE = 'delta_rate'


@dataclass(frozen=True)
class SeriesType:
    """
    Description of one comparable series.

    Attributes:
        key: Registry key, e.g. "speed" or "timedelta".
        name: Display name.
        unit: Display unit.
        kind: RAW, DELTA or DELTA_RATE.
        extractor: Value of a sample for this series (or its base series).
        higher_is_better: True if larger values mean a better lap, used for
            delta colouring.
        base: Key of the RAW series a delta is taken against.
    """
    key: str
    name: str
    unit: str
    kind: SeriesKind
    extractor: Callable[[Sample], float]
    higher_is_better: bool
    base: Optional[str] = None

    @property
    def needs_reference(self) -> bool:
        return self.kind is not SeriesKind.RAW


@dataclass(frozen=True)
class SeriesPoint:
    """One series point. Time is in ms from lap start."""
    distance: float
    time: float
    normalized: float
    value: float
    sector_boundary_index: Optional[int] = None


class Series:
    """Series points with linear interpolation on any of the three x-axes."""

    def __init__(self, series_type: SeriesType, points: Optional[List[SeriesPoint]] = None):
        self.series_type = series_type
        self.points = list(points or [])

        self._axes = {
            AXIS_DISTANCE: np.array([p.distance for p in self.points], dtype=float),
            AXIS_TIME: np.array([p.time for p in self.points], dtype=float),
            AXIS_NORMALIZED: np.array([p.normalized for p in self.points], dtype=float),
        }
        self._values = np.array([p.value for p in self.points], dtype=float)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def name(self) -> str:
        return self.series_type.name

    @property
    def unit(self) -> str:
        return self.series_type.unit

    @property
    def needs_reference(self) -> bool:
        return self.series_type.needs_reference

    @property
    def higher_is_better(self) -> bool:
        return self.series_type.higher_is_better

    def min_value(self) -> float:
        if not self.points:
            return 0.0
        return float(self._values.min())

    def max_value(self) -> float:
        if not self.points:
            return 0.0
        return float(self._values.max())

    def value_at(self, axis: str, x: float) -> Optional[float]:
        """
        Interpolate the series value at x on the given axis.

        Args:
            axis: AXIS_DISTANCE, AXIS_TIME or AXIS_NORMALIZED
            x: Position on that axis

        Returns:
            Interpolated value, or None outside the covered range
        """
        xs = self._axes[axis]
        if len(xs) == 0 or x is None:
            return None
        if not (xs[0] <= x <= xs[-1]):
            return None

        idx = int(np.searchsorted(xs, x, side='left'))
        if xs[idx] == x:
            return float(self._values[idx])

        x0 = xs[idx - 1]
        x1 = xs[idx]
        v0 = self._values[idx - 1]
        v1 = self._values[idx]
        if x1 == x0:
            return float(v0)

        t = (x - x0) / (x1 - x0)
        return float(v0 + t * (v1 - v0))

    def value_at_distance(self, distance: float) -> Optional[float]:
        """Value at distance from lap start (m)."""
        return self.value_at(AXIS_DISTANCE, distance)

    def value_at_time(self, time_ms: float) -> Optional[float]:
        """Value at time from lap start (ms)."""
        return self.value_at(AXIS_TIME, time_ms)

    def value_at_normalized(self, normalized: float) -> Optional[float]:
        """Value at normalized lap position (0.0 to 1.0)."""
        return self.value_at(AXIS_NORMALIZED, normalized)


def _speed(sample: Sample) -> float:
    return sample.speed


def _elapsed_seconds(sample: Sample) -> float:
    return sample.lap_time_from_start / 1000.0


SERIES_TYPES: Dict[str, SeriesType] = {
    'speed': SeriesType(
        key='speed', name='Speed', unit='km/h', kind=SeriesKind.RAW,
        extractor=_speed, higher_is_better=True,
    ),
    'time': SeriesType(
        key='time', name='Time', unit='s', kind=SeriesKind.RAW,
        extractor=_elapsed_seconds, higher_is_better=False,
    ),
    'timedelta': SeriesType(
        key='timedelta', name='Time Delta', unit='s', kind=SeriesKind.DELTA,
        extractor=_elapsed_seconds, higher_is_better=False, base='time',
    ),
    'speeddelta': SeriesType(
        key='speeddelta', name='Speed Delta', unit='km/h', kind=SeriesKind.DELTA,
        extractor=_speed, higher_is_better=True, base='speed',
    ),
    # Negative rate = gaining time on the reference
    'timedeltarate': SeriesType(
        key='timedeltarate', name='Time Delta Rate', unit='s', kind=SeriesKind.DELTA_RATE,
        extractor=_elapsed_seconds, higher_is_better=False, base='time',
    ),
}


def get_series_type(key: str) -> SeriesType:
    """Look up a series type by key."""
    try:
        return SERIES_TYPES[key]
    except KeyError:
        raise ValueError(f"Unknown series type: {key}") from None


def _lap_samples(samples: List[Sample]) -> List[Sample]:
    return [
        s for s in samples
        if s.lap_distance_from_start is not None and s.lap_time_from_start is not None
    ]


def _point(sample: Sample, value: float, total_distance: float) -> SeriesPoint:
    distance = sample.lap_distance_from_start
    return SeriesPoint(
        distance=distance,
        time=sample.lap_time_from_start,
        normalized=distance / total_distance if total_distance > 0 else 0.0,
        value=value,
        sector_boundary_index=sample.sector_boundary_index,
    )


def _delta_points(series_type: SeriesType, samples: List[Sample],
                  total_distance: float, reference: Series) -> List[SeriesPoint]:
    points = []
    for sample in samples:
        ref_value = reference.value_at_distance(sample.lap_distance_from_start)
        if ref_value is None:
            continue
        delta = series_type.extractor(sample) - ref_value
        points.append(_point(sample, delta, total_distance))
    return points


def build_series(series_type: SeriesType, samples: List[Sample],
                 reference: Optional[Series] = None) -> Series:
    """
    Build a series for one lap.

    Args:
        series_type: Series to build
        samples: Lap samples with lap-relative time and distance set
        reference: Reference lap's base RAW series (delta types only)

    Returns:
        Series. Delta types without a reference are empty.
    """
    samples = _lap_samples(samples)
    if not samples:
        return Series(series_type)

    total_distance = samples[-1].lap_distance_from_start

    if series_type.kind is SeriesKind.RAW:
        points = [_point(s, series_type.extractor(s), total_distance) for s in samples]
        return Series(series_type, points)

    if reference is None or len(reference) == 0:
        return Series(series_type)

    deltas = _delta_points(series_type, samples, total_distance, reference)
    if series_type.kind is SeriesKind.DELTA:
        return Series(series_type, deltas)

    points = []
    prev = 0.0
    for point in deltas:
        points.append(SeriesPoint(
            distance=point.distance,
            time=point.time,
            normalized=point.normalized,
            value=point.value - prev,
            sector_boundary_index=point.sector_boundary_index,
        ))
        prev = point.value
    return Series(series_type, points)
