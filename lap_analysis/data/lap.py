"""
Lap data model.

A lap is built once from its samples. Injecting sector points does not
modify a lap, it derives a new one (`with_samples`) that keeps index and
colour.
"""

import logging
from typing import Dict, List, Optional

from lap_analysis import config
from lap_analysis.analysis.series import (
    SERIES_TYPES,
    Series,
    SeriesKind,
    build_series,
    get_series_type,
)
from lap_analysis.data.models import LapSectorData, LapStats, Sample, SectorCheck
from lap_analysis.utils.geometry import haversine_distance
from lap_analysis.utils.time_format import format_lap_time

logger = logging.getLogger('vboLaps.lap')


def get_lap_color(lap_index: int) -> str:
    """Display colour for a lap, cycling through the palette."""
    return config.LAP_COLORS[lap_index % len(config.LAP_COLORS)]


def accumulate_lap_fields(samples: List[Sample]):
    """
    Set time and distance from lap start on every sample.

    Distance is re-summed from consecutive pairs, so it stays correct after
    samples have been inserted.
    """
    if not samples:
        return

    start_time = samples[0].time_ms
    cumulative = 0.0
    for i, sample in enumerate(samples):
        if i > 0:
            prev = samples[i - 1]
            cumulative += haversine_distance(prev.lat, prev.lon, sample.lat, sample.lon)
        sample.lap_time_from_start = sample.time_ms - start_time
        sample.lap_distance_from_start = cumulative


def compute_lap_sector_data(samples: List[Sample],
                            sector_count: int = config.SECTOR_COUNT) -> List[LapSectorData]:
    """
    Sector times of a lap from its tagged sector boundary samples.

    Sector 0 starts at the first sample, the last sector ends at the last
    sample. A sector whose boundary was never crossed is left out.
    """
    if len(samples) < 2:
        return []

    boundary_count = sector_count - 1
    boundary_indices = [-1] * boundary_count
    for i, sample in enumerate(samples):
        idx = sample.sector_boundary_index
        if idx is not None and 0 <= idx < boundary_count and boundary_indices[idx] == -1:
            boundary_indices[idx] = i

    sector_data = []
    for s in range(sector_count):
        start = 0 if s == 0 else boundary_indices[s - 1]
        end = boundary_indices[s] if s < boundary_count else len(samples) - 1

        if start < 0 or end < 0 or end < start:
            continue

        time_ms = samples[end].lap_time_from_start - samples[start].lap_time_from_start
        if time_ms >= 0:
            sector_data.append(LapSectorData(
                sector_index=s,
                time_ms=time_ms,
                start_row_index=start,
                end_row_index=end,
            ))

    return sector_data


class LapData:
    """One lap of the recording with statistics, sectors and series."""

    def __init__(self, index: int, samples: List[Sample], color: Optional[str] = None):
        if not samples:
            raise ValueError("Lap must contain at least one sample")

        self.index = index
        self.samples = list(samples)
        self.color = color if color is not None else get_lap_color(index)

        accumulate_lap_fields(self.samples)
        self._sector_data = compute_lap_sector_data(self.samples)

        # RAW series never depend on the reference lap
        self._charts: Dict[str, Series] = {
            key: build_series(series_type, self.samples)
            for key, series_type in SERIES_TYPES.items()
            if series_type.kind is SeriesKind.RAW
        }
        self._reference_index: Optional[int] = None

    def __repr__(self):
        return f"LapData(index={self.index}, samples={len(self.samples)}, time_ms={self.time_ms:.0f})"

    def with_samples(self, samples: List[Sample]) -> 'LapData':
        """New lap with the same index and colour over a different sample list."""
        return LapData(self.index, samples, self.color)

    @property
    def name(self) -> str:
        return f"Lap {self.index + 1}"

    @property
    def time_ms(self) -> float:
        """Elapsed lap time in ms (0 for a single-sample lap)."""
        if len(self.samples) < 2:
            return 0.0
        return max(0.0, self.samples[-1].time_ms - self.samples[0].time_ms)

    @property
    def distance(self) -> float:
        """Lap length in metres."""
        return self.samples[-1].lap_distance_from_start

    @property
    def max_speed(self) -> float:
        return max(s.speed for s in self.samples)

    @property
    def reference_index(self) -> Optional[int]:
        """Index of the lap the delta series were last built against."""
        return self._reference_index

    def get_stats(self) -> LapStats:
        time_ms = self.time_ms
        return LapStats(
            name=self.name,
            distance=self.distance,
            time=time_ms,
            max_speed=self.max_speed,
            time_formatted=format_lap_time(time_ms),
        )

    def get_sector_data(self) -> List[LapSectorData]:
        return list(self._sector_data)

    def check_sector_consistency(
        self,
        tolerance_ms: float = config.SECTOR_SUM_TOLERANCE_MS
    ) -> Optional[SectorCheck]:
        """
        Compare summed sector times with the lap time.

        Returns:
            SectorCheck, or None if the lap has no sector data
        """
        if not self._sector_data:
            return None

        return SectorCheck(
            sector_sum_ms=sum(s.time_ms for s in self._sector_data),
            lap_time_ms=self.time_ms,
            sector_count=len(self._sector_data),
            tolerance_ms=tolerance_ms,
        )

    def get_chart(self, series_key: str) -> Series:
        """
        Get a comparison series by key (see SERIES_TYPES).

        Delta series are empty until calculate_charts() ran with a reference.
        """
        series_type = get_series_type(series_key)
        chart = self._charts.get(series_key)
        if chart is None:
            chart = Series(series_type)
        return chart

    def calculate_charts(self, reference: Optional['LapData']):
        """Rebuild the reference-dependent series against a reference lap."""
        self._reference_index = reference.index if reference is not None else None

        for key, series_type in SERIES_TYPES.items():
            if not series_type.needs_reference:
                continue
            ref_series = reference.get_chart(series_type.base) if reference is not None else None
            self._charts[key] = build_series(series_type, self.samples, ref_series)
