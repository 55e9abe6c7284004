"""
Recording model - all laps of one data logger file.

Lap visibility is owned here as a set of eligible lap indices and passed
explicitly to reference lap selection. Every visibility change rebuilds the
comparison series of all laps against the new fastest visible lap.
"""

import logging
from typing import Dict, List, Optional, Set

from lap_analysis import config
from lap_analysis.analysis.statistics import classify_outliers, select_fastest_lap
from lap_analysis.core.sectors import add_sector_points, create_track_data
from lap_analysis.data.lap import LapData
from lap_analysis.data.models import (
    BoundingBox,
    RecordingHeader,
    Sample,
    SectorCheck,
    StartFinishLine,
    TrackData,
)

logger = logging.getLogger('vboLaps.recording')

TRACK_NAME_KEYS = ('Track', 'Circuit', 'track', 'circuit')


class Recording:
    """Samples, laps and track data of one recording."""

    def __init__(
        self,
        header: Optional[RecordingHeader],
        samples: List[Sample],
        bounding_box: Optional[BoundingBox],
        start_finish: Optional[StartFinishLine] = None,
        laps: Optional[List[LapData]] = None
    ):
        self.header = header or RecordingHeader()
        self.samples = samples
        self.bounding_box = bounding_box
        self.start_finish = start_finish

        # Laps as segmented, before sector points were injected
        self._base_laps: List[LapData] = list(laps or [])
        self._laps: List[LapData] = list(self._base_laps)
        self._visible: Set[int] = {lap.index for lap in self._laps}
        self._track: Optional[TrackData] = None

    @property
    def laps(self) -> List[LapData]:
        return list(self._laps)

    @property
    def track(self) -> Optional[TrackData]:
        """Track data, available after compute_track_data()."""
        return self._track

    @property
    def visible_lap_indices(self) -> Set[int]:
        return set(self._visible)

    def get_lap(self, lap_index: int) -> Optional[LapData]:
        for lap in self._laps:
            if lap.index == lap_index:
                return lap
        return None

    def is_lap_visible(self, lap_index: int) -> bool:
        return lap_index in self._visible

    def get_visible_laps(self) -> List[LapData]:
        return [lap for lap in self._laps if lap.index in self._visible]

    def get_fastest_visible_lap(self) -> Optional[int]:
        """Index of the fastest visible lap, or None."""
        return select_fastest_lap(self._laps, self._visible)

    def toggle_lap_visibility(self, lap_index: int):
        if self.get_lap(lap_index) is None:
            logger.debug("Toggle of unknown lap %d ignored", lap_index)
            return

        if lap_index in self._visible:
            self._visible.discard(lap_index)
        else:
            self._visible.add(lap_index)
        self.recalculate_charts()

    def set_all_laps_visibility(self, visible: bool):
        self._visible = {lap.index for lap in self._laps} if visible else set()
        self.recalculate_charts()

    def lap_times(self) -> List[float]:
        return [lap.time_ms for lap in self._laps]

    def is_outlier(self, lap_index: int,
                   tolerance_percent: float = config.OUTLIER_TOLERANCE_PERCENT) -> bool:
        """True if the lap time is outside the tolerance band around the median."""
        flags = classify_outliers(self.lap_times(), tolerance_percent)
        for lap, flag in zip(self._laps, flags):
            if lap.index == lap_index:
                return flag
        return False

    def apply_time_heuristics(
        self,
        tolerance_percent: float = config.OUTLIER_TOLERANCE_PERCENT
    ) -> List[int]:
        """
        Show laps within the tolerance band, hide outliers.

        Segmentation and sector data are left untouched.

        Returns:
            Indices of the laps classified as outliers
        """
        flags = classify_outliers(self.lap_times(), tolerance_percent)
        outliers = [lap.index for lap, flag in zip(self._laps, flags) if flag]

        self._visible = {lap.index for lap, flag in zip(self._laps, flags) if not flag}
        logger.info("Time heuristics (+/-%.1f%%): %d outlier laps hidden",
                    tolerance_percent, len(outliers))

        self.recalculate_charts()
        return outliers

    def recalculate_charts(self):
        """Rebuild delta series of every lap against the fastest visible lap."""
        reference = None
        fastest = self.get_fastest_visible_lap()
        if fastest is not None:
            reference = self.get_lap(fastest)

        for lap in self._laps:
            lap.calculate_charts(reference)

    def track_name(self) -> str:
        metadata = self.header.metadata()
        for key in TRACK_NAME_KEYS:
            if metadata.get(key):
                return metadata[key]
        return config.DEFAULT_TRACK_NAME

    def compute_track_data(self) -> Optional[TrackData]:
        """
        Derive sector boundaries from the fastest visible lap and inject
        sector points into every lap.

        Always starts from the segmented laps, so calling it again (e.g.
        after visibility changed the fastest lap) does not inject twice.

        Returns:
            TrackData, or None without a start/finish line, laps or a
            fastest visible lap
        """
        if self.start_finish is None or not self._base_laps or self.bounding_box is None:
            logger.warning("Track data needs a start/finish line and at least one lap")
            return None

        fastest = select_fastest_lap(self._base_laps, self._visible)
        if fastest is None:
            logger.warning("No visible lap with positive time, track data not computed")
            return None

        fastest_lap = next(lap for lap in self._base_laps if lap.index == fastest)
        origin = self.bounding_box.origin

        track = create_track_data(fastest_lap.samples, self.start_finish, origin,
                                  name=self.track_name())

        self._laps = [
            lap.with_samples(add_sector_points(lap.samples, track.sectors, origin))
            for lap in self._base_laps
        ]
        self._track = track

        self.recalculate_charts()

        for lap_index, check in self.sector_warnings().items():
            logger.warning("Lap %d sector sum %.0f ms vs lap time %.0f ms (%+.0f ms)",
                           lap_index + 1, check.sector_sum_ms, check.lap_time_ms,
                           check.difference_ms)

        return track

    def sector_warnings(
        self,
        tolerance_ms: float = config.SECTOR_SUM_TOLERANCE_MS
    ) -> Dict[int, SectorCheck]:
        """Laps whose summed sector times differ from the lap time beyond tolerance."""
        warnings = {}
        for lap in self._laps:
            check = lap.check_sector_consistency(tolerance_ms)
            if check is not None and not check.ok:
                warnings[lap.index] = check
        return warnings

    def get_metadata(self) -> Dict[str, str]:
        metadata = self.header.metadata()
        metadata['Total Points'] = str(len(self.samples))
        metadata['Laps'] = str(len(self._laps))
        return metadata
