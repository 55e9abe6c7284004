"""
Recording pipeline.

raw samples -> enrichment -> start/finish detection -> lap splitting
-> track data (sector boundaries, sector points) -> series
-> optional outlier filtering
"""

import logging
from typing import List, Optional

from lap_analysis import config
from lap_analysis.core.enrichment import enrich_samples
from lap_analysis.core.lap_splitter import split_into_laps
from lap_analysis.core.start_finish import detect_start_finish
from lap_analysis.data.lap import LapData
from lap_analysis.data.models import RecordingHeader, Sample
from lap_analysis.data.recording import Recording

logger = logging.getLogger('vboLaps.pipeline')


def build_recording(
    samples: List[Sample],
    header: Optional[RecordingHeader] = None,
    apply_heuristics: bool = False,
    tolerance_percent: float = config.OUTLIER_TOLERANCE_PERCENT
) -> Recording:
    """
    Build the lap model of a recording.

    Args:
        samples: Raw samples in time order (enriched in place)
        header: File header metadata
        apply_heuristics: Hide outlier laps once everything is computed
        tolerance_percent: Outlier tolerance around the median lap time (%)

    Returns:
        Recording. Degenerate input degrades to a single lap or no laps,
        never an exception.
    """
    bbox = enrich_samples(samples)
    if bbox is None:
        logger.warning("Recording has no samples")
        return Recording(header, samples, None)

    start_finish = detect_start_finish(samples)
    lap_samples = split_into_laps(samples, start_finish, bbox.origin)
    laps = [LapData(i, rows) for i, rows in enumerate(lap_samples)]

    recording = Recording(header, samples, bbox, start_finish, laps)

    # compute_track_data() rebuilds the series itself when it succeeds
    if start_finish is None or recording.compute_track_data() is None:
        recording.recalculate_charts()

    if apply_heuristics:
        recording.apply_time_heuristics(tolerance_percent)

    logger.info("Recording: %d samples, %d laps, fastest lap %s",
                len(samples), len(laps), recording.get_fastest_visible_lap())

    return recording
