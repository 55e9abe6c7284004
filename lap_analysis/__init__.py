"""
Lap analysis for GPS data logger recordings.

Splits a recording into laps at an automatically detected start/finish line,
propagates sector boundaries from the fastest lap and builds comparison
series between laps.
"""

from lap_analysis.core.pipeline import build_recording
from lap_analysis.data.recording import Recording

__all__ = [
    'build_recording',
    'Recording',
]
