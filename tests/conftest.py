"""
Shared pytest fixtures for lap analysis tests.
"""

import os
import sys
import pytest

# Add project root to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from lap_analysis.core.pipeline import build_recording  # noqa: E402
from lap_analysis.data.models import RecordingHeader  # noqa: E402
from fixtures.gps_test_data import build_circuit_samples  # noqa: E402


@pytest.fixture
def circuit_samples():
    """300 raw samples: 3 loops of a 150m radius circle, lap times 20.0/18.0/21.78s."""
    return build_circuit_samples()


@pytest.fixture
def header():
    """Header with a track name and a couple of metadata lines."""
    return RecordingHeader(
        file_created='File created on 01/06/2024 at 12:00:00',
        column_names=['sats', 'time', 'lat', 'long', 'velocity', 'heading', 'height'],
        comments=['Track: Test Circle', 'Model: Dragy', 'not a key value line'],
    )


@pytest.fixture
def recording(circuit_samples, header):
    """Fully processed circuit recording."""
    return build_recording(circuit_samples, header)


@pytest.fixture
def make_recording():
    """Factory building a processed circuit recording with custom parameters."""
    def _make(**kwargs):
        header = kwargs.pop('header', None)
        return build_recording(build_circuit_samples(**kwargs), header)
    return _make
