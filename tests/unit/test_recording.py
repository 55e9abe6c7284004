"""
End-to-end tests for build_recording() and the Recording model.

The circuit fixture is three loops of a 150m radius circle with lap times
of 20.0s, 18.0s (fastest) and 21.78s.
"""

import pytest

from fixtures.gps_test_data import build_circuit_samples, build_straight_samples
from lap_analysis import build_recording
from lap_analysis.data.models import RecordingHeader


class TestLapSegmentation:
    """Test laps produced from the circuit."""

    @pytest.mark.unit
    def test_three_laps(self, recording):
        assert len(recording.laps) == 3
        assert [lap.index for lap in recording.laps] == [0, 1, 2]
        assert all(len(lap.samples) >= 50 for lap in recording.laps)

    @pytest.mark.unit
    def test_lap_times(self, recording):
        times = [lap.time_ms for lap in recording.laps]
        assert times == pytest.approx([20000.0, 18000.0, 21780.0], abs=1e-3)

    @pytest.mark.unit
    def test_start_finish_at_spike(self, recording, circuit_samples):
        assert recording.start_finish is not None
        assert recording.start_finish.point_meters == pytest.approx(
            (circuit_samples[100].x, circuit_samples[100].y))

    @pytest.mark.unit
    def test_laps_share_boundary_points(self, recording):
        laps = recording.laps
        for prev, nxt in zip(laps, laps[1:]):
            assert prev.samples[-1].position == pytest.approx(nxt.samples[0].position)
            assert prev.samples[-1].time_ms == pytest.approx(nxt.samples[0].time_ms)

    @pytest.mark.unit
    def test_lap_fields_monotonic(self, recording):
        """Test that lap time and distance never decrease within a lap."""
        for lap in recording.laps:
            assert lap.samples[0].lap_time_from_start == 0.0
            assert lap.samples[0].lap_distance_from_start == 0.0
            for a, b in zip(lap.samples, lap.samples[1:]):
                assert b.lap_time_from_start > a.lap_time_from_start
                assert b.lap_distance_from_start >= a.lap_distance_from_start

    @pytest.mark.unit
    def test_lap_distance(self, recording):
        """Test that a full lap covers the circle circumference."""
        assert recording.laps[1].distance == pytest.approx(942.5, rel=1e-2)


class TestTrackData:
    """Test sector boundaries and sector points."""

    @pytest.mark.unit
    def test_track(self, recording):
        track = recording.track

        assert track is not None
        assert track.name == 'Test Circle'
        assert track.length == pytest.approx(recording.laps[1].distance)
        assert len(track.sectors) == 3
        assert [s.index for s in track.sectors] == [0, 1, 2]
        assert all(s.width == 20.0 for s in track.sectors)

    @pytest.mark.unit
    def test_boundaries_at_quarter_points(self, recording):
        """Test that boundaries sit at the top, west and bottom of the circle."""
        points = [s.point_meters for s in recording.track.sectors]

        assert points[0] == pytest.approx((150.0, 300.0), abs=1.0)
        assert points[1] == pytest.approx((0.0, 150.0), abs=1.0)
        assert points[2] == pytest.approx((150.0, 0.0), abs=1.0)

    @pytest.mark.unit
    def test_every_lap_tagged_once_per_boundary(self, recording):
        for lap in recording.laps:
            tags = [s.sector_boundary_index for s in lap.samples
                    if s.sector_boundary_index is not None]
            assert tags == [0, 1, 2]

    @pytest.mark.unit
    def test_sector_times_sum_to_lap_time(self, recording):
        for lap in recording.laps:
            sectors = lap.get_sector_data()
            assert len(sectors) == 4
            assert sum(s.time_ms for s in sectors) == pytest.approx(lap.time_ms, abs=1e-6)
        assert recording.sector_warnings() == {}

    @pytest.mark.unit
    def test_sector_rows_increasing(self, recording):
        """Test that sectors follow each other along the lap."""
        for lap in recording.laps:
            sectors = lap.get_sector_data()
            rows = [(s.start_row_index, s.end_row_index) for s in sectors]
            for (start, end), (next_start, _) in zip(rows, rows[1:]):
                assert start < end == next_start
            assert all(s.time_ms >= 0 for s in sectors)

    @pytest.mark.unit
    def test_sector_times_follow_lap_pace(self, recording):
        """Test that each quarter of a constant pace lap takes a quarter of the time."""
        sectors = recording.get_lap(1).get_sector_data()
        assert [s.time_ms for s in sectors] == pytest.approx([4500.0] * 4, abs=1.0)

    @pytest.mark.unit
    def test_compute_track_data_idempotent(self, recording):
        """Test that recomputing does not inject sector points twice."""
        counts = [len(lap.samples) for lap in recording.laps]

        recording.compute_track_data()

        assert [len(lap.samples) for lap in recording.laps] == counts
        for lap in recording.laps:
            tags = [s.sector_boundary_index for s in lap.samples
                    if s.sector_boundary_index is not None]
            assert tags == [0, 1, 2]

    @pytest.mark.unit
    def test_default_track_name(self, make_recording):
        recording = make_recording()
        assert recording.track.name == 'Track'

    @pytest.mark.unit
    def test_circuit_key_track_name(self, make_recording):
        header = RecordingHeader(comments=['Circuit: Lydden Hill'])
        recording = make_recording(header=header)
        assert recording.track.name == 'Lydden Hill'


class TestReferenceLap:
    """Test delta series against the fastest visible lap."""

    @pytest.mark.unit
    def test_fastest_lap_is_reference(self, recording):
        assert recording.get_fastest_visible_lap() == 1
        assert all(lap.reference_index == 1 for lap in recording.laps)

    @pytest.mark.unit
    def test_reference_delta_is_zero(self, recording):
        delta = recording.get_lap(1).get_chart('timedelta')
        assert len(delta) > 0
        assert all(abs(p.value) < 1e-9 for p in delta.points)

    @pytest.mark.unit
    def test_slower_lap_delta(self, recording):
        """Test that lap 1 is about 1s behind the reference at half distance."""
        delta = recording.get_lap(0).get_chart('timedelta')
        assert delta.value_at_normalized(0.5) == pytest.approx(1.0, abs=0.05)
        assert delta.max_value() == pytest.approx(2.0, abs=0.05)

    @pytest.mark.unit
    def test_reference_swap_on_hide(self, recording):
        """Test that hiding the fastest lap makes the next fastest the reference."""
        assert recording.get_lap(0).get_chart('timedelta').value_at_normalized(0.5) > 0.5

        recording.toggle_lap_visibility(1)

        assert not recording.is_lap_visible(1)
        assert recording.get_fastest_visible_lap() == 0
        assert recording.get_lap(0).reference_index == 0
        value = recording.get_lap(0).get_chart('timedelta').value_at_normalized(0.5)
        assert abs(value) < 1e-6
        # Hidden laps are still compared with the reference
        assert recording.get_lap(1).get_chart('timedelta').value_at_normalized(0.5) < -0.5

    @pytest.mark.unit
    def test_toggle_back(self, recording):
        recording.toggle_lap_visibility(1)
        recording.toggle_lap_visibility(1)

        assert recording.is_lap_visible(1)
        assert recording.get_fastest_visible_lap() == 1

    @pytest.mark.unit
    def test_toggle_unknown_lap_ignored(self, recording):
        recording.toggle_lap_visibility(99)
        assert recording.visible_lap_indices == {0, 1, 2}

    @pytest.mark.unit
    def test_hide_all_laps(self, recording):
        """Test that without a visible lap there is no reference and no delta."""
        recording.set_all_laps_visibility(False)

        assert recording.get_fastest_visible_lap() is None
        assert recording.get_visible_laps() == []
        for lap in recording.laps:
            assert lap.reference_index is None
            assert len(lap.get_chart('timedelta')) == 0
            assert len(lap.get_chart('speed')) > 0

    @pytest.mark.unit
    def test_show_all_laps(self, recording):
        recording.set_all_laps_visibility(False)
        recording.set_all_laps_visibility(True)

        assert recording.visible_lap_indices == {0, 1, 2}
        assert recording.get_fastest_visible_lap() == 1

    @pytest.mark.unit
    def test_time_delta_rate(self, recording):
        """Test that summing the rate reproduces the final time delta."""
        lap = recording.get_lap(2)
        rate = lap.get_chart('timedeltarate')
        delta = lap.get_chart('timedelta')

        assert sum(p.value for p in rate.points) == pytest.approx(delta.points[-1].value)


class TestOutlierFiltering:
    """Test median based lap filtering."""

    @pytest.mark.unit
    def test_default_tolerance_keeps_all(self, recording):
        assert recording.apply_time_heuristics() == []
        assert recording.visible_lap_indices == {0, 1, 2}

    @pytest.mark.unit
    def test_tight_tolerance(self, recording):
        """Test that 5% around the 20s median hides the 18s and 21.78s laps."""
        outliers = recording.apply_time_heuristics(5.0)

        assert outliers == [1, 2]
        assert recording.visible_lap_indices == {0}
        assert recording.get_fastest_visible_lap() == 0
        assert recording.is_outlier(1, 5.0)
        assert not recording.is_outlier(0, 5.0)

    @pytest.mark.unit
    def test_heuristics_keep_segmentation(self, recording):
        counts = [len(lap.samples) for lap in recording.laps]
        track = recording.track

        recording.apply_time_heuristics(5.0)

        assert [len(lap.samples) for lap in recording.laps] == counts
        assert recording.track is track

    @pytest.mark.unit
    def test_build_with_heuristics(self, circuit_samples):
        recording = build_recording(circuit_samples, apply_heuristics=True,
                                    tolerance_percent=5.0)

        assert recording.visible_lap_indices == {0}
        assert recording.get_lap(2).reference_index == 0


class TestDegenerateRecordings:
    """Test recordings without a usable start/finish line."""

    @pytest.mark.unit
    def test_empty(self):
        recording = build_recording([])

        assert recording.laps == []
        assert recording.track is None
        assert recording.bounding_box is None
        assert recording.get_fastest_visible_lap() is None

    @pytest.mark.unit
    def test_too_short_for_start_finish(self):
        """Test that a short recording becomes one lap with no track data."""
        recording = build_recording(build_straight_samples(30))

        assert recording.start_finish is None
        assert recording.track is None
        assert len(recording.laps) == 1
        assert len(recording.laps[0].samples) == 30
        assert recording.get_fastest_visible_lap() == 0
        delta = recording.laps[0].get_chart('timedelta')
        assert len(delta) == 30
        assert all(p.value == 0.0 for p in delta.points)

    @pytest.mark.unit
    def test_line_never_crossed_again(self):
        """Test that a point to point recording stays one lap with sectors."""
        recording = build_recording(build_straight_samples(80))

        assert recording.start_finish is not None
        assert len(recording.laps) == 1
        assert recording.track is not None
        assert len(recording.laps[0].get_sector_data()) == 4

    @pytest.mark.unit
    def test_single_loop(self):
        """Test that one loop with the spike inside the margin stays one lap."""
        recording = build_recording(build_circuit_samples(loops=1))

        assert len(recording.laps) == 1
        assert recording.laps[0].time_ms == pytest.approx(99 * 200.0, abs=1e-3)


class TestMetadata:
    """Test recording metadata."""

    @pytest.mark.unit
    def test_metadata(self, recording):
        metadata = recording.get_metadata()

        assert metadata['Track'] == 'Test Circle'
        assert metadata['Model'] == 'Dragy'
        assert metadata['File Created'] == '01/06/2024 at 12:00:00'
        assert metadata['Total Points'] == '300'
        assert metadata['Laps'] == '3'
        assert 'not a key value line' not in metadata

    @pytest.mark.unit
    def test_lap_stats(self, recording):
        stats = recording.get_lap(1).get_stats()

        assert stats.name == 'Lap 2'
        assert stats.time_formatted == '0:18.000'
        assert stats.max_speed == pytest.approx(150.0, abs=1e-3)

    @pytest.mark.unit
    def test_bounding_box(self, recording):
        bbox = recording.bounding_box
        assert bbox.center_lat == pytest.approx(51.5074, abs=1e-5)
        assert bbox.center_lon == pytest.approx(-0.1278, abs=1e-5)
