"""Tests for duration arithmetic."""
import pytest
from datetime import datetime, timedelta

from worktrack.utils.duration import compute_duration, format_duration, to_ms

START = datetime(2025, 3, 10, 9, 0, 0)


class TestComputeDuration:
    """Tests for compute_duration."""

    def test_no_pauses(self):
        """Elapsed wall clock when nothing was paused."""
        assert compute_duration(START, START + timedelta(minutes=20), 0) == 20 * 60_000

    def test_pauses_subtracted(self):
        """Paused time is excluded."""
        end = START + timedelta(minutes=20)
        assert compute_duration(START, end, 5 * 60_000) == 15 * 60_000

    def test_zero_length(self):
        assert compute_duration(START, START, 0) == 0

    def test_clamps_when_paused_exceeds_elapsed(self):
        """Bad data never yields a negative duration."""
        end = START + timedelta(minutes=1)
        assert compute_duration(START, end, 10 * 60_000) == 0

    def test_clamps_when_end_before_start(self):
        """Clock skew (end before start) yields zero."""
        assert compute_duration(START, START - timedelta(seconds=30), 0) == 0

    def test_millisecond_precision(self):
        end = START + timedelta(seconds=1, microseconds=999_999)
        assert compute_duration(START, end, 0) == 1999

    def test_negative_paused_rejected(self):
        with pytest.raises(ValueError):
            compute_duration(START, START + timedelta(minutes=1), -1)

    @pytest.mark.parametrize(
        "elapsed_ms,paused_ms",
        [(0, 0), (1000, 999), (1000, 1000), (1000, 1001), (3_600_000, 600_000), (5, 10_000)],
    )
    def test_matches_clamped_difference(self, elapsed_ms, paused_ms):
        """Equals end - start - paused when that is non-negative, else 0."""
        end = START + timedelta(milliseconds=elapsed_ms)
        result = compute_duration(START, end, paused_ms)

        assert result >= 0
        assert result == max(0, elapsed_ms - paused_ms)


class TestFormatDuration:
    """Tests for HH:MM:SS rendering."""

    def test_formats_hours_minutes_seconds(self):
        assert format_duration(3_723_000) == "01:02:03"

    def test_truncates_milliseconds(self):
        assert format_duration(59_999) == "00:00:59"

    def test_long_durations_keep_counting_hours(self):
        assert format_duration(100 * 3_600_000) == "100:00:00"

    def test_negative_renders_as_zero(self):
        assert format_duration(-1) == "00:00:00"


def test_to_ms_floors():
    assert to_ms(timedelta(microseconds=1500)) == 1
    assert to_ms(timedelta(minutes=5)) == 300_000
