"""
Tests for temporal batching.

Tests batch splitting around the concurrency window and wait computation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.loadtap.convert.batching import DEFAULT_GAP, split_into_batches, wait_between
from src.loadtap.har import Entry, Request

T0 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def at(seconds):
    return T0 + timedelta(seconds=seconds)


def entries_at(*offsets):
    return [
        Entry(started=at(offset), request=Request(method='GET', url=f"https://example.com/{i}"))
        for i, offset in enumerate(offsets)
    ]


class TestSplitIntoBatches:
    """Test split_into_batches()."""

    def test_concurrent_then_sequential(self):
        """Test two close requests batch together and a late one stands alone."""
        entries = entries_at(0, 0.05, 5)

        batches = split_into_batches(entries, timedelta(milliseconds=200))

        assert batches == [(entries[0], entries[1]), (entries[2],)]

    def test_gap_between_batches(self):
        """Test the wait between the two batches is the measured gap."""
        entries = entries_at(0, 0.05, 5)
        first, second = split_into_batches(entries, timedelta(milliseconds=200))

        assert wait_between(first[-1].started, second[0].started) == pytest.approx(4.95)

    def test_window_chains_from_previous_entry(self):
        """Test each entry is compared to the one before it."""
        entries = entries_at(0, 0.15, 0.30, 0.45)

        batches = split_into_batches(entries, timedelta(milliseconds=200))

        assert len(batches) == 1

    def test_gap_equal_to_window_splits(self):
        """Test an entry exactly one window later opens a new batch."""
        entries = entries_at(0, 0.2)

        batches = split_into_batches(entries, timedelta(milliseconds=200))

        assert len(batches) == 2

    def test_zero_window_is_single_batch(self):
        """Test that a zero window disables splitting."""
        entries = entries_at(0, 1, 10)

        assert split_into_batches(entries, timedelta(0)) == [tuple(entries)]

    def test_empty_input(self):
        """Test no entries give no batches."""
        assert split_into_batches([], timedelta(milliseconds=500)) == []

    @pytest.mark.parametrize("offsets", [
        (0,),
        (0, 0.1, 0.2, 3, 3.05, 9),
        (0, 1, 2, 3),
    ])
    def test_exhaustive_and_order_preserving(self, offsets):
        """Test concatenated batches reproduce the input sequence."""
        entries = entries_at(*offsets)

        batches = split_into_batches(entries, timedelta(milliseconds=500))

        assert [e for batch in batches for e in batch] == entries

    def test_deterministic(self):
        """Test the same input always gives the same batches."""
        entries = entries_at(0, 0.3, 0.9, 1.0)
        window = timedelta(milliseconds=400)

        assert split_into_batches(entries, window) == split_into_batches(entries, window)


class TestWaitBetween:
    """Test wait_between()."""

    def test_measured_gap(self):
        """Test normal gaps are returned as seconds."""
        assert wait_between(at(1), at(3.5)) == pytest.approx(2.5)

    def test_tiny_gap_clamped(self):
        """Test clock-resolution gaps become the default pause."""
        assert wait_between(at(1), at(1.005)) == DEFAULT_GAP

    def test_negative_gap_clamped(self):
        """Test waits are never negative."""
        assert wait_between(at(5), at(1)) == DEFAULT_GAP
