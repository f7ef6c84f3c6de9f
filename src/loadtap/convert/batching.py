"""
Temporal batching for LoadTap.

Splits a page's time-ordered entries into batches of requests that were
issued close enough together to be replayed in parallel.
"""

from datetime import timedelta
from typing import List, Sequence, Tuple

from ..har import Entry

Batch = Tuple[Entry, ...]

# Gaps below this are clock-resolution noise, not real sequencing
MIN_MEASURABLE_GAP = 0.01
DEFAULT_GAP = 0.5


def split_into_batches(entries: Sequence[Entry], window: timedelta) -> List[Batch]:
    """
    Split entries into batches of concurrent requests.

    An entry joins the current batch when it started less than `window`
    after the previous entry; otherwise it opens a new batch. A non-positive
    window puts everything in one batch.

    Args:
        entries: Entries sorted by start time
        window: Concurrency window

    Returns:
        Batches whose concatenation is exactly `entries`
    """
    if not entries:
        return []

    if window <= timedelta(0):
        return [tuple(entries)]

    batches = []
    current = [entries[0]]
    for previous, entry in zip(entries, entries[1:]):
        if entry.started - previous.started >= window:
            batches.append(tuple(current))
            current = []
        current.append(entry)
    batches.append(tuple(current))
    return batches


def wait_between(earlier, later) -> float:
    """
    Seconds to sleep between two points in time.

    Gaps under 10ms, negative ones included, become DEFAULT_GAP.
    """
    seconds = (later - earlier).total_seconds()
    if seconds < MIN_MEASURABLE_GAP:
        return DEFAULT_GAP
    return seconds
