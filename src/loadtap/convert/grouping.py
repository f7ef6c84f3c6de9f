"""
Page grouping for LoadTap.

Partitions filtered entries per page and orders both pages and entries by
start time.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..errors import DecodeError
from ..har import Capture, Entry, Page
from .filters import RequestFilter

logger = logging.getLogger("loadtap.grouping")


@dataclass(frozen=True)
class PageGroup:
    """A page and its entries, sorted by start time."""

    page: Page
    entries: Tuple[Entry, ...]

    @property
    def title(self) -> str:
        """Group label, e.g. "page_1 - Home"."""
        if not self.page.id and not self.page.title:
            return "Requests without page"
        return f"{self.page.id} - {self.page.title}"


def sort_pages(pages) -> List[Page]:
    """Sort pages ascending by start time; ties keep capture order."""
    return sorted(pages, key=lambda page: page.started)


def sort_entries(entries) -> List[Entry]:
    """Sort entries ascending by start time; ties keep capture order."""
    return sorted(entries, key=lambda entry: entry.started)


def group_entries(capture: Capture, request_filter: Optional[RequestFilter] = None) -> List[PageGroup]:
    """
    Group a capture's surviving entries by page.

    Entries without a page reference are gathered into one untitled group
    that starts with its earliest entry. Pages left without entries after
    filtering are omitted.

    Args:
        capture: Decoded capture
        request_filter: Filter applied to each entry (default: keep all but multipart)

    Returns:
        Page groups sorted by page start time

    Raises:
        DecodeError: If an entry references a page the capture does not list,
            or an entry URL is malformed
    """
    request_filter = request_filter or RequestFilter()
    pages_by_id = {page.id: page for page in capture.pages}

    # Insertion order keeps buckets in first-seen order
    buckets: Dict[str, List[Entry]] = {}
    for entry in capture.entries:
        if not request_filter.accepts(entry):
            continue
        if entry.pageref and entry.pageref not in pages_by_id:
            raise DecodeError(
                f"Entry {entry.request.method} {entry.request.url} references "
                f"unknown page {entry.pageref!r}"
            )
        buckets.setdefault(entry.pageref, []).append(entry)

    pages = list(capture.pages)
    unpaged = buckets.get('')
    if unpaged and '' not in pages_by_id:
        first = min(entry.started for entry in unpaged)
        pages.append(Page(id='', title='', started=first))

    groups = []
    for page in sort_pages(pages):
        entries = buckets.get(page.id)
        if not entries:
            logger.debug("Omitting page %r: no entries left after filtering", page.id)
            continue
        groups.append(PageGroup(page=page, entries=tuple(sort_entries(entries))))

    logger.debug("Grouped %d entries into %d page groups",
                 sum(len(g.entries) for g in groups), len(groups))
    return groups
