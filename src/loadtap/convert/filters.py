"""
Filtering logic for LoadTap.

Decides which captured entries end up in the generated script, based on
allow ("only") and deny ("skip") host patterns.
"""

import logging
from typing import Iterable, List, Optional

from ..common import URLMatcher
from ..har import Entry

logger = logging.getLogger("loadtap.filters")


def is_allowed(host: str, only: Optional[Iterable[str]] = None,
               skip: Optional[Iterable[str]] = None) -> bool:
    """
    Decide whether a host is in scope.

    Filtering logic:
    - Host matches any skip pattern: reject
    - Allow list non-empty: accept only if a pattern matches (OR logic)
    - Allow list empty: accept

    Args:
        host: The request host (e.g., "api.example.com")
        only: Allow patterns
        skip: Deny patterns

    Returns:
        True if the host is allowed, False otherwise
    """
    skip = list(skip or [])
    only = list(only or [])

    if any(URLMatcher.host_matches(host, pattern) for pattern in skip):
        return False

    if only:
        return any(URLMatcher.host_matches(host, pattern) for pattern in only)

    return True


class RequestFilter:
    """
    Handles filtering logic to determine which entries should be replayed.

    Supports:
    - Exact and substring host matching (e.g., "api.example.com", "example")
    - Wildcard matching (e.g., "*.example.com")
    - Glob matching (e.g., "cdn-?.example.*")

    Entries with multipart/form-data bodies are always rejected because the
    generated script cannot carry binary payloads.
    """

    def __init__(self, only: Optional[List[str]] = None, skip: Optional[List[str]] = None):
        """
        Initialize the filter.

        Args:
            only: Hosts to keep (empty keeps everything not skipped)
            skip: Hosts to drop
        """
        self.only = list(only or [])
        self.skip = list(skip or [])

    def accepts(self, entry: Entry) -> bool:
        """
        Determine if an entry should be replayed.

        Raises:
            DecodeError: If the entry's URL cannot be parsed
        """
        host = URLMatcher.extract_host(entry.request.url)

        if not is_allowed(host, self.only, self.skip):
            logger.debug("Skipping %s %s (host filtered)", entry.request.method, entry.request.url)
            return False

        post_data = entry.request.post_data
        if post_data is not None and post_data.is_multipart:
            logger.info("Skipping multipart/form-data request %s %s",
                        entry.request.method, entry.request.url)
            return False

        return True

    def apply(self, entries: Iterable[Entry]) -> List[Entry]:
        """Return the accepted entries, in input order."""
        return [entry for entry in entries if self.accepts(entry)]
