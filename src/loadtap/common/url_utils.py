"""
LoadTap URL Utilities

URL parsing and host pattern matching used by request filtering.
"""

from fnmatch import fnmatchcase
from urllib.parse import urlsplit

from ..errors import DecodeError


class URLMatcher:
    """Handles host extraction and host pattern matching."""

    @staticmethod
    def extract_host(url: str) -> str:
        """
        Extract the host (with port, if recorded) from an absolute URL.

        Args:
            url: Full URL (e.g., "https://api.example.com:8443/users")

        Returns:
            Host as recorded, e.g. "api.example.com:8443"

        Raises:
            DecodeError: If the URL cannot be parsed or has no host
        """
        try:
            parsed = urlsplit(url)
            # Accessing .port validates it
            parsed.port
        except ValueError as e:
            raise DecodeError(f"Invalid URL {url!r}: {e}") from e

        if not parsed.scheme or not parsed.netloc:
            raise DecodeError(f"Invalid URL {url!r}: expected an absolute URL")

        # Drop any userinfo
        return parsed.netloc.rsplit('@', 1)[-1]

    @staticmethod
    def host_matches(host: str, pattern: str) -> bool:
        """
        Match a host against a filter pattern.

        Supports:
        - Wildcard domains: "*.example.com" matches "api.example.com" and
          "example.com" itself
        - Glob patterns: "api-?.example.*"
        - Plain substrings: "example" matches "api.example.com"

        Blank patterns never match.
        """
        pattern = pattern.strip()
        if not pattern:
            return False

        hostname = host.rsplit(':', 1)[0] if host.count(':') == 1 else host

        if pattern.startswith('*.') and not any(c in pattern[2:] for c in '*?['):
            domain = pattern[2:]
            return hostname == domain or hostname.endswith('.' + domain)

        if any(c in pattern for c in '*?['):
            return fnmatchcase(host, pattern) or fnmatchcase(hostname, pattern)

        return pattern in host
