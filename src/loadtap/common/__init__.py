"""
LoadTap Common Utilities

Shared utilities and helpers used across LoadTap modules.
"""

from .utils import parse_json_body, is_json_mime_type, filter_replay_headers
from .url_utils import URLMatcher

__all__ = [
    'parse_json_body',
    'is_json_mime_type',
    'filter_replay_headers',
    'URLMatcher'
]
