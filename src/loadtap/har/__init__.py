"""
LoadTap HAR Module

Capture model and HAR 1.2 decoding.
"""

from .models import (
    Capture,
    Content,
    Cookie,
    Creator,
    Entry,
    Header,
    Page,
    Param,
    PostData,
    Request,
    Response,
)
from .loader import HARLoader, decode_capture, parse_timestamp

__all__ = [
    'Capture',
    'Content',
    'Cookie',
    'Creator',
    'Entry',
    'Header',
    'Page',
    'Param',
    'PostData',
    'Request',
    'Response',
    'HARLoader',
    'decode_capture',
    'parse_timestamp',
]
