"""
HAR Loader

Reads HAR 1.2 files (as exported by browsers and proxies) and decodes them into
the immutable capture model.
"""

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import DecodeError
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

# 2017-06-21T10:03:31.123456789+02:00 -> groups: base, fraction, zone
_TIMESTAMP_RE = re.compile(
    r'^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:[.,](\d+))?(Z|[+-]\d{2}:?\d{2})?$'
)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a HAR ISO 8601 timestamp into an aware datetime.

    Fractions longer than microseconds are truncated; naive timestamps are
    taken as UTC.

    Raises:
        DecodeError: If the value is not a recognisable timestamp
    """
    if not isinstance(value, str):
        raise DecodeError(f"Invalid timestamp: {value!r}")

    match = _TIMESTAMP_RE.match(value.strip())
    if not match:
        raise DecodeError(f"Invalid timestamp: {value!r}")

    base, fraction, zone = match.groups()
    text = base
    if fraction:
        text += '.' + fraction[:6].ljust(6, '0')
    if zone and zone != 'Z':
        if ':' not in zone:
            zone = zone[:3] + ':' + zone[3:]
        text += zone

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise DecodeError(f"Invalid timestamp: {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _object(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(f"Expected {what} to be an object, got {type(value).__name__}")
    return value


def _objects(items: Any, what: str) -> List[Dict[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise DecodeError(f"Expected {what} to be a list, got {type(items).__name__}")
    return [_object(item, what) for item in items]


def _headers(items: Any) -> tuple:
    return tuple(
        Header(name=str(h.get('name', '')), value=str(h.get('value', '')))
        for h in _objects(items, "header")
    )


def _creator(data: Any) -> Optional[Creator]:
    if not data:
        return None
    data = _object(data, "creator")
    return Creator(name=str(data.get('name', '')), version=str(data.get('version', '')))


def _request(data: Any) -> Request:
    if not isinstance(data, dict) or 'url' not in data:
        raise DecodeError("Entry has no request URL")

    post_data = None
    raw_post = data.get('postData')
    if raw_post:
        raw_post = _object(raw_post, "postData")
        post_data = PostData(
            mime_type=str(raw_post.get('mimeType', '')),
            text=str(raw_post.get('text', '') or ''),
            params=tuple(
                Param(name=str(p.get('name', '')), value=str(p.get('value', '')))
                for p in _objects(raw_post.get('params'), "postData param")
            ),
        )

    return Request(
        method=str(data.get('method', 'GET')).upper(),
        url=str(data['url']),
        headers=_headers(data.get('headers')),
        cookies=tuple(
            Cookie(name=str(c.get('name', '')), value=str(c.get('value', '')))
            for c in _objects(data.get('cookies'), "cookie")
        ),
        post_data=post_data,
    )


def _response(data: Any) -> Optional[Response]:
    if not data:
        return None
    data = _object(data, "response")

    content = _object(data.get('content') or {}, "response content")
    try:
        status = int(data.get('status') or 0)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Invalid response status: {data.get('status')!r}") from e

    return Response(
        status=max(status, 0),
        headers=_headers(data.get('headers')),
        content=Content(
            mime_type=str(content.get('mimeType', '')),
            text=str(content.get('text', '') or ''),
        ),
    )


def decode_capture(data: Dict[str, Any]) -> Capture:
    """
    Decode a parsed HAR document into a Capture.

    Args:
        data: The HAR document, i.e. {"log": {...}}

    Returns:
        Capture with pages and entries in file order

    Raises:
        DecodeError: If the document is not a usable HAR log
    """
    if not isinstance(data, dict) or not isinstance(data.get('log'), dict):
        raise DecodeError("Expected a HAR document with a 'log' object")

    log = data['log']
    raw_entries = log.get('entries', [])
    raw_pages = log.get('pages') or []
    if not isinstance(raw_entries, list) or not isinstance(raw_pages, list):
        raise DecodeError("HAR 'pages' and 'entries' must be lists")

    pages = tuple(
        Page(
            id=str(p.get('id', '')),
            title=str(p.get('title', '')),
            started=parse_timestamp(p.get('startedDateTime')),
        )
        for p in _objects(raw_pages, "page")
    )

    entries = tuple(
        Entry(
            started=parse_timestamp(e.get('startedDateTime')),
            request=_request(e.get('request')),
            response=_response(e.get('response')),
            pageref=str(e.get('pageref') or ''),
        )
        for e in _objects(raw_entries, "entry")
    )

    return Capture(
        version=str(log.get('version', '')),
        creator=_creator(log.get('creator')) or Creator(),
        browser=_creator(log.get('browser')),
        comment=str(log.get('comment', '') or ''),
        pages=pages,
        entries=entries,
    )


class HARLoader:
    """
    Loader for HAR capture files.

    Example:
        capture = HARLoader("session.har").load()
        print(f"{len(capture.entries)} entries")
    """

    def __init__(self, file_path: str):
        """
        Initialize HAR loader.

        Args:
            file_path: Path to the .har file
        """
        self.file_path = Path(file_path)

    def load(self) -> Capture:
        """
        Load and decode the HAR file.

        Raises:
            FileNotFoundError: If the HAR file doesn't exist
            DecodeError: If the file is not valid HAR JSON
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"HAR file not found: {self.file_path}")

        # utf-8-sig: browsers sometimes write a BOM
        with open(self.file_path, 'r', encoding='utf-8-sig') as f:
            try:
                data = json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise DecodeError(f"Invalid JSON in {self.file_path}: {e}") from e

        return decode_capture(data)

    @staticmethod
    def load_from_file(file_path: str) -> Capture:
        """Convenience method to load a capture in one call."""
        return HARLoader(file_path).load()
