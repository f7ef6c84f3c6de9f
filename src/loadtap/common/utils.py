"""
LoadTap Common Utilities

Shared helpers for body parsing and header handling.
"""

import json
from typing import Any, List, Tuple

from ..errors import DecodeError


def parse_json_body(text: str, what: str = "body") -> Any:
    """
    Parse a body that was declared as JSON.

    Unlike a lenient parse, a declared-JSON body that does not parse is a
    capture defect and aborts the conversion.

    Args:
        text: Raw body text
        what: Description used in the error message

    Returns:
        Parsed JSON tree

    Raises:
        DecodeError: If the text is not valid JSON
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise DecodeError(f"Invalid JSON in {what}: {e}") from e


def is_json_mime_type(mime_type: str) -> bool:
    """
    Check for an application/...json MIME type.

    Matches application/json, application/vnd.api+json and friends; MIME
    parameters such as charset are ignored.

    Example:
        is_json_mime_type("application/json; charset=utf-8")  # True
        is_json_mime_type("text/json")  # False
    """
    essence = mime_type.split(';', 1)[0].strip().lower()
    return essence.startswith('application/') and essence.endswith('json')


def filter_replay_headers(headers) -> List[Tuple[str, str]]:
    """
    Select the request headers worth replaying.

    Drops HTTP/2 pseudo-headers (":authority" etc.) and the cookie header,
    which is replayed through the structured cookies field instead. Names are
    de-duplicated case-insensitively; the first occurrence wins.

    Args:
        headers: Iterable of objects with name and value attributes

    Returns:
        List of (name, value) pairs in recorded order
    """
    seen = set()
    kept = []
    for header in headers:
        name = header.name.lower()
        if not name or name in seen or name.startswith(':') or name == 'cookie':
            continue
        seen.add(name)
        kept.append((header.name, header.value))
    return kept
