"""
HAR capture model.

Typed, immutable view of a decoded HAR 1.2 capture. Pure data: decoding lives
in loader.py and all conversion behaviour in loadtap.convert.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class Header:
    """A single header name/value pair, as recorded."""

    name: str
    value: str


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str


@dataclass(frozen=True)
class Param:
    """A form-encoded body parameter (still URL-escaped)."""

    name: str
    value: str


@dataclass(frozen=True)
class PostData:
    """Request body: raw text, declared MIME type and optional form params."""

    mime_type: str = ""
    text: str = ""
    params: Tuple[Param, ...] = ()

    @property
    def is_multipart(self) -> bool:
        return self.mime_type.lower().startswith('multipart/form-data')

    @property
    def is_form_urlencoded(self) -> bool:
        return self.mime_type.lower().startswith('application/x-www-form-urlencoded')


@dataclass(frozen=True)
class Request:
    method: str
    url: str
    headers: Tuple[Header, ...] = ()
    cookies: Tuple[Cookie, ...] = ()
    post_data: Optional[PostData] = None


@dataclass(frozen=True)
class Content:
    """Response body content."""

    mime_type: str = ""
    text: str = ""


@dataclass(frozen=True)
class Response:
    """
    Recorded response.

    A status of 0 means the status was not recorded; no assertion is
    generated for it.
    """

    status: int = 0
    headers: Tuple[Header, ...] = ()
    content: Content = field(default_factory=Content)

    def header(self, name: str) -> Optional[str]:
        """Return the first header value matching name, case-insensitively."""
        wanted = name.lower()
        for header in self.headers:
            if header.name.lower() == wanted:
                return header.value
        return None


@dataclass(frozen=True)
class Page:
    id: str
    title: str
    started: datetime


@dataclass(frozen=True)
class Entry:
    """One recorded HTTP transaction. Response is None when it failed or was not recorded."""

    started: datetime
    request: Request
    response: Optional[Response] = None
    pageref: str = ""


@dataclass(frozen=True)
class Creator:
    name: str = ""
    version: str = ""


@dataclass(frozen=True)
class Capture:
    """
    Root of a decoded capture.

    Entries are not nested under pages; they point at a page through
    Entry.pageref.
    """

    version: str = ""
    creator: Creator = field(default_factory=Creator)
    browser: Optional[Creator] = None
    comment: str = ""
    pages: Tuple[Page, ...] = ()
    entries: Tuple[Entry, ...] = ()
