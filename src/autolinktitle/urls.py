"""URL classification for pasted and dropped text.

All functions here are pure: they inspect text and never touch the network.
The same pattern set decides whether a string is eligible for a title fetch
and locates URL occurrences on a line for cursor-boundary detection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from autolinktitle.constants import (
    DEFAULT_URL_SCHEME,
    IMAGE_PATTERN,
    LINKED_URL_PATTERN,
    URL_BODY_PATTERN,
)

_URL_RE = re.compile(URL_BODY_PATTERN, re.IGNORECASE)
_LINKED_URL_RE = re.compile(LINKED_URL_PATTERN, re.IGNORECASE)
_IMAGE_RE = re.compile(IMAGE_PATTERN, re.IGNORECASE)


class LinkKind(Enum):
    """What a piece of pasted text turned out to be."""

    PLAIN_URL = "plain_url"
    MARKDOWN_LINKED_URL = "markdown_linked_url"
    IMAGE_URL = "image_url"
    NOT_A_URL = "not_a_url"


@dataclass(frozen=True)
class LinkClassification:
    """Result of :func:`classify`.

    ``url`` is empty for ``NOT_A_URL``; ``title`` is only set for
    ``MARKDOWN_LINKED_URL``.
    """

    kind: LinkKind
    url: str = ""
    title: str | None = None


@dataclass(frozen=True)
class Url:
    """A validated http(s) URL.

    Bare ``www.`` forms are accepted and normalized to ``https://``.
    """

    scheme: str
    host: str
    path: str
    query: str
    fragment: str
    raw: str

    @classmethod
    def parse(cls, text: str) -> Url | None:
        """Parse text into a Url, returning None if it is not a URL."""
        candidate = text.strip()
        if not is_url(candidate):
            return None
        try:
            parts = urlsplit(normalize_url(candidate))
        except ValueError:
            return None
        return cls(
            scheme=parts.scheme.lower(),
            host=(parts.hostname or "").lower(),
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
            raw=candidate,
        )

    def __str__(self) -> str:
        return normalize_url(self.raw)


@dataclass(frozen=True)
class LineMatch:
    """A URL or markdown link found on a single line."""

    start: int
    end: int
    text: str


def strip_angle_brackets(text: str) -> str:
    """Unwrap an autolink ``<url>``.

    The text is trimmed first; only an exact leading ``<`` together with a
    trailing ``>`` is removed. Any other combination comes back unchanged.
    """
    trimmed = text.strip()
    if len(trimmed) >= 2 and trimmed.startswith("<") and trimmed.endswith(">"):
        return trimmed[1:-1]
    return text


def is_url(text: str) -> bool:
    """Check whether the whole text is a bare http(s) or www. URL."""
    return _URL_RE.fullmatch(text) is not None


def is_linked_url(text: str) -> bool:
    """Check whether the whole text is a markdown link ``[title](url)``."""
    return _LINKED_URL_RE.fullmatch(text) is not None


def is_image(text: str) -> bool:
    """Check whether the URL path ends with a known image extension."""
    try:
        path = urlsplit(normalize_url(text)).path
    except ValueError:
        return False
    return _IMAGE_RE.search(path) is not None


def get_url_from_link(link: str) -> str:
    """Extract the URL from a markdown link, or ``""`` if it is not one."""
    match = _LINKED_URL_RE.fullmatch(link)
    return match.group(2) if match else ""


def classify(text: str) -> LinkClassification:
    """Classify pasted text.

    Args:
        text: Raw text from the clipboard, a drop or the editor selection

    Returns:
        LinkClassification describing the text
    """
    candidate = strip_angle_brackets(text).strip()

    linked = _LINKED_URL_RE.fullmatch(candidate)
    if linked:
        return LinkClassification(
            LinkKind.MARKDOWN_LINKED_URL, url=linked.group(2), title=linked.group(1)
        )

    if is_url(candidate):
        if is_image(candidate):
            return LinkClassification(LinkKind.IMAGE_URL, url=candidate)
        return LinkClassification(LinkKind.PLAIN_URL, url=candidate)

    return LinkClassification(LinkKind.NOT_A_URL)


def normalize_url(url: str) -> str:
    """Prefix ``https://`` when the URL has no http(s) scheme."""
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"{DEFAULT_URL_SCHEME}://{url}"


def hostname_of(url: str) -> str:
    """Return the URL's hostname, or ``""`` if it cannot be parsed."""
    try:
        return urlsplit(normalize_url(url.strip())).hostname or ""
    except ValueError:
        return ""


def find_links_in_line(line: str) -> list[LineMatch]:
    """Find all markdown links on a line."""
    return [
        LineMatch(m.start(), m.end(), m.group(0)) for m in _LINKED_URL_RE.finditer(line)
    ]


def find_urls_in_line(line: str) -> list[LineMatch]:
    """Find all bare URLs on a line."""
    return [LineMatch(m.start(), m.end(), m.group(0)) for m in _URL_RE.finditer(line)]
