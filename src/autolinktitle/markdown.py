"""Markdown text helpers for fetched titles."""

from __future__ import annotations

import re

_BACKSLASHED_RE = re.compile(r"\\([*_`~\\\[\]])")
_SPECIAL_RE = re.compile(r"([*_`|<>~\\\[\]])")
_NEWLINE_RE = re.compile(r"\r\n|\n|\r")

ELLIPSIS = "..."


def escape_markdown(text: str) -> str:
    """Escape markdown special characters in text.

    Already backslashed characters are unescaped first so that escaping is
    not applied twice.
    """
    unescaped = _BACKSLASHED_RE.sub(r"\1", text)
    return _SPECIAL_RE.sub(r"\\\1", unescaped)


def short_title(title: str, max_length: int) -> str:
    """Truncate a title to ``max_length`` characters plus an ellipsis.

    Args:
        title: Title to potentially shorten
        max_length: Maximum length (0 = no limit)

    Returns:
        Original title, or its first ``max_length`` characters followed by
        ``...`` when it is at least ``max_length + 3`` long
    """
    if max_length == 0:
        return title
    if len(title) < max_length + len(ELLIPSIS):
        return title
    return f"{title[:max_length]}{ELLIPSIS}"


def strip_newlines(text: str) -> str:
    """Remove every newline variant and trim surrounding whitespace."""
    return _NEWLINE_RE.sub("", text).strip()


def format_title(title: str, max_length: int) -> str:
    """Escape then truncate a title for insertion into a link."""
    return short_title(escape_markdown(title), max_length)


def markdown_link(title: str, url: str) -> str:
    """Build ``[title](url)``."""
    return f"[{title}]({url})"
