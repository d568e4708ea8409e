"""User-configured suppression list for title fetching."""

from __future__ import annotations

import re
from collections.abc import Iterable

_SEPARATOR_RE = re.compile(r",|\n")


def parse_blacklist(raw: str | Iterable[str] | None) -> list[str]:
    """Normalize a blacklist into trimmed, non-empty entries.

    Accepts the raw settings string (comma or newline separated) or an
    already split iterable. Order is preserved.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        items: Iterable[str] = _SEPARATOR_RE.split(raw)
    else:
        items = raw
    return [entry.strip() for entry in items if entry and entry.strip()]


def is_blacklisted(url: str, blacklist: Iterable[str]) -> bool:
    """Check whether any blacklist entry is a substring of the URL."""
    return any(entry in url for entry in blacklist if entry)
