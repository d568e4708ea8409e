"""Text buffer interface and cursor helpers.

The host editor is treated as a mutable string with line/column
coordinates. :class:`TextBuffer` is the surface the pipeline consumes;
:class:`InMemoryBuffer` implements it over a plain string for the CLI and
for tests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from autolinktitle.urls import LineMatch, find_links_in_line, find_urls_in_line

_FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})")


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based line and column in a buffer."""

    line: int
    ch: int


@runtime_checkable
class TextBuffer(Protocol):
    """Editor operations used by the title pipeline."""

    def get_selection(self) -> str: ...

    def something_selected(self) -> bool: ...

    def set_selection(self, anchor: Position, head: Position) -> None: ...

    def replace_selection(self, text: str) -> None: ...

    def replace_range(self, text: str, start: Position, end: Position) -> None: ...

    def get_range(self, start: Position, end: Position) -> str: ...

    def get_value(self) -> str: ...

    def get_cursor(self) -> Position: ...

    def get_line(self, n: int) -> str: ...


def position_from_index(content: str, index: int) -> Position:
    """Translate a flat character offset into a line/column position."""
    prefix = content[:index]
    line = prefix.count("\n")
    last_newline = prefix.rfind("\n")
    return Position(line=line, ch=index - (last_newline + 1))


def index_from_position(content: str, pos: Position) -> int:
    """Translate a line/column position into a flat character offset.

    Columns past the end of the line are clamped to the line end.
    """
    lines = content.split("\n")
    line = min(max(pos.line, 0), len(lines) - 1)
    offset = sum(len(text) + 1 for text in lines[:line])
    return offset + min(max(pos.ch, 0), len(lines[line]))


class InMemoryBuffer:
    """A TextBuffer backed by a Python string.

    The selection is stored as anchor/head offsets; an empty selection is a
    plain cursor.
    """

    def __init__(self, text: str = "", cursor: int | None = None) -> None:
        self._text = text
        offset = len(text) if cursor is None else cursor
        self._anchor = offset
        self._head = offset

    @property
    def text(self) -> str:
        return self._text

    def _span(self) -> tuple[int, int]:
        return min(self._anchor, self._head), max(self._anchor, self._head)

    def get_selection(self) -> str:
        start, end = self._span()
        return self._text[start:end]

    def something_selected(self) -> bool:
        return self._anchor != self._head

    def set_selection(self, anchor: Position, head: Position) -> None:
        self._anchor = index_from_position(self._text, anchor)
        self._head = index_from_position(self._text, head)

    def select_offsets(self, start: int, end: int) -> None:
        self._anchor, self._head = start, end

    def replace_selection(self, text: str) -> None:
        start, end = self._span()
        self._text = self._text[:start] + text + self._text[end:]
        self._anchor = self._head = start + len(text)

    def replace_range(self, text: str, start: Position, end: Position) -> None:
        begin = index_from_position(self._text, start)
        finish = index_from_position(self._text, end)
        delta = len(text) - (finish - begin)
        self._text = self._text[:begin] + text + self._text[finish:]
        # Keep the selection anchored to the text it was on
        if self._anchor >= finish:
            self._anchor += delta
        if self._head >= finish:
            self._head += delta

    def get_range(self, start: Position, end: Position) -> str:
        begin = index_from_position(self._text, start)
        finish = index_from_position(self._text, end)
        return self._text[begin:finish]

    def get_value(self) -> str:
        return self._text

    def get_cursor(self) -> Position:
        return position_from_index(self._text, self._head)

    def get_line(self, n: int) -> str:
        lines = self._text.split("\n")
        return lines[n] if 0 <= n < len(lines) else ""


def _match_at_cursor(matches: list[LineMatch], ch: int) -> LineMatch | None:
    for match in matches:
        if match.start <= ch <= match.end:
            return match
    return None


def word_boundaries(buffer: TextBuffer) -> tuple[Position, Position]:
    """Find the markdown link or URL under the cursor.

    Markdown links win over bare URLs. Without a match both ends equal the
    cursor.
    """
    cursor = buffer.get_cursor()
    line_text = buffer.get_line(cursor.line)

    match = _match_at_cursor(find_links_in_line(line_text), cursor.ch)
    if match is None:
        match = _match_at_cursor(find_urls_in_line(line_text), cursor.ch)
    if match is None:
        return cursor, cursor

    return Position(cursor.line, match.start), Position(cursor.line, match.end)


def get_selected_text(buffer: TextBuffer) -> str:
    """Return the selection, first selecting the link under the cursor if empty."""
    if not buffer.something_selected():
        start, end = word_boundaries(buffer)
        buffer.set_selection(start, end)
    return buffer.get_selection()


def _text_before_cursor(buffer: TextBuffer, length: int) -> str:
    cursor = buffer.get_cursor()
    start = Position(cursor.line, max(cursor.ch - length, 0))
    return buffer.get_range(start, cursor)


def is_markdown_link_already(buffer: TextBuffer) -> bool:
    """Check whether the cursor sits right after ``](``."""
    return _text_before_cursor(buffer, 2) == "]("


def is_after_quote(buffer: TextBuffer) -> bool:
    """Check whether the cursor sits right after a quote, e.g. ``href="|``."""
    return _text_before_cursor(buffer, 1) in ('"', "'")


def is_in_code_region(buffer: TextBuffer) -> bool:
    """Check whether the cursor is inside a fenced code block or inline code."""
    cursor = buffer.get_cursor()

    fence: str | None = None
    for n in range(cursor.line):
        match = _FENCE_RE.match(buffer.get_line(n))
        if not match:
            continue
        marker = match.group(1)
        if fence is None:
            fence = marker
        elif marker[0] == fence[0] and len(marker) >= len(fence):
            fence = None
    if fence is not None:
        return True

    before = buffer.get_line(cursor.line)[: cursor.ch]
    return before.count("`") % 2 == 1
