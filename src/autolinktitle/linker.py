"""Paste/drop handling and the optimistic placeholder protocol.

A titled link is produced in two steps:

1. Inserted: ``[<placeholder>](url)`` is written synchronously at the
   selection, before any network activity.
2. Fetching -> Resolved/Abandoned: the title is fetched in a background
   task. When it arrives, the buffer is re-read and the first exact
   occurrence of the placeholder is replaced. If the user edited the
   placeholder away, the result is dropped and the placeholder text stays.

The buffer is never locked; the placeholder string is the only link
between the insertion and the later replacement.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from autolinktitle.blacklist import is_blacklisted
from autolinktitle.config import FetchSettings
from autolinktitle.editor import (
    TextBuffer,
    get_selected_text,
    is_after_quote,
    is_in_code_region,
    is_markdown_link_already,
    position_from_index,
)
from autolinktitle.exceptions import PlaceholderStateError
from autolinktitle.fetch import Notify, TitleFetcher
from autolinktitle.i18n import t
from autolinktitle.markdown import markdown_link
from autolinktitle.placeholder import PlaceholderFactory, PlaceholderMode
from autolinktitle.urls import LinkKind, classify, hostname_of


class EditState(Enum):
    """Lifecycle of one optimistic edit."""

    INSERTED = "inserted"
    FETCHING = "fetching"
    RESOLVED = "resolved"
    ABANDONED = "abandoned"


_TRANSITIONS: dict[EditState, frozenset[EditState]] = {
    EditState.INSERTED: frozenset({EditState.FETCHING}),
    EditState.FETCHING: frozenset({EditState.RESOLVED, EditState.ABANDONED}),
}


@dataclass
class PlaceholderEdit:
    """A placeholder inserted into a buffer, waiting for its title."""

    token: str
    url: str
    state: EditState = EditState.INSERTED
    title: str | None = None

    def _move(self, target: EditState) -> None:
        if target not in _TRANSITIONS.get(self.state, frozenset()):
            raise PlaceholderStateError(self.token, self.state.value, target.value)
        self.state = target

    def begin_fetch(self) -> None:
        self._move(EditState.FETCHING)

    def apply(self, buffer: TextBuffer, title: str) -> bool:
        """Swap the placeholder for ``title``.

        Returns:
            True if the placeholder was found and replaced, False if it was
            no longer in the buffer
        """
        text = buffer.get_value()
        start = text.find(self.token)
        if start < 0:
            self._move(EditState.ABANDONED)
            logger.info(
                f"Unable to find placeholder {self.token!r} in buffer, "
                f"bailing out; link {self.url}"
            )
            return False

        end = start + len(self.token)
        buffer.replace_range(
            title, position_from_index(text, start), position_from_index(text, end)
        )
        self.title = title
        self._move(EditState.RESOLVED)
        return True


def _log_notice(message: str) -> None:
    logger.warning(message)


def _always_online() -> bool:
    return True


class LinkTitler:
    """Turns URLs pasted or dropped into a buffer into titled links.

    Handlers must be called from a running event loop; fetches run as tasks
    on it. ``drain()`` waits for every outstanding fetch.

    Args:
        settings: Settings snapshot for this titler
        fetcher: Title resolver; built from ``settings`` when omitted
        notify: Shows a user-visible notice (logged by default)
        is_online: Connectivity check supplied by the host
        rng: Random source for placeholder tokens
    """

    def __init__(
        self,
        settings: FetchSettings,
        fetcher: TitleFetcher | None = None,
        *,
        notify: Notify | None = None,
        is_online: Callable[[], bool] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self._notify = notify or _log_notice
        self.fetcher = fetcher or TitleFetcher(settings, notify=self._notify)
        self._is_online = is_online or _always_online
        mode = (
            PlaceholderMode.ZERO_WIDTH
            if settings.use_better_placeholder
            else PlaceholderMode.HASH
        )
        self.placeholders = PlaceholderFactory(
            t("placeholder.fetching", settings.language), mode, rng
        )
        self._tasks: set[asyncio.Task[PlaceholderEdit]] = set()

    @property
    def pending(self) -> int:
        """Number of fetches still in flight."""
        return len(self._tasks)

    async def drain(self) -> list[PlaceholderEdit]:
        """Wait for all in-flight fetches and return their edits."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*self._tasks))

    def _offline_notice(self) -> None:
        self._notify(t("notices.no_internet", self.settings.language))

    # -- Event entry points -------------------------------------------------

    def handle_paste(self, buffer: TextBuffer, text: str) -> bool:
        """Handle a paste event.

        Returns:
            True if the paste was consumed; False lets the host paste normally
        """
        if not self.settings.enhance_default_paste:
            return False
        return self._handle_incoming(buffer, text)

    def handle_drop(self, buffer: TextBuffer, text: str) -> bool:
        """Handle a drop event. Same contract as :meth:`handle_paste`."""
        if not self.settings.enhance_drop_events:
            return False
        return self._handle_incoming(buffer, text)

    def _handle_incoming(self, buffer: TextBuffer, text: str) -> bool:
        if not text:
            return False

        # Image URLs have no meaningful <title>, fetching them wastes bandwidth
        classification = classify(text)
        if classification.kind is not LinkKind.PLAIN_URL:
            return False

        if self.settings.ignore_code_regions and is_in_code_region(buffer):
            return False

        if not self._is_online():
            self._offline_notice()
            return False

        self._insert_link(buffer, classification.url)
        return True

    async def manual_paste(self, buffer: TextBuffer, text: str) -> PlaceholderEdit | None:
        """Paste command that fetches a title, else inserts the text as-is."""
        if not text:
            return None

        if not self._is_online():
            buffer.replace_selection(text)
            self._offline_notice()
            return None

        classification = classify(text)
        if classification.kind is not LinkKind.PLAIN_URL:
            buffer.replace_selection(text)
            return None

        task = self._insert_link(buffer, classification.url)
        return await task if task is not None else None

    def normal_paste(self, buffer: TextBuffer, text: str) -> None:
        """Paste without any fetching behavior."""
        if text:
            buffer.replace_selection(text)

    async def enhance_link_at_cursor(self, buffer: TextBuffer) -> PlaceholderEdit | None:
        """Re-title the URL or markdown link under the cursor or in the selection."""
        selected = get_selected_text(buffer).strip()
        classification = classify(selected)
        if classification.kind is LinkKind.NOT_A_URL:
            return None

        if not self._is_online():
            self._offline_notice()
            return None

        return await self.convert_url_to_titled_link(buffer, classification.url)

    # -- Link insertion -----------------------------------------------------

    def _insert_link(
        self, buffer: TextBuffer, url: str
    ) -> asyncio.Task[PlaceholderEdit] | None:
        # Pasting into an existing link target or an HTML attribute
        if is_markdown_link_already(buffer) or is_after_quote(buffer):
            buffer.replace_selection(url)
            return None

        selected = buffer.get_selection().strip()
        if selected and self.settings.preserve_selection_as_title:
            buffer.replace_selection(markdown_link(selected, url))
            return None

        return self.start_titled_link(buffer, url)

    def start_titled_link(
        self, buffer: TextBuffer, url: str
    ) -> asyncio.Task[PlaceholderEdit] | None:
        """Insert a placeholder link now and schedule the title fetch.

        Blacklisted URLs get their hostname as title and no fetch at all.

        Returns:
            The fetch task, or None when no fetch was needed
        """
        if is_blacklisted(url, self.settings.blacklist):
            logger.debug(f"{url} is blacklisted, using hostname as title")
            buffer.replace_selection(markdown_link(hostname_of(url), url))
            return None

        token = self.placeholders.issue(buffer.get_value())
        buffer.replace_selection(markdown_link(token, url))
        edit = PlaceholderEdit(token=token, url=url)

        task = asyncio.get_running_loop().create_task(self._complete(buffer, edit))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _complete(self, buffer: TextBuffer, edit: PlaceholderEdit) -> PlaceholderEdit:
        edit.begin_fetch()
        try:
            title = await self.fetcher.resolve_title(edit.url)
            edit.apply(buffer, title)
        finally:
            self.placeholders.release(edit.token)
        return edit

    async def convert_url_to_titled_link(
        self, buffer: TextBuffer, url: str
    ) -> PlaceholderEdit | None:
        """Replace the selection with a titled link and wait for the title."""
        task = self.start_titled_link(buffer, url)
        if task is None:
            return None
        return await task
