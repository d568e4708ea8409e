"""Headless-render title strategy backed by Playwright.

Script-driven pages often ship an empty ``<title>`` that is filled in
after load. This strategy renders the page in headless Chromium and reads
``document.title`` directly.

Rendering needs the optional ``playwright`` package and a downloaded
Chromium. When either is missing, or for social-media URLs that only the
mirror scrape handles well, the strategy delegates to the HTTP scraper.

Usage:
    from autolinktitle.fetch_playwright import HeadlessRenderStrategy

    strategy = HeadlessRenderStrategy(settings, HttpScrapeStrategy(settings))
    title = await strategy.fetch(url)
"""

from __future__ import annotations

import asyncio
from importlib.util import find_spec
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from autolinktitle.constants import (
    RENDER_BLOCKED_RESOURCE_TYPES,
    RENDER_VIEWPORT_HEIGHT,
    RENDER_VIEWPORT_WIDTH,
)
from autolinktitle.proxy import is_social_url
from autolinktitle.urls import normalize_url

if TYPE_CHECKING:
    from autolinktitle.config import FetchSettings
    from autolinktitle.fetch import HttpScrapeStrategy


def is_playwright_available() -> bool:
    """Check if playwright is installed.

    Returns:
        True if playwright can be imported
    """
    return find_spec("playwright") is not None


# Cache for browser installation check
_browser_installed_cache: bool | None = None


def is_playwright_browser_installed(use_cache: bool = True) -> bool:
    """Check if playwright browser (Chromium) is installed.

    This function checks for browser executable existence without launching it,
    avoiding potential hangs in environments like WSL2 or headless servers.

    Args:
        use_cache: Whether to use cached result

    Returns:
        True if Chromium browser is available
    """
    global _browser_installed_cache

    if use_cache and _browser_installed_cache is not None:
        return _browser_installed_cache

    if not is_playwright_available():
        _browser_installed_cache = False
        return False

    _browser_installed_cache = _check_chromium_paths()
    return _browser_installed_cache


def _chromium_base_paths() -> list[Path]:
    import os
    import sys

    custom = os.environ.get("PLAYWRIGHT_BROWSERS_PATH")
    if custom and custom != "0":
        return [Path(custom)]
    if sys.platform == "win32":
        return [
            Path(os.environ.get("LOCALAPPDATA", "")) / "ms-playwright",
            Path.home() / "AppData" / "Local" / "ms-playwright",
        ]
    if sys.platform == "darwin":
        return [Path.home() / "Library" / "Caches" / "ms-playwright"]
    return [Path.home() / ".cache" / "ms-playwright"]


def _check_chromium_paths() -> bool:
    """Check common Playwright Chromium installation paths.

    Returns:
        True if a chromium-* or chromium_headless_shell-* build directory exists
    """
    for base in _chromium_base_paths():
        if not base.exists():
            continue
        for pattern in ("chromium-*", "chromium_headless_shell-*"):
            for build in base.glob(pattern):
                if build.is_dir() and any(build.iterdir()):
                    logger.debug(f"Found Chromium build at: {build}")
                    return True
    return False


def clear_browser_cache() -> None:
    """Clear the browser installation cache."""
    global _browser_installed_cache
    _browser_installed_cache = None


def is_headless_render_available() -> bool:
    """Runtime check for the headless-render capability."""
    return is_playwright_browser_installed()


async def _start_playwright() -> Any:
    from playwright.async_api import async_playwright

    return await async_playwright().start()


class _NavigationGuard:
    """Route handler that blocks heavy resources and follow-up navigations.

    The first main-frame navigation is the page load itself; any later one
    (script redirects, meta refresh, link hijacks) is aborted so the page
    under test stays put.
    """

    def __init__(self) -> None:
        self._navigated = False

    async def __call__(self, route: Any) -> None:
        request = route.request
        if request.resource_type in RENDER_BLOCKED_RESOURCE_TYPES:
            await route.abort()
            return
        if request.is_navigation_request() and request.frame.parent_frame is None:
            if self._navigated:
                logger.debug(f"[Headless] Blocked navigation to {request.url}")
                await route.abort()
                return
            self._navigated = True
        await route.continue_()


class _PopupCloser:
    """Popup handler that closes new windows as soon as they open."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def __call__(self, popup: Any) -> None:
        self._tasks.add(asyncio.get_running_loop().create_task(popup.close()))

    async def wait(self) -> None:
        """Wait for every pending close, logging the ones that failed."""
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        for result in results:
            if isinstance(result, Exception):
                logger.debug(f"[Headless] Could not close popup: {result}")


class PlaywrightTitleRenderer:
    """Renders a page off-screen and reads its document title."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms

    async def render_title(self, url: str) -> str:
        """Load ``url`` and return ``document.title``.

        The load is bounded by ``timeout_ms``; on timeout whatever title the
        page has so far is used. Browser and driver are torn down on every
        exit path.

        Returns:
            Rendered title, the URL when the title is blank, or ``""`` when
            rendering fails
        """
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        playwright = await _start_playwright()
        popups = _PopupCloser()
        try:
            browser = await playwright.chromium.launch(headless=True)
            try:
                context = await browser.new_context(
                    viewport={
                        "width": RENDER_VIEWPORT_WIDTH,
                        "height": RENDER_VIEWPORT_HEIGHT,
                    },
                )
                await context.route("**/*", _NavigationGuard())
                page = await context.new_page()
                page.on("popup", popups)

                try:
                    await page.goto(url, timeout=self.timeout_ms, wait_until="load")
                except PlaywrightTimeoutError:
                    logger.debug(
                        f"[Headless] Load of {url} exceeded {self.timeout_ms}ms, "
                        "using current title"
                    )

                title = (await page.title()).strip()
            finally:
                await popups.wait()
                await browser.close()
        finally:
            await playwright.stop()

        return title or url


class HeadlessRenderStrategy:
    """Title strategy that renders pages in headless Chromium.

    Probing, social-media routing and the no-browser fallback all go
    through the HTTP scraper.
    """

    name = "headless"

    def __init__(
        self,
        settings: FetchSettings,
        scraper: HttpScrapeStrategy,
        renderer: PlaywrightTitleRenderer | None = None,
    ) -> None:
        self._settings = settings
        self._scraper = scraper
        self._renderer = renderer or PlaywrightTitleRenderer(settings.render_timeout_ms)

    async def fetch(self, url: str) -> str:
        url = normalize_url(url)

        if is_social_url(url):
            return await self._scraper.scrape(url)

        probe = await self._scraper.probe(url)
        if probe.title is not None:
            return probe.title

        if not is_headless_render_available():
            logger.debug("[Headless] Chromium not available, scraping over HTTP")
            return await self._scraper.scrape(url)

        try:
            return await self._renderer.render_title(url)
        except Exception as e:
            logger.debug(f"[Headless] Render failed for {url}: {e!r}")
            return ""
