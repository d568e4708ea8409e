"""Tests for the Playwright headless-render strategy."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from autolinktitle.config import FetchSettings
from autolinktitle.fetch import ProbeResult

# Check if playwright is available for tests that require it
try:
    import playwright  # noqa: F401

    PLAYWRIGHT_AVAILABLE = True
except ImportError:
    PLAYWRIGHT_AVAILABLE = False

# Decorator for tests that require playwright module
requires_playwright = pytest.mark.skipif(
    not PLAYWRIGHT_AVAILABLE, reason="playwright not installed"
)


def make_scraper(probe: ProbeResult | None = None, scraped: str = "Scraped") -> MagicMock:
    scraper = MagicMock()
    scraper.probe = AsyncMock(return_value=probe or ProbeResult())
    scraper.scrape = AsyncMock(return_value=scraped)
    return scraper


def make_playwright(title: str = "Rendered", goto_error: Exception | None = None):
    """Build a mock Playwright driver with one browser, context and page."""
    page = MagicMock()
    page.goto = AsyncMock(side_effect=goto_error)
    page.title = AsyncMock(return_value=title)

    context = MagicMock()
    context.route = AsyncMock()
    context.new_page = AsyncMock(return_value=page)

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    driver = MagicMock()
    driver.chromium.launch = AsyncMock(return_value=browser)
    driver.stop = AsyncMock()
    return driver, browser, page


class TestIsPlaywrightAvailable:
    """Tests for is_playwright_available function."""

    @requires_playwright
    def test_returns_true_when_installed(self):
        from autolinktitle.fetch_playwright import is_playwright_available

        assert is_playwright_available() is True

    def test_returns_false_when_not_installed(self):
        from autolinktitle.fetch_playwright import is_playwright_available

        with patch("autolinktitle.fetch_playwright.find_spec", return_value=None):
            assert is_playwright_available() is False


class TestIsPlaywrightBrowserInstalled:
    """Tests for is_playwright_browser_installed function."""

    def test_returns_false_when_playwright_not_available(self):
        from autolinktitle.fetch_playwright import is_playwright_browser_installed

        with patch(
            "autolinktitle.fetch_playwright.is_playwright_available", return_value=False
        ):
            assert is_playwright_browser_installed(use_cache=False) is False

    def test_uses_cache_on_subsequent_calls(self):
        from autolinktitle.fetch_playwright import is_playwright_browser_installed

        with (
            patch(
                "autolinktitle.fetch_playwright.is_playwright_available",
                return_value=True,
            ),
            patch(
                "autolinktitle.fetch_playwright._check_chromium_paths",
                return_value=True,
            ) as mock_check,
        ):
            assert is_playwright_browser_installed() is True
            assert is_playwright_browser_installed() is True

        mock_check.assert_called_once()

    def test_finds_chromium_in_custom_path(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        from autolinktitle.fetch_playwright import _check_chromium_paths

        build = tmp_path / "chromium-1234"
        build.mkdir()
        (build / "INSTALLATION_COMPLETE").write_text("")
        monkeypatch.setenv("PLAYWRIGHT_BROWSERS_PATH", str(tmp_path))

        assert _check_chromium_paths() is True

    def test_empty_build_directory_is_ignored(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        from autolinktitle.fetch_playwright import _check_chromium_paths

        (tmp_path / "chromium-1234").mkdir()
        monkeypatch.setenv("PLAYWRIGHT_BROWSERS_PATH", str(tmp_path))

        assert _check_chromium_paths() is False


class TestNavigationGuard:
    """Tests for the route handler used while rendering."""

    @staticmethod
    def make_route(resource_type: str = "document", navigation: bool = True):
        route = MagicMock()
        route.abort = AsyncMock()
        route.continue_ = AsyncMock()
        route.request.resource_type = resource_type
        route.request.is_navigation_request = MagicMock(return_value=navigation)
        route.request.frame.parent_frame = None
        route.request.url = "https://elsewhere.example.com"
        return route

    @pytest.mark.asyncio
    async def test_blocks_heavy_resources(self):
        from autolinktitle.fetch_playwright import _NavigationGuard

        route = self.make_route(resource_type="image", navigation=False)
        await _NavigationGuard()(route)

        route.abort.assert_awaited_once()
        route.continue_.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_allows_first_navigation_only(self):
        from autolinktitle.fetch_playwright import _NavigationGuard

        guard = _NavigationGuard()
        first, second = self.make_route(), self.make_route()

        await guard(first)
        await guard(second)

        first.continue_.assert_awaited_once()
        second.abort.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_subresources_pass(self):
        from autolinktitle.fetch_playwright import _NavigationGuard

        guard = _NavigationGuard()
        await guard(self.make_route())
        script = self.make_route(resource_type="script", navigation=False)
        await guard(script)

        script.continue_.assert_awaited_once()



class TestPopupCloser:
    """Tests for the popup handler used while rendering."""

    @pytest.mark.asyncio
    async def test_wait_awaits_every_close(self):
        from autolinktitle.fetch_playwright import _PopupCloser

        closer = _PopupCloser()
        popups = [MagicMock(close=AsyncMock()) for _ in range(3)]
        for popup in popups:
            closer(popup)

        await closer.wait()

        for popup in popups:
            popup.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_close_is_logged(self):
        from loguru import logger

        from autolinktitle.fetch_playwright import _PopupCloser

        messages: list[str] = []
        handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
        try:
            closer = _PopupCloser()
            closer(MagicMock(close=AsyncMock(side_effect=RuntimeError("gone"))))
            await closer.wait()
        finally:
            logger.remove(handler_id)

        assert any("Could not close popup: gone" in m for m in messages)

@requires_playwright
class TestPlaywrightTitleRenderer:
    """Tests for PlaywrightTitleRenderer with a mocked driver."""

    @pytest.mark.asyncio
    async def test_returns_rendered_title(self):
        from autolinktitle.fetch_playwright import PlaywrightTitleRenderer

        driver, browser, page = make_playwright("  Rendered Title ")
        with patch(
            "autolinktitle.fetch_playwright._start_playwright",
            AsyncMock(return_value=driver),
        ):
            title = await PlaywrightTitleRenderer(5000).render_title("https://example.com")

        assert title == "Rendered Title"
        page.goto.assert_awaited_once_with(
            "https://example.com", timeout=5000, wait_until="load"
        )
        driver.chromium.launch.assert_awaited_once_with(headless=True)
        browser.close.assert_awaited_once()
        driver.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_popups_closed_before_browser(self):
        from autolinktitle.fetch_playwright import PlaywrightTitleRenderer

        driver, browser, page = make_playwright("Main")
        popup = MagicMock(close=AsyncMock())
        page.on = MagicMock(side_effect=lambda event, handler: handler(popup))
        with patch(
            "autolinktitle.fetch_playwright._start_playwright",
            AsyncMock(return_value=driver),
        ):
            title = await PlaywrightTitleRenderer(5000).render_title("https://example.com")

        assert title == "Main"
        page.on.assert_called_once()
        assert page.on.call_args.args[0] == "popup"
        popup.close.assert_awaited_once()
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_uses_current_title(self):
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        from autolinktitle.fetch_playwright import PlaywrightTitleRenderer

        driver, browser, _ = make_playwright(
            "Partial", goto_error=PlaywrightTimeoutError("Timeout 10000ms exceeded")
        )
        with patch(
            "autolinktitle.fetch_playwright._start_playwright",
            AsyncMock(return_value=driver),
        ):
            title = await PlaywrightTitleRenderer(10000).render_title("https://example.com")

        assert title == "Partial"
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_blank_title_returns_url(self):
        from autolinktitle.fetch_playwright import PlaywrightTitleRenderer

        driver, _, _ = make_playwright("")
        with patch(
            "autolinktitle.fetch_playwright._start_playwright",
            AsyncMock(return_value=driver),
        ):
            title = await PlaywrightTitleRenderer(5000).render_title("https://example.com")

        assert title == "https://example.com"

    @pytest.mark.asyncio
    async def test_teardown_on_error(self):
        from autolinktitle.fetch_playwright import PlaywrightTitleRenderer

        driver, browser, _ = make_playwright(goto_error=RuntimeError("crashed"))
        with patch(
            "autolinktitle.fetch_playwright._start_playwright",
            AsyncMock(return_value=driver),
        ):
            with pytest.raises(RuntimeError):
                await PlaywrightTitleRenderer(5000).render_title("https://example.com")

        browser.close.assert_awaited_once()
        driver.stop.assert_awaited_once()


class TestHeadlessRenderStrategy:
    """Tests for HeadlessRenderStrategy routing."""

    @pytest.mark.asyncio
    async def test_social_url_goes_to_scraper(self):
        from autolinktitle.fetch_playwright import HeadlessRenderStrategy

        scraper = make_scraper(scraped="Tweet")
        renderer = MagicMock()
        renderer.render_title = AsyncMock()
        strategy = HeadlessRenderStrategy(FetchSettings(), scraper, renderer)

        title = await strategy.fetch("https://twitter.com/user/status/1")

        assert title == "Tweet"
        scraper.probe.assert_not_awaited()
        renderer.render_title.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_probe_decides(self):
        from autolinktitle.fetch_playwright import HeadlessRenderStrategy

        scraper = make_scraper(probe=ProbeResult(title="report.pdf", status_code=200))
        renderer = MagicMock()
        renderer.render_title = AsyncMock()
        strategy = HeadlessRenderStrategy(FetchSettings(), scraper, renderer)

        assert await strategy.fetch("https://example.com/report.pdf") == "report.pdf"
        renderer.render_title.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_without_browser(self):
        from autolinktitle.fetch_playwright import HeadlessRenderStrategy

        scraper = make_scraper(scraped="Scraped Title")
        renderer = MagicMock()
        renderer.render_title = AsyncMock()
        strategy = HeadlessRenderStrategy(FetchSettings(), scraper, renderer)

        with patch(
            "autolinktitle.fetch_playwright.is_headless_render_available",
            return_value=False,
        ):
            title = await strategy.fetch("https://example.com")

        assert title == "Scraped Title"
        renderer.render_title.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_renders_when_available(self):
        from autolinktitle.fetch_playwright import HeadlessRenderStrategy

        scraper = make_scraper()
        renderer = MagicMock()
        renderer.render_title = AsyncMock(return_value="Rendered")
        strategy = HeadlessRenderStrategy(FetchSettings(), scraper, renderer)

        with patch(
            "autolinktitle.fetch_playwright.is_headless_render_available",
            return_value=True,
        ):
            title = await strategy.fetch("www.example.com")

        assert title == "Rendered"
        renderer.render_title.assert_awaited_once_with("https://www.example.com")
        scraper.scrape.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_render_failure_is_empty(self):
        from autolinktitle.fetch_playwright import HeadlessRenderStrategy

        scraper = make_scraper()
        renderer = MagicMock()
        renderer.render_title = AsyncMock(side_effect=RuntimeError("no display"))
        strategy = HeadlessRenderStrategy(FetchSettings(), scraper, renderer)

        with patch(
            "autolinktitle.fetch_playwright.is_headless_render_available",
            return_value=True,
        ):
            assert await strategy.fetch("https://example.com") == ""
