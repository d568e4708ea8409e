"""Pytest configuration and fixtures."""

from __future__ import annotations

import random
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from autolinktitle.config import FetchSettings
from autolinktitle.fetch_playwright import clear_browser_cache

# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings() -> FetchSettings:
    """Default settings using the HTTP scraper (no browser needed)."""
    return FetchSettings(use_alternate_scraper=True)


@pytest.fixture
def valid_api_key() -> str:
    """A metadata-API key of the expected shape."""
    return "k" * 32


@pytest.fixture
def seeded_rng() -> random.Random:
    """Deterministic random source for placeholder tokens."""
    return random.Random(1234)


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient backed by an httpx.MockTransport handler."""

    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=True
        )

    return _build


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_browser_cache():
    """Keep the Chromium detection cache from leaking between tests."""
    clear_browser_cache()
    yield
    clear_browser_cache()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty directory with no config file reachable."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("AUTOLINKTITLE_CONFIG", raising=False)
    monkeypatch.delenv("AUTOLINKTITLE_LOG_DIR", raising=False)
    monkeypatch.setattr(
        "autolinktitle.config.ConfigManager.DEFAULT_USER_CONFIG_DIR",
        tmp_path / "home",
    )
    return tmp_path


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Click CLI test runner."""
    return CliRunner()
