"""Title fetch strategies and the orchestrator that chains them.

Three strategies share one contract, ``await strategy.fetch(url) -> str``:
- metadata: LinkPreview-style metadata API (needs an API key)
- scrape: HTTP fetch and HTML title extraction (works everywhere)
- headless: Playwright render for script-driven pages (see fetch_playwright)

A strategy never raises. Any failure becomes ``""``, which tells the
orchestrator to try the next strategy.

Example usage:
    from autolinktitle.fetch import TitleFetcher

    fetcher = TitleFetcher(settings)
    title = await fetcher.resolve_title("https://example.com")
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from autolinktitle.config import ApiKeyState
from autolinktitle.constants import (
    DEFAULT_USER_AGENT,
    DOWNLOAD_FALLBACK_LABEL,
    METADATA_API_KEY_HEADER,
    NO_TITLE_ATTRIBUTE,
    PROBE_INCONCLUSIVE_STATUSES,
    SITE_UNREACHABLE,
)
from autolinktitle.i18n import t
from autolinktitle.markdown import format_title, strip_newlines
from autolinktitle.proxy import is_social_url, prepare_fetch
from autolinktitle.urls import normalize_url

if TYPE_CHECKING:
    from autolinktitle.config import FetchSettings

Notify = Callable[[str], None]


@runtime_checkable
class TitleStrategy(Protocol):
    """A way of turning a URL into a page title."""

    name: str

    async def fetch(self, url: str) -> str: ...


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of the reachability probe.

    ``title`` is set when the probe alone decides the title (an
    unreachable site or a non-HTML download); ``None`` means scrape on.
    """

    title: str | None = None
    status_code: int | None = None
    content_type: str | None = None


def _log_notice(message: str) -> None:
    logger.warning(message)


@asynccontextmanager
async def _client_scope(
    client: httpx.AsyncClient | None, timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the shared client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as owned:
        yield owned


def get_url_final_segment(url: str) -> str:
    """Return the last path segment (typically a file name).

    A trailing slash is skipped. Falls back to a generic label when the path
    has no segment or the URL cannot be parsed.
    """
    try:
        segments = urlsplit(url).path.split("/")
    except ValueError:
        return DOWNLOAD_FALLBACK_LABEL
    last = segments.pop() if segments else ""
    if not last and segments:
        last = segments.pop()
    return last or DOWNLOAD_FALLBACK_LABEL


def _is_html(content_type: str | None) -> bool:
    return content_type is not None and "text/html" in content_type.lower()


def extract_title_from_html(html: str, url: str) -> str:
    """Pick a title out of an HTML document.

    Preference order: ``og:title`` meta, ``<title>`` text, the ``no-title``
    attribute some script-driven sites put on an empty ``<title>``, and
    finally the URL itself.
    """
    soup = BeautifulSoup(html, "html.parser")

    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title is not None:
        content = (og_title.get("content") or "").strip()
        if content:
            return content

    title_tag = soup.find("title")
    if title_tag is not None:
        text = title_tag.get_text().strip()
        if text:
            return text
        no_title = (title_tag.get(NO_TITLE_ATTRIBUTE) or "").strip()
        if no_title:
            return no_title

    return url


class MetadataApiStrategy:
    """Look the title up through a metadata API.

    A missing key skips the request silently. A key of the wrong shape
    also skips it but raises a user-visible notice.
    """

    name = "metadata"

    def __init__(
        self,
        settings: FetchSettings,
        client: httpx.AsyncClient | None = None,
        notify: Notify | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._notify = notify or _log_notice

    async def fetch(self, url: str) -> str:
        state = self._settings.api_key_state
        if state is ApiKeyState.ABSENT:
            return ""
        if state is ApiKeyState.MALFORMED:
            logger.error(
                f"Metadata API key is not {self._settings.metadata_api_key_length} "
                "characters long, please check your settings"
            )
            self._notify(
                t(
                    "notices.api_key_invalid",
                    self._settings.language,
                    length=self._settings.metadata_api_key_length,
                )
            )
            return ""

        headers = {METADATA_API_KEY_HEADER: self._settings.get_resolved_api_key()}
        try:
            async with _client_scope(
                self._client, self._settings.metadata_api_timeout
            ) as client:
                response = await client.get(
                    self._settings.metadata_api_endpoint,
                    params={"q": normalize_url(url)},
                    headers=headers,
                    timeout=self._settings.metadata_api_timeout,
                )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"[Metadata] Lookup failed for {url}: {e}")
            return ""

        if not isinstance(data, dict):
            return ""
        title = data.get("title")
        return title if isinstance(title, str) else ""


class HttpScrapeStrategy:
    """Fetch the page over HTTP and extract its title from the HTML."""

    name = "scrape"

    def __init__(
        self, settings: FetchSettings, client: httpx.AsyncClient | None = None
    ) -> None:
        self._settings = settings
        self._client = client

    async def probe(self, url: str) -> ProbeResult:
        """Issue a HEAD request to check reachability and content type.

        A timeout or transport error is inconclusive and lets scraping
        proceed. An error status yields the ``Site Unreachable`` sentinel; a
        non-HTML response yields the file name.
        """
        prepared = prepare_fetch(url, self._settings.use_proxy_rewrite)
        headers = {"User-Agent": DEFAULT_USER_AGENT, **prepared.headers}
        try:
            async with _client_scope(self._client, self._settings.probe_timeout) as client:
                response = await client.head(
                    prepared.fetch_url,
                    headers=headers,
                    timeout=self._settings.probe_timeout,
                )
        except httpx.HTTPError as e:
            logger.debug(f"[Probe] Inconclusive for {url}, scraping anyway: {e!r}")
            return ProbeResult()

        content_type = response.headers.get("content-type")
        if response.status_code in PROBE_INCONCLUSIVE_STATUSES:
            return ProbeResult(status_code=response.status_code)
        if not response.is_success:
            logger.debug(f"[Probe] {url} answered {response.status_code}")
            return ProbeResult(
                title=SITE_UNREACHABLE,
                status_code=response.status_code,
                content_type=content_type,
            )
        if not _is_html(content_type):
            return ProbeResult(
                title=get_url_final_segment(url),
                status_code=response.status_code,
                content_type=content_type,
            )
        return ProbeResult(status_code=response.status_code, content_type=content_type)

    async def scrape(self, url: str) -> str:
        """GET the page and extract a title, without probing first."""
        prepared = prepare_fetch(url, self._settings.use_proxy_rewrite)
        headers = {"User-Agent": DEFAULT_USER_AGENT, **prepared.headers}
        if prepared.fetch_url != url:
            logger.debug(f"[Scrape] Using mirror {prepared.fetch_url} for {url}")
        try:
            async with _client_scope(self._client, self._settings.scrape_timeout) as client:
                response = await client.get(
                    prepared.fetch_url,
                    headers=headers,
                    timeout=self._settings.scrape_timeout,
                )
        except httpx.HTTPError as e:
            logger.debug(f"[Scrape] Request failed for {url}: {e!r}")
            return ""

        if response.status_code >= 400:
            logger.debug(f"[Scrape] {url} answered {response.status_code}")
            return ""

        if not _is_html(response.headers.get("content-type")):
            return get_url_final_segment(url)

        try:
            return extract_title_from_html(response.text, url)
        except Exception as e:
            logger.debug(f"[Scrape] Could not parse HTML from {url}: {e}")
            return ""

    async def fetch(self, url: str) -> str:
        url = normalize_url(url)
        # Social hosts go straight to the mirror scrape
        if not is_social_url(url):
            probe = await self.probe(url)
            if probe.title is not None:
                return probe.title
        return await self.scrape(url)


class TitleFetcher:
    """Resolve a URL to a display title by chaining strategies.

    Order: the metadata API when a key is configured, then exactly one of
    the HTTP scraper or the headless renderer depending on
    ``use_alternate_scraper``.
    """

    def __init__(
        self,
        settings: FetchSettings,
        *,
        metadata: TitleStrategy | None = None,
        scraper: TitleStrategy | None = None,
        renderer: TitleStrategy | None = None,
        client: httpx.AsyncClient | None = None,
        notify: Notify | None = None,
    ) -> None:
        self._settings = settings
        self.metadata = metadata or MetadataApiStrategy(settings, client, notify)
        http_scraper = HttpScrapeStrategy(settings, client)
        self.scraper = scraper or http_scraper
        if renderer is None:
            from autolinktitle.fetch_playwright import HeadlessRenderStrategy

            renderer = HeadlessRenderStrategy(settings, http_scraper)
        self.renderer = renderer

    @property
    def fallback_strategy(self) -> TitleStrategy:
        return self.scraper if self._settings.use_alternate_scraper else self.renderer

    async def resolve_raw_title(self, url: str) -> str:
        """Resolve a title without markdown escaping or truncation.

        Never raises and never returns an empty string: blank results turn
        into the "title unavailable" message and unexpected errors into the
        "error fetching" message.
        """
        lang = self._settings.language
        try:
            title = ""
            if self._settings.api_key_state is not ApiKeyState.ABSENT:
                title = await self.metadata.fetch(url) or ""
                logger.debug(f"Title via metadata API: {title!r}")

            if not title:
                strategy = self.fallback_strategy
                logger.debug(f"Falling back to {strategy.name} for {url}")
                title = await strategy.fetch(url) or ""

            logger.debug(f"Title: {title!r}")
            return strip_newlines(title) or t("notices.title_unavailable", lang)
        except Exception as e:
            logger.exception(f"Unexpected error fetching title for {url}: {e}")
            return t("notices.error_fetching", lang)

    async def resolve_title(self, url: str) -> str:
        """Resolve a title ready to be placed inside ``[...]``."""
        title = await self.resolve_raw_title(url)
        return format_title(title, self._settings.max_title_length)
