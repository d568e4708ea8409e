"""Centralized constants for autolinktitle.

This module contains all hardcoded constants used throughout the codebase.
Grouping them here makes it easier to:
- Find and modify default values
- Keep the URL patterns and fetch limits consistent across modules
"""

from __future__ import annotations

# =============================================================================
# URL Patterns
# =============================================================================

# First host label: alphanumerics, hyphens only in the interior
_HOST_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?"
# Rejects an explicit port anywhere in the remaining authority
_NO_PORT = r"(?![^\s/?#]*:\d)"

URL_BODY_PATTERN = (
    rf"(?:https?://(?:www\.)?|www\.){_HOST_LABEL}\.{_NO_PORT}[^\s]{{2,}}"
)
LINKED_URL_PATTERN = rf"\[([^\[\]]*)\]\(({URL_BODY_PATTERN})\)"

IMAGE_PATTERN = r"\.(gif|jpe?g|tiff?|png|webp|bmp|tga|psd|ai)$"

DEFAULT_URL_SCHEME = "https"

# =============================================================================
# Social Media Mirrors
# =============================================================================

# Identifies as a link-preview bot so mirrors serve OpenGraph HTML
MIRROR_CLIENT_USER_AGENT = (
    "Mozilla/5.0 (compatible; Discordbot/2.0; +https://discordapp.com)"
)
TWITTER_HOSTS = ("twitter.com", "www.twitter.com")
TWITTER_MIRROR_HOST = "fxtwitter.com"
X_HOSTS = ("x.com", "www.x.com")
X_MIRROR_HOST = "fixupx.com"

# =============================================================================
# Fetch Settings
# =============================================================================

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
DEFAULT_METADATA_API_ENDPOINT = "https://api.linkpreview.net/"
METADATA_API_KEY_HEADER = "X-Linkpreview-Api-Key"
DEFAULT_METADATA_API_KEY_LENGTH = 32

DEFAULT_PROBE_TIMEOUT = 5.0  # seconds
DEFAULT_SCRAPE_TIMEOUT = 15.0  # seconds
DEFAULT_METADATA_API_TIMEOUT = 10.0  # seconds
DEFAULT_RENDER_TIMEOUT_MS = 10000  # headless page load budget

# Status codes that mean "HEAD not supported", not "site down"
PROBE_INCONCLUSIVE_STATUSES = frozenset({405, 501})

# In-buffer sentinel for a probe that got an error status
SITE_UNREACHABLE = "Site Unreachable"
# Title used for downloads whose URL has no usable final segment
DOWNLOAD_FALLBACK_LABEL = "File"

# Attribute some script-driven sites set on an empty <title> before loading
NO_TITLE_ATTRIBUTE = "no-title"

RENDER_VIEWPORT_WIDTH = 1000
RENDER_VIEWPORT_HEIGHT = 600
RENDER_BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font"})

# =============================================================================
# Placeholders
# =============================================================================

PLACEHOLDER_HASH_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
PLACEHOLDER_HASH_LENGTH = 4
PLACEHOLDER_HASH_SEPARATOR = "#"
ZERO_WIDTH_SPACE = "\u200b"
# Invisible characters appended after each visible one: 0..N
MAX_INVISIBLE_PER_CHAR = 4
# Give up regenerating a colliding token after this many draws
MAX_PLACEHOLDER_ATTEMPTS = 64

# =============================================================================
# Configuration & Logging
# =============================================================================

CONFIG_FILENAME = "autolinktitle.json"
CONFIG_ENV_VAR = "AUTOLINKTITLE_CONFIG"
LANG_ENV_VAR = "AUTOLINKTITLE_LANG"
LOG_DIR_ENV_VAR = "AUTOLINKTITLE_LOG_DIR"

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "ja")

DEFAULT_LOG_LEVEL = "DEBUG"
DEFAULT_LOG_DIR = None
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = "7 days"
