"""Localized user-facing strings.

Every lookup takes the language explicitly; callers thread
``FetchSettings.language`` through instead of relying on a process-wide
locale.

Usage:
    from autolinktitle.i18n import t

    t("notices.title_unavailable", "ja")
"""

from __future__ import annotations

import os

from autolinktitle.constants import DEFAULT_LANGUAGE, LANG_ENV_VAR, SUPPORTED_LANGUAGES

TEXTS: dict[str, dict[str, str]] = {
    # Commands
    "commands.paste_url": {
        "en": "Paste URL and auto fetch title",
        "ja": "URLを貼り付けてタイトルを自動取得",
    },
    "commands.normal_paste": {
        "en": "Normal paste (no fetching behavior)",
        "ja": "通常の貼り付け（タイトル取得なし）",
    },
    "commands.enhance_url": {
        "en": "Enhance existing URL with link and title",
        "ja": "既存のURLにリンクとタイトルを追加",
    },
    # Notices
    "notices.no_internet": {
        "en": "No internet connection. Cannot fetch title.",
        "ja": "インターネット接続がありません。タイトルを取得できません。",
    },
    "notices.title_unavailable": {
        "en": "Title Unavailable | Site Unreachable",
        "ja": "タイトル取得不可 | サイトに接続できません",
    },
    "notices.error_fetching": {
        "en": "Error fetching title",
        "ja": "タイトル取得エラー",
    },
    "notices.api_key_invalid": {
        "en": "LinkPreview API key must be {length} characters long",
        "ja": "LinkPreview APIキーは{length}文字である必要があります",
    },
    # Placeholder
    "placeholder.fetching": {"en": "Fetching Title", "ja": "タイトル取得中"},
}


def detect_language() -> str:
    """Detect user language preference from environment variables.

    Priority: AUTOLINKTITLE_LANG > LANG/LC_ALL > default (en)

    Returns:
        A supported language code
    """
    lang = os.environ.get(LANG_ENV_VAR, "")
    if not lang:
        lang = os.environ.get("LANG", "") or os.environ.get("LC_ALL", "")

    code = lang.lower()[:2]
    if code in SUPPORTED_LANGUAGES:
        return code
    return DEFAULT_LANGUAGE


def t(key: str, lang: str = DEFAULT_LANGUAGE, **kwargs: str | int) -> str:
    """Get translated text for a key.

    Args:
        key: Translation key (e.g., "notices.error_fetching")
        lang: Language code; unknown languages fall back to English
        **kwargs: Format arguments for string interpolation

    Returns:
        Translated text, or the key itself if it is not in the table
    """
    texts = TEXTS.get(key)
    if texts is None:
        return key

    text = texts.get(lang) or texts[DEFAULT_LANGUAGE]
    if kwargs:
        text = text.format(**kwargs)
    return text
