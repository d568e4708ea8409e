"""Rewrite social-media URLs to bot-friendly mirror hosts.

twitter.com and x.com answer scrapers with an app interstitial instead of
page metadata. Their mirrors serve OpenGraph HTML when asked by a
link-preview client, so title fetches for those hosts go to the mirror.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit

from autolinktitle.constants import (
    MIRROR_CLIENT_USER_AGENT,
    TWITTER_HOSTS,
    TWITTER_MIRROR_HOST,
    X_HOSTS,
    X_MIRROR_HOST,
)


@dataclass(frozen=True)
class ProxyRewriteRule:
    """Maps a set of source hostnames to one mirror host."""

    hosts: frozenset[str]
    mirror_host: str
    headers: dict[str, str] = field(default_factory=dict)

    def matches(self, host: str) -> bool:
        return host.lower() in self.hosts


@dataclass(frozen=True)
class PreparedFetch:
    """URL and extra request headers to use for a title fetch."""

    fetch_url: str
    headers: dict[str, str] = field(default_factory=dict)


PROXY_RULES: tuple[ProxyRewriteRule, ...] = (
    ProxyRewriteRule(
        hosts=frozenset(TWITTER_HOSTS),
        mirror_host=TWITTER_MIRROR_HOST,
        headers={"User-Agent": MIRROR_CLIENT_USER_AGENT},
    ),
    ProxyRewriteRule(
        hosts=frozenset(X_HOSTS),
        mirror_host=X_MIRROR_HOST,
        headers={"User-Agent": MIRROR_CLIENT_USER_AGENT},
    ),
)


def find_rule(url: str) -> ProxyRewriteRule | None:
    """Return the rewrite rule for the URL's host, if any."""
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return None
    for rule in PROXY_RULES:
        if rule.matches(host):
            return rule
    return None


def is_social_url(url: str) -> bool:
    """Check whether the URL belongs to a host with a mirror."""
    return find_rule(url) is not None


def to_mirror_url(url: str) -> str:
    """Swap the host for its mirror, keeping path, query and fragment.

    Returns the original string for unrecognized hosts and for URLs that
    fail to parse.
    """
    rule = find_rule(url)
    if rule is None:
        return url
    try:
        parts = urlsplit(url)
        netloc = rule.mirror_host
        if parts.port is not None:
            netloc = f"{netloc}:{parts.port}"
        return urlunsplit(parts._replace(netloc=netloc))
    except ValueError:
        return url


def prepare_fetch(url: str, use_proxy: bool) -> PreparedFetch:
    """Decide where a title fetch for ``url`` should go.

    Args:
        url: Target URL (already normalized with a scheme)
        use_proxy: Whether mirror rewriting is enabled

    Returns:
        PreparedFetch with the mirror URL and client headers for recognized
        social hosts, otherwise the URL unchanged with no extra headers
    """
    if not use_proxy:
        return PreparedFetch(fetch_url=url)

    rule = find_rule(url)
    if rule is None:
        return PreparedFetch(fetch_url=url)

    return PreparedFetch(fetch_url=to_mirror_url(url), headers=dict(rule.headers))
