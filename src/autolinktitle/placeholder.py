"""Placeholder tokens for optimistic title insertion.

A placeholder stands in for a title while it is fetched. It has to be
unique among placeholders in flight and must not collide with text the
user typed, because it is later located by exact string search.

Two modes are supported:
- hash: ``Fetching Title#k3x9`` (visible random suffix)
- zero-width: ``Fetching Title`` with 0..N zero-width spaces after each
  character, so every placeholder looks identical
"""

from __future__ import annotations

import random
from enum import Enum

from loguru import logger

from autolinktitle.constants import (
    MAX_INVISIBLE_PER_CHAR,
    MAX_PLACEHOLDER_ATTEMPTS,
    PLACEHOLDER_HASH_ALPHABET,
    PLACEHOLDER_HASH_LENGTH,
    PLACEHOLDER_HASH_SEPARATOR,
    ZERO_WIDTH_SPACE,
)


class PlaceholderMode(Enum):
    """How placeholders are disambiguated."""

    HASH = "hash"
    ZERO_WIDTH = "zero_width"


def create_block_hash(rng: random.Random | None = None) -> str:
    """Create a random 4-character alphanumeric suffix."""
    rng = rng or random
    return "".join(
        rng.choice(PLACEHOLDER_HASH_ALPHABET) for _ in range(PLACEHOLDER_HASH_LENGTH)
    )


def interleave_zero_width(
    base: str,
    rng: random.Random | None = None,
    max_per_char: int = MAX_INVISIBLE_PER_CHAR,
) -> str:
    """Insert 0..max_per_char zero-width spaces after each character.

    The last character never gets any, so one token can never be a prefix
    of another. With the default bound the English base phrase has 5**13
    variants.
    """
    rng = rng or random
    if not base:
        return base
    head = "".join(
        char + ZERO_WIDTH_SPACE * rng.randint(0, max_per_char) for char in base[:-1]
    )
    return head + base[-1]


def make_placeholder(
    base: str, mode: PlaceholderMode, rng: random.Random | None = None
) -> str:
    """Generate a single placeholder token from the base phrase."""
    if mode is PlaceholderMode.ZERO_WIDTH:
        return interleave_zero_width(base, rng)
    return f"{base}{PLACEHOLDER_HASH_SEPARATOR}{create_block_hash(rng)}"


class PlaceholderFactory:
    """Issues placeholder tokens that are unique among live ones.

    A token is redrawn while it equals the bare base phrase, matches a
    token that has not been released yet, or already occurs in the text
    it is about to be inserted into.
    """

    def __init__(
        self,
        base: str,
        mode: PlaceholderMode = PlaceholderMode.HASH,
        rng: random.Random | None = None,
    ) -> None:
        self.base = base
        self.mode = mode
        self._rng = rng or random.Random()
        self._live: set[str] = set()

    @property
    def live(self) -> frozenset[str]:
        return frozenset(self._live)

    def issue(self, existing_text: str = "") -> str:
        """Create and register a new token.

        Args:
            existing_text: Current buffer contents the token must not appear in

        Returns:
            A token not equal to any live token
        """
        token = make_placeholder(self.base, self.mode, self._rng)
        for _ in range(MAX_PLACEHOLDER_ATTEMPTS):
            if token != self.base and token not in self._live and token not in existing_text:
                break
            token = make_placeholder(self.base, self.mode, self._rng)
        else:
            logger.warning(
                f"Placeholder still collides after {MAX_PLACEHOLDER_ATTEMPTS} attempts"
            )
        self._live.add(token)
        return token

    def release(self, token: str) -> None:
        """Forget a token once its edit has resolved or been abandoned."""
        self._live.discard(token)
