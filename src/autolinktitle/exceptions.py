"""Custom exceptions for autolinktitle."""

from __future__ import annotations


class AutoLinkTitleError(Exception):
    """Base exception class for autolinktitle."""

    pass


class ConfigurationError(AutoLinkTitleError):
    """Configuration error."""

    pass


class PlaceholderStateError(AutoLinkTitleError):
    """Illegal transition of an optimistic placeholder edit."""

    def __init__(self, token: str, current: str, target: str) -> None:
        self.token = token
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move placeholder {token!r} from {current} to {target}"
        )
