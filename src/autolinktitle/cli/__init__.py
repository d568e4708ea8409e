"""Command-line interface for autolinktitle."""

from autolinktitle.cli.main import app

__all__ = ["app"]
