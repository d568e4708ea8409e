"""Command-line interface for autolinktitle."""

from __future__ import annotations

import asyncio
import json
import socket
from pathlib import Path

import click
from click import Context
from dotenv import load_dotenv
from loguru import logger
from rich.syntax import Syntax
from rich.table import Table

from autolinktitle.cli.console import get_console, get_stderr_console
from autolinktitle.cli.logging_config import print_version, setup_logging
from autolinktitle.config import ApiKeyState, AppConfig, ConfigManager
from autolinktitle.editor import InMemoryBuffer
from autolinktitle.exceptions import ConfigurationError
from autolinktitle.fetch import TitleFetcher
from autolinktitle.fetch_playwright import (
    is_playwright_available,
    is_playwright_browser_installed,
)
from autolinktitle.i18n import detect_language, t
from autolinktitle.linker import LinkTitler
from autolinktitle.urls import Url, classify, strip_angle_brackets

# Load .env file from current directory and parent directories
load_dotenv()


def _host_resolves(text: str) -> bool:
    """Connectivity check used before fetching: can the URL's host be resolved?

    Text that is not a URL needs no network and always passes.
    """
    url = Url.parse(strip_angle_brackets(text))
    if url is None or not url.host:
        return True
    try:
        socket.getaddrinfo(url.host, 443)
    except OSError:
        return False
    return True


def _notify(message: str) -> None:
    get_stderr_console().print(f"[yellow]{message}[/yellow]")


def _get_config(ctx: Context) -> AppConfig:
    return ctx.obj["manager"].config


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.pass_context
def app(ctx: Context, config_path: Path | None, verbose: bool) -> None:
    """Turn URLs into markdown links titled with the page title."""
    manager = ConfigManager()
    try:
        config = manager.load(config_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    if "language" not in config.fetch.model_fields_set:
        config.fetch.language = detect_language()

    setup_logging(
        verbose=verbose,
        log_dir=config.log.dir,
        log_level=config.log.level,
        rotation=config.log.rotation,
        retention=config.log.retention,
    )
    if manager.config_path:
        logger.debug(f"Loaded configuration from {manager.config_path}")

    ctx.ensure_object(dict)
    ctx.obj["manager"] = manager


@app.command()
@click.argument("url")
@click.option("--raw", is_flag=True, help="Print the title without markdown escaping.")
@click.pass_context
def title(ctx: Context, url: str, raw: bool) -> None:
    """Fetch and print the title of URL."""
    settings = _get_config(ctx).fetch
    fetcher = TitleFetcher(settings, notify=_notify)
    if raw:
        result = asyncio.run(fetcher.resolve_raw_title(url))
    else:
        result = asyncio.run(fetcher.resolve_title(url))
    click.echo(result)


@app.command(help=t("commands.paste_url"))
@click.argument("text")
@click.option(
    "--selection",
    "-s",
    default="",
    help="Text treated as selected when pasting (see preserve_selection_as_title).",
)
@click.option("--plain", is_flag=True, help=t("commands.normal_paste"))
@click.pass_context
def link(ctx: Context, text: str, selection: str, plain: bool) -> None:
    settings = _get_config(ctx).fetch
    buffer = InMemoryBuffer(selection)
    buffer.select_offsets(0, len(selection))
    titler = LinkTitler(
        settings, notify=_notify, is_online=lambda: _host_resolves(text)
    )

    if plain:
        titler.normal_paste(buffer, text)
    else:
        asyncio.run(titler.manual_paste(buffer, text))
    click.echo(buffer.get_value())


@app.command(help=t("commands.enhance_url"))
@click.argument("text")
@click.option(
    "--cursor",
    "-p",
    type=click.IntRange(min=0),
    default=None,
    help="Cursor offset in TEXT (default: end of text).",
)
@click.pass_context
def enhance(ctx: Context, text: str, cursor: int | None) -> None:
    settings = _get_config(ctx).fetch
    if cursor is not None:
        cursor = min(cursor, len(text))
    buffer = InMemoryBuffer(text, cursor=cursor)
    titler = LinkTitler(
        settings,
        notify=_notify,
        is_online=lambda: _host_resolves(classify(buffer.get_selection()).url),
    )

    asyncio.run(titler.enhance_link_at_cursor(buffer))
    click.echo(buffer.get_value())


@app.group("config")
def config_group() -> None:
    """Inspect configuration."""


@config_group.command("show")
@click.pass_context
def config_show(ctx: Context) -> None:
    """Print the effective configuration as JSON."""
    data = _get_config(ctx).model_dump(mode="json")
    get_console().print(
        Syntax(json.dumps(data, indent=2, ensure_ascii=False), "json", word_wrap=True)
    )


@config_group.command("path")
@click.pass_context
def config_path_cmd(ctx: Context) -> None:
    """Print the path of the loaded configuration file."""
    path = ctx.obj["manager"].config_path
    click.echo(str(path) if path else "(defaults, no configuration file)")


@app.command()
@click.pass_context
def doctor(ctx: Context) -> None:
    """Check which title strategies are usable."""
    settings = _get_config(ctx).fetch

    table = Table(title="Title Strategies")
    table.add_column("Component")
    table.add_column("Status")

    key_state = settings.api_key_state
    key_status = {
        ApiKeyState.VALID: "[green]configured[/green]",
        ApiKeyState.ABSENT: "[dim]not configured[/dim]",
        ApiKeyState.MALFORMED: (
            f"[red]invalid (expected {settings.metadata_api_key_length} characters)[/red]"
        ),
    }[key_state]
    table.add_row("Metadata API key", key_status)
    table.add_row("HTTP scraper", "[green]available[/green]")
    table.add_row(
        "playwright package",
        "[green]installed[/green]" if is_playwright_available() else "[yellow]missing[/yellow]",
    )
    table.add_row(
        "Chromium browser",
        "[green]installed[/green]"
        if is_playwright_browser_installed()
        else "[yellow]missing[/yellow]",
    )
    fallback = "HTTP scraper" if settings.use_alternate_scraper else "headless render"
    table.add_row("Fallback strategy", fallback)

    get_console().print(table)
