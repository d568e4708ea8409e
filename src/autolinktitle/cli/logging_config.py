"""Logging configuration for the autolinktitle CLI.

- Unified loguru-based logging with consistent formatting
- Intercepts third-party library logs (httpx, httpcore, playwright)
- Optional rotating file sink
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

from click import Context
from loguru import logger

from autolinktitle import __version__
from autolinktitle.constants import LOG_DIR_ENV_VAR

# Third-party loggers to intercept and route to loguru
INTERCEPTED_LOGGERS = [
    "httpx",
    "httpcore",
    "playwright",
    "playwright.async_api",
    "asyncio",
]


class InterceptHandler(logging.Handler):
    """Intercept standard logging and forward to loguru.

    Uses the record's own location info instead of tracing call frames.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(
            name=record.name,
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        ).opt(exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    verbose: bool,
    log_dir: str | None = None,
    log_level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> tuple[int, Path | None]:
    """Configure loguru sinks.

    Args:
        verbose: Show DEBUG output on the console (INFO+ otherwise)
        log_dir: Directory for log files. Supports ~ expansion.
                 Can be overridden by AUTOLINKTITLE_LOG_DIR env var.
        log_level: Log level for file output.
        rotation: Log file rotation size.
        retention: Log file retention period.

    Returns:
        Tuple of (console_handler_id, log_file_path). Log file path is None
        if file logging is disabled.
    """
    from datetime import datetime

    logger.remove()

    console_handler_id = logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        filter=lambda record: _should_show_log(record, verbose),
    )

    env_log_dir = os.environ.get(LOG_DIR_ENV_VAR)
    if env_log_dir:
        log_dir = env_log_dir

    log_file_path: Path | None = None
    if log_dir:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        log_file_path = log_path / f"autolinktitle_{timestamp}.log"
        logger.add(
            log_file_path,
            level=log_level,
            rotation=rotation,
            retention=retention,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <5} | {module}:{line: <3} | {message}",
        )

    _setup_log_interception()

    return console_handler_id, log_file_path


def _setup_log_interception() -> None:
    """Route third-party stdlib logging into loguru (WARNING+ only)."""
    intercept_handler = InterceptHandler()

    for logger_name in INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(logger_name)
        stdlib_logger.handlers.clear()
        stdlib_logger.addHandler(intercept_handler)
        stdlib_logger.propagate = False
        stdlib_logger.setLevel(logging.WARNING)


def _is_third_party_log(name: str) -> bool:
    """Check if a log comes from an intercepted library.

    Exact or dotted-prefix match, so "httpx" matches "httpx.client".
    """
    name_lower = name.lower()
    return any(
        name_lower == intercepted.lower() or name_lower.startswith(f"{intercepted.lower()}.")
        for intercepted in INTERCEPTED_LOGGERS
    )


def _should_show_log(record: Any, verbose: bool) -> bool:
    """Console filter: hide third-party INFO/DEBUG unless verbose."""
    level = record["level"].name
    if level in ("WARNING", "ERROR", "CRITICAL"):
        return True

    name = record.get("extra", {}).get("name", "")
    if name and _is_third_party_log(name):
        return verbose

    return True


def print_version(ctx: Context, param: Any, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    from autolinktitle.cli.console import get_console

    get_console().print(f"autolinktitle {__version__}")
    ctx.exit(0)
