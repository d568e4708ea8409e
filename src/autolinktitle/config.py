"""Configuration management for autolinktitle."""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from autolinktitle.blacklist import parse_blacklist
from autolinktitle.constants import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    DEFAULT_LANGUAGE,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
    DEFAULT_METADATA_API_ENDPOINT,
    DEFAULT_METADATA_API_KEY_LENGTH,
    DEFAULT_METADATA_API_TIMEOUT,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_RENDER_TIMEOUT_MS,
    DEFAULT_SCRAPE_TIMEOUT,
    SUPPORTED_LANGUAGES,
)
from autolinktitle.exceptions import ConfigurationError


class EnvVarNotFoundError(ConfigurationError):
    """Raised when an environment variable referenced by env: syntax is not found."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(f"Environment variable not found: {var_name}")


def resolve_env_value(value: str, strict: bool = True) -> str | None:
    """Resolve env:VAR_NAME syntax to actual environment variable value.

    Args:
        value: The value to resolve. If starts with "env:", looks up environment variable.
        strict: If True, raises EnvVarNotFoundError when variable not found.
                If False, returns None when variable not found.

    Returns:
        The resolved value, or None if env var not found and strict=False.

    Raises:
        EnvVarNotFoundError: If strict=True and environment variable not found.
    """
    if isinstance(value, str) and value.startswith("env:"):
        env_var = value[4:]
        env_value = os.environ.get(env_var)
        if env_value is None:
            if strict:
                raise EnvVarNotFoundError(env_var)
            return None
        return env_value
    return value


class ApiKeyState(Enum):
    """Shape of the configured metadata-API key."""

    ABSENT = "absent"
    VALID = "valid"
    MALFORMED = "malformed"


class FetchSettings(BaseModel):
    """Settings snapshot read by the title pipeline.

    The core never mutates this; a fresh snapshot is taken per invocation.
    """

    metadata_api_key: str = ""  # Supports env: syntax
    metadata_api_key_length: int = Field(default=DEFAULT_METADATA_API_KEY_LENGTH, ge=0)
    metadata_api_endpoint: str = DEFAULT_METADATA_API_ENDPOINT
    use_alternate_scraper: bool = False  # HTTP scrape instead of headless render
    use_proxy_rewrite: bool = True
    max_title_length: int = Field(default=0, ge=0)  # 0 = unlimited
    ignore_code_regions: bool = True
    blacklist: list[str] = Field(default_factory=list)
    use_better_placeholder: bool = False  # zero-width placeholder mode
    preserve_selection_as_title: bool = False
    enhance_default_paste: bool = True
    enhance_drop_events: bool = True
    language: str = DEFAULT_LANGUAGE
    probe_timeout: float = Field(default=DEFAULT_PROBE_TIMEOUT, gt=0)  # seconds
    scrape_timeout: float = Field(default=DEFAULT_SCRAPE_TIMEOUT, gt=0)  # seconds
    metadata_api_timeout: float = Field(default=DEFAULT_METADATA_API_TIMEOUT, gt=0)
    render_timeout_ms: int = Field(default=DEFAULT_RENDER_TIMEOUT_MS, gt=0)

    @field_validator("blacklist", mode="before")
    @classmethod
    def _split_blacklist(cls, value: Any) -> list[str]:
        return parse_blacklist(value)

    @field_validator("language")
    @classmethod
    def _known_language(cls, value: str) -> str:
        return value if value in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE

    def get_resolved_api_key(self) -> str:
        """Get the metadata-API key with env: syntax resolved and trimmed.

        An unset environment variable counts as no key.
        """
        if not self.metadata_api_key:
            return ""
        return (resolve_env_value(self.metadata_api_key, strict=False) or "").strip()

    @property
    def api_key_state(self) -> ApiKeyState:
        key = self.get_resolved_api_key()
        if not key:
            return ApiKeyState.ABSENT
        if self.metadata_api_key_length and len(key) != self.metadata_api_key_length:
            return ApiKeyState.MALFORMED
        return ApiKeyState.VALID


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = DEFAULT_LOG_LEVEL
    dir: str | None = DEFAULT_LOG_DIR
    rotation: str = DEFAULT_LOG_ROTATION
    retention: str = DEFAULT_LOG_RETENTION


class AppConfig(BaseModel):
    """Main configuration model."""

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    log: LogConfig = Field(default_factory=LogConfig)


class ConfigManager:
    """Configuration manager for loading configs."""

    CONFIG_FILENAME = CONFIG_FILENAME
    DEFAULT_USER_CONFIG_DIR = Path.home() / ".autolinktitle"

    def __init__(self) -> None:
        self._config: AppConfig | None = None
        self._config_path: Path | None = None

    @property
    def config(self) -> AppConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def config_path(self) -> Path | None:
        """Get the path of the loaded configuration file."""
        return self._config_path

    def load(
        self,
        config_path: Path | str | None = None,
        env_override: bool = True,
    ) -> AppConfig:
        """
        Load configuration from file with fallback chain.

        Priority (highest to lowest):
        1. Explicit config_path parameter
        2. AUTOLINKTITLE_CONFIG environment variable
        3. ./autolinktitle.json (current directory)
        4. ~/.autolinktitle/config.json (user directory)
        5. Default values
        """
        config_data: dict[str, Any] = {}

        resolved_path = self._resolve_config_path(config_path, env_override)

        if resolved_path and resolved_path.exists():
            config_data = self._load_json(resolved_path)
            self._config_path = resolved_path

        self._config = AppConfig.model_validate(config_data)
        return self._config

    def _resolve_config_path(
        self,
        config_path: Path | str | None,
        env_override: bool,
    ) -> Path | None:
        """Resolve configuration file path based on priority."""
        if config_path:
            return Path(config_path)

        if env_override:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            if env_path:
                return Path(env_path)

        cwd_config = Path.cwd() / self.CONFIG_FILENAME
        if cwd_config.exists():
            return cwd_config

        user_config = self.DEFAULT_USER_CONFIG_DIR / "config.json"
        if user_config.exists():
            return user_config

        return None

    def _load_json(self, path: Path) -> dict[str, Any]:
        """Load JSON configuration file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be an object: {path}")
        return data

