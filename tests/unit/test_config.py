"""Tests for configuration."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from autolinktitle.config import (
    ApiKeyState,
    AppConfig,
    ConfigManager,
    EnvVarNotFoundError,
    FetchSettings,
    resolve_env_value,
)
from autolinktitle.exceptions import ConfigurationError


class TestResolveEnvValue:
    """Tests for resolve_env_value function."""

    def test_plain_value(self):
        assert resolve_env_value("abc") == "abc"

    def test_env_value(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LINKPREVIEW_KEY", "secret")
        assert resolve_env_value("env:LINKPREVIEW_KEY") == "secret"

    def test_missing_env_strict(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("MISSING_VAR_XYZ", raising=False)
        with pytest.raises(EnvVarNotFoundError) as exc_info:
            resolve_env_value("env:MISSING_VAR_XYZ")
        assert exc_info.value.var_name == "MISSING_VAR_XYZ"

    def test_missing_env_lenient(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("MISSING_VAR_XYZ", raising=False)
        assert resolve_env_value("env:MISSING_VAR_XYZ", strict=False) is None


class TestFetchSettings:
    """Tests for FetchSettings model."""

    def test_defaults(self):
        settings = FetchSettings()

        assert settings.max_title_length == 0
        assert settings.use_alternate_scraper is False
        assert settings.use_proxy_rewrite is True
        assert settings.blacklist == []
        assert settings.language == "en"
        assert settings.api_key_state is ApiKeyState.ABSENT

    def test_blacklist_string_is_split(self):
        settings = FetchSettings(blacklist="tiktok.com,\nlocalhost, ")

        assert settings.blacklist == ["tiktok.com", "localhost"]

    def test_unknown_language_falls_back(self):
        assert FetchSettings(language="fr").language == "en"
        assert FetchSettings(language="ja").language == "ja"

    def test_negative_max_title_length_rejected(self):
        with pytest.raises(ValidationError):
            FetchSettings(max_title_length=-1)

    def test_valid_api_key(self, valid_api_key: str):
        settings = FetchSettings(metadata_api_key=f"  {valid_api_key} ")

        assert settings.api_key_state is ApiKeyState.VALID
        assert settings.get_resolved_api_key() == valid_api_key

    def test_malformed_api_key(self):
        settings = FetchSettings(metadata_api_key="short")

        assert settings.api_key_state is ApiKeyState.MALFORMED

    def test_key_length_is_configurable(self):
        settings = FetchSettings(metadata_api_key="short", metadata_api_key_length=5)

        assert settings.api_key_state is ApiKeyState.VALID

    def test_api_key_from_env(self, monkeypatch: pytest.MonkeyPatch, valid_api_key: str):
        monkeypatch.setenv("LINKPREVIEW_KEY", valid_api_key)
        settings = FetchSettings(metadata_api_key="env:LINKPREVIEW_KEY")

        assert settings.api_key_state is ApiKeyState.VALID

    def test_unset_env_key_is_absent(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("LINKPREVIEW_KEY", raising=False)
        settings = FetchSettings(metadata_api_key="env:LINKPREVIEW_KEY")

        assert settings.api_key_state is ApiKeyState.ABSENT


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_defaults_without_file(self, isolated_config: Path):
        manager = ConfigManager()
        config = manager.load()

        assert config.model_dump() == AppConfig().model_dump()
        assert manager.config_path is None

    def test_load_explicit_path(self, tmp_path: Path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"fetch": {"max_title_length": 40}}), encoding="utf-8")

        manager = ConfigManager()
        config = manager.load(path)

        assert config.fetch.max_title_length == 40
        assert manager.config_path == path

    def test_env_var_path(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch):
        path = isolated_config / "from-env.json"
        path.write_text(json.dumps({"fetch": {"language": "ja"}}), encoding="utf-8")
        monkeypatch.setenv("AUTOLINKTITLE_CONFIG", str(path))

        config = ConfigManager().load()

        assert config.fetch.language == "ja"

    def test_cwd_config(self, isolated_config: Path):
        (isolated_config / "autolinktitle.json").write_text(
            json.dumps({"fetch": {"blacklist": "a.com, b.com"}}), encoding="utf-8"
        )

        config = ConfigManager().load()

        assert config.fetch.blacklist == ["a.com", "b.com"]

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            ConfigManager().load(path)

    def test_non_object_root(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigManager().load(path)
