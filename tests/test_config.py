"""Tests for configuration loading, XDG paths and atomic writes."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from arcauth.config import (
    atomic_write,
    get_config_dir,
    get_data_dir,
    load_configuration,
    save_configuration,
)
from arcauth.exceptions import ConfigError
from arcauth.models import AuthenticationConfiguration


class TestDirectories:
    def test_xdg_dirs(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "arcauth"
        assert get_data_dir() == isolated_config / "data" / "arcauth"
        assert get_config_dir().is_dir()
        assert get_data_dir().is_dir()

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("arcauth.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".arcauth"
        assert get_data_dir() == tmp_path / ".arcauth" / "data"


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "file.json"
        atomic_write(target, '{"a": 1}')
        assert json.loads(target.read_text()) == {"a": 1}

    def test_replaces_existing(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        atomic_write(target, "one")
        atomic_write(target, "two")
        assert target.read_text() == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "secret"
        atomic_write(target, "s3cret", mode=0o600)
        assert stat.S_IMODE(target.stat().st_mode) == 0o600


class TestLoadConfiguration:
    def test_defaults_without_file(self, isolated_config: Path) -> None:
        assert load_configuration() == AuthenticationConfiguration()

    def test_save_and_load(self, isolated_config: Path) -> None:
        config = AuthenticationConfiguration(
            server_base_url="https://api.example.com",
            verify_apple_credentials_on_restore=False,
        )
        save_configuration(config)
        assert load_configuration() == config

    def test_env_overrides_file(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        save_configuration(AuthenticationConfiguration(server_base_url="https://file.example.com"))
        monkeypatch.setenv("ARCAUTH_SERVER_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("ARCAUTH_VERIFY_ON_RESTORE", "no")
        monkeypatch.setenv("ARCAUTH_PERSIST_DISPLAY_NAME", "0")

        config = load_configuration()

        assert config.server_base_url == "https://env.example.com"
        assert config.verify_apple_credentials_on_restore is False
        assert config.persist_display_name_in_preferences is False

    def test_bad_boolean_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ARCAUTH_VERIFY_ON_RESTORE", "maybe")
        with pytest.raises(ConfigError, match="ARCAUTH_VERIFY_ON_RESTORE"):
            load_configuration()

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_configuration(path)

    def test_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_configuration(path)

    def test_invalid_field(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"verify_apple_credentials_on_restore": "sometimes"}))
        with pytest.raises(ConfigError):
            load_configuration(path)
