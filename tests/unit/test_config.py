"""Tests for settings.json and environment layering."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from steamshortcuts.config import Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("STEAMGRIDDB_API_KEY", "STEAM_SSH_HOST", "STEAM_SSH_PORT", "STEAM_SSH_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    """Tests for Config loading and saving."""

    def test_defaults(self, tmp_path: Path) -> None:
        cfg = Config(DATA_DIR=tmp_path)
        assert cfg.SETTINGS_FILE == tmp_path / "settings.json"
        assert cfg.SSH_PORT == 22
        assert cfg.CEF_DEBUG_URL == "http://localhost:8080/json"
        assert cfg.MAX_BACKUPS == 5

    def test_settings_file_then_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "settings.json").write_text(json.dumps({"ssh_host": "deck", "ssh_port": 2222}))
        monkeypatch.setenv("STEAM_SSH_HOST", "steamdeck.lan")

        cfg = Config(DATA_DIR=tmp_path)

        assert cfg.SSH_HOST == "steamdeck.lan"
        assert cfg.SSH_PORT == 2222

    def test_invalid_env_port_is_ignored(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STEAM_SSH_PORT", "not-a-port")
        assert Config(DATA_DIR=tmp_path).SSH_PORT == 22

    def test_broken_settings_file_is_not_fatal(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text("{broken")
        assert Config(DATA_DIR=tmp_path).SSH_HOST is None

    def test_settings_file_with_invalid_utf8_is_not_fatal(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_bytes(b'{"ssh_host": "caf\xe9"}')
        assert Config(DATA_DIR=tmp_path).SSH_HOST is None

    def test_settings_file_not_an_object_is_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text("[]")
        cfg = Config(DATA_DIR=tmp_path)
        assert cfg.SSH_HOST is None
        assert cfg.SSH_PORT == 22

    def test_invalid_numbers_in_settings_keep_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text(
            json.dumps({"ssh_host": "deck", "ssh_port": "twenty-two", "http_timeout": [], "max_backups": "3"})
        )
        cfg = Config(DATA_DIR=tmp_path)
        assert cfg.SSH_HOST == "deck"
        assert cfg.SSH_PORT == 22
        assert cfg.HTTP_TIMEOUT == 10
        assert cfg.MAX_BACKUPS == 3

    def test_save_omits_password(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STEAM_SSH_PASSWORD", "hunter2")
        cfg = Config(DATA_DIR=tmp_path / "nested")
        cfg.SSH_USER = "deck"
        cfg.save()

        data = json.loads((tmp_path / "nested" / "settings.json").read_text())
        assert data["ssh_user"] == "deck"
        assert "hunter2" not in json.dumps(data)
