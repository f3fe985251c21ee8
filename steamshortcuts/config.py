"""
Configuration - settings file, environment and .env handling.

Values are layered: built-in defaults, then settings.json, then environment
variables (a .env file in the working directory is honoured). Command-line
flags override all of these in the CLI.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("steamshortcuts.config")


__all__ = ["Config", "config"]

# Environment variable -> (attribute, converter)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "STEAMGRIDDB_API_KEY": ("STEAMGRIDDB_API_KEY", str),
    "STEAM_SSH_HOST": ("SSH_HOST", str),
    "STEAM_SSH_PORT": ("SSH_PORT", int),
    "STEAM_SSH_USER": ("SSH_USER", str),
    "STEAM_SSH_PASSWORD": ("SSH_PASSWORD", str),
    "STEAM_SSH_KEY": ("SSH_KEY_FILE", str),
    "STEAM_CEF_DEBUG_URL": ("CEF_DEBUG_URL", str),
}


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "steam-shortcut-manager"


@dataclass
class Config:
    """
    Central configuration handling for the application.
    Manages the data directory, API keys, SSH defaults and HTTP settings.
    """

    DATA_DIR: Path = field(default_factory=_default_data_dir)
    SETTINGS_FILE: Path | None = None

    # API KEYS
    STEAMGRIDDB_API_KEY: str | None = None

    # Remote host defaults
    SSH_HOST: str | None = None
    SSH_PORT: int = 22
    SSH_USER: str | None = None
    SSH_PASSWORD: str | None = None  # Runtime-only, NOT persisted to JSON
    SSH_KEY_FILE: str | None = None

    CEF_DEBUG_URL: str = "http://localhost:8080/json"
    HTTP_TIMEOUT: int = 10
    MAX_BACKUPS: int = 5
    LOG_LEVEL: str = "INFO"

    def __post_init__(self):
        """Load settings and environment overrides after instantiation."""
        if self.SETTINGS_FILE is None:
            self.SETTINGS_FILE = self.DATA_DIR / "settings.json"

        self._load_settings()

        load_dotenv()
        self._apply_environment()

    def _load_settings(self) -> None:
        """Load settings from JSON file."""
        if not self.SETTINGS_FILE.exists():
            return

        try:
            with open(self.SETTINGS_FILE, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load settings from %s: %s", self.SETTINGS_FILE, e)
            return

        if not isinstance(data, dict):
            logger.error("Ignoring settings in %s: expected a JSON object", self.SETTINGS_FILE)
            return

        self.STEAMGRIDDB_API_KEY = data.get("steamgriddb_api_key", self.STEAMGRIDDB_API_KEY)
        self.SSH_HOST = data.get("ssh_host", self.SSH_HOST)
        self.SSH_USER = data.get("ssh_user", self.SSH_USER)
        self.SSH_KEY_FILE = data.get("ssh_key_file", self.SSH_KEY_FILE)
        self.CEF_DEBUG_URL = data.get("cef_debug_url", self.CEF_DEBUG_URL)
        self.LOG_LEVEL = data.get("log_level", self.LOG_LEVEL)

        numeric = (("ssh_port", "SSH_PORT"), ("http_timeout", "HTTP_TIMEOUT"), ("max_backups", "MAX_BACKUPS"))
        for key, attr in numeric:
            if data.get(key) is None:
                continue
            try:
                setattr(self, attr, int(data[key]))
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid %s in %s: %r", key, self.SETTINGS_FILE, data[key])

    def _apply_environment(self) -> None:
        for env_name, (attr, convert) in _ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if not raw:
                continue
            try:
                setattr(self, attr, convert(raw))
            except ValueError:
                logger.warning("Ignoring invalid value for %s: %r", env_name, raw)

    def save(self) -> None:
        """Save current configuration to JSON file."""
        data = {
            "steamgriddb_api_key": self.STEAMGRIDDB_API_KEY,
            "ssh_host": self.SSH_HOST,
            "ssh_port": self.SSH_PORT,
            "ssh_user": self.SSH_USER,
            "ssh_key_file": self.SSH_KEY_FILE,
            "cef_debug_url": self.CEF_DEBUG_URL,
            "http_timeout": self.HTTP_TIMEOUT,
            "max_backups": self.MAX_BACKUPS,
            "log_level": self.LOG_LEVEL,
        }

        try:
            self.SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
            with open(self.SETTINGS_FILE, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error("Failed to save settings to %s: %s", self.SETTINGS_FILE, e)


config = Config()
