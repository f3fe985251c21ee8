"""Locate Steam directories for the active execution context.

Layout produced and consumed::

    <base>/userdata/<user>/config/shortcuts.vdf
    <base>/userdata/<user>/config/grid/<appId>[suffix].<ext>

Locally the base directory follows the platform convention (``~/.steam/steam``
on POSIX, the registry on Windows). Remote hosts are assumed to be POSIX, so
the base directory is always ``<remote home>/.steam/steam``.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from steamshortcuts.core.execution import ExecutionContext
from steamshortcuts.errors import FileAccessError, NoUsersFound, SteamPathNotFound

__all__ = [
    "GRID_IMAGE_EXTENSIONS",
    "GRID_SUFFIXES",
    "SteamLocator",
    "local_base_directory",
]

logger = logging.getLogger("steamshortcuts.paths")

# Image kind -> filename suffix appended to the app id
GRID_SUFFIXES = {
    "portrait": "p",
    "landscape": "",
    "hero": "_hero",
    "logo": "_logo",
    "icon": "_icon",
}

GRID_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")

_REGISTRY_KEYS = (
    r"SOFTWARE\Wow6432Node\Valve\Steam",  # 64-bit Windows
    r"SOFTWARE\Valve\Steam",
)


def local_base_directory() -> str:
    """Return this machine's Steam base directory.

    Returns:
        ``~/.steam/steam`` on Linux/macOS, the registry ``InstallPath`` on Windows.

    Raises:
        SteamPathNotFound: If the Windows registry has no Steam entry.
    """
    if platform.system() != "Windows":
        return str(Path.home() / ".steam" / "steam")

    import winreg

    for subkey in _REGISTRY_KEYS:
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, subkey, 0, winreg.KEY_QUERY_VALUE) as key:
                install_path, _ = winreg.QueryValueEx(key, "InstallPath")
                return str(install_path)
        except OSError:
            logger.debug("Steam registry key not found: %s", subkey)
            continue

    raise SteamPathNotFound("cannot find steam registry key")


class SteamLocator:
    """Resolve Steam paths through an execution context.

    Args:
        context: Local or remote context used for every filesystem query.
        base_dir: Optional explicit Steam base directory, bypassing detection.
    """

    def __init__(self, context: ExecutionContext, base_dir: str | None = None) -> None:
        self.context = context
        self._base_dir = base_dir

    def base_directory(self) -> str:
        if self._base_dir:
            return self._base_dir
        if self.context.is_remote:
            return self.context.path.join(self.context.home_dir(), ".steam", "steam")
        return local_base_directory()

    def user_directory(self) -> str:
        return self.context.path.join(self.base_directory(), "userdata")

    def list_users(self) -> list[str]:
        """Return the names of the subdirectories of userdata.

        Names are returned as-is; they are usually numeric account ids but
        that is not checked.
        """
        entries = self.context.list_dir(self.user_directory())
        return [entry.name for entry in entries if entry.is_dir]

    def shortcuts_path(self, user: str) -> str:
        return self.context.path.join(self.user_directory(), user, "config", "shortcuts.vdf")

    def has_shortcuts(self, user: str) -> bool:
        return self.context.exists(self.shortcuts_path(user))

    def grid_directory(self, user: str) -> str:
        return self.context.path.join(self.user_directory(), user, "config", "grid")

    def default_grid_directory(self) -> str:
        """Grid directory of the first discovered user.

        Raises:
            NoUsersFound: If userdata is missing, unreadable or empty.
        """
        try:
            users = self.list_users()
        except FileAccessError as e:
            raise NoUsersFound(f"no Steam users found on {self.context.describe()}: {e}") from e
        if not users:
            raise NoUsersFound(f"no Steam users found on {self.context.describe()}")
        return self.grid_directory(users[0])

    def find_grid_image(self, user: str, app_id: int | str, kind: str) -> str | None:
        """Return the first existing grid image of ``kind`` for an app.

        Args:
            user: Steam user directory name.
            app_id: Shortcut app id.
            kind: One of ``GRID_SUFFIXES``.

        Returns:
            Path of the image, or None if no file exists.
        """
        suffix = GRID_SUFFIXES[kind]
        grid_dir = self.grid_directory(user)
        for ext in GRID_IMAGE_EXTENSIONS:
            candidate = self.context.path.join(grid_dir, f"{app_id}{suffix}{ext}")
            if self.context.exists(candidate):
                return candidate
        return None
