"""Tests for Steam path resolution."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from steamshortcuts.core.execution import DirEntry, LocalContext, RemoteContext
from steamshortcuts.core.steam_paths import SteamLocator, local_base_directory
from steamshortcuts.errors import FileAccessError, NoUsersFound, SteamPathNotFound


class TestLocalBaseDirectory:
    """Tests for platform-specific base directory detection."""

    def test_posix_uses_home(self, tmp_path: Path) -> None:
        with (
            patch("steamshortcuts.core.steam_paths.platform.system", return_value="Linux"),
            patch("steamshortcuts.core.steam_paths.Path.home", return_value=tmp_path),
        ):
            assert local_base_directory() == str(tmp_path / ".steam" / "steam")

    @staticmethod
    def _fake_winreg(present: dict[str, str]) -> MagicMock:
        fake = MagicMock()

        def open_key(root, subkey, reserved, access):
            if subkey not in present:
                raise FileNotFoundError(subkey)
            key = MagicMock()
            key.__enter__.return_value = subkey
            return key

        fake.OpenKey.side_effect = open_key
        fake.QueryValueEx.side_effect = lambda subkey, name: (present[subkey], 1)
        return fake

    def test_windows_prefers_wow6432node(self) -> None:
        fake = self._fake_winreg(
            {
                r"SOFTWARE\Wow6432Node\Valve\Steam": r"C:\Program Files (x86)\Steam",
                r"SOFTWARE\Valve\Steam": r"D:\Steam",
            }
        )
        with (
            patch("steamshortcuts.core.steam_paths.platform.system", return_value="Windows"),
            patch.dict(sys.modules, {"winreg": fake}),
        ):
            assert local_base_directory() == r"C:\Program Files (x86)\Steam"
        fake.QueryValueEx.assert_called_once_with(r"SOFTWARE\Wow6432Node\Valve\Steam", "InstallPath")

    def test_windows_falls_back_to_plain_key(self) -> None:
        fake = self._fake_winreg({r"SOFTWARE\Valve\Steam": r"D:\Steam"})
        with (
            patch("steamshortcuts.core.steam_paths.platform.system", return_value="Windows"),
            patch.dict(sys.modules, {"winreg": fake}),
        ):
            assert local_base_directory() == r"D:\Steam"
        assert fake.OpenKey.call_count == 2

    def test_windows_without_registry_entry_raises(self) -> None:
        fake = self._fake_winreg({})
        with (
            patch("steamshortcuts.core.steam_paths.platform.system", return_value="Windows"),
            patch.dict(sys.modules, {"winreg": fake}),
            pytest.raises(SteamPathNotFound),
        ):
            local_base_directory()


class TestSteamLocator:
    """Tests for user discovery and path building."""

    def test_list_users_returns_only_directories(self, local_locator: SteamLocator) -> None:
        assert sorted(local_locator.list_users()) == ["11111", "22222"]

    def test_list_users_missing_userdata(self, tmp_path: Path) -> None:
        locator = SteamLocator(LocalContext(), str(tmp_path / "nothing"))
        with pytest.raises(FileAccessError):
            locator.list_users()

    def test_shortcuts_path(self, local_locator: SteamLocator, steam_root: Path) -> None:
        expected = steam_root / "userdata" / "11111" / "config" / "shortcuts.vdf"
        assert local_locator.shortcuts_path("11111") == str(expected)

    def test_has_shortcuts(self, local_locator: SteamLocator, steam_root: Path) -> None:
        (steam_root / "userdata" / "11111" / "config" / "shortcuts.vdf").write_bytes(b"")
        assert local_locator.has_shortcuts("11111") is True
        assert local_locator.has_shortcuts("22222") is False

    def test_default_grid_directory_uses_first_user(self, mock_client: MagicMock) -> None:
        context = RemoteContext(mock_client)
        with patch.object(context, "list_dir", return_value=[DirEntry("777", True)]):
            grid = SteamLocator(context).default_grid_directory()
        assert grid == "/home/deck/.steam/steam/userdata/777/config/grid"

    def test_default_grid_directory_no_users(self, tmp_path: Path) -> None:
        (tmp_path / "userdata").mkdir()
        with pytest.raises(NoUsersFound):
            SteamLocator(LocalContext(), str(tmp_path)).default_grid_directory()

    def test_default_grid_directory_missing_userdata(self, tmp_path: Path) -> None:
        with pytest.raises(NoUsersFound):
            SteamLocator(LocalContext(), str(tmp_path)).default_grid_directory()

    def test_remote_base_directory_uses_remote_home(self, mock_client: MagicMock) -> None:
        locator = SteamLocator(RemoteContext(mock_client))
        assert locator.user_directory() == "/home/deck/.steam/steam/userdata"

    def test_find_grid_image_extension_order(self, local_locator: SteamLocator, steam_root: Path) -> None:
        grid = steam_root / "userdata" / "11111" / "config" / "grid"
        grid.mkdir()
        (grid / "42_hero.webp").write_bytes(b"x")
        (grid / "42_hero.jpg").write_bytes(b"x")
        assert local_locator.find_grid_image("11111", 42, "hero") == str(grid / "42_hero.jpg")
        assert local_locator.find_grid_image("11111", 42, "landscape") is None
