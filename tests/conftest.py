# tests/conftest.py
import struct
from io import BytesIO
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from steamshortcuts.core.execution import LocalContext
from steamshortcuts.core.steam_paths import SteamLocator
from steamshortcuts.core.vdf_parser import BIN_END, BIN_INT32, BIN_NONE, BIN_STRING


def _entry(buf: BytesIO, key: str, appid: int, name: str, exe: str, tags: list[str]) -> None:
    buf.write(BIN_NONE + key.encode() + b"\x00")
    buf.write(BIN_INT32 + b"appid\x00" + struct.pack("<I", appid))
    buf.write(BIN_STRING + b"AppName\x00" + name.encode() + b"\x00")
    buf.write(BIN_STRING + b"Exe\x00" + exe.encode() + b"\x00")
    buf.write(BIN_STRING + b"StartDir\x00" + b'"/games"\x00')
    buf.write(BIN_INT32 + b"IsHidden\x00" + struct.pack("<I", 0))
    buf.write(BIN_INT32 + b"AllowOverlay\x00" + struct.pack("<I", 1))
    buf.write(BIN_NONE + b"tags\x00")
    for i, tag in enumerate(tags):
        buf.write(BIN_STRING + str(i).encode() + b"\x00" + tag.encode() + b"\x00")
    buf.write(BIN_END)
    buf.write(BIN_END)


@pytest.fixture
def shortcuts_bytes() -> bytes:
    """Binary shortcuts.vdf with three entries, two of them named "Dup"."""
    buf = BytesIO()
    buf.write(BIN_NONE + b"shortcuts\x00")
    _entry(buf, "0", 0xC0FFEE01, "Alpha", '"/games/alpha"', ["RPG", "Favorite"])
    _entry(buf, "1", 0x80000002, "Dup", '"/games/dup"', [])
    _entry(buf, "2", 0x90000003, "Dup", '"/games/dup2"', ["Indie"])
    buf.write(BIN_END)
    buf.write(BIN_END)
    return buf.getvalue()


@pytest.fixture
def steam_root(tmp_path: Path) -> Path:
    """Fake Steam base directory with two users and a stray file in userdata."""
    root = tmp_path / "steam"
    userdata = root / "userdata"
    (userdata / "11111" / "config").mkdir(parents=True)
    (userdata / "22222" / "config").mkdir(parents=True)
    (userdata / "notes.txt").write_text("not a user")
    return root


@pytest.fixture
def local_locator(steam_root: Path) -> SteamLocator:
    """SteamLocator on the local filesystem rooted at steam_root."""
    return SteamLocator(LocalContext(), str(steam_root))


@pytest.fixture
def mock_client() -> MagicMock:
    """Connected RemoteClient stand-in."""
    client = MagicMock()
    client.host = "deck.local"
    client.port = 22
    client.home_directory.return_value = "/home/deck"
    return client
