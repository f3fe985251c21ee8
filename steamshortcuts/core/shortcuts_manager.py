"""Manage Steam Non-Steam game shortcuts (shortcuts.vdf).

Handles reading, writing, adding, and removing non-Steam game shortcuts on a
local or remote Steam install, including App-ID calculation and backups.

Loading goes binary -> generic map -> typed records; saving goes typed
records -> pivot mapping -> coerced generic map -> binary. See
``steamshortcuts.core.vdf_pivot`` for the coercion rules.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, fields
from typing import Any
from zlib import crc32

from steamshortcuts.core import vdf_parser
from steamshortcuts.core.execution import ExecutionContext
from steamshortcuts.core.steam_paths import GRID_SUFFIXES, SteamLocator
from steamshortcuts.core.vdf_pivot import coerce_generic
from steamshortcuts.errors import ParseError

__all__ = [
    "ShortcutCollection",
    "ShortcutImages",
    "ShortcutRecord",
    "ShortcutsManager",
    "decode_shortcuts",
    "dumps_json",
    "encode_pivot",
    "encode_shortcuts",
    "generate_app_id",
    "generate_preliminary_id",
    "generate_shortcut_id",
    "load",
    "save",
]

logger = logging.getLogger("steamshortcuts.shortcuts")

_ROOT_KEY = "shortcuts"


def generate_preliminary_id(exe: str, appname: str) -> int:
    """Generate preliminary Steam ID for non-Steam game.

    Args:
        exe: Executable path (quoted in shortcuts.vdf).
        appname: Display name of the game.

    Returns:
        64-bit preliminary ID.
    """
    key = (exe + appname).encode("utf-8", errors="surrogateescape")
    top = crc32(key) & 0xFFFFFFFF | 0x80000000
    return (top << 32) | 0x02000000


def generate_app_id(exe: str, appname: str) -> str:
    """Generate the Big Picture grid image ID.

    Returns:
        String App ID for Big Picture grid images.
    """
    return str(generate_preliminary_id(exe, appname))


def generate_shortcut_id(exe: str, appname: str) -> int:
    """Generate the appid field value for a new shortcuts.vdf entry.

    This is also the id used in grid image filenames.

    Returns:
        Unsigned 32-bit id with the top bit set.
    """
    return generate_preliminary_id(exe, appname) >> 32


# VDF key -> (attribute, kind). Kind drives structural decoding.
_FIELD_MAP: tuple[tuple[str, str, str], ...] = (
    ("appid", "app_id", "int"),
    ("AppName", "name", "str"),
    ("Exe", "exe", "str"),
    ("StartDir", "start_dir", "str"),
    ("icon", "icon", "str"),
    ("ShortcutPath", "shortcut_path", "str"),
    ("LaunchOptions", "launch_options", "str"),
    ("IsHidden", "is_hidden", "bool"),
    ("AllowDesktopConfig", "allow_desktop_config", "bool"),
    ("AllowOverlay", "allow_overlay", "bool"),
    ("OpenVR", "open_vr", "bool"),
    ("Devkit", "devkit", "bool"),
    ("DevkitGameID", "devkit_game_id", "str"),
    ("DevkitOverrideAppID", "devkit_override_app_id", "int"),
    ("LastPlayTime", "last_play_time", "int"),
    ("FlatpakAppID", "flatpak_app_id", "str"),
    ("tags", "tags", "tags"),
)
_KNOWN_KEYS = {vdf_key.lower() for vdf_key, _, _ in _FIELD_MAP}


@dataclass
class ShortcutImages:
    """Resolved artwork paths for display. Never written to shortcuts.vdf."""

    portrait: str | None = None
    landscape: str | None = None
    hero: str | None = None
    logo: str | None = None
    icon: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ShortcutRecord:
    """Non-Steam game shortcut entry.

    Args:
        app_id: Unsigned 32-bit shortcut id (see generate_shortcut_id()).
        name: Display name.
        exe: Executable path, usually quoted ('"path/to/exe"').
        start_dir: Working directory, usually quoted.
        icon: Icon path.
        shortcut_path: Desktop file path.
        launch_options: Command-line arguments.
        is_hidden: Whether hidden in the Steam library.
        allow_desktop_config: Allow desktop controller configuration.
        allow_overlay: Allow Steam overlay.
        open_vr: VR mode enabled.
        devkit: Developer kit mode.
        devkit_game_id: Developer kit game ID.
        devkit_override_app_id: Developer kit app ID override.
        last_play_time: Unix timestamp of last play.
        flatpak_app_id: Flatpak application ID.
        tags: Ordered category tags.
        extra: Keys found in the file that have no dedicated field.
        images: Display-only artwork paths.
    """

    app_id: int = 0
    name: str = ""
    exe: str = ""
    start_dir: str = ""
    icon: str = ""
    shortcut_path: str = ""
    launch_options: str = ""
    is_hidden: bool = False
    allow_desktop_config: bool = True
    allow_overlay: bool = True
    open_vr: bool = False
    devkit: bool = False
    devkit_game_id: str = ""
    devkit_override_app_id: int = 0
    last_play_time: int = 0
    flatpak_app_id: str = ""
    tags: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    images: ShortcutImages | None = field(default=None, compare=False)

    @classmethod
    def create(cls, name: str, exe: str, start_dir: str = "", **kwargs: Any) -> ShortcutRecord:
        """Build a new record with a generated app id."""
        return cls(app_id=generate_shortcut_id(exe, name), name=name, exe=exe, start_dir=start_dir, **kwargs)

    def to_pivot(self) -> dict[str, Any]:
        """Convert to a JSON-compatible mapping keyed by VDF field names."""
        pivot: dict[str, Any] = {}
        for vdf_key, attr, kind in _FIELD_MAP:
            value = getattr(self, attr)
            if kind == "tags":
                pivot[vdf_key] = {str(i): tag for i, tag in enumerate(value)}
            else:
                pivot[vdf_key] = value
        pivot.update(self.extra)
        return pivot

    @classmethod
    def from_pivot(cls, data: Mapping[str, Any], key: str = "?") -> ShortcutRecord:
        """Create a record from a decoded mapping.

        Key lookup is case-insensitive because Steam has written both
        ``AppName`` and ``appname`` over the years.

        Raises:
            ParseError: If a field holds a value of the wrong shape.
        """
        lowered = {str(k).lower(): v for k, v in data.items()}
        values: dict[str, Any] = {}

        for vdf_key, attr, kind in _FIELD_MAP:
            if vdf_key.lower() not in lowered:
                continue
            values[attr] = _decode_field(lowered[vdf_key.lower()], kind, f"shortcuts/{key}/{vdf_key}")

        values["extra"] = {k: v for k, v in data.items() if str(k).lower() not in _KNOWN_KEYS}
        return cls(**values)


def _decode_field(value: Any, kind: str, where: str) -> Any:
    if kind == "str":
        if not isinstance(value, str):
            raise ParseError(f"{where}: expected string, got {type(value).__name__}")
        return value
    if kind == "bool" and isinstance(value, bool):
        return value
    if kind in ("int", "bool"):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ParseError(f"{where}: expected integer, got {type(value).__name__}")
        return bool(value) if kind == "bool" else int(value)
    if kind == "tags":
        if not isinstance(value, Mapping):
            raise ParseError(f"{where}: expected map, got {type(value).__name__}")
        tags = []
        for tag in value.values():
            if not isinstance(tag, str):
                raise ParseError(f"{where}: expected string tag, got {type(tag).__name__}")
            tags.append(tag)
        return tags
    raise ValueError(f"unknown field kind {kind}")


class ShortcutCollection:
    """All shortcuts of one Steam user, keyed by ordinal strings.

    Args:
        shortcuts: Mapping of ordinal key -> record. Keys from existing files
            may have gaps; records added here get the next free ordinal.
    """

    def __init__(self, shortcuts: Mapping[str, ShortcutRecord] | None = None) -> None:
        self.shortcuts: dict[str, ShortcutRecord] = dict(shortcuts or {})

    @classmethod
    def from_records(cls, records: list[ShortcutRecord]) -> ShortcutCollection:
        return cls({str(i): record for i, record in enumerate(records)})

    def __len__(self) -> int:
        return len(self.shortcuts)

    def __iter__(self) -> Iterator[ShortcutRecord]:
        return iter(self.shortcuts.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShortcutCollection):
            return NotImplemented
        return self.shortcuts == other.shortcuts

    def __repr__(self) -> str:
        return f"<ShortcutCollection {len(self)} shortcuts>"

    def records(self) -> list[ShortcutRecord]:
        return list(self.shortcuts.values())

    def add(self, record: ShortcutRecord) -> str:
        """Append a record under the next ordinal key and return that key."""
        numeric = [int(k) for k in self.shortcuts if k.isdigit()]
        key = str(max(numeric) + 1 if numeric else 0)
        while key in self.shortcuts:
            key = str(int(key) + 1)
        self.shortcuts[key] = record
        return key

    def find_by_name(self, name: str) -> list[ShortcutRecord]:
        return [record for record in self if record.name == name]

    def remove_by_name(self, name: str) -> int:
        """Remove every record named exactly ``name``.

        The remaining records are re-keyed as a dense 0..N-1 sequence in
        their current order.

        Returns:
            Number of records removed.
        """
        remaining = [record for record in self if record.name != name]
        removed = len(self.shortcuts) - len(remaining)
        self.shortcuts = {str(i): record for i, record in enumerate(remaining)}
        return removed

    def filter_by_app_id(self, app_id: int | str) -> ShortcutCollection:
        wanted = str(app_id)
        result = ShortcutCollection()
        for record in self:
            if str(record.app_id) == wanted:
                result.add(record)
        return result

    def to_pivot(self) -> dict[str, Any]:
        return {_ROOT_KEY: {key: record.to_pivot() for key, record in self.shortcuts.items()}}

    @classmethod
    def from_pivot(cls, data: Mapping[str, Any]) -> ShortcutCollection:
        """Build a collection from a decoded mapping.

        A mapping without a ``shortcuts`` key yields an empty collection.

        Raises:
            ParseError: If ``shortcuts`` or an entry is not a mapping, or a
                field has the wrong type.
        """
        raw = data.get(_ROOT_KEY)
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ParseError(f"'{_ROOT_KEY}' must be a map, got {type(raw).__name__}")

        shortcuts: dict[str, ShortcutRecord] = {}
        for key, entry in raw.items():
            if not isinstance(entry, Mapping):
                raise ParseError(f"shortcut {key!r} must be a map, got {type(entry).__name__}")
            shortcuts[str(key)] = ShortcutRecord.from_pivot(entry, str(key))
        return cls(shortcuts)

    def to_json(self, *, include_images: bool = True) -> dict[str, Any]:
        """Return a display-oriented JSON mapping (tags as a list, images included)."""
        result: dict[str, Any] = {}
        for key, record in self.shortcuts.items():
            entry = record.to_pivot()
            entry["tags"] = list(record.tags)
            if include_images and record.images is not None:
                entry["images"] = record.images.to_dict()
            result[key] = entry
        return result


def decode_shortcuts(data: bytes) -> ShortcutCollection:
    """Parse shortcuts.vdf bytes.

    Raises:
        ParseError: On malformed binary data or an unexpected structure.
    """
    return ShortcutCollection.from_pivot(vdf_parser.binary_loads(data))


def encode_pivot(pivot: Mapping[str, Any]) -> bytes:
    """Encode a pivot mapping, dropping values binary VDF cannot hold."""
    generic = coerce_generic(pivot)
    try:
        return vdf_parser.binary_dumps(generic)
    except (TypeError, ValueError) as e:
        raise ParseError(f"cannot encode shortcuts: {e}") from e


def encode_shortcuts(collection: ShortcutCollection) -> bytes:
    return encode_pivot(collection.to_pivot())


def load(context: ExecutionContext, path: str) -> ShortcutCollection:
    """Read and decode a shortcuts file through ``context``.

    Raises:
        FileAccessError: If the file cannot be read.
        ParseError: If the content is malformed.
    """
    return decode_shortcuts(context.read_file(path))


def save(collection: ShortcutCollection, context: ExecutionContext, path: str) -> None:
    """Encode ``collection`` and write it through ``context``.

    Encoding happens completely before the write, so an encoding failure
    leaves the destination untouched. The write itself is not atomic.

    Raises:
        ParseError: If the collection cannot be encoded.
        FileAccessError: If the file cannot be written.
    """
    data = encode_shortcuts(collection)
    context.write_file(path, data, 0o666)
    logger.info("Wrote %d shortcuts to %s", len(collection), path)


class ShortcutsManager:
    """Manage the shortcuts.vdf of one Steam user.

    Provides read/add/remove with timestamped backups, local or remote.

    Args:
        locator: Resolver bound to the execution context.
        user: Steam user directory name (e.g. "43925226").
        max_backups: How many ``shortcuts.vdf.bak.<ts>`` files to keep.
    """

    def __init__(self, locator: SteamLocator, user: str, max_backups: int = 5) -> None:
        self.locator = locator
        self.user = user
        self.max_backups = max_backups

    @property
    def context(self) -> ExecutionContext:
        return self.locator.context

    def get_shortcuts_path(self) -> str:
        return self.locator.shortcuts_path(self.user)

    def read(self) -> ShortcutCollection:
        """Read all shortcuts; an absent file is an empty collection."""
        path = self.get_shortcuts_path()
        if not self.context.exists(path):
            return ShortcutCollection()
        return load(self.context, path)

    def write(self, collection: ShortcutCollection) -> None:
        """Write shortcuts.vdf, backing up the existing file first."""
        path = self.get_shortcuts_path()
        if self.max_backups > 0 and self.context.exists(path):
            self._create_backup(path)
        save(collection, self.context, path)

    def add(self, record: ShortcutRecord) -> str:
        collection = self.read()
        key = collection.add(record)
        self.write(collection)
        return key

    def remove(self, name: str) -> int:
        """Remove shortcuts named ``name``; the file is only rewritten if any matched."""
        collection = self.read()
        removed = collection.remove_by_name(name)
        if removed:
            self.write(collection)
        return removed

    def attach_images(self, collection: ShortcutCollection) -> None:
        """Populate ``record.images`` from the user's grid directory."""
        for record in collection:
            found = {kind: self.locator.find_grid_image(self.user, record.app_id, kind) for kind in GRID_SUFFIXES}
            record.images = ShortcutImages(**found)

    def _create_backup(self, path: str) -> None:
        """Create a timestamped backup of shortcuts.vdf.

        Keeps at most ``max_backups`` backup files. Failures are logged only.
        """
        backup = f"{path}.bak.{int(time.time())}"
        try:
            self.context.write_file(backup, self.context.read_file(path), 0o666)
            logger.debug("Created backup: %s", backup)
        except OSError as e:
            logger.warning("Failed to create backup: %s", e)
            return

        # Prune old backups
        directory = self.context.path.dirname(path)
        prefix = self.context.path.basename(path) + ".bak."
        try:
            entries = self.context.list_dir(directory)
        except OSError as e:
            logger.debug("Could not list %s for backup pruning: %s", directory, e)
            return
        backups = sorted(
            (e.name for e in entries if e.name.startswith(prefix) and e.name[len(prefix):].isdigit()),
            key=lambda name: int(name[len(prefix):]),
            reverse=True,
        )
        for old in backups[self.max_backups:]:
            self.context.try_remove(self.context.path.join(directory, old))


def dumps_json(collections: Mapping[str, ShortcutCollection]) -> str:
    """Serialize per-user collections for ``--output json``."""
    return json.dumps({user: c.to_json() for user, c in collections.items()}, indent=2)
