# steamshortcuts/core/steam_assets.py

"""
Applies custom artwork (grids, hero, logo, icon) to Steam shortcuts.

Each image slot is processed on its own by walking an ordered list of
strategies until one succeeds:

1. ``DebugProtocolStrategy`` - live injection through Steam's CEF debugger
   (not used for icons)
2. ``FilesystemStrategy`` - download into ``userdata/<user>/config/grid``

A failing slot is logged and never stops the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from urllib.parse import urlsplit

import requests

from steamshortcuts.config import config
from steamshortcuts.core.steam_paths import SteamLocator
from steamshortcuts.errors import ArtworkConfigError, ExternalAPIError, SteamShortcutsError
from steamshortcuts.integrations.debug_protocol import AssetType, DebugProtocolInjector

logger = logging.getLogger("steamshortcuts.assets")

__all__ = [
    "ARTWORK_SLOTS",
    "ArtworkApplier",
    "ArtworkConfig",
    "ArtworkSlot",
    "ArtworkStrategy",
    "DebugProtocolStrategy",
    "DownloadedImage",
    "FilesystemStrategy",
    "download_image",
    "extension_for",
]

DEFAULT_EXTENSION = ".png"

_CONTENT_TYPE_EXTENSIONS = (
    ("png", ".png"),
    ("jpeg", ".jpg"),
    ("jpg", ".jpg"),
    ("webp", ".webp"),
    ("gif", ".gif"),
)

_URL_EXTENSIONS = (
    (".webp", ".webp"),
    (".png", ".png"),
    (".jpg", ".jpg"),
    (".jpeg", ".jpg"),
    (".gif", ".gif"),
)


@dataclass
class ArtworkConfig:
    """Image URLs for one shortcut. Empty slots are skipped."""

    grid_portrait: str | None = None  # 600x900
    grid_landscape: str | None = None  # 920x430
    hero: str | None = None  # 1920x620
    logo: str | None = None
    icon: str | None = None

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class ArtworkSlot:
    """One artwork slot and how it maps onto grid files and the CEF API."""

    name: str
    suffix: str
    asset_type: AssetType | None  # None: filesystem only

    def filename(self, app_id: int | str, extension: str) -> str:
        return f"{app_id}{self.suffix}{extension}"


# Order matters: it is the processing order.
ARTWORK_SLOTS = (
    ArtworkSlot("grid_portrait", "p", AssetType.GRID_PORTRAIT),
    ArtworkSlot("grid_landscape", "", AssetType.GRID_LANDSCAPE),
    ArtworkSlot("hero", "_hero", AssetType.HERO),
    ArtworkSlot("logo", "_logo", AssetType.LOGO),
    ArtworkSlot("icon", "_icon", None),
)


@dataclass(frozen=True)
class DownloadedImage:
    data: bytes
    content_type: str
    url: str

    @property
    def extension(self) -> str:
        return extension_for(self.content_type, self.url)


def extension_for(content_type: str | None, url: str) -> str:
    """
    Picks a file extension for a downloaded image.

    The Content-Type header wins; otherwise the URL path suffix is used
    (query string ignored); otherwise ``.png``.
    """
    content_type = (content_type or "").lower()
    for marker, ext in _CONTENT_TYPE_EXTENSIONS:
        if marker in content_type:
            return ext

    path = urlsplit(url).path.lower()
    for suffix, ext in _URL_EXTENSIONS:
        if path.endswith(suffix):
            return ext

    return DEFAULT_EXTENSION


def download_image(url: str, timeout: int | None = None) -> DownloadedImage:
    """
    Downloads an image.

    Raises:
        ExternalAPIError: On transport errors or a non-200 response.
    """
    headers = {"User-Agent": "SteamShortcutManager/1.0"}
    try:
        response = requests.get(url, headers=headers, timeout=timeout or config.HTTP_TIMEOUT)
    except requests.RequestException as e:
        raise ExternalAPIError(f"failed to download artwork {url}: {e}") from e

    if response.status_code != 200:
        raise ExternalAPIError(
            f"failed to download artwork {url}: HTTP {response.status_code}",
            status_code=response.status_code,
        )
    return DownloadedImage(response.content, response.headers.get("Content-Type", ""), url)


class ArtworkStrategy:
    """Base class for one way of applying an image."""

    name = "base"
    failure_level = logging.ERROR

    def prepare(self) -> bool:
        """Called once per set_artwork call. Return False to skip this strategy."""
        return True

    def supports(self, slot: ArtworkSlot) -> bool:
        return True

    def apply(self, app_id: int, slot: ArtworkSlot, url: str, grid_dir: str) -> None:
        raise NotImplementedError


class DebugProtocolStrategy(ArtworkStrategy):
    """Inject artwork live through Steam's CEF debugger."""

    name = "debug-protocol"
    failure_level = logging.WARNING

    def __init__(self, injector: DebugProtocolInjector, timeout: int | None = None) -> None:
        self.injector = injector
        self.timeout = timeout

    def prepare(self) -> bool:
        available = self.injector.is_available()
        if not available:
            logger.info("Using filesystem method for artwork (static images only)")
            logger.info("To enable animated WebP/GIF, install aiohttp for python3 on the Steam host")
        return available

    def supports(self, slot: ArtworkSlot) -> bool:
        return slot.asset_type is not None

    def apply(self, app_id: int, slot: ArtworkSlot, url: str, grid_dir: str) -> None:
        image = download_image(url, self.timeout)
        self.injector.inject(app_id, image.data, slot.asset_type)


class FilesystemStrategy(ArtworkStrategy):
    """Download the image into the grid directory under its Steam filename."""

    name = "filesystem"

    def __init__(self, locator: SteamLocator, timeout: int | None = None) -> None:
        self.locator = locator
        self.timeout = timeout

    def apply(self, app_id: int, slot: ArtworkSlot, url: str, grid_dir: str) -> None:
        image = download_image(url, self.timeout)
        context = self.locator.context
        context.try_make_dirs(grid_dir)
        target = context.path.join(grid_dir, slot.filename(app_id, image.extension))
        context.write_file(target, image.data, 0o644)
        logger.info("Saved %s artwork for %s to %s", slot.name, app_id, target)


class ArtworkApplier:
    """
    Applies ArtworkConfig images for a shortcut on the locator's host.

    Args:
        locator: Resolver bound to the local or remote context.
        strategies: Ordered strategies; defaults to debug protocol then filesystem.
    """

    def __init__(self, locator: SteamLocator, strategies: list[ArtworkStrategy] | None = None) -> None:
        self.locator = locator
        if strategies is None:
            strategies = [
                DebugProtocolStrategy(DebugProtocolInjector(locator.context)),
                FilesystemStrategy(locator),
            ]
        self.strategies = strategies

    def set_artwork(self, app_id: int, artwork: ArtworkConfig | None) -> dict[str, str | None]:
        """
        Applies every non-empty slot of ``artwork``.

        Args:
            app_id: Shortcut app id (unsigned, as used in grid filenames).
            artwork: URLs to apply.

        Returns:
            Slot name -> name of the strategy that succeeded, or None if all
            strategies failed. Empty slots are absent.

        Raises:
            ArtworkConfigError: If ``artwork`` is None.
            NoUsersFound: If no Steam user directory exists.
        """
        if artwork is None:
            raise ArtworkConfigError("no artwork configuration given")

        grid_dir = self.locator.default_grid_directory()
        active = [strategy for strategy in self.strategies if strategy.prepare()]

        results: dict[str, str | None] = {}
        for slot in ARTWORK_SLOTS:
            url = getattr(artwork, slot.name)
            if not url:
                continue
            results[slot.name] = self._apply_slot(app_id, slot, url, grid_dir, active)
        return results

    def _apply_slot(
        self, app_id: int, slot: ArtworkSlot, url: str, grid_dir: str, strategies: list[ArtworkStrategy]
    ) -> str | None:
        for strategy in strategies:
            if not strategy.supports(slot):
                continue
            try:
                strategy.apply(app_id, slot, url, grid_dir)
            except (SteamShortcutsError, OSError) as e:
                logger.log(strategy.failure_level, "%s failed for %s of %s: %s", strategy.name, slot.name, app_id, e)
                continue
            return strategy.name
        return None
