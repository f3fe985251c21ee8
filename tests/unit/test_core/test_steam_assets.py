"""Tests for artwork download and the strategy-based ArtworkApplier."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from steamshortcuts.core.steam_assets import (
    ArtworkApplier,
    ArtworkConfig,
    DebugProtocolStrategy,
    FilesystemStrategy,
    download_image,
    extension_for,
)
from steamshortcuts.core.steam_paths import SteamLocator
from steamshortcuts.errors import ArtworkConfigError, ExternalAPIError, NoUsersFound
from steamshortcuts.integrations.debug_protocol import AssetType

_GET = "steamshortcuts.core.steam_assets.requests.get"


def _response(status: int = 200, content: bytes = b"img", content_type: str = "image/png") -> MagicMock:
    return MagicMock(status_code=status, content=content, headers={"Content-Type": content_type})


def _applier(locator: SteamLocator, available: bool) -> tuple[ArtworkApplier, MagicMock]:
    injector = MagicMock()
    injector.is_available.return_value = available
    strategies = [DebugProtocolStrategy(injector), FilesystemStrategy(locator)]
    return ArtworkApplier(locator, strategies), injector


class TestExtensionFor:
    """Content-Type first, then URL suffix, then .png."""

    def test_content_type_wins(self) -> None:
        assert extension_for("image/jpeg", "https://cdn/x.png") == ".jpg"

    def test_url_suffix_ignores_query(self) -> None:
        assert extension_for("", "https://cdn/x.WEBP?v=2") == ".webp"

    def test_default_png(self) -> None:
        assert extension_for("application/octet-stream", "https://cdn/x") == ".png"
        assert extension_for(None, "https://cdn/x.jpeg") == ".jpg"


class TestDownloadImage:
    """Tests for download_image()."""

    def test_success(self) -> None:
        with patch(_GET, return_value=_response(content=b"data", content_type="image/gif")) as get:
            image = download_image("https://cdn/a")
        assert image.data == b"data"
        assert image.extension == ".gif"
        assert "User-Agent" in get.call_args.kwargs["headers"]

    def test_http_error(self) -> None:
        with patch(_GET, return_value=_response(status=404)):
            with pytest.raises(ExternalAPIError) as exc_info:
                download_image("https://cdn/a")
        assert exc_info.value.status_code == 404

    def test_transport_error(self) -> None:
        with patch(_GET, side_effect=requests.ConnectionError("down")):
            with pytest.raises(ExternalAPIError, match="down"):
                download_image("https://cdn/a")


class TestArtworkApplier:
    """Tests for per-slot strategy fallback."""

    def test_filesystem_when_debug_protocol_unavailable(self, local_locator: SteamLocator) -> None:
        applier, injector = _applier(local_locator, available=False)
        artwork = ArtworkConfig(
            grid_portrait="https://cdn/p",
            grid_landscape="https://cdn/l",
            hero="https://cdn/h",
            logo="https://cdn/o",
        )

        with patch(_GET, return_value=_response()):
            results = applier.set_artwork(42, artwork)

        assert results == {
            "grid_portrait": "filesystem",
            "grid_landscape": "filesystem",
            "hero": "filesystem",
            "logo": "filesystem",
        }
        grid = Path(local_locator.default_grid_directory())
        assert sorted(p.name for p in grid.iterdir()) == ["42.png", "42_hero.png", "42_logo.png", "42p.png"]
        injector.is_available.assert_called_once()
        injector.inject.assert_not_called()

    def test_debug_protocol_preferred_except_icon(self, local_locator: SteamLocator) -> None:
        applier, injector = _applier(local_locator, available=True)
        artwork = ArtworkConfig(grid_portrait="https://cdn/p", icon="https://cdn/i")

        with patch(_GET, return_value=_response()):
            results = applier.set_artwork(42, artwork)

        assert results == {"grid_portrait": "debug-protocol", "icon": "filesystem"}
        injector.inject.assert_called_once_with(42, b"img", AssetType.GRID_PORTRAIT)
        grid = Path(local_locator.default_grid_directory())
        assert [p.name for p in grid.iterdir()] == ["42_icon.png"]

    def test_debug_protocol_failure_falls_back(self, local_locator: SteamLocator) -> None:
        applier, injector = _applier(local_locator, available=True)
        injector.inject.side_effect = ExternalAPIError("SharedJSContext not found")

        with patch(_GET, return_value=_response(content_type="image/webp")):
            results = applier.set_artwork(7, ArtworkConfig(hero="https://cdn/h"))

        assert results == {"hero": "filesystem"}
        assert (Path(local_locator.default_grid_directory()) / "7_hero.webp").exists()

    def test_failing_slot_does_not_block_others(self, local_locator: SteamLocator) -> None:
        applier, _ = _applier(local_locator, available=False)

        def fake_get(url, **kwargs):
            return _response(status=500) if url.endswith("bad") else _response()

        with patch(_GET, side_effect=fake_get):
            results = applier.set_artwork(
                42, ArtworkConfig(grid_portrait="https://cdn/bad", logo="https://cdn/good")
            )

        assert results == {"grid_portrait": None, "logo": "filesystem"}

    def test_empty_slots_are_skipped(self, local_locator: SteamLocator) -> None:
        applier, _ = _applier(local_locator, available=False)
        with patch(_GET) as get:
            assert applier.set_artwork(42, ArtworkConfig()) == {}
        get.assert_not_called()

    def test_missing_config_raises(self, local_locator: SteamLocator) -> None:
        applier, _ = _applier(local_locator, available=False)
        with pytest.raises(ArtworkConfigError):
            applier.set_artwork(42, None)

    def test_no_users_raises(self, tmp_path: Path) -> None:
        from steamshortcuts.core.execution import LocalContext

        (tmp_path / "userdata").mkdir()
        locator = SteamLocator(LocalContext(), str(tmp_path))
        applier, _ = _applier(locator, available=False)
        with pytest.raises(NoUsersFound):
            applier.set_artwork(42, ArtworkConfig(hero="https://cdn/h"))

    def test_default_strategies(self, local_locator: SteamLocator) -> None:
        names = [s.name for s in ArtworkApplier(local_locator).strategies]
        assert names == ["debug-protocol", "filesystem"]


class TestArtworkConfig:
    def test_is_empty(self) -> None:
        assert ArtworkConfig().is_empty()
        assert not ArtworkConfig(logo="https://cdn/l").is_empty()
