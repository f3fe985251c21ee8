# steamshortcuts/integrations/steamgrid_api.py

"""
SteamGridDB API client.

Only the subset needed to turn a game name or SteamGridDB game id into image
URLs: search, grids (portrait or landscape), heroes, logos and icons.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from steamshortcuts.config import config
from steamshortcuts.core.steam_assets import ArtworkConfig
from steamshortcuts.errors import ExternalAPIError

__all__ = ["SteamGridDB"]

logger = logging.getLogger("steamshortcuts.steamgrid")


class SteamGridDB:
    """
    Client for the SteamGridDB API.

    Every request method raises ExternalAPIError on transport failures,
    non-2xx responses, ``success: false`` or malformed JSON.
    """

    # Secure HTTPS URL
    BASE_URL = "https://www.steamgriddb.com/api/v2"

    PORTRAIT_DIMENSIONS = "600x900,342x482,660x930"
    LANDSCAPE_DIMENSIONS = "460x215,920x430"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[int] = None):
        """
        Initializes the SteamGridDB client.

        Args:
            api_key: API key; defaults to the configured STEAMGRIDDB_API_KEY.
            timeout: Request timeout in seconds; defaults to HTTP_TIMEOUT.
        """
        self.api_key = api_key if api_key is not None else config.STEAMGRIDDB_API_KEY
        self.timeout = timeout or config.HTTP_TIMEOUT
        self.headers = {'Authorization': f'Bearer {self.api_key}'}

    def search(self, name: str) -> List[Dict[str, Any]]:
        """Search games by name. Each result carries at least ``id`` and ``name``."""
        return self._get(f"search/autocomplete/{quote(name, safe='')}")

    def get_grids(self, game_id: int | str, orientation: str = "portrait") -> List[Dict[str, Any]]:
        """
        Fetches grids for a game filtered by orientation.

        Args:
            game_id: SteamGridDB game id.
            orientation: 'portrait' or 'landscape'.
        """
        if orientation == "portrait":
            dimensions = self.PORTRAIT_DIMENSIONS
        elif orientation == "landscape":
            dimensions = self.LANDSCAPE_DIMENSIONS
        else:
            raise ValueError(f"unknown grid orientation: {orientation}")
        return self._get(f"grids/game/{game_id}", {'dimensions': dimensions})

    def get_heroes(self, game_id: int | str) -> List[Dict[str, Any]]:
        return self._get(f"heroes/game/{game_id}")

    def get_logos(self, game_id: int | str) -> List[Dict[str, Any]]:
        return self._get(f"logos/game/{game_id}")

    def get_icons(self, game_id: int | str) -> List[Dict[str, Any]]:
        return self._get(f"icons/game/{game_id}")

    def fetch_artwork_config(self, game_id: int | str) -> ArtworkConfig:
        """
        Fetches the first image of every slot for a game.

        A slot whose lookup fails or returns nothing is left empty; the
        failure is logged.

        Args:
            game_id: SteamGridDB game id.

        Returns:
            ArtworkConfig ready to apply.
        """
        lookups = {
            'grid_portrait': lambda: self.get_grids(game_id, "portrait"),
            'grid_landscape': lambda: self.get_grids(game_id, "landscape"),
            'hero': lambda: self.get_heroes(game_id),
            'logo': lambda: self.get_logos(game_id),
            'icon': lambda: self.get_icons(game_id),
        }

        urls: Dict[str, Optional[str]] = {}
        for slot, lookup in lookups.items():
            try:
                results = lookup()
            except ExternalAPIError as e:
                logger.warning("SteamGridDB %s lookup failed for game %s: %s", slot, game_id, e)
                results = []
            urls[slot] = _first_url(results)

        return ArtworkConfig(**urls)

    def search_artwork_config(self, name: str) -> tuple[int, ArtworkConfig]:
        """
        Searches for a game by name and fetches artwork for the first match.

        Returns:
            Tuple of (SteamGridDB game id, ArtworkConfig).

        Raises:
            ExternalAPIError: If the search fails or finds nothing.
        """
        results = self.search(name)
        if not results:
            raise ExternalAPIError(f"no games found for '{name}'")
        try:
            game_id = int(results[0]['id'])
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalAPIError(f"malformed search result for '{name}'") from e
        logger.info("SteamGridDB match for '%s': %s (%s)", name, results[0].get('name', '?'), game_id)
        return game_id, self.fetch_artwork_config(game_id)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise ExternalAPIError("SteamGridDB API key not configured")

        url = f"{self.BASE_URL}/{path}"
        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise ExternalAPIError(f"SteamGridDB request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ExternalAPIError(
                f"SteamGridDB returned HTTP {response.status_code} for {path}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalAPIError(f"SteamGridDB returned invalid JSON for {path}") from e

        if not isinstance(data, dict) or not data.get('success'):
            errors = data.get('errors') if isinstance(data, dict) else None
            raise ExternalAPIError(f"SteamGridDB request unsuccessful for {path}: {errors}")

        results = data.get('data') or []
        if not isinstance(results, list):
            raise ExternalAPIError(f"SteamGridDB returned unexpected data for {path}")
        return results


def _first_url(results: List[Dict[str, Any]]) -> Optional[str]:
    for item in results:
        if isinstance(item, dict) and item.get('url'):
            return str(item['url'])
    return None
