"""Live artwork injection through Steam's CEF remote-debugging endpoint.

Steam exposes its web UI over the Chrome DevTools protocol when started with
CEF debugging enabled. A small helper script runs on the machine that runs
Steam (locally or over SSH), finds the SharedJSContext target and calls
``SteamClient.Apps.SetCustomArtworkForApp``. Unlike grid files this also
handles animated WebP/GIF.

The helper needs ``aiohttp`` on that machine; ``is_available`` checks for it.
"""

from __future__ import annotations

import json
import logging
import tempfile
import uuid
from enum import IntEnum
from string import Template

from steamshortcuts.config import config
from steamshortcuts.core.execution import ExecutionContext
from steamshortcuts.errors import ExternalAPIError, SteamShortcutsError

__all__ = ["AssetType", "DebugProtocolInjector", "TARGET_TITLES", "render_script"]

logger = logging.getLogger("steamshortcuts.cef")

TARGET_TITLES = ("SharedJSContext", "SP", "Steam")

PYTHON = "python3"


class AssetType(IntEnum):
    """Asset type argument of SetCustomArtworkForApp."""

    GRID_PORTRAIT = 0  # 600x900 capsule
    HERO = 1  # 1920x620
    LOGO = 2
    GRID_LANDSCAPE = 3  # 920x430 wide capsule
    ICON = 4


_SCRIPT = Template('''\
import asyncio
import base64
import json
import sys

import aiohttp

IMAGE_PATH = $image_path
DEBUG_URL = $debug_url
APP_ID = $app_id
ASSET_TYPE = $asset_type
TITLES = $titles


async def set_artwork():
    with open(IMAGE_PATH, "rb") as f:
        image_data = base64.b64encode(f.read()).decode("ascii")

    async with aiohttp.ClientSession() as session:
        async with session.get(DEBUG_URL) as resp:
            targets = await resp.json(content_type=None)

        target = next((t for t in targets if t.get("title") in TITLES), None)
        if target is None:
            print("ERROR: Steam SharedJSContext target not found")
            return False

        expression = (
            "(async () => { try { await SteamClient.Apps.SetCustomArtworkForApp("
            + json.dumps(APP_ID) + ", " + json.dumps(image_data) + ", \\"png\\", " + json.dumps(ASSET_TYPE)
            + "); return \\"success\\"; } catch (e) { return \\"error: \\" + e.message; } })()"
        )

        async with session.ws_connect(target["webSocketDebuggerUrl"]) as ws:
            await ws.send_json({
                "id": 1,
                "method": "Runtime.evaluate",
                "params": {"expression": expression, "awaitPromise": True, "userGesture": True},
            })
            async for msg in ws:
                if msg.type != aiohttp.WSMsgType.TEXT:
                    continue
                reply = json.loads(msg.data)
                if reply.get("id") != 1:
                    continue
                result = reply.get("result", {})
                if "exceptionDetails" in result:
                    print("ERROR:", result["exceptionDetails"])
                    return False
                value = result.get("result", {}).get("value", "")
                if "error" in str(value).lower():
                    print("ERROR:", value)
                    return False
                return True
    return False


sys.exit(0 if asyncio.run(set_artwork()) else 1)
''')


def render_script(image_path: str, app_id: int, asset_type: AssetType, debug_url: str) -> str:
    """Return the helper script source for one injection."""
    return _SCRIPT.substitute(
        image_path=json.dumps(image_path),
        debug_url=json.dumps(debug_url),
        app_id=int(app_id),
        asset_type=int(asset_type),
        titles=repr(TARGET_TITLES),
    )


class DebugProtocolInjector:
    """Run the injection helper through an execution context.

    Args:
        context: Where Steam runs.
        debug_url: CEF target list URL as seen from that machine.
    """

    def __init__(self, context: ExecutionContext, debug_url: str | None = None) -> None:
        self.context = context
        self.debug_url = debug_url or config.CEF_DEBUG_URL

    def _temp_dir(self) -> str:
        return "/tmp" if self.context.is_remote else tempfile.gettempdir()

    def is_available(self) -> bool:
        """Return True if ``python3`` with aiohttp exists on the Steam host."""
        try:
            result = self.context.run_command([PYTHON, "-c", "import aiohttp"])
        except SteamShortcutsError as e:
            logger.debug("aiohttp check failed: %s", e)
            return False
        if not result.ok:
            return False
        return "ModuleNotFoundError" not in result.output and "No module" not in result.output

    def inject(self, app_id: int, image: bytes, asset_type: AssetType) -> None:
        """Apply one image live.

        The image and helper script are written to per-call temporary
        files and removed afterwards whatever the outcome.

        Raises:
            FileAccessError: If the temporary files cannot be written.
            ExternalAPIError: If the helper fails or reports an error.
        """
        token = uuid.uuid4().hex
        image_path = self.context.path.join(self._temp_dir(), f"steamshortcuts-artwork-{token}.bin")
        script_path = self.context.path.join(self._temp_dir(), f"steamshortcuts-artwork-{token}.py")

        try:
            self.context.write_file(image_path, image, 0o644)
            script = render_script(image_path, app_id, asset_type, self.debug_url)
            self.context.write_file(script_path, script.encode("utf-8"), 0o755)
            result = self.context.run_command([PYTHON, script_path])
        finally:
            self.context.try_remove(script_path)
            self.context.try_remove(image_path)

        if not result.ok:
            raise ExternalAPIError(f"Steam CEF API failed (exit {result.exit_status}): {result.output.strip()}")
        if "ERROR" in result.output:
            raise ExternalAPIError(f"Steam CEF API error: {result.output.strip()}")
        logger.debug("Injected %s artwork for %s", asset_type.name, app_id)
