"""Command line interface for Steam Shortcut Manager.

Every command works on the local Steam install unless ``--remote HOST`` (or
``STEAM_SSH_HOST``) is given, in which case it runs against that host over
SSH/SFTP.
"""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

import click

from steamshortcuts.config import config
from steamshortcuts.core.execution import ExecutionContext, LocalContext, RemoteContext
from steamshortcuts.core.logging import setup_logging
from steamshortcuts.core.remote_client import RemoteClient
from steamshortcuts.core.shortcuts_manager import ShortcutRecord, ShortcutsManager, dumps_json
from steamshortcuts.core.steam_assets import ArtworkApplier, ArtworkConfig
from steamshortcuts.core.steam_paths import SteamLocator
from steamshortcuts.errors import SteamShortcutsError
from steamshortcuts.integrations.steamgrid_api import SteamGridDB
from steamshortcuts.version import __version__

__all__ = ["cli", "main"]

logger = logging.getLogger("steamshortcuts.cli")


@dataclass
class CliState:
    locator: SteamLocator
    output: str

    @property
    def context(self) -> ExecutionContext:
        return self.locator.context


def _emit(state: CliState, data: Any, text: str) -> None:
    if state.output == "json":
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(text)


def _display(text: str) -> str:
    """Replace surrogate escapes (undecodable bytes from shortcuts.vdf) for terminal output."""
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


def _report_error(output: str, error: Exception) -> None:
    if output == "json":
        click.echo(json.dumps({"error": str(error)}))
    else:
        click.echo(f"Error: {error}", err=True)


def handle_errors(func: Callable[..., None]) -> Callable[..., None]:
    """Report package errors in the selected output format and exit 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        ctx = click.get_current_context()
        state: CliState | None = ctx.find_object(CliState)
        try:
            func(*args, **kwargs)
        except SteamShortcutsError as e:
            logger.debug("Command failed", exc_info=True)
            _report_error(state.output if state is not None else "term", e)
            ctx.exit(1)

    return wrapper


def _selected_users(state: CliState, only_user: str | None, require_shortcuts: bool = True) -> list[str]:
    users = state.locator.list_users()
    if only_user and only_user != "all":
        users = [u for u in users if u == only_user]
    if require_shortcuts:
        users = [u for u in users if state.locator.has_shortcuts(u)]
    return users


@click.group()
@click.version_option(__version__, prog_name="steam-shortcuts")
@click.option("--remote", "host", default=None, help="Operate on this host over SSH instead of locally.")
@click.option("--port", type=int, default=None, help="SSH port (default 22).")
@click.option("--user", "ssh_user", default=None, help="SSH user name.")
@click.option("--password", default=None, help="SSH password (tried after keys).")
@click.option("--key-file", type=click.Path(dir_okay=False), default=None, help="SSH private key file.")
@click.option("--steam-dir", default=None, help="Steam base directory (skips detection).")
@click.option("--output", "-o", type=click.Choice(["term", "json"]), default="term", show_default=True)
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR).")
@click.pass_context
def cli(ctx, host, port, ssh_user, password, key_file, steam_dir, output, log_level):
    """Manage Steam shortcuts, locally or on a remote host."""
    setup_logging(log_level or config.LOG_LEVEL)

    host = host or config.SSH_HOST
    context: ExecutionContext
    if host:
        client = RemoteClient(
            host,
            port or config.SSH_PORT,
            ssh_user or config.SSH_USER,
            password or config.SSH_PASSWORD,
            key_file or config.SSH_KEY_FILE,
        )
        try:
            client.connect()
        except SteamShortcutsError as e:
            _report_error(output, e)
            ctx.exit(1)
        ctx.call_on_close(client.close)
        context = RemoteContext(client)
    else:
        context = LocalContext()

    ctx.obj = CliState(locator=SteamLocator(context, steam_dir), output=output)


@cli.command()
@click.pass_obj
@handle_errors
def users(state: CliState):
    """List Steam user ids and whether they have shortcuts."""
    found = {user: state.locator.has_shortcuts(user) for user in state.locator.list_users()}
    lines = [f"{user}{'  (shortcuts)' if has else ''}" for user, has in found.items()]
    _emit(state, found, "\n".join(lines) if lines else "No Steam users found")


@cli.command("list")
@click.option("--app-id", "-i", default="all", show_default=True, help="Only list the given shortcut app id.")
@click.option("--steam-user", default="all", show_default=True, help="Only list shortcuts of this Steam user.")
@click.pass_obj
@handle_errors
def list_shortcuts(state: CliState, app_id: str, steam_user: str):
    """List registered Steam shortcuts."""
    results = {}
    for user in _selected_users(state, steam_user):
        manager = ShortcutsManager(state.locator, user, config.MAX_BACKUPS)
        collection = manager.read()
        if app_id != "all":
            collection = collection.filter_by_app_id(app_id)
        manager.attach_images(collection)
        results[user] = collection

    if state.output == "json":
        click.echo(dumps_json(results))
        return

    for user, collection in results.items():
        if not len(collection):
            continue
        click.echo(f"User: {user}")
        for record in collection:
            images = record.images
            click.echo(f"   {_display(record.name)}")
            click.echo(f"    AppId:          {record.app_id}")
            click.echo(f"    Executable:     {_display(record.exe)}")
            click.echo(f"    Launch Options: {_display(record.launch_options)}")
            click.echo(f"    Logo Image:     {images.logo or ''}")
            click.echo(f"    Portrait Image: {images.portrait or ''}")
            click.echo(f"    Landscape Image: {images.landscape or ''}")
            click.echo(f"    Hero Image:     {images.hero or ''}")
            click.echo(f"    Icon Image:     {_display(record.icon)}")


@cli.command()
@click.argument("name")
@click.argument("exe")
@click.option("--start-dir", default="", help="Working directory (defaults to the executable's directory).")
@click.option("--launch-options", default="", help="Command-line arguments.")
@click.option("--icon", default="", help="Icon path.")
@click.option("--tag", "tags", multiple=True, help="Category tag; repeatable.")
@click.option("--steam-user", default="all", show_default=True, help="Only add for this Steam user.")
@click.pass_obj
@handle_errors
def add(state: CliState, name, exe, start_dir, launch_options, icon, tags, steam_user):
    """Add a shortcut named NAME that runs EXE."""
    exe = exe.strip('"')
    if not start_dir:
        start_dir = state.context.path.dirname(exe)
    record = ShortcutRecord.create(
        name,
        f'"{exe}"',
        f'"{start_dir}"',
        launch_options=launch_options,
        icon=icon,
        tags=list(tags),
    )

    added = []
    for user in _selected_users(state, steam_user, require_shortcuts=False):
        ShortcutsManager(state.locator, user, config.MAX_BACKUPS).add(record)
        added.append(user)

    _emit(
        state,
        {"app_id": record.app_id, "users": added},
        f"Added '{name}' (app id {record.app_id}) for {len(added)} user(s)",
    )


@cli.command()
@click.argument("name")
@click.option("--steam-user", default="all", show_default=True, help="Only remove for this Steam user.")
@click.pass_obj
@handle_errors
def remove(state: CliState, name: str, steam_user: str):
    """Remove every shortcut named NAME."""
    removed = {}
    for user in _selected_users(state, steam_user):
        count = ShortcutsManager(state.locator, user, config.MAX_BACKUPS).remove(name)
        if count:
            removed[user] = count

    total = sum(removed.values())
    _emit(state, {"removed": removed}, f"Removed {total} shortcut(s) named '{name}'")


@cli.command()
@click.argument("app_id", type=int)
@click.option("--game-id", default=None, help="SteamGridDB game id to take artwork from.")
@click.option("--search", "search_name", default=None, help="Search SteamGridDB by name and use the first match.")
@click.option("--portrait", default=None, help="Portrait grid image URL.")
@click.option("--landscape", default=None, help="Landscape grid image URL.")
@click.option("--hero", default=None, help="Hero image URL.")
@click.option("--logo", default=None, help="Logo image URL.")
@click.option("--icon", default=None, help="Icon image URL.")
@click.option("--api-key", default=None, help="SteamGridDB API key (defaults to STEAMGRIDDB_API_KEY).")
@click.pass_obj
@handle_errors
def artwork(state: CliState, app_id, game_id, search_name, portrait, landscape, hero, logo, icon, api_key):
    """Apply artwork to the shortcut APP_ID."""
    if game_id or search_name:
        steamgrid = SteamGridDB(api_key)
        if game_id:
            artwork_config = steamgrid.fetch_artwork_config(game_id)
        else:
            _, artwork_config = steamgrid.search_artwork_config(search_name)
    else:
        artwork_config = ArtworkConfig(portrait, landscape, hero, logo, icon)

    if artwork_config.is_empty():
        raise click.UsageError("no artwork given: use --game-id, --search or image URL options")

    results = ArtworkApplier(state.locator).set_artwork(app_id, artwork_config)
    lines = [f"{slot}: {method or 'failed'}" for slot, method in results.items()]
    _emit(state, results, "\n".join(lines))


def main() -> None:
    cli(prog_name="steam-shortcuts")


if __name__ == "__main__":
    main()
