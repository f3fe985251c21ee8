"""Local or remote execution contexts.

Everything that touches the Steam install (shortcut load/save, user
discovery, artwork upload) goes through an ``ExecutionContext`` instead of
calling the OS directly. ``LocalContext`` uses this machine; ``RemoteContext``
routes the same calls through a connected :class:`RemoteClient`.
"""

from __future__ import annotations

import logging
import os
import posixpath
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType

from steamshortcuts.core.remote_client import RemoteClient
from steamshortcuts.errors import FileAccessError, RemoteCommandError

__all__ = ["CommandResult", "DirEntry", "ExecutionContext", "LocalContext", "RemoteContext"]

logger = logging.getLogger("steamshortcuts.execution")


@dataclass(frozen=True)
class DirEntry:
    """One directory listing entry."""

    name: str
    is_dir: bool


@dataclass(frozen=True)
class CommandResult:
    """Combined output and exit status of a command."""

    output: str
    exit_status: int | None

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class ExecutionContext:
    """Interface shared by the local and remote contexts."""

    #: Path module used to build paths on the target (os.path or posixpath).
    path: ModuleType = os.path
    is_remote: bool = False

    def read_file(self, path: str) -> bytes:
        raise NotImplementedError

    def write_file(self, path: str, data: bytes, mode: int = 0o666) -> None:
        raise NotImplementedError

    def is_dir(self, path: str) -> bool:
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError

    def list_dir(self, path: str) -> list[DirEntry]:
        raise NotImplementedError

    def home_dir(self) -> str:
        raise NotImplementedError

    def run_command(self, argv: list[str]) -> CommandResult:
        raise NotImplementedError

    def try_make_dirs(self, path: str) -> bool:
        raise NotImplementedError

    def try_remove(self, path: str) -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        return "local"


class LocalContext(ExecutionContext):
    """Execute against this machine's filesystem and processes."""

    def read_file(self, path: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise FileAccessError(path, "read", e) from e

    def write_file(self, path: str, data: bytes, mode: int = 0o666) -> None:
        # mode only applies to new files and is filtered by the umask
        self.try_make_dirs(os.path.dirname(path))
        flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)
        try:
            fd = os.open(path, flags, mode)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            raise FileAccessError(path, "write", e) from e

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def list_dir(self, path: str) -> list[DirEntry]:
        try:
            with os.scandir(path) as entries:
                return [DirEntry(entry.name, entry.is_dir()) for entry in entries]
        except OSError as e:
            raise FileAccessError(path, "list", e) from e

    def home_dir(self) -> str:
        return str(Path.home())

    def run_command(self, argv: list[str]) -> CommandResult:
        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            # Missing interpreter and friends behave like a failed command
            return CommandResult(output=str(e), exit_status=None)
        return CommandResult(output=proc.stdout.decode("utf-8", errors="replace"), exit_status=proc.returncode)

    def try_make_dirs(self, path: str) -> bool:
        if not path:
            return True
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            logger.debug("Could not create directory %s: %s", path, e)
            return False
        return True

    def try_remove(self, path: str) -> bool:
        try:
            os.remove(path)
        except OSError as e:
            logger.debug("Could not remove %s: %s", path, e)
            return False
        return True


class RemoteContext(ExecutionContext):
    """Execute against a remote POSIX host over SSH/SFTP.

    Args:
        client: A connected RemoteClient. The context does not own it;
            closing the client is the caller's job.
    """

    path = posixpath
    is_remote = True

    def __init__(self, client: RemoteClient) -> None:
        self.client = client

    def read_file(self, path: str) -> bytes:
        return self.client.read_file(path)

    def write_file(self, path: str, data: bytes, mode: int = 0o666) -> None:
        self.client.write_file(path, data, mode)

    def is_dir(self, path: str) -> bool:
        try:
            return self.client.stat(path).is_dir
        except FileAccessError:
            return False

    def exists(self, path: str) -> bool:
        return self.client.file_exists(path)

    def list_dir(self, path: str) -> list[DirEntry]:
        return [DirEntry(info.name, info.is_dir) for info in self.client.list_directory(path)]

    def home_dir(self) -> str:
        return self.client.home_directory()

    def run_command(self, argv: list[str]) -> CommandResult:
        command = shlex.join(argv) + " 2>&1"
        try:
            output = self.client.run_command(command)
        except RemoteCommandError as e:
            if e.exit_status is None:
                raise
            return CommandResult(output=e.output, exit_status=e.exit_status)
        return CommandResult(output=output, exit_status=0)

    def try_make_dirs(self, path: str) -> bool:
        return self.client.try_make_dirs(path)

    def try_remove(self, path: str) -> bool:
        try:
            self.client.run_command(f"rm -f {shlex.quote(path)}")
        except RemoteCommandError as e:
            logger.debug("Could not remove remote %s: %s", path, e)
            return False
        return True

    def describe(self) -> str:
        return f"{self.client.host}:{self.client.port}"
