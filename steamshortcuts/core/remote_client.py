"""SSH/SFTP client for operating on a Steam install on another machine.

One ``RemoteClient`` owns one authenticated SSH connection and an SFTP
sub-session multiplexed over it. The client is synchronous: it drives
asyncssh on a private event loop so callers never deal with coroutines.

Authentication methods are assembled in a fixed order before dialing:

1. the explicit private key file, if configured and parseable
2. the first parseable key among the default names in ``~/.ssh``
   (only consulted when step 1 produced nothing)
3. the password, if configured

The host key is NOT verified unless ``known_hosts`` is passed. That is a
lowered-security default suitable for a trusted LAN (e.g. a Steam Deck).
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
import stat as stat_module
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Coroutine, TypeVar

import asyncssh

from steamshortcuts.errors import (
    AuthenticationUnavailable,
    ConnectionFailed,
    FileAccessError,
    NotConnected,
    RemoteCommandError,
)

__all__ = ["DEFAULT_KEY_NAMES", "RemoteClient", "RemoteFileInfo"]

logger = logging.getLogger("steamshortcuts.remote")

DEFAULT_KEY_NAMES = ("id_rsa", "id_ed25519", "id_ecdsa")

_T = TypeVar("_T")


@dataclass(frozen=True)
class RemoteFileInfo:
    """Metadata for one remote path."""

    name: str
    size: int
    mtime: int
    permissions: int
    is_dir: bool


def _info_from_attrs(name: str, attrs: Any) -> RemoteFileInfo:
    permissions = attrs.permissions or 0
    return RemoteFileInfo(
        name=name,
        size=attrs.size or 0,
        mtime=attrs.mtime or 0,
        permissions=permissions,
        is_dir=stat_module.S_ISDIR(permissions),
    )


def _load_private_key(path: Path) -> asyncssh.SSHKey | None:
    """Read and parse an unencrypted private key, or return None."""
    try:
        return asyncssh.read_private_key(str(path))
    except (OSError, asyncssh.KeyImportError) as e:
        logger.debug("Skipping key %s: %s", path, e)
        return None


class RemoteClient:
    """Authenticated SSH session with SFTP file access and command execution.

    Args:
        host: Remote host name or address.
        port: SSH port; 0 or None means 22.
        username: Remote user name (asyncssh falls back to the local user).
        password: Optional password for password authentication.
        key_file: Optional path to a private key file.
        key_dir: Directory searched for default keys (default ``~/.ssh``).
        known_hosts: asyncssh ``known_hosts`` argument. None accepts any host key.
    """

    def __init__(
        self,
        host: str,
        port: int | None = 22,
        username: str | None = None,
        password: str | None = None,
        key_file: str | Path | None = None,
        *,
        key_dir: str | Path | None = None,
        known_hosts: Any = None,
    ) -> None:
        self.host = host
        self.port = port or 22
        self.username = username
        self.password = password
        self.key_file = Path(key_file).expanduser() if key_file else None
        self.key_dir = Path(key_dir) if key_dir else Path.home() / ".ssh"
        self.known_hosts = known_hosts

        self._loop: asyncio.AbstractEventLoop | None = None
        self._conn: Any = None
        self._sftp: Any = None

    def __enter__(self) -> RemoteClient:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "connected" if self.connected else "disconnected"
        return f"<RemoteClient {self.username or ''}@{self.host}:{self.port} {state}>"

    @property
    def connected(self) -> bool:
        return self._sftp is not None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def _collect_auth(self) -> tuple[list[asyncssh.SSHKey], str | None]:
        """Assemble client keys and password in priority order.

        Returns:
            Tuple of (client keys, password or None).

        Raises:
            AuthenticationUnavailable: If no method could be constructed.
        """
        keys: list[asyncssh.SSHKey] = []
        methods: list[str] = []

        if self.key_file is not None:
            key = _load_private_key(self.key_file)
            if key is not None:
                keys.append(key)
                methods.append(f"key:{self.key_file}")

        if not keys:
            for name in DEFAULT_KEY_NAMES:
                candidate = self.key_dir / name
                key = _load_private_key(candidate)
                if key is not None:
                    keys.append(key)
                    methods.append(f"key:{candidate}")
                    break

        password = self.password or None
        if password is not None:
            methods.append("password")

        if not methods:
            raise AuthenticationUnavailable(
                f"no authentication method available for {self.host} "
                f"(key file unusable and no password given)"
            )

        logger.debug("Auth methods for %s: %s", self.host, ", ".join(methods))
        return keys, password

    def connect(self) -> None:
        """Authenticate and open the SSH connection plus the SFTP sub-session.

        Raises:
            AuthenticationUnavailable: If no credential could be assembled.
            ConnectionFailed: If dialing, authenticating or starting SFTP fails.
                No partially connected state is kept in that case.
        """
        if self.connected:
            return

        keys, password = self._collect_auth()
        loop = asyncio.new_event_loop()
        addr = f"{self.host}:{self.port}"

        try:
            conn = loop.run_until_complete(
                asyncssh.connect(
                    self.host,
                    port=self.port,
                    username=self.username,
                    password=password,
                    client_keys=keys or None,
                    known_hosts=self.known_hosts,
                    agent_path=None,
                )
            )
        except (OSError, asyncssh.Error) as e:
            loop.close()
            raise ConnectionFailed(f"failed to connect to {addr}: {e}") from e

        try:
            sftp = loop.run_until_complete(conn.start_sftp_client())
        except (OSError, asyncssh.Error) as e:
            conn.close()
            try:
                loop.run_until_complete(conn.wait_closed())
            except (OSError, asyncssh.Error) as close_error:
                logger.debug("Error closing SSH connection after SFTP failure: %s", close_error)
            loop.close()
            raise ConnectionFailed(f"failed to create SFTP client on {addr}: {e}") from e

        self._loop, self._conn, self._sftp = loop, conn, sftp
        logger.info("Connected to %s", addr)

    def close(self) -> bool:
        """Release the SFTP sub-session and the SSH connection.

        Idempotent and best-effort: failures while closing are logged and
        swallowed.

        Returns:
            True if everything shut down cleanly. The result may be ignored.
        """
        loop, conn, sftp = self._loop, self._conn, self._sftp
        self._loop = self._conn = self._sftp = None
        clean = True

        if sftp is not None:
            try:
                sftp.exit()
            except (OSError, asyncssh.Error) as e:
                logger.debug("Error closing SFTP session: %s", e)
                clean = False

        if conn is not None:
            try:
                conn.close()
                if loop is not None:
                    loop.run_until_complete(conn.wait_closed())
            except (OSError, asyncssh.Error) as e:
                logger.debug("Error closing SSH connection: %s", e)
                clean = False
            else:
                logger.info("Disconnected from %s:%d", self.host, self.port)

        if loop is not None:
            loop.close()

        return clean

    def _run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        return self._loop.run_until_complete(coro)

    def _require_sftp(self, operation: str) -> Any:
        if self._sftp is None:
            raise NotConnected(operation)
        return self._sftp

    # ------------------------------------------------------------------
    # File operations
    # ------------------------------------------------------------------

    def read_file(self, path: str) -> bytes:
        """Return the full contents of a remote file.

        Raises:
            NotConnected: Before connect().
            FileAccessError: If the file cannot be opened or read.
        """
        sftp = self._require_sftp("read_file")

        async def _read() -> bytes:
            handle = await sftp.open(path, "rb")
            try:
                return await handle.read()
            finally:
                await handle.close()

        try:
            return self._run(_read())
        except (OSError, asyncssh.Error) as e:
            raise FileAccessError(path, "read", e) from e

    def write_file(self, path: str, data: bytes, permissions: int = 0o666) -> None:
        """Create or truncate a remote file, write ``data`` and chmod it.

        Parent directories are created first on a best-effort basis; if that
        fails the subsequent open reports the real problem.

        Raises:
            NotConnected: Before connect().
            FileAccessError: If creating, writing or chmod-ing fails.
        """
        sftp = self._require_sftp("write_file")
        self.try_make_dirs(posixpath.dirname(path))

        async def _write() -> None:
            handle = await sftp.open(path, "wb")
            try:
                await handle.write(data)
            finally:
                await handle.close()
            await sftp.chmod(path, permissions)

        try:
            self._run(_write())
        except (OSError, asyncssh.Error) as e:
            raise FileAccessError(path, "write", e) from e

    def try_make_dirs(self, path: str) -> bool:
        """Create ``path`` and its parents, ignoring failures.

        Returns:
            True on success. The result may be ignored.
        """
        sftp = self._require_sftp("make_dirs")
        if not path:
            return True
        try:
            self._run(sftp.makedirs(path, exist_ok=True))
        except (OSError, asyncssh.Error) as e:
            logger.debug("Could not create remote directory %s: %s", path, e)
            return False
        return True

    def stat(self, path: str) -> RemoteFileInfo:
        """Return metadata for a remote path.

        Raises:
            NotConnected: Before connect().
            FileAccessError: If the path cannot be stat-ed.
        """
        sftp = self._require_sftp("stat")
        try:
            attrs = self._run(sftp.stat(path))
        except (OSError, asyncssh.Error) as e:
            raise FileAccessError(path, "stat", e) from e
        return _info_from_attrs(posixpath.basename(path.rstrip("/")) or path, attrs)

    def list_directory(self, path: str) -> list[RemoteFileInfo]:
        """Return the entries of a remote directory, excluding . and ..

        Raises:
            NotConnected: Before connect().
            FileAccessError: If the directory cannot be listed.
        """
        sftp = self._require_sftp("list_directory")
        try:
            names = self._run(sftp.readdir(path))
        except (OSError, asyncssh.Error) as e:
            raise FileAccessError(path, "list", e) from e
        return [
            _info_from_attrs(entry.filename, entry.attrs)
            for entry in names
            if entry.filename not in (".", "..")
        ]

    def file_exists(self, path: str) -> bool:
        """Return True if ``path`` can be stat-ed. Never raises."""
        try:
            self.stat(path)
        except Exception:  # noqa: BLE001 - any failure means "does not exist"
            return False
        return True

    def home_directory(self) -> str:
        """Return the remote working directory reported by SFTP (the login home).

        Raises:
            NotConnected: Before connect().
            FileAccessError: If the server refuses to resolve it.
        """
        sftp = self._require_sftp("home_directory")
        try:
            return self._run(sftp.getcwd())
        except (OSError, asyncssh.Error) as e:
            raise FileAccessError(".", "resolve", e) from e

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    def run_command(self, command: str) -> str:
        """Run one shell command in a fresh session and return stdout+stderr.

        The caller is responsible for quoting paths embedded in ``command``.

        Raises:
            NotConnected: Before connect().
            RemoteCommandError: If the session fails or the command exits
                non-zero. ``output`` and ``exit_status`` are populated.
        """
        if self._conn is None:
            raise NotConnected("run_command")

        try:
            result = self._run(self._conn.run(command, stderr=asyncssh.STDOUT, check=False))
        except (OSError, asyncssh.Error) as e:
            raise RemoteCommandError(command, f"failed to run command ({e})") from e

        output = result.stdout or ""
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        if result.exit_status != 0:
            raise RemoteCommandError(
                command,
                f"command exited with status {result.exit_status}",
                output=output,
                exit_status=result.exit_status,
            )
        return output
