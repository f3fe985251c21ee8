"""Exception hierarchy for Steam Shortcut Manager.

Every error raised on purpose by this package derives from
``SteamShortcutsError`` so the command layer can report them uniformly.
"""

from __future__ import annotations

__all__ = [
    "ArtworkConfigError",
    "AuthenticationUnavailable",
    "ConnectionFailed",
    "ExternalAPIError",
    "FileAccessError",
    "NoUsersFound",
    "NotConnected",
    "ParseError",
    "RemoteCommandError",
    "SteamPathNotFound",
    "SteamShortcutsError",
]


class SteamShortcutsError(Exception):
    """Base class for all package errors."""


class NotConnected(SteamShortcutsError):
    """A remote operation was attempted before connect()."""

    def __init__(self, operation: str = "") -> None:
        msg = f"not connected (during {operation})" if operation else "not connected"
        super().__init__(msg)
        self.operation = operation


class AuthenticationUnavailable(SteamShortcutsError):
    """No usable SSH credential could be assembled."""


class ConnectionFailed(SteamShortcutsError):
    """The SSH session or its SFTP sub-session could not be established."""


class RemoteCommandError(SteamShortcutsError):
    """A remote command could not be started or exited unsuccessfully."""

    def __init__(self, command: str, message: str, output: str = "", exit_status: int | None = None) -> None:
        super().__init__(f"{message}: {command}")
        self.command = command
        self.output = output
        self.exit_status = exit_status


class FileAccessError(SteamShortcutsError, OSError):
    """Reading, writing or inspecting a path failed.

    Args:
        path: The path that was being accessed.
        action: Short verb for the failed operation ("read", "write", ...).
        cause: The underlying exception, if any.
    """

    def __init__(self, path: str, action: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"failed to {action} {path}{detail}")
        self.path = path
        self.action = action
        self.cause = cause

    def __str__(self) -> str:
        return self.args[0]


class ParseError(SteamShortcutsError, ValueError):
    """Malformed binary VDF input or a structural mismatch while decoding."""


class NoUsersFound(SteamShortcutsError):
    """The Steam userdata directory contains no user directories."""


class ExternalAPIError(SteamShortcutsError):
    """An external HTTP or debug-protocol collaborator misbehaved."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ArtworkConfigError(SteamShortcutsError):
    """Artwork was requested without any artwork configuration."""


class SteamPathNotFound(SteamShortcutsError):
    """The local Steam installation directory could not be determined."""
