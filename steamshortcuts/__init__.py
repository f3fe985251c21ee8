"""Manage Steam non-Steam game shortcuts, locally or on a remote host over SSH."""

from __future__ import annotations

from steamshortcuts.version import __version__

__all__ = ["__version__"]
