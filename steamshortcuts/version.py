"""
Central version management for Steam Shortcut Manager.
"""

from __future__ import annotations

__all__ = ["__app_name__", "__version__", "__release_date__", "__author__", "__license__"]

__app_name__ = "Steam Shortcut Manager"
__version__ = "0.4.0"
__release_date__ = "2026-10-17"
__author__ = "William Edwards"
__license__ = "MIT"
