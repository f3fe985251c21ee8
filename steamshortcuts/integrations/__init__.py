"""Clients for services outside the Steam install: SteamGridDB and the CEF debugger."""
