"""Judgment table host: wraps the game engine with networking."""

from .server import HostServer

__all__ = ["HostServer"]
