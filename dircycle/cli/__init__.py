"""Terminal front end."""

from .app import DircycleApp, main

__all__ = ["DircycleApp", "main"]
