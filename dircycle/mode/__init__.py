"""Inline directory cycling for shell buffers."""

from .browse import NEXT, PREV, BrowseController, BrowseState
from .sender import ShellCommandSender, format_cd_command
from .session import (
    ModeSettings,
    SessionState,
    disable,
    enable,
    get_session,
    is_enabled,
    toggle,
)
from .timer import ConfirmTimer

__all__ = [
    "NEXT",
    "PREV",
    "BrowseController",
    "BrowseState",
    "ConfirmTimer",
    "ModeSettings",
    "SessionState",
    "ShellCommandSender",
    "disable",
    "enable",
    "format_cd_command",
    "get_session",
    "is_enabled",
    "toggle",
]
