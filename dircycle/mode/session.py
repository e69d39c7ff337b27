from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.ring import DEFAULT_CAPACITY, HistoryRing
from ..core.session_log import log_event, log_info
from ..errors import NotAShellBufferError
from ..shell.buffer import Buffer, ShellBuffer
from .browse import BrowseController, ErrorReporter
from .sender import ShellCommandSender
from .timer import Scheduler

SESSION_KEY = "dircycle-session"


@dataclass(frozen=True)
class ModeSettings:
    history_capacity: int = DEFAULT_CAPACITY
    idle_confirm_enabled: bool = True
    idle_confirm_delay_seconds: float = 1.0


@dataclass
class SessionState:
    """Everything the mode keeps for one shell buffer."""

    buffer: ShellBuffer
    settings: ModeSettings
    ring: HistoryRing
    controller: BrowseController

    def on_directory_change(self, path: str) -> None:
        self.ring.record(path)
        log_event("dirtrack", "dirtrack.record", {"path": path, "size": self.ring.size})

    def clear_history(self) -> None:
        self.controller.abort()
        self.ring.clear(self.buffer.default_directory)


def get_session(buffer: Buffer) -> Optional[SessionState]:
    return buffer.locals.get(SESSION_KEY)


def is_enabled(buffer: Buffer) -> bool:
    return get_session(buffer) is not None


def enable(
    buffer: Buffer,
    settings: Optional[ModeSettings] = None,
    *,
    scheduler: Optional[Scheduler] = None,
    report_error: Optional[ErrorReporter] = None,
) -> SessionState:
    """Turn on directory cycling for ``buffer``.

    Raises NotAShellBufferError for anything but a shell buffer. Enabling an
    already-enabled buffer returns the existing session.
    """
    if not isinstance(buffer, ShellBuffer) or buffer.kind != "shell":
        raise NotAShellBufferError(buffer.name, buffer.kind)
    existing = get_session(buffer)
    if existing is not None:
        return existing
    settings = settings or ModeSettings()
    ring = HistoryRing(settings.history_capacity, seed=buffer.default_directory)
    controller = BrowseController(
        ring,
        buffer,
        ShellCommandSender(buffer),
        idle_confirm_enabled=settings.idle_confirm_enabled,
        idle_confirm_delay_seconds=settings.idle_confirm_delay_seconds,
        scheduler=scheduler,
        report_error=report_error,
    )
    state = SessionState(buffer=buffer, settings=settings, ring=ring, controller=controller)
    buffer.tracker.add_hook(state.on_directory_change)
    buffer.add_close_hook(disable)
    buffer.locals[SESSION_KEY] = state
    log_info("mode", "mode.enable", {"buffer": buffer.name, "seed": ring.seed})
    return state


def disable(buffer: Buffer) -> None:
    """Turn off directory cycling and drop the ring; a no-op when not enabled."""
    state = buffer.locals.pop(SESSION_KEY, None)
    if state is None:
        return
    state.controller.abort()
    state.buffer.tracker.remove_hook(state.on_directory_change)
    buffer.remove_close_hook(disable)
    log_info("mode", "mode.disable", {"buffer": buffer.name})


def toggle(buffer: Buffer, settings: Optional[ModeSettings] = None, **kwargs) -> bool:
    if is_enabled(buffer):
        disable(buffer)
        return False
    enable(buffer, settings, **kwargs)
    return True
