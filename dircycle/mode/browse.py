from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..core.ring import HistoryRing
from ..core.session_log import log_event, log_exception
from ..errors import DircycleError
from ..shell.buffer import Decoration, ShellBuffer
from .sender import ShellCommandSender
from .timer import ConfirmTimer, Scheduler

PREV = "prev"
NEXT = "next"
DIRECTIONS = (PREV, NEXT)

DECORATION_TEMPLATE = "[cd {path}] "

ErrorReporter = Callable[[DircycleError], None]


@dataclass
class BrowseState:
    active: bool = False
    cursor_index: int = 0
    last_action_was_browse: bool = False


class BrowseController:
    """Moves a cursor through the directory ring and confirms a candidate.

    Idle until the first ``step``; while browsing the candidate is drawn as a
    decoration over the prompt and, if enabled, an idle timer will confirm it.
    ``confirm`` and ``abort`` return to Idle.
    """

    def __init__(
        self,
        ring: HistoryRing,
        buffer: ShellBuffer,
        sender: ShellCommandSender,
        *,
        idle_confirm_enabled: bool = True,
        idle_confirm_delay_seconds: float = 1.0,
        scheduler: Optional[Scheduler] = None,
        report_error: Optional[ErrorReporter] = None,
    ) -> None:
        self.ring = ring
        self.buffer = buffer
        self.sender = sender
        self.idle_confirm_enabled = idle_confirm_enabled
        self.idle_confirm_delay_seconds = idle_confirm_delay_seconds
        self.report_error = report_error
        self.state = BrowseState()
        self.timer = ConfirmTimer(scheduler)

    @property
    def active(self) -> bool:
        return self.state.active

    @property
    def candidate(self) -> Optional[str]:
        if not self.state.active:
            return None
        return self.ring.peek(self.state.cursor_index)

    def step(self, direction: str) -> Optional[str]:
        """Show the previous (older) or next (newer) directory as the candidate."""
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown browse direction: {direction!r}")
        if self.state.last_action_was_browse:
            delta = 1 if direction == PREV else -1
            self.state.cursor_index = self.ring.clamp(self.state.cursor_index + delta)
        else:
            self.state.cursor_index = 0
        self.state.active = True
        self.state.last_action_was_browse = True
        path = self.ring.peek(self.state.cursor_index)
        if path is None:
            self._reset()
            return None
        self._render(path)
        if self.idle_confirm_enabled:
            try:
                self.timer.arm(self.idle_confirm_delay_seconds, path, self._on_idle)
            except RuntimeError:
                # no event loop to schedule on
                self._reset()
                raise
        else:
            self.timer.cancel()
        log_event(
            "browse",
            "browse.step",
            {"direction": direction, "cursor": self.state.cursor_index, "path": path},
        )
        return path

    def note_other_action(self) -> None:
        """Mark that the user did something other than stepping."""
        self.state.last_action_was_browse = False

    def confirm(self) -> Optional[str]:
        """Send ``cd`` for the current candidate and return to Idle.

        Returns the confirmed path, or None when not browsing. A missing shell
        process is re-raised after the state has been reset.
        """
        path = self.candidate
        if path is None:
            return None
        self._reset()
        log_event("browse", "browse.confirm", {"path": path})
        self.sender.send(path)
        return path

    def abort(self) -> None:
        if not self.state.active:
            return
        self._reset()
        log_event("browse", "browse.abort")

    def _on_idle(self, path: str) -> None:
        if path != self.candidate:
            return
        log_event("browse", "browse.timer_fired", {"path": path})
        try:
            self.confirm()
        except DircycleError as exc:
            log_exception("browse", exc)
            if self.report_error is None:
                raise
            self.report_error(exc)

    def _render(self, path: str) -> None:
        start, end = self.buffer.prompt_region()
        self.buffer.set_decoration(
            Decoration(start=start, end=end, text=DECORATION_TEMPLATE.format(path=path))
        )

    def _reset(self) -> None:
        self.timer.cancel()
        self.buffer.clear_decoration()
        self.state = BrowseState()
