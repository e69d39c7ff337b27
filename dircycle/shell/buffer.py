from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from ..errors import ProcessNotAttachedError
from .dirtrack import DirectoryTracker
from .process import ShellProcess

DEFAULT_MAX_OUTPUT = 200_000


@dataclass(frozen=True)
class Decoration:
    """Display-only text drawn over ``[start, end)`` of a buffer's output."""

    start: int
    end: int
    text: str


class Buffer:
    """A named buffer with buffer-local state and close hooks."""

    kind = "text"

    def __init__(self, name: str) -> None:
        self.name = name
        self.locals: dict[str, Any] = {}
        self.closed = False
        self._close_hooks: list[Callable[["Buffer"], None]] = []
        self._change_hooks: list[Callable[[], None]] = []

    def add_close_hook(self, hook: Callable[["Buffer"], None]) -> None:
        if hook not in self._close_hooks:
            self._close_hooks.append(hook)

    def remove_close_hook(self, hook: Callable[["Buffer"], None]) -> None:
        if hook in self._close_hooks:
            self._close_hooks.remove(hook)

    def add_change_hook(self, hook: Callable[[], None]) -> None:
        self._change_hooks.append(hook)

    def changed(self) -> None:
        for hook in list(self._change_hooks):
            hook()

    def close(self) -> None:
        if self.closed:
            return
        for hook in list(self._close_hooks):
            hook(self)
        self._close_hooks.clear()
        self.locals.clear()
        self.closed = True


class ShellBuffer(Buffer):
    """Buffer connected to a live shell process.

    ``output`` holds everything the shell printed. ``process_mark`` is the end
    of that output; text after the last newline before it is the shell's
    prompt, which is where a decoration is drawn.
    """

    kind = "shell"

    def __init__(
        self,
        name: str,
        process: Optional[ShellProcess],
        tracker: DirectoryTracker,
        *,
        max_output: int = DEFAULT_MAX_OUTPUT,
    ) -> None:
        super().__init__(name)
        self.process = process
        self.tracker = tracker
        self.output = ""
        self.process_mark = 0
        self.max_output = max_output
        self._decoration: Optional[Decoration] = None

    @property
    def default_directory(self) -> str:
        return self.tracker.current

    @property
    def decoration(self) -> Optional[Decoration]:
        return self._decoration

    def set_decoration(self, decoration: Decoration) -> None:
        self._decoration = decoration
        self.changed()

    def clear_decoration(self) -> None:
        if self._decoration is None:
            return
        self._decoration = None
        self.changed()

    def prompt_region(self) -> tuple[int, int]:
        start = self.output.rfind("\n", 0, self.process_mark) + 1
        return start, self.process_mark

    @property
    def prompt_text(self) -> str:
        start, end = self.prompt_region()
        return self.output[start:end]

    def insert_output(self, text: str) -> None:
        """Append process output at the process mark, tracking directory reports."""
        text = self.tracker.feed_output(text)
        self._append(text)

    def insert_message(self, text: str) -> None:
        """Append informational text that did not come from the shell."""
        if self.output and not self.output.endswith("\n"):
            text = "\n" + text
        self._append(text if text.endswith("\n") else text + "\n")

    def send_input(self, line: str) -> None:
        """Send a line typed by the user, echoing it into the buffer."""
        self._require_process()
        self.tracker.feed_input(line)
        self._append(line + "\n")
        self.process.send_line(line)  # type: ignore[union-attr]

    def send_command(self, line: str, *, directory: Optional[str] = None) -> None:
        """Send a programmatic command line without echoing it.

        ``directory`` names the directory the command changes to, so tracking
        does not have to parse ``line``.
        """
        self._require_process()
        if directory is not None:
            self.tracker.feed_directory(directory)
        else:
            self.tracker.feed_input(line)
        self.process.send_line(line)  # type: ignore[union-attr]

    def close(self) -> None:
        self._decoration = None
        super().close()

    def _require_process(self) -> None:
        if self.process is None or not self.process.is_running:
            raise ProcessNotAttachedError(self.name)

    def _append(self, text: str) -> None:
        if not text:
            return
        self.output += text
        overflow = len(self.output) - self.max_output
        if overflow > 0:
            cut = self.output.find("\n", overflow)
            cut = overflow if cut == -1 else cut + 1
            self.output = self.output[cut:]
        self.process_mark = len(self.output)
        if self._decoration is not None:
            start, end = self.prompt_region()
            self._decoration = replace(self._decoration, start=start, end=end)
        self.changed()
