"""Host-side directory tracking for shell buffers.

Three sources feed the tracker:

* OSC 7 working-directory reports (``ESC ] 7 ; file://host/path BEL``)
  embedded in shell output, as emitted by many shell prompt setups.
* The child's actual working directory, read from ``/proc`` on Linux or
  ``lsof`` on macOS after output arrives.
* ``cd``/``pushd``/``popd`` commands typed by the user, for platforms where
  the child's cwd cannot be read.

Whenever a change is detected every registered hook is called with the new
absolute path.
"""

from __future__ import annotations

import asyncio
import os
import re
import shlex
import subprocess
import sys
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

from ..core.session_log import log_debug

DirectoryHook = Callable[[str], None]
CwdReader = Callable[[], Optional[str]]

OSC7_PATTERN = re.compile(r"\x1b\]7;([^\x07\x1b]*)(?:\x07|\x1b\\)")
OSC7_PREFIX = "\x1b]7;"
MAX_PENDING_OSC = 4096

SYNC_DEBOUNCE_SECONDS = 0.1

TRACKED_COMMANDS = {"cd", "pushd", "popd", "chdir"}


def read_process_cwd(pid: int) -> Optional[str]:
    """Return the working directory of ``pid``, or None when it cannot be read."""
    if sys.platform.startswith("linux"):
        try:
            return os.readlink(f"/proc/{pid}/cwd")
        except OSError:
            return None
    if sys.platform == "darwin":
        try:
            result = subprocess.run(
                ["lsof", "-a", "-p", str(pid), "-d", "cwd", "-Fn"],
                capture_output=True,
                text=True,
                timeout=2,
            )
        except (subprocess.TimeoutExpired, OSError):
            return None
        for line in result.stdout.splitlines():
            if line.startswith("n"):
                return line[1:]
    return None


def proc_cwd_supported() -> bool:
    return sys.platform.startswith("linux") or sys.platform == "darwin"


def parse_osc7(uri: str) -> Optional[str]:
    parsed = urlparse(uri)
    if parsed.scheme and parsed.scheme != "file":
        return None
    path = unquote(parsed.path)
    return path or None


class DirectoryTracker:
    """Notices working directory changes of one shell and fires hooks."""

    def __init__(
        self,
        cwd: str,
        *,
        method: str = "auto",
        cwd_reader: CwdReader | None = None,
        home: str | None = None,
    ) -> None:
        if method == "auto":
            method = "proc" if proc_cwd_supported() else "input"
        if method not in {"proc", "input"}:
            raise ValueError(f"Unknown directory tracking method: {method}")
        self.method = method
        self._current = os.path.normpath(cwd)
        self._previous: Optional[str] = None
        self._stack: list[str] = []
        self._hooks: list[DirectoryHook] = []
        self._cwd_reader = cwd_reader
        self._home = home or os.path.expanduser("~")
        self._pending = ""
        self._sync_handle: Optional[asyncio.TimerHandle] = None

    @property
    def current(self) -> str:
        return self._current

    def attach(self, cwd_reader: CwdReader | None) -> None:
        self._cwd_reader = cwd_reader

    def add_hook(self, hook: DirectoryHook) -> None:
        if hook not in self._hooks:
            self._hooks.append(hook)

    def remove_hook(self, hook: DirectoryHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    @property
    def hooks(self) -> tuple[DirectoryHook, ...]:
        return tuple(self._hooks)

    def notify(self, path: str) -> None:
        """Record ``path`` as the current directory and run every hook."""
        path = os.path.normpath(path)
        if path != self._current:
            self._previous = self._current
        self._current = path
        log_debug("dirtrack", "dirtrack.change", {"path": path})
        for hook in list(self._hooks):
            hook(path)

    def feed_output(self, text: str) -> str:
        """Scan shell output for directory reports; returns the text without them.

        A report cut off at the end of ``text`` is held back and completed by
        the next call.
        """
        text, self._pending = self._split_pending(self._pending + text)
        reported = False
        for match in OSC7_PATTERN.finditer(text):
            path = parse_osc7(match.group(1))
            if path and os.path.normpath(path) != self._current:
                self.notify(path)
            reported = reported or path is not None
        if not reported and self.method == "proc" and text:
            self.request_sync()
        return OSC7_PATTERN.sub("", text)

    def request_sync(self) -> None:
        """Run ``sync`` once output has been quiet for a moment.

        Outside a running event loop the sync happens immediately.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.sync()
            return
        if self._sync_handle is not None:
            self._sync_handle.cancel()
        self._sync_handle = loop.call_later(SYNC_DEBOUNCE_SECONDS, self._debounced_sync)

    def _debounced_sync(self) -> None:
        self._sync_handle = None
        self.sync()

    def sync(self) -> None:
        """Compare against the child's real cwd and notify on a change."""
        if self._cwd_reader is None:
            return
        cwd = self._cwd_reader()
        if cwd and os.path.normpath(cwd) != self._current:
            self.notify(cwd)

    def feed_input(self, line: str) -> None:
        """Follow ``cd``-style commands in user input when cwd cannot be read."""
        if self.method != "input":
            return
        for command in re.split(r"\s*(?:;|&&|\|\|)\s*", line.strip()):
            self._track_command(command)

    def feed_directory(self, path: str) -> None:
        """Follow a ``cd`` to ``path`` sent by dircycle itself."""
        if self.method != "input":
            return
        self.notify(os.path.join(self._current, path))

    def _split_pending(self, text: str) -> tuple[str, str]:
        start = text.rfind(OSC7_PREFIX)
        if start != -1 and OSC7_PATTERN.match(text, start) is None:
            rest = text[start + len(OSC7_PREFIX) :]
            esc = rest.find("\x1b")
            if "\x07" not in rest and esc in (-1, len(rest) - 1):
                if len(text) - start > MAX_PENDING_OSC:
                    return text, ""
                return text[:start], text[start:]
        for size in range(len(OSC7_PREFIX) - 1, 0, -1):
            if text.endswith(OSC7_PREFIX[:size]):
                return text[:-size], text[-size:]
        return text, ""

    def _track_command(self, command: str) -> None:
        try:
            words = shlex.split(command)
        except ValueError:
            return
        if not words or words[0] not in TRACKED_COMMANDS:
            return
        name, args = words[0], [w for w in words[1:] if not w.startswith("-") or w == "-"]
        if name == "popd":
            if self._stack:
                self.notify(self._stack.pop())
            return
        if name == "pushd" and not args:
            if self._stack:
                top = self._stack.pop()
                self._stack.append(self._current)
                self.notify(top)
            return
        target = self._resolve(args[0] if args else None)
        if target is None:
            return
        if name == "pushd":
            self._stack.append(self._current)
        self.notify(target)

    def _resolve(self, arg: Optional[str]) -> Optional[str]:
        if arg is None or arg == "~":
            return self._home
        if arg == "-":
            return self._previous
        if arg.startswith("~/"):
            arg = os.path.join(self._home, arg[2:])
        return os.path.normpath(os.path.join(self._current, arg))
