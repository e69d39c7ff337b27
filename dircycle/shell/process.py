from __future__ import annotations

import asyncio
import codecs
import os
from contextlib import suppress
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..core.session_log import log_event, log_exception
from ..errors import ProcessNotAttachedError

OutputCallback = Callable[[str], None]
ExitCallback = Callable[[Optional[int]], None]

READ_CHUNK_SIZE = 4096


class ShellProcess:
    """A child shell whose stdin/stdout are pipes driven from the event loop."""

    def __init__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | str | None = None,
        env: dict[str, str] | None = None,
        name: str = "shell",
        on_output: OutputCallback | None = None,
        on_exit: ExitCallback | None = None,
    ) -> None:
        if not argv:
            raise ValueError("Shell command line must not be empty")
        self.argv = list(argv)
        self.cwd = str(cwd) if cwd is not None else None
        self.env = env
        self.name = name
        self.on_output = on_output
        self.on_exit = on_exit
        self._proc: asyncio.subprocess.Process | None = None
        self._reader: asyncio.Task | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc is not None else None

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.returncode if self._proc is not None else None

    @property
    def is_running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def start(self) -> None:
        if self.is_running:
            return
        env = dict(os.environ) if self.env is None else dict(self.env)
        self._proc = await asyncio.create_subprocess_exec(
            *self.argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=self.cwd,
            env=env,
        )
        log_event("shell", "shell.start", {"argv": self.argv, "pid": self._proc.pid})
        self._reader = asyncio.create_task(self._read_loop())

    def write(self, text: str) -> None:
        """Write ``text`` verbatim to the shell's standard input."""
        if not self.is_running or self._proc is None or self._proc.stdin is None:
            raise ProcessNotAttachedError(self.name)
        try:
            self._proc.stdin.write(text.encode("utf-8"))
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise ProcessNotAttachedError(self.name) from exc

    def send_line(self, line: str) -> None:
        self.write(line.rstrip("\n") + "\n")

    async def drain(self) -> None:
        if self._proc is not None and self._proc.stdin is not None:
            with suppress(BrokenPipeError, ConnectionResetError):
                await self._proc.stdin.drain()

    async def stop(self, timeout: float = 2.0) -> Optional[int]:
        """Close stdin and wait for the shell, escalating to terminate/kill."""
        proc = self._proc
        if proc is None:
            return None
        if proc.returncode is None:
            if proc.stdin is not None:
                with suppress(BrokenPipeError, ConnectionResetError):
                    proc.stdin.close()
            try:
                await asyncio.wait_for(proc.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                with suppress(ProcessLookupError):
                    proc.terminate()
                try:
                    await asyncio.wait_for(proc.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    with suppress(ProcessLookupError):
                        proc.kill()
                    await proc.wait()
        if self._reader is not None:
            with suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None
        return proc.returncode

    async def wait(self) -> Optional[int]:
        if self._proc is None:
            return None
        return await self._proc.wait()

    async def _read_loop(self) -> None:
        proc = self._proc
        if proc is None or proc.stdout is None:
            return
        try:
            while True:
                chunk = await proc.stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                text = self._decoder.decode(chunk)
                if text and self.on_output is not None:
                    self.on_output(text)
            tail = self._decoder.decode(b"", final=True)
            if tail and self.on_output is not None:
                self.on_output(tail)
        except Exception as exc:  # noqa: BLE001
            log_exception("shell", exc)
            raise
        finally:
            returncode = await proc.wait()
            log_event("shell", "shell.exit", {"returncode": returncode})
            if self.on_exit is not None:
                self.on_exit(returncode)
