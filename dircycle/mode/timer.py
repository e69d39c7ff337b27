from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


ConfirmCallback = Callable[[str], None]


class ConfirmTimer:
    """At most one pending idle confirmation for a single candidate path.

    Arming always cancels the previous handle first, and every callback is
    tagged with the generation it was armed in so a callback that slips
    through after a newer arm or a cancel does nothing.
    """

    def __init__(self, scheduler: Optional[Scheduler] = None) -> None:
        self._scheduler = scheduler
        self._handle: Optional[TimerHandle] = None
        self._generation = 0
        self.path: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def generation(self) -> int:
        return self._generation

    def arm(self, delay: float, path: str, callback: ConfirmCallback) -> None:
        self.cancel()
        scheduler = self._scheduler or asyncio.get_running_loop()
        generation = self._generation
        self.path = path
        self._handle = scheduler.call_later(delay, self._fire, generation, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self.path = None
        self._generation += 1

    def _fire(self, generation: int, callback: ConfirmCallback) -> None:
        if generation != self._generation or self._handle is None or self.path is None:
            return
        path = self.path
        self._handle = None
        self.path = None
        self._generation += 1
        callback(path)
