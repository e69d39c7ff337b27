from __future__ import annotations

from typing import Optional

DEFAULT_CAPACITY = 128


class HistoryRing:
    """Fixed-capacity ring of directory paths, most recent at the head.

    Offsets are counted from the head: 0 is the most recently recorded path,
    ``size - 1`` the oldest one still held. Out-of-range offsets are clamped
    rather than wrapped so browsing stops at either end.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, seed: Optional[str] = None) -> None:
        if capacity < 1:
            raise ValueError(f"Ring capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._slots: list[Optional[str]] = [None] * capacity
        self._head = 0  # next write position
        self._size = 0
        self.seed = seed
        if seed is not None:
            self.record(seed)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def record(self, path: str) -> None:
        """Append ``path`` as the most recent entry, evicting the oldest when full."""
        self._slots[self._head] = path
        self._head = (self._head + 1) % self._capacity
        if self._size < self._capacity:
            self._size += 1

    def clamp(self, offset: int) -> int:
        if self._size == 0:
            return 0
        return max(0, min(offset, self._size - 1))

    def peek(self, offset: int = 0) -> Optional[str]:
        """Return the path ``offset`` steps back from the head.

        Before anything is recorded the seed directory is returned.
        """
        if self._size == 0:
            return self.seed
        offset = self.clamp(offset)
        return self._slots[(self._head - 1 - offset) % self._capacity]

    def entries(self) -> list[str]:
        """Return all held paths, most recent first."""
        return [self.peek(idx) for idx in range(self._size)]  # type: ignore[misc]

    def clear(self, seed: Optional[str] = None) -> None:
        """Drop every entry and start over from ``seed`` (or the original seed)."""
        if seed is not None:
            self.seed = seed
        self._slots = [None] * self._capacity
        self._head = 0
        self._size = 0
        if self.seed is not None:
            self.record(self.seed)
