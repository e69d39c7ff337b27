"""Core data structures and helpers."""

from .ring import DEFAULT_CAPACITY, HistoryRing
from .session_log import SessionLogger

__all__ = [
    "DEFAULT_CAPACITY",
    "HistoryRing",
    "SessionLogger",
]
