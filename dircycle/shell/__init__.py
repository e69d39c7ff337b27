"""Shell host: child process, shell buffer and directory tracking."""

from .buffer import Buffer, Decoration, ShellBuffer
from .dirtrack import DirectoryTracker
from .process import ShellProcess

__all__ = [
    "Buffer",
    "Decoration",
    "DirectoryTracker",
    "ShellBuffer",
    "ShellProcess",
]
