from __future__ import annotations


class DircycleError(RuntimeError):
    """Base class for errors reported to the user."""


class NotAShellBufferError(DircycleError):
    """Raised when the mode is enabled on a buffer that is not attached to a shell."""

    def __init__(self, buffer_name: str, kind: str) -> None:
        super().__init__(
            f"Directory cycling only works in shell buffers ({buffer_name!r} is a {kind} buffer)."
        )
        self.buffer_name = buffer_name
        self.kind = kind


class ProcessNotAttachedError(DircycleError):
    """Raised when a command is sent to a buffer without a live shell process."""

    def __init__(self, buffer_name: str) -> None:
        super().__init__(f"No shell process attached to {buffer_name!r}.")
        self.buffer_name = buffer_name
