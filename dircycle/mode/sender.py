from __future__ import annotations

from ..core.session_log import log_error, log_event
from ..errors import ProcessNotAttachedError
from ..shell.buffer import ShellBuffer


def format_cd_command(path: str) -> str:
    # The trailing echo makes the shell print a newline, which also prompts
    # directory tracking to look at the new cwd.
    return f"cd {path}; echo"


class ShellCommandSender:
    """Sends the ``cd`` for a confirmed directory to a buffer's shell.

    There is no check that the ``cd`` actually succeeded; a failing ``cd``
    shows up as ordinary shell output.
    """

    def __init__(self, buffer: ShellBuffer) -> None:
        self.buffer = buffer

    def send(self, path: str) -> None:
        command = format_cd_command(path)
        try:
            self.buffer.send_command(command, directory=path)
        except ProcessNotAttachedError as exc:
            log_error("sender", "sender.failure", {"path": path, "error": str(exc)})
            raise
        log_event("sender", "sender.send", {"command": command})
