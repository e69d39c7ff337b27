from __future__ import annotations

import os
from typing import Iterable, Optional

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import ANSI, StyleAndTextTuples, to_formatted_text

from ..shell.buffer import ShellBuffer
from .commands import CommandRegistry


class MetaCommandCompleter(Completer):
    """Suggests slash meta commands and their fixed arguments."""

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    def get_completions(self, document: Document, complete_event):  # type: ignore[override]
        text = document.text_before_cursor
        if not text.startswith("/"):
            return
        for comp in self._command_completions(text):
            yield comp

    def _command_completions(self, text: str) -> Iterable[Completion]:
        tokens = text.split()
        if not tokens:
            return []
        command = tokens[0]
        if len(tokens) == 1 and not text.endswith(" "):
            matches = [c for c in self.registry.names() if c.startswith(command)]
            return [Completion(cmd, start_position=-len(command)) for cmd in matches]
        if len(tokens) >= 2 and text.endswith(" "):
            return []
        registered = self.registry.get(command)
        if registered is None or not registered.args:
            return []
        arg_prefix = "" if text.endswith(" ") else tokens[-1]
        return [
            Completion(opt, start_position=-len(arg_prefix))
            for opt in registered.args
            if opt.startswith(arg_prefix)
        ]


def abbreviate_home(path: str, home: Optional[str] = None) -> str:
    home = home or os.path.expanduser("~")
    if path == home:
        return "~"
    if home and path.startswith(home.rstrip(os.sep) + os.sep):
        return "~" + path[len(home.rstrip(os.sep)) :]
    return path


def fallback_prompt(directory: str, home: Optional[str] = None) -> str:
    return f"{abbreviate_home(directory, home)} $ "


def prompt_fragments(buffer: ShellBuffer, *, home: Optional[str] = None) -> StyleAndTextTuples:
    """What to draw before the input line: the decoration, the shell's prompt, or ours."""
    decoration = buffer.decoration
    if decoration is not None:
        return [("class:decoration", decoration.text)]
    prompt = buffer.prompt_text
    if prompt.strip():
        return to_formatted_text(ANSI(prompt), style="class:prompt")
    return [("class:prompt", fallback_prompt(buffer.default_directory, home))]


def visible_output(buffer: ShellBuffer, rows: int) -> str:
    """The last ``rows`` lines of completed output, excluding the prompt line."""
    start, _ = buffer.prompt_region()
    text = buffer.output[:start]
    if text.endswith("\n"):
        text = text[:-1]
    if not text or rows <= 0:
        return ""
    return "\n".join(text.split("\n")[-rows:])
