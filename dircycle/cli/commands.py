from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional


CommandHandler = Callable[[str], Awaitable[bool]]


@dataclass
class Command:
    name: str
    handler: CommandHandler
    description: str
    args: tuple[str, ...] = field(default_factory=tuple)


class CommandRegistry:
    """Registry for slash meta commands typed at the shell prompt.

    Only registered names are treated as commands, so paths such as
    ``/bin/ls`` still go to the shell.
    """

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        description: str,
        *,
        args: tuple[str, ...] = (),
    ) -> None:
        if not name.startswith("/"):
            name = f"/{name}"
        self._commands[name] = Command(
            name=name, handler=handler, description=description, args=args
        )

    def get(self, name: str) -> Optional[Command]:
        if not name.startswith("/"):
            name = f"/{name}"
        return self._commands.get(name)

    def resolve(self, text: str) -> Optional[Command]:
        """Return the command ``text`` invokes, if it starts with a registered name."""
        tokens = text.strip().split(maxsplit=1)
        if not tokens or not tokens[0].startswith("/"):
            return None
        return self._commands.get(tokens[0])

    def names(self) -> List[str]:
        return list(self._commands.keys())

    def descriptions(self) -> List[str]:
        return [f"{cmd.name} - {cmd.description}" for cmd in self._commands.values()]
