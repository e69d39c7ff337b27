from __future__ import annotations

from typing import Dict, Mapping, Optional

from rich.console import Console

STEP_PREV = "step-prev"
STEP_NEXT = "step-next"
CONFIRM = "confirm"
ABORT = "abort"
LOGICAL_COMMANDS = (STEP_PREV, STEP_NEXT, CONFIRM, ABORT)

DEFAULT_KEYS: Dict[str, str] = {
    STEP_PREV: "escape p",
    STEP_NEXT: "escape n",
    CONFIRM: "enter",
    ABORT: "c-g",
}

KeySequence = tuple[str, ...]


def parse_key_sequence(text: str) -> KeySequence:
    """Split ``"escape p"`` style strings into prompt_toolkit key names."""
    return tuple(part.lower() for part in text.split())


def resolve_keymap(
    overrides: Optional[Mapping[str, str]] = None,
    console: Optional[Console] = None,
) -> Dict[str, KeySequence]:
    """Merge user key overrides over the defaults, dropping unknown commands."""
    resolved = {name: parse_key_sequence(keys) for name, keys in DEFAULT_KEYS.items()}
    for name, keys in (overrides or {}).items():
        if name not in LOGICAL_COMMANDS:
            if console is not None:
                console.print(f"[yellow]Ignoring key binding for unknown command {name!r}.[/yellow]")
            continue
        sequence = parse_key_sequence(keys)
        if not sequence:
            if console is not None:
                console.print(f"[yellow]Empty key binding for {name!r}; keeping the default.[/yellow]")
            continue
        resolved[name] = sequence
    return resolved


def describe_keymap(keymap: Mapping[str, KeySequence]) -> str:
    return " • ".join(f"{' '.join(keys)}: {name}" for name, keys in keymap.items())
