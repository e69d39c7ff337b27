from __future__ import annotations

import argparse
import asyncio
import io
from pathlib import Path
from typing import Any, Optional

from prompt_toolkit.application import Application
from prompt_toolkit.buffer import Buffer as InputBuffer
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import ANSI, StyleAndTextTuples
from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import Layout
from prompt_toolkit.layout.containers import Float, FloatContainer, HSplit, VSplit, Window
from prompt_toolkit.layout.controls import BufferControl, FormattedTextControl
from prompt_toolkit.layout.menus import CompletionsMenu
from prompt_toolkit.output import Output
from prompt_toolkit.styles import Style
from rich import box
from rich.console import Console, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..config import ConfigManager, DircycleSettings
from ..config.paths import DircyclePaths
from ..core.session_log import SessionLogger, log_exception, set_active_logger
from ..errors import DircycleError
from ..mode import NEXT, PREV, disable, enable, get_session
from ..mode.browse import BrowseController
from ..shell.buffer import ShellBuffer
from ..shell.dirtrack import DirectoryTracker, read_process_cwd
from ..shell.process import ShellProcess
from .commands import CommandRegistry
from .input import MetaCommandCompleter, abbreviate_home, prompt_fragments, visible_output
from .keymap import ABORT, CONFIRM, STEP_NEXT, STEP_PREV, describe_keymap, resolve_keymap

BUFFER_NAME = "*shell*"

STYLE = Style.from_dict(
    {
        "prompt": "ansigreen",
        "decoration": "reverse bold",
        "status": "ansibrightblack",
        "error": "ansired bold",
        "info": "ansicyan",
    }
)


class DircycleApp:
    """Interactive shell front end with inline directory cycling."""

    def __init__(
        self,
        root: Path | None = None,
        console: Console | None = None,
        *,
        settings: DircycleSettings | None = None,
        overrides: dict[str, Any] | None = None,
        input: Input | None = None,
        output: Output | None = None,
    ) -> None:
        self.console = console or Console()
        self.root = Path(root) if root is not None else Path.cwd()
        self.paths = DircyclePaths(self.root)
        self.config_manager = ConfigManager(self.paths, console=self.console)
        self.settings = settings or self.config_manager.load_settings(overrides)
        self.logger = SessionLogger(self.paths, self.settings.debug)
        set_active_logger(self.logger)
        self.keymap = resolve_keymap(self.settings.keys, console=self.console)
        self.tracker = DirectoryTracker(str(self.root), method=self.settings.dirtrack)
        self.process = ShellProcess(
            self.settings.shell_argv(),
            cwd=self.root,
            name=BUFFER_NAME,
            on_output=self._on_output,
            on_exit=self._on_exit,
        )
        self.tracker.attach(self._read_shell_cwd)
        self.buffer = ShellBuffer(BUFFER_NAME, self.process, self.tracker)
        self.buffer.add_change_hook(self._invalidate)
        self.registry = CommandRegistry()
        self._register_commands()
        self._message: Optional[tuple[str, str]] = None
        self.input_buffer = InputBuffer(
            multiline=False,
            completer=MetaCommandCompleter(self.registry),
            complete_while_typing=True,
            on_text_changed=self._on_input_edited,
            on_cursor_position_changed=self._on_input_edited,
        )
        self.application = self._build_application(input=input, output=output)

    @property
    def controller(self) -> Optional[BrowseController]:
        session = get_session(self.buffer)
        return session.controller if session is not None else None

    def enable_mode(self) -> None:
        enable(self.buffer, self.settings.mode_settings(), report_error=self.report)

    def disable_mode(self) -> None:
        disable(self.buffer)

    async def run(self) -> None:
        try:
            await self.process.start()
        except OSError as exc:
            self.console.print(
                Panel(
                    escape(f"Cannot start shell {' '.join(self.settings.shell_argv())}: {exc}"),
                    title="dircycle",
                    border_style="red",
                )
            )
            return
        if self.settings.enable_on_start:
            self.enable_mode()
        self.buffer.insert_message(self._render_rich(self._banner()))
        try:
            await self.application.run_async()
        finally:
            self.buffer.close()
            await self.process.stop()
            self.logger.close()
            set_active_logger(None)

    # Logical commands bound to keys.

    def step(self, direction: str) -> None:
        controller = self.controller
        if controller is None:
            self.set_message("Directory cycling is off (/mode on to enable).", error=True)
            return
        self._message = None
        if controller.step(direction) is None:
            self.set_message("Directory history is empty.", error=True)

    def confirm(self) -> Optional[str]:
        controller = self.controller
        if controller is None:
            return None
        try:
            return controller.confirm()
        except DircycleError as exc:
            self.report(exc)
            return None

    def abort(self) -> None:
        controller = self.controller
        if controller is not None:
            controller.abort()

    async def submit(self, text: str) -> bool:
        """Handle one accepted input line; returns False when the app should exit."""
        self._message = None
        command = self.registry.resolve(text)
        if command is not None:
            return await command.handler(text)
        try:
            self.buffer.send_input(text)
        except DircycleError as exc:
            self.report(exc)
            return True
        self._schedule_sync()
        return True

    def report(self, exc: DircycleError) -> None:
        log_exception("app", exc)
        self.set_message(str(exc), error=True)

    def set_message(self, text: str, *, error: bool = False) -> None:
        self._message = ("class:error" if error else "class:info", text)
        self._invalidate()

    # Slash commands.

    def _register_commands(self) -> None:
        self.registry.register(
            "/dirs",
            self._cmd_dirs,
            "Show the directory history, most recent first.",
        )
        self.registry.register(
            "/mode",
            self._cmd_mode,
            "Turn directory cycling on or off: /mode [on|off].",
            args=("on", "off"),
        )
        self.registry.register(
            "/clear",
            self._cmd_clear,
            "Forget the directory history except the current directory.",
        )
        self.registry.register(
            "/help",
            self._cmd_help,
            "Show key bindings and available commands.",
        )
        self.registry.register(
            "/exit",
            self._cmd_exit,
            "Exit dircycle.",
        )

    async def _cmd_dirs(self, command: str) -> bool:
        session = get_session(self.buffer)
        if session is None:
            self.set_message("Directory cycling is off.", error=True)
            return True
        table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Directory")
        candidate_index = (
            session.controller.state.cursor_index if session.controller.active else None
        )
        for idx, path in enumerate(session.ring.entries()):
            marker = " <" if idx == candidate_index else ""
            table.add_row(str(idx), escape(f"{abbreviate_home(path)}{marker}"))
        table.caption = f"{session.ring.size}/{session.ring.capacity} entries"
        self.buffer.insert_message(self._render_rich(table))
        return True

    async def _cmd_mode(self, command: str) -> bool:
        parts = command.split()
        arg = parts[1].lower() if len(parts) > 1 else ""
        if arg not in {"", "on", "off"}:
            self.set_message("Usage: /mode [on|off]", error=True)
            return True
        enabled = get_session(self.buffer) is not None
        if arg == "on" or (arg == "" and not enabled):
            self.enable_mode()
            self.set_message("Directory cycling on.")
        else:
            self.disable_mode()
            self.set_message("Directory cycling off.")
        return True

    async def _cmd_clear(self, command: str) -> bool:
        session = get_session(self.buffer)
        if session is None:
            self.set_message("Directory cycling is off.", error=True)
            return True
        session.clear_history()
        self.set_message("Directory history cleared.")
        return True

    async def _cmd_help(self, command: str) -> bool:
        lines = [*self.registry.descriptions(), "", describe_keymap(self.keymap)]
        self.buffer.insert_message(
            self._render_rich(
                Panel(escape("\n".join(lines)), title="dircycle help", border_style="cyan")
            )
        )
        return True

    async def _cmd_exit(self, command: str) -> bool:
        return False

    # prompt_toolkit wiring.

    def _build_application(self, *, input: Input | None, output: Output | None) -> Application:
        output_control = FormattedTextControl(self._output_text)
        prompt_control = FormattedTextControl(self._prompt_text)
        body = HSplit(
            [
                Window(output_control, wrap_lines=True, dont_extend_height=True),
                VSplit(
                    [
                        Window(prompt_control, dont_extend_width=True, height=1),
                        Window(BufferControl(buffer=self.input_buffer), height=1),
                    ]
                ),
                Window(),
                Window(FormattedTextControl(self._status_text), height=1),
            ]
        )
        root = FloatContainer(
            content=body,
            floats=[Float(xcursor=True, ycursor=True, content=CompletionsMenu(max_height=8))],
        )
        return Application(
            layout=Layout(root, focused_element=self.input_buffer),
            key_bindings=self._build_key_bindings(),
            style=STYLE,
            full_screen=True,
            mouse_support=False,
            input=input,
            output=output,
        )

    def _build_key_bindings(self) -> KeyBindings:
        bindings = KeyBindings()
        mode_on = Condition(lambda: self.controller is not None)
        browsing = Condition(lambda: self.controller is not None and self.controller.active)

        @bindings.add("enter", eager=True)
        def _(event):  # type: ignore
            """Accept completion if the menu is open, else submit the line."""
            buf = event.current_buffer
            if buf.complete_state and buf.complete_state.current_completion:
                buf.apply_completion(buf.complete_state.current_completion)
                return
            text = buf.text
            buf.reset()
            event.app.create_background_task(self._submit_and_maybe_exit(event.app, text))

        @bindings.add("c-c", eager=True)
        def _(event):  # type: ignore
            self.abort()
            event.current_buffer.reset()

        @bindings.add("c-d", eager=True)
        def _(event):  # type: ignore
            buf = event.current_buffer
            if buf.text:
                buf.delete()
                return
            event.app.exit()

        @bindings.add(*self.keymap[STEP_PREV], filter=mode_on, eager=True)
        def _(event):  # type: ignore
            self.step(PREV)

        @bindings.add(*self.keymap[STEP_NEXT], filter=mode_on, eager=True)
        def _(event):  # type: ignore
            self.step(NEXT)

        @bindings.add(*self.keymap[CONFIRM], filter=browsing, eager=True)
        def _(event):  # type: ignore
            self.confirm()
            self._schedule_sync()

        @bindings.add(*self.keymap[ABORT], filter=browsing, eager=True)
        def _(event):  # type: ignore
            self.abort()

        return bindings

    async def _submit_and_maybe_exit(self, app: Application, text: str) -> None:
        if not await self.submit(text):
            app.exit()

    def _output_text(self) -> ANSI:
        rows = max(self._terminal_rows() - 2, 1)
        return ANSI(visible_output(self.buffer, rows))

    def _prompt_text(self) -> StyleAndTextTuples:
        return prompt_fragments(self.buffer)

    def _status_text(self) -> StyleAndTextTuples:
        if self._message is not None:
            return [self._message]
        session = get_session(self.buffer)
        state = "off"
        if session is not None:
            state = f"{session.ring.size} dirs"
            if session.controller.active:
                state += f" • browsing {session.controller.state.cursor_index}"
        return [
            (
                "class:status",
                f"dircycle [{state}] {abbreviate_home(self.buffer.default_directory)}",
            )
        ]

    def _terminal_rows(self) -> int:
        try:
            return self.application.output.get_size().rows
        except Exception:  # noqa: BLE001
            return 24

    def _banner(self) -> RenderableType:
        mode = "on" if get_session(self.buffer) is not None else "off"
        lines = [
            f"Shell: {' '.join(self.settings.shell_argv())}",
            f"Directory cycling: {mode} (capacity {self.settings.history_capacity})",
            describe_keymap(self.keymap),
            f"Commands: {', '.join(self.registry.names())}",
        ]
        return Panel(escape("\n".join(lines)), title=f"dircycle {__version__}", border_style="cyan")

    def _render_rich(self, renderable: RenderableType) -> str:
        width = 80
        try:
            width = self.application.output.get_size().columns
        except Exception:  # noqa: BLE001
            pass
        sink = io.StringIO()
        Console(file=sink, force_terminal=True, color_system="standard", width=width).print(
            renderable
        )
        return sink.getvalue()

    # Process and buffer events.

    def _on_output(self, text: str) -> None:
        self.buffer.insert_output(text)

    def _on_exit(self, returncode: Optional[int]) -> None:
        self.buffer.insert_message(f"[shell exited with status {returncode}]")
        if self.application.is_running:
            self.application.exit()

    def _on_input_edited(self, _buffer: InputBuffer) -> None:
        controller = self.controller
        if controller is not None:
            controller.note_other_action()

    def _read_shell_cwd(self) -> Optional[str]:
        pid = self.process.pid
        if pid is None or not self.process.is_running:
            return None
        return read_process_cwd(pid)

    def _schedule_sync(self) -> None:
        if self.tracker.method == "proc":
            self.tracker.request_sync()

    def _invalidate(self) -> None:
        if self.application.is_running:
            self.application.invalidate()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="dircycle - shell front end with inline directory history cycling"
    )
    parser.add_argument("-v", "--version", action="store_true", help="Show version and exit")
    parser.add_argument("--shell", help="Shell executable to run (default: $SHELL)")
    parser.add_argument("--capacity", type=int, help="Number of directories to remember")
    parser.add_argument("--delay", type=float, help="Seconds before a candidate auto-confirms")
    parser.add_argument(
        "--no-idle-confirm",
        action="store_true",
        help="Only change directory on an explicit confirm key",
    )
    parser.add_argument(
        "--debug",
        nargs="?",
        const="all",
        help="Write a session log (all, session, error, warn, info, debug)",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "shell": args.shell,
        "history_capacity": args.capacity,
        "idle_confirm_delay_seconds": args.delay,
        "debug": args.debug,
    }
    if args.no_idle_confirm:
        overrides["idle_confirm_enabled"] = False
    return overrides


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.version:
        print(f"dircycle {__version__}")
        return
    asyncio.run(DircycleApp(overrides=overrides_from_args(args)).run())


if __name__ == "__main__":
    main()
