from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from .. import __version__
from ..core.ring import DEFAULT_CAPACITY
from ..mode.session import ModeSettings
from .paths import DircyclePaths

DIRTRACK_METHODS = ("auto", "proc", "input")

DEFAULT_CONFIG: Dict[str, Any] = {
    "history_capacity": DEFAULT_CAPACITY,
    "idle_confirm_enabled": True,
    "idle_confirm_delay_seconds": 1,
    "shell": None,
    "shell_args": [],
    "enable_on_start": True,
    "dirtrack": "auto",
    "keys": {},
    "debug": False,
}


@dataclass
class DircycleSettings:
    history_capacity: int
    idle_confirm_enabled: bool
    idle_confirm_delay_seconds: float
    shell: str
    shell_args: list[str] = field(default_factory=list)
    enable_on_start: bool = True
    dirtrack: str = "auto"
    keys: Dict[str, str] = field(default_factory=dict)
    debug: Any = False

    def mode_settings(self) -> ModeSettings:
        return ModeSettings(
            history_capacity=self.history_capacity,
            idle_confirm_enabled=self.idle_confirm_enabled,
            idle_confirm_delay_seconds=self.idle_confirm_delay_seconds,
        )

    def shell_argv(self) -> list[str]:
        return [self.shell, *self.shell_args]


class ConfigManager:
    """Loads dircycle settings from the global and workspace JSON files."""

    def __init__(self, paths: DircyclePaths, console: Optional[Console] = None) -> None:
        self.paths = paths
        self.console = console or Console()
        self._ensure_home_bootstrap()

    def load_settings(self, overrides: Optional[Dict[str, Any]] = None) -> DircycleSettings:
        """Merge defaults, global config, workspace config, environment and ``overrides``."""
        merged = self.load_project_config()
        merged = self._merge_dicts(merged, self._env_settings())
        if overrides:
            merged = self._merge_dicts(
                merged, {key: value for key, value in overrides.items() if value is not None}
            )
        normalized = self._normalize_config(merged)
        return DircycleSettings(
            history_capacity=normalized["history_capacity"],
            idle_confirm_enabled=normalized["idle_confirm_enabled"],
            idle_confirm_delay_seconds=normalized["idle_confirm_delay_seconds"],
            shell=normalized["shell"],
            shell_args=normalized["shell_args"],
            enable_on_start=normalized["enable_on_start"],
            dirtrack=normalized["dirtrack"],
            keys=normalized["keys"],
            debug=normalized["debug"],
        )

    def load_project_config(self) -> Dict[str, Any]:
        """Read the workspace-level dircycle.json on top of the global one."""
        merged = self._merge_dicts(dict(DEFAULT_CONFIG), self._read_global_config())
        return self._merge_dicts(merged, self._read_json(self.paths.config_file))

    def create_config_template(self) -> Path:
        """Create or update .dircycle/dircycle.json without dropping user settings."""
        self.paths.dircycle_dir.mkdir(parents=True, exist_ok=True)
        current = self._read_json(self.paths.config_file)
        merged = self._merge_dicts(dict(DEFAULT_CONFIG), current)
        normalized = self._normalize_config(merged)
        if current.get("shell") is None:
            normalized["shell"] = None
        self.paths.config_file.write_text(
            json.dumps(normalized, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        return self.paths.config_file

    def _normalize_config(self, data: Dict[str, Any]) -> Dict[str, Any]:
        normalized = dict(data) if data else {}

        capacity = self._to_int(normalized.get("history_capacity"))
        if capacity is None or capacity < 1:
            if normalized.get("history_capacity") is not None:
                self._warn_invalid("history_capacity", normalized.get("history_capacity"))
            capacity = DEFAULT_CONFIG["history_capacity"]
        normalized["history_capacity"] = capacity

        normalized["idle_confirm_enabled"] = self._to_bool(
            normalized.get("idle_confirm_enabled"), DEFAULT_CONFIG["idle_confirm_enabled"]
        )
        normalized["enable_on_start"] = self._to_bool(
            normalized.get("enable_on_start"), DEFAULT_CONFIG["enable_on_start"]
        )

        delay = self._to_float(normalized.get("idle_confirm_delay_seconds"))
        if delay is None or delay < 0:
            if normalized.get("idle_confirm_delay_seconds") is not None:
                self._warn_invalid(
                    "idle_confirm_delay_seconds", normalized.get("idle_confirm_delay_seconds")
                )
            delay = float(DEFAULT_CONFIG["idle_confirm_delay_seconds"])
        normalized["idle_confirm_delay_seconds"] = delay

        shell = normalized.get("shell")
        if not isinstance(shell, str) or not shell.strip():
            shell = os.environ.get("SHELL") or "/bin/sh"
        normalized["shell"] = shell.strip()

        shell_args = normalized.get("shell_args")
        if not isinstance(shell_args, list) or not all(isinstance(a, str) for a in shell_args):
            if shell_args:
                self._warn_invalid("shell_args", shell_args)
            shell_args = []
        normalized["shell_args"] = list(shell_args)

        dirtrack = normalized.get("dirtrack")
        if isinstance(dirtrack, str) and dirtrack.strip().lower() in DIRTRACK_METHODS:
            normalized["dirtrack"] = dirtrack.strip().lower()
        else:
            if dirtrack is not None:
                self._warn_invalid("dirtrack", dirtrack)
            normalized["dirtrack"] = DEFAULT_CONFIG["dirtrack"]

        keys = normalized.get("keys")
        if not isinstance(keys, dict):
            if keys is not None:
                self._warn_invalid("keys", keys)
            keys = {}
        normalized["keys"] = {
            str(name): value for name, value in keys.items() if isinstance(value, str)
        }
        return normalized

    def _read_global_config(self) -> Dict[str, Any]:
        data = self._read_json(self.paths.global_config_file)
        if not isinstance(data, dict):
            return {}
        data.pop("$schema", None)
        data.pop("version", None)
        return data

    def _env_settings(self) -> Dict[str, Any]:
        env: Dict[str, Any] = {}
        capacity = os.getenv("DIRCYCLE_HISTORY_CAPACITY")
        if capacity is not None:
            env["history_capacity"] = capacity
        idle = os.getenv("DIRCYCLE_IDLE_CONFIRM")
        if idle is not None:
            env["idle_confirm_enabled"] = idle
        delay = os.getenv("DIRCYCLE_IDLE_DELAY")
        if delay is not None:
            env["idle_confirm_delay_seconds"] = delay
        shell = os.getenv("DIRCYCLE_SHELL")
        if shell:
            env["shell"] = shell
        return env

    def _merge_dicts(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        if not override:
            return dict(base)
        merged: Dict[str, Any] = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge_dicts(merged[key], value)  # type: ignore[arg-type]
            else:
                merged[key] = value
        return merged

    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            self.console.print(
                f"[red]Failed to parse JSON config at {path}. Using defaults.[/red]"
            )
            return {}
        if not isinstance(data, dict):
            self.console.print(
                f"[yellow]Ignoring {path}: expected a JSON object.[/yellow]"
            )
            return {}
        return data

    def _ensure_home_bootstrap(self) -> None:
        if self.paths.global_config_file.exists():
            return
        default_config = {"version": __version__, **DEFAULT_CONFIG}
        try:
            self.paths.global_dir.mkdir(parents=True, exist_ok=True)
            self.paths.global_config_file.write_text(
                json.dumps(default_config, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except PermissionError:
            self.console.print(
                f"[yellow]Cannot write {self.paths.global_config_file}. Using built-in defaults.[/yellow]"
            )

    def _warn_invalid(self, key: str, value: Any) -> None:
        self.console.print(
            f"[yellow]Ignoring invalid {key}={value!r} in dircycle config; using the default.[/yellow]"
        )

    def _to_bool(self, value: Any, default: bool) -> bool:
        if value is None:
            return default
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y", "on"}
        return bool(value)

    def _to_int(self, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def _to_float(self, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
