"""Configuration package."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .manager import ConfigManager, DircycleSettings
    from .paths import DircyclePaths

__all__ = ["ConfigManager", "DircycleSettings", "DircyclePaths"]


def __getattr__(name: str) -> Any:
    if name in {"ConfigManager", "DircycleSettings"}:
        from .manager import ConfigManager, DircycleSettings

        return {"ConfigManager": ConfigManager, "DircycleSettings": DircycleSettings}[name]
    if name == "DircyclePaths":
        from .paths import DircyclePaths

        return DircyclePaths
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
