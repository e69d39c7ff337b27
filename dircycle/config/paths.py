from dataclasses import dataclass
from pathlib import Path


@dataclass
class DircyclePaths:
    """Centralizes filesystem paths for a dircycle workspace."""

    root: Path

    @property
    def dircycle_dir(self) -> Path:
        return self.root / ".dircycle"

    @property
    def config_file(self) -> Path:
        return self.dircycle_dir / "dircycle.json"

    @property
    def logs_dir(self) -> Path:
        return self.dircycle_dir / "logs"

    @property
    def global_dir(self) -> Path:
        return Path.home() / ".dircycle"

    @property
    def global_config_file(self) -> Path:
        return self.global_dir / "dircycle.json"
