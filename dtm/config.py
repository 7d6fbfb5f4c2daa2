"""Configuration for the governance core.

Resolution order (later wins):

1. Built-in defaults relative to the project root
2. ``dtm.yaml`` in the project root, if present
3. ``DTM_*`` environment variables
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from dtm.utils.paths import is_within

CONFIG_FILE = "dtm.yaml"

# Environment variable -> config attribute
_ENV_OVERRIDES = {
    "DTM_TOKENS_DIR": "tokens_dir",
    "DTM_BACKUP_DIR": "backup_dir",
    "DTM_MANIFEST_PATH": "manifest_path",
    "DTM_LOG_LEVEL": "log_level",
    "DTM_HISTORY_LIMIT": "history_limit",
}

_PATH_FIELDS = {"tokens_dir", "backup_dir", "manifest_path"}


@dataclass
class GovernanceConfig:
    """Filesystem layout and tunables for one token project."""

    project_root: Path
    tokens_dir: Optional[Path] = None
    backup_dir: Optional[Path] = None
    manifest_path: Optional[Path] = None
    history_limit: int = 50
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.project_root = Path(self.project_root).resolve()
        if self.tokens_dir is None:
            self.tokens_dir = self.project_root / "tokens"
        if self.backup_dir is None:
            self.backup_dir = self.project_root / ".memory" / "global-backups"
        if self.manifest_path is None:
            self.manifest_path = self.tokens_dir / "manifest.json"
        for name in _PATH_FIELDS:
            setattr(self, name, self._absolute(getattr(self, name)))
        # Token and backup paths are exchanged as root-relative URL paths
        for name in ("tokens_dir", "backup_dir"):
            if not is_within(getattr(self, name), self.project_root):
                raise ValueError(f"{name} must be inside the project root {self.project_root}")

    @property
    def global_dir(self) -> Path:
        return self.tokens_dir / "global"

    @property
    def clients_dir(self) -> Path:
        return self.tokens_dir / "clients"

    def _absolute(self, value: str | Path) -> Path:
        path = Path(value)
        if not path.is_absolute():
            path = self.project_root / path
        return path.resolve()

    @classmethod
    def load(
        cls,
        project_root: Optional[str | Path] = None,
        environ: Optional[dict[str, str]] = None,
    ) -> GovernanceConfig:
        """Build a config from defaults, ``dtm.yaml`` and the environment."""
        env = os.environ if environ is None else environ
        root = Path(project_root or env.get("DTM_PROJECT_ROOT") or Path.cwd())

        values: dict[str, object] = {}
        config_file = root / CONFIG_FILE
        if config_file.exists():
            with open(config_file) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"{config_file} must contain a mapping")
            for key in ("tokens_dir", "backup_dir", "manifest_path", "history_limit", "log_level"):
                if key in data:
                    values[key] = data[key]

        for var, attr in _ENV_OVERRIDES.items():
            if env.get(var):
                values[attr] = env[var]

        if "history_limit" in values:
            values["history_limit"] = int(values["history_limit"])  # type: ignore[arg-type]
        for name in _PATH_FIELDS & values.keys():
            values[name] = Path(str(values[name]))

        return cls(project_root=root, **values)  # type: ignore[arg-type]
