"""Manifest registry -- the single record of which workspaces exist.

Document shape::

    {
      "version": "1.0.0",
      "lastUpdated": "<iso timestamp>",
      "projects": {"<client>/<project>": {...ManifestProject...}}
    }

The registry is one shared mutable document. Callers that need a
check-then-write sequence (e.g. provisioning) hold :attr:`ManifestRegistry.lock`
for the whole sequence; writes are atomic file replacements.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from dtm.errors import ConflictError
from dtm.utils.atomic_io import atomic_write_json, read_json
from dtm.workspace.models import ManifestProject

logger = logging.getLogger(__name__)

MANIFEST_VERSION = "1.0.0"


class ManifestRegistry:
    """File-backed manifest of provisioned client/project workspaces."""

    def __init__(self, manifest_path: str | Path) -> None:
        self.path = Path(manifest_path)
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, Any]:
        data = read_json(self.path, default=None)
        if data is None:
            return {"version": MANIFEST_VERSION, "lastUpdated": "", "projects": {}}
        if not isinstance(data, dict) or not isinstance(data.get("projects", {}), dict):
            raise ValueError(f"Manifest {self.path} is malformed")
        data.setdefault("projects", {})
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def contains(self, project_key: str) -> bool:
        return project_key in self._read()["projects"]

    def get(self, project_key: str) -> Optional[dict[str, Any]]:
        """Return the stored project dict, or None if not registered."""
        return self._read()["projects"].get(project_key)

    def list_projects(self) -> dict[str, dict[str, Any]]:
        return dict(self._read()["projects"])

    def insert(self, project: ManifestProject) -> dict[str, Any]:
        """Register ``project``. Raises ConflictError if its key already exists.

        The registry is left untouched on conflict.
        """
        with self.lock:
            data = self._read()
            if project.key in data["projects"]:
                raise ConflictError(f"Project '{project.key}' already exists", project_key=project.key)
            data["projects"][project.key] = project.to_dict()
            data["version"] = data.get("version") or MANIFEST_VERSION
            data["lastUpdated"] = datetime.now(timezone.utc).isoformat()
            atomic_write_json(self.path, data)
        logger.info("Registered project %s in %s", project.key, self.path)
        return data["projects"][project.key]
