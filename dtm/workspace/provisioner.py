"""Workspace provisioner -- scaffolds new client/project token directories.

Layout created for ``<client>/<project>``::

    tokens/clients/<client>/projects/<project>/
    ├── color.json
    ├── typography.json
    └── spacing.json

The manifest entry is written last: a crash after the files land leaves an
unregistered directory (harmless, and cleaned up when the registry write
itself fails), never a registry entry pointing at missing files. Existing
scaffold files in an unregistered directory are left alone and the request
fails with PROJECT_EXISTS.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from dtm.errors import ConflictError, RequestValidationFailed
from dtm.utils.atomic_io import atomic_write_json
from dtm.utils.paths import to_url_path
from dtm.workspace.manifest import ManifestRegistry
from dtm.workspace.models import (
    CreateProjectRequest,
    ManifestProject,
    ProjectMetadata,
    ProvisionResult,
)
from dtm.workspace.templates import DEFAULT_TEMPLATE, TEMPLATES, render_template

logger = logging.getLogger(__name__)

DEFAULT_BRAND = "core"


def normalize_segment(value: str) -> str:
    """Lower-case slug: whitespace to hyphens, anything outside ``[a-z0-9-]`` dropped."""
    value = re.sub(r"\s+", "-", (value or "").strip().lower())
    value = re.sub(r"[^a-z0-9-]", "", value)
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


class WorkspaceProvisioner:
    """Creates project scaffolds and records them in the manifest registry."""

    def __init__(self, project_root: str | Path, clients_dir: str | Path, registry: ManifestRegistry) -> None:
        self.project_root = Path(project_root).resolve()
        self.clients_dir = Path(clients_dir).resolve()
        self.registry = registry

    def project_dir(self, client_id: str, project_id: str) -> Path:
        return self.clients_dir / client_id / "projects" / project_id

    def create_project(self, request: CreateProjectRequest) -> ProvisionResult:
        """Provision ``<client>/<project>``; fails with PROJECT_EXISTS on a duplicate key."""
        client_id = normalize_segment(request.client_id)
        project_id = normalize_segment(request.project_id)
        brand_id = normalize_segment(request.brand_id) or DEFAULT_BRAND
        template = request.template or DEFAULT_TEMPLATE

        if not client_id or not project_id:
            raise RequestValidationFailed("Client ID and Project ID are required.")
        if template not in TEMPLATES:
            raise RequestValidationFailed(
                f"Unknown template '{template}'. Must be one of: {sorted(TEMPLATES)}",
                code="UNKNOWN_TEMPLATE",
            )

        project_key = f"{client_id}/{project_id}"
        target_dir = self.project_dir(client_id, project_id)

        with self.registry.lock:
            if self.registry.contains(project_key):
                logger.warning("Refusing to provision %s: already registered", project_key)
                raise ConflictError(f"Project '{project_key}' already exists", project_key=project_key)

            scaffold = render_template(template)
            existing = sorted(name for name in scaffold if (target_dir / name).exists())
            if existing:
                # Scaffold files never overwrite existing ones, registered or not
                logger.warning("Refusing to provision %s: %s already present", project_key, ", ".join(existing))
                raise ConflictError(
                    f"Project directory for '{project_key}' already contains {', '.join(existing)}",
                    project_key=project_key,
                )

            written: list[Path] = []
            try:
                for filename, tree in scaffold.items():
                    path = target_dir / filename
                    atomic_write_json(path, tree)
                    written.append(path)

                now = datetime.now(timezone.utc).isoformat()
                files = [to_url_path(self.project_root, target_dir / name) for name in scaffold]
                project = ManifestProject(
                    client=client_id,
                    project=project_id,
                    path=to_url_path(self.project_root, target_dir),
                    metadata=ProjectMetadata(brand=brand_id, template=template, created_at=now),
                    files=files,
                )
                self.registry.insert(project)
            except Exception:
                for path in written:
                    path.unlink(missing_ok=True)
                logger.exception("Provisioning %s failed; removed %d new file(s)", project_key, len(written))
                raise

        logger.info("Provisioned %s (brand=%s, template=%s)", project_key, brand_id, template)
        return ProvisionResult(success=True, project_key=project_key, files=files)
