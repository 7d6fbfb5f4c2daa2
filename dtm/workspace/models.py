"""Data models for workspace provisioning."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProjectMetadata:
    brand: str
    template: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"brand": self.brand, "template": self.template, "createdAt": self.created_at}


@dataclass
class ManifestProject:
    """One provisioned workspace as recorded in the manifest registry."""

    client: str
    project: str
    path: str  # URL path of the project token directory
    metadata: ProjectMetadata
    files: list[str] = field(default_factory=list)
    last_build: str = ""

    @property
    def key(self) -> str:
        return f"{self.client}/{self.project}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.key,
            "client": self.client,
            "project": self.project,
            "path": self.path,
            "files": sorted(set(self.files)),
            "lastBuild": self.last_build,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class CreateProjectRequest:
    client_id: str
    project_id: str
    brand_id: str = ""
    template: str = ""


@dataclass
class ProvisionResult:
    success: bool
    project_key: str
    files: list[str] = field(default_factory=list)
