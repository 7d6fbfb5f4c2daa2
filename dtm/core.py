"""GovernanceCore -- wires the governance components around shared stores.

One core is built per project root. It owns the two shared documents (the
backup index and the manifest registry) and hands the same store instances
to every component that needs them, so their locks actually serialise all
writers in the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dtm.config import GovernanceConfig
from dtm.guard.backup_store import BackupStore, Clock
from dtm.guard.global_guard import GlobalGuard
from dtm.guard.restore import RestoreEngine
from dtm.tokens.validator import ReferenceValidator
from dtm.workspace.manifest import ManifestRegistry
from dtm.workspace.provisioner import WorkspaceProvisioner


@dataclass
class GovernanceCore:
    config: GovernanceConfig
    backups: BackupStore
    registry: ManifestRegistry
    guard: GlobalGuard
    restore: RestoreEngine
    validator: ReferenceValidator
    provisioner: WorkspaceProvisioner

    @classmethod
    def from_config(cls, config: GovernanceConfig, clock: Optional[Clock] = None) -> GovernanceCore:
        backups = BackupStore(config.project_root, config.backup_dir, clock=clock)
        registry = ManifestRegistry(config.manifest_path)
        guard = GlobalGuard(backups, config.tokens_dir, config.global_dir, reserved=[config.manifest_path])
        return cls(
            config=config,
            backups=backups,
            registry=registry,
            guard=guard,
            restore=RestoreEngine(backups, guard),
            validator=ReferenceValidator(config.tokens_dir, exclude=[config.manifest_path]),
            provisioner=WorkspaceProvisioner(config.project_root, config.clients_dir, registry),
        )

    @classmethod
    def for_project(cls, project_root: str | Path, clock: Optional[Clock] = None) -> GovernanceCore:
        """Shortcut: load config for ``project_root`` and build a core from it."""
        return cls.from_config(GovernanceConfig.load(project_root), clock=clock)
