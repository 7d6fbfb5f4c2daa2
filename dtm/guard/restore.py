"""Restore engine -- put a file back to the state captured in a backup.

Restoring never removes index entries (history is monotonic) and does not
itself record a backup of the content it overwrites.
"""

from __future__ import annotations

import logging
from typing import Optional

from dtm.errors import NotFoundError, RequestValidationFailed
from dtm.guard.backup_store import BackupStore
from dtm.guard.global_guard import GlobalGuard
from dtm.guard.models import BackupEntry, RestoreResult
from dtm.utils.atomic_io import atomic_write_bytes
from dtm.utils.paths import require_url_path

logger = logging.getLogger(__name__)


class RestoreEngine:
    """Reverses mutations using snapshots from a :class:`BackupStore`."""

    def __init__(self, backups: BackupStore, guard: GlobalGuard) -> None:
        self.backups = backups
        self.guard = guard

    def _apply(self, entry: BackupEntry) -> RestoreResult:
        snapshot = self.backups.snapshot_file(entry)
        if not snapshot.is_file():
            raise NotFoundError(
                f"Snapshot file for backup '{entry.id}' is missing",
                code="BACKUP_FILE_MISSING",
                backup_id=entry.id,
            )
        target = require_url_path(self.backups.project_root, entry.source_path)

        with self.guard.path_lock(entry.source_path):
            if entry.existed:
                atomic_write_bytes(target, snapshot.read_bytes())
                removed = False
            else:
                # The file did not exist before the mutation
                removed = target.exists()
                target.unlink(missing_ok=True)

        logger.info("Restored %s from backup %s", entry.source_path, entry.id)
        return RestoreResult(
            success=True,
            restored_path=entry.source_path,
            backup_id=entry.id,
            removed=removed,
        )

    def restore_by_id(self, backup_id: str) -> RestoreResult:
        """Restore the file captured by ``backup_id``. Safe to repeat."""
        if not backup_id:
            raise RequestValidationFailed("Missing backupId")
        entry = self.backups.find_by_id(backup_id)
        if entry is None:
            raise NotFoundError(f"Backup '{backup_id}' not found", code="BACKUP_NOT_FOUND")
        return self._apply(entry)

    def restore_latest(self, target_path: Optional[str] = None) -> RestoreResult:
        """Restore the newest backup for ``target_path``, or the newest overall."""
        if target_path:
            entry = self.backups.find_latest_for(target_path)
        else:
            entry = self.backups.latest()
        if entry is None:
            where = f" for {target_path}" if target_path else ""
            raise NotFoundError(f"No backup found{where}", code="NO_BACKUP_FOUND")
        return self._apply(entry)
