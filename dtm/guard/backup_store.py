"""Append-only store of pre-mutation file snapshots.

Storage layout (default ``<project>/.memory/global-backups/``):

- ``index.json`` -- JSON list of BackupEntry dicts, in append order
- ``<entry id>.json`` -- byte-exact copy of the source file at record time

Entries are never reordered or rewritten, so the index order is also the
recency order. The index is a single shared document: every append happens
under the store's lock and is written atomically.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from dtm.guard.models import BackupAction, BackupEntry
from dtm.utils.atomic_io import atomic_write_bytes, atomic_write_json, read_json
from dtm.utils.paths import is_within, require_url_path, to_url_path

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BackupStore:
    """File-based backup log for token files."""

    INDEX_FILE = "index.json"
    SNAPSHOT_SUFFIX = ".json"

    def __init__(
        self,
        project_root: str | Path,
        backup_dir: str | Path,
        clock: Optional[Clock] = None,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.backup_dir = Path(backup_dir).resolve()
        if not is_within(self.backup_dir, self.project_root):
            # backupPath is stored relative to the project root
            raise ValueError(f"Backup directory {self.backup_dir} must live inside {self.project_root}")
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        self.index_path = self.backup_dir / self.INDEX_FILE
        self._clock = clock or _utc_now
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_index(self) -> list[BackupEntry]:
        raw = read_json(self.index_path, default=[])
        if not isinstance(raw, list):
            raise ValueError(f"Backup index {self.index_path} is not a list")
        try:
            return [BackupEntry.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Backup index {self.index_path} has a malformed entry: {exc!r}") from exc

    def _write_index(self, entries: list[BackupEntry]) -> None:
        atomic_write_json(self.index_path, [e.to_dict() for e in entries])

    def _new_id(self, now: datetime) -> str:
        return f"{now.strftime('%Y%m%dT%H%M%S%fZ')}-{uuid.uuid4().hex[:8]}"

    def source_key(self, source_path: str) -> str:
        """Canonical ``sourcePath`` for a URL path (``/tokens/global/a.json``)."""
        return to_url_path(self.project_root, require_url_path(self.project_root, source_path))

    def snapshot_file(self, entry: BackupEntry) -> Path:
        """Absolute path of the snapshot referenced by ``entry``."""
        return require_url_path(self.project_root, entry.backup_path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(
        self,
        source_path: str,
        action: BackupAction | str,
        token_path: Optional[str] = None,
    ) -> BackupEntry:
        """Snapshot the current bytes of ``source_path`` and append an entry.

        A missing source is recorded as an empty snapshot with
        ``existed=False``; restoring it removes the file again.
        """
        action = BackupAction(action)
        source_abs = require_url_path(self.project_root, source_path)

        with self._lock:
            now = self._clock()
            backup_id = self._new_id(now)
            existed = source_abs.is_file()
            data = source_abs.read_bytes() if existed else b""

            snapshot = self.backup_dir / f"{backup_id}{self.SNAPSHOT_SUFFIX}"
            atomic_write_bytes(snapshot, data)

            entry = BackupEntry(
                id=backup_id,
                created_at=now.isoformat(),
                source_path=to_url_path(self.project_root, source_abs),
                backup_path=to_url_path(self.project_root, snapshot),
                action=action,
                token_path=token_path,
                existed=existed,
            )
            entries = self._read_index()
            entries.append(entry)
            self._write_index(entries)

        logger.info(
            "Backup %s recorded for %s (%s%s)",
            entry.id,
            entry.source_path,
            action.value,
            "" if existed else ", source absent",
        )
        return entry

    def find_by_id(self, backup_id: str) -> Optional[BackupEntry]:
        """Look up an entry by id. Returns None if not found."""
        for entry in self._read_index():
            if entry.id == backup_id:
                return entry
        return None

    def find_latest_for(self, source_path: str) -> Optional[BackupEntry]:
        """Most recently appended entry whose ``sourcePath`` matches exactly."""
        key = self.source_key(source_path)
        for entry in reversed(self._read_index()):
            if entry.source_path == key:
                return entry
        return None

    def latest(self) -> Optional[BackupEntry]:
        entries = self._read_index()
        return entries[-1] if entries else None

    def list(self, limit: int = 50, target_path: Optional[str] = None) -> list[BackupEntry]:
        """Return entries newest first, optionally only those for ``target_path``."""
        entries = list(reversed(self._read_index()))
        if target_path:
            key = self.source_key(target_path)
            entries = [e for e in entries if e.source_path == key]
        if limit < 0:
            limit = 0
        return entries[:limit]

    def count(self) -> int:
        return len(self._read_index())
