"""Global guard -- the policy gate for every token-file mutation.

Rules:

- ``delete`` on a global-tier file is denied with ``GLOBAL_DELETE_PROTECTED``
  unless the caller passes an explicit confirmation flag.
- ``create`` / ``update`` are always allowed.
- Any allowed mutation of a global-tier file is preceded by exactly one
  Backup Store ``record`` call capturing the pre-mutation bytes.
- Denied operations touch nothing: no backup, no write.

Client and project tiers are not protected; writes there go straight to disk.
"""

from __future__ import annotations

import json
import logging
import threading
import weakref
from pathlib import Path
from typing import Any, Iterable

from dtm.errors import PathTraversalError, PolicyDenied, RequestValidationFailed
from dtm.guard.backup_store import BackupStore
from dtm.guard.models import (
    BackupAction,
    GuardDecision,
    SaveResult,
    TokenWrite,
    TuningEdit,
    TuningResult,
)
from dtm.tokens.tree import delete_at_path, get_at_path, set_at_path, split_path
from dtm.utils.atomic_io import atomic_write_json
from dtm.utils.paths import is_within, require_url_path, to_url_path

logger = logging.getLogger(__name__)

GLOBAL_DELETE_PROTECTED = "GLOBAL_DELETE_PROTECTED"
DEFAULT_TUNING_TYPE = "color"


class GlobalGuard:
    """Authorizes and applies token writes, backing up global-tier files first."""

    def __init__(
        self,
        backups: BackupStore,
        tokens_dir: str | Path,
        global_dir: str | Path,
        reserved: Iterable[Path] = (),
    ) -> None:
        self.backups = backups
        self.project_root = backups.project_root
        self.tokens_dir = Path(tokens_dir).resolve()
        self.global_dir = Path(global_dir).resolve()
        # Documents owned by other components; never written through the guard
        self.reserved = [backups.backup_dir] + [Path(p).resolve() for p in reserved]
        # Entries disappear once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def path_lock(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def resolve_target(self, url_path: str) -> Path:
        """Resolve a token file URL path the guard may write.

        Raises PathTraversalError for anything outside the token tree or
        inside a reserved location (backup store, manifest).
        """
        target = require_url_path(self.project_root, url_path)
        if not is_within(target, self.tokens_dir):
            raise PathTraversalError(
                f'Path "{url_path}" is outside the token directory.',
                target_path=url_path,
            )
        if any(is_within(target, reserved) for reserved in self.reserved):
            raise PathTraversalError(
                f'Path "{url_path}" is managed by the governance core and cannot be edited as a token file.',
                code="RESERVED_PATH",
                target_path=url_path,
            )
        return target

    def _load_tree(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Token file {path} does not contain a JSON object")
        return data

    def is_protected(self, path: Path) -> bool:
        """True if ``path`` lies in the global tier."""
        return is_within(path, self.global_dir)

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def authorize(self, op: TokenWrite) -> GuardDecision:
        """Decide whether ``op`` may proceed. Has no side effects."""
        target = self.resolve_target(op.target_path)
        protected = self.is_protected(target)

        if protected and op.action == BackupAction.DELETE and not op.confirm:
            return GuardDecision(
                allowed=False,
                code=GLOBAL_DELETE_PROTECTED,
                reason=(
                    f'Deleting "{op.token_path}" from global token file '
                    f'"{op.target_path}" requires explicit confirmation.'
                ),
                protected=True,
            )
        return GuardDecision(allowed=True, protected=protected)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save_token(self, op: TokenWrite) -> SaveResult:
        """Apply a create/update/delete of one token, guarded by policy.

        Returns the written path and, for global-tier files, the id of the
        backup taken before the write.
        """
        if not op.target_path:
            raise RequestValidationFailed("Missing targetPath", code="MISSING_PATH")
        if not op.token_path:
            raise RequestValidationFailed("Missing tokenPath")
        if op.action != BackupAction.DELETE and op.value is None:
            raise RequestValidationFailed(f"valueObj is required for {op.action.value}")

        decision = self.authorize(op)
        if not decision.allowed:
            logger.warning("Denied %s of %s in %s: %s", op.action.value, op.token_path, op.target_path, decision.code)
            raise PolicyDenied(decision.reason, code=decision.code, target_path=op.target_path)

        target = self.resolve_target(op.target_path)
        source_key = to_url_path(self.project_root, target)

        with self.path_lock(source_key):
            if op.action == BackupAction.DELETE and not target.exists():
                logger.info("Delete in missing file %s: nothing to do", source_key)
                return SaveResult(path=source_key)

            tree = self._load_tree(target)
            if op.action == BackupAction.DELETE:
                changed = delete_at_path(tree, op.token_path)
                if not changed:
                    logger.info("Delete of missing token %s in %s", op.token_path, source_key)
            else:
                try:
                    set_at_path(tree, op.token_path, op.value)
                except ValueError as exc:
                    raise RequestValidationFailed(str(exc)) from exc

            backup_id = None
            if decision.protected:
                backup_id = self.backups.record(source_key, op.action, op.token_path).id
            atomic_write_json(target, tree)

        logger.info("[CRUD] %s \"%s\" in %s", op.action.value.upper(), op.token_path, source_key)
        return SaveResult(path=source_key, backup_id=backup_id)

    def save_tuning(self, edits: Iterable[TuningEdit]) -> list[TuningResult]:
        """Apply a batch of ``$value`` edits, one read/backup/write per file.

        Edits without a file or token path are ignored; files outside the token
        tree or in a reserved location are skipped with a warning.
        """
        edits = list(edits)
        if not edits:
            raise RequestValidationFailed("entries must be a non-empty array", code="BAD_ENTRIES")

        by_file: dict[str, list[TuningEdit]] = {}
        for edit in edits:
            if not edit.file or not edit.token_path:
                continue
            try:
                split_path(edit.token_path)
            except ValueError as exc:
                raise RequestValidationFailed(str(exc), code="BAD_ENTRIES") from exc
            by_file.setdefault(edit.file, []).append(edit)

        results: list[TuningResult] = []
        for file_path, writes in by_file.items():
            try:
                target = self.resolve_target(file_path)
            except PathTraversalError as exc:
                logger.warning("[TUNING] Skipping unsafe path: %s (%s)", file_path, exc.code)
                continue
            source_key = to_url_path(self.project_root, target)

            with self.path_lock(source_key):
                tree = self._load_tree(target)
                for edit in writes:
                    _apply_tuning_edit(tree, edit)

                backup_id = None
                if self.is_protected(target):
                    backup_id = self.backups.record(source_key, BackupAction.UPDATE).id
                atomic_write_json(target, tree)

            logger.info("[TUNING] Saved %d token(s) -> %s", len(writes), source_key)
            results.append(TuningResult(file=file_path, saved=len(writes), backup_id=backup_id))
        return results


def _apply_tuning_edit(tree: dict, edit: TuningEdit) -> None:
    """Update ``$value`` of an existing typed token, or create a new token node."""
    existing = get_at_path(tree, edit.token_path)
    if isinstance(existing, dict) and "$type" in existing:
        existing["$value"] = edit.value
    else:
        set_at_path(tree, edit.token_path, {"$value": edit.value, "$type": edit.type or DEFAULT_TUNING_TYPE})
