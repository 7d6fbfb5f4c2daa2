"""Data models for the global guard."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class BackupAction(Enum):
    """The mutation a backup was taken in front of."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class BackupEntry:
    """Pre-mutation snapshot of one token file.

    ``source_path`` and ``backup_path`` are project-root URL paths
    (``/tokens/global/...``). ``existed`` is False when the source file did
    not exist at record time; restoring such an entry deletes the file.
    """

    id: str
    created_at: str
    source_path: str
    backup_path: str
    action: BackupAction
    token_path: Optional[str] = None
    existed: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "sourcePath": self.source_path,
            "backupPath": self.backup_path,
            "action": self.action.value,
            "tokenPath": self.token_path,
            "existed": self.existed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupEntry:
        return cls(
            id=data["id"],
            created_at=data.get("createdAt", ""),
            source_path=data["sourcePath"],
            backup_path=data["backupPath"],
            action=BackupAction(data.get("action", "update")),
            token_path=data.get("tokenPath"),
            existed=data.get("existed", True),
        )


@dataclass
class TokenWrite:
    """A single save-token operation as seen by the guard."""

    target_path: str
    token_path: str
    action: BackupAction = BackupAction.UPDATE
    value: Any = None
    confirm: bool = False


@dataclass
class GuardDecision:
    """Result of :meth:`GlobalGuard.authorize`."""

    allowed: bool
    code: str = ""
    reason: str = ""
    protected: bool = False  # target lives in the global tier


@dataclass
class SaveResult:
    path: str
    backup_id: Optional[str] = None


@dataclass
class TuningEdit:
    """One entry of a tuning batch: set ``$value`` of ``token_path`` in ``file``."""

    file: str
    token_path: str
    value: Any
    type: Optional[str] = None
    css_var: str = ""


@dataclass
class TuningResult:
    file: str
    saved: int
    backup_id: Optional[str] = None


@dataclass
class RestoreResult:
    success: bool
    restored_path: str
    backup_id: str
    removed: bool = False  # the snapshot was "absent", so the file was deleted
