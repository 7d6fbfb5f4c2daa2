"""Global guard router -- backup history and restore endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dtm.core import GovernanceCore
from dtm.errors import GovernanceError
from dtm.guard.models import BackupEntry, RestoreResult
from web.backend.app.deps import get_core
from web.backend.app.models.api import (
    BackupEntryResponse,
    ErrorResponse,
    HistoryResponse,
    RestoreLatestRequest,
    RestoreRequest,
    RestoreResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/global-guard", tags=["global-guard"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entry_response(entry: BackupEntry) -> BackupEntryResponse:
    """Convert a BackupEntry dataclass to a Pydantic response model."""
    return BackupEntryResponse(
        id=entry.id,
        created_at=entry.created_at,
        source_path=entry.source_path,
        backup_path=entry.backup_path,
        action=entry.action.value,
        token_path=entry.token_path,
        existed=entry.existed,
    )


def _restore_response(result: RestoreResult) -> RestoreResponse:
    return RestoreResponse(
        success=result.success,
        restored_path=result.restored_path,
        backup_id=result.backup_id,
        removed=result.removed,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="List global-tier backups, newest first",
)
def history(
    limit: Optional[int] = Query(None, ge=0, le=1000),
    target_path: Optional[str] = Query(None, alias="targetPath"),
    core: GovernanceCore = Depends(get_core),
):
    """Return backup entries, optionally only those for one source file."""
    if limit is None:
        limit = core.config.history_limit
    try:
        entries = core.backups.list(limit=limit, target_path=target_path)
    except (OSError, ValueError) as exc:
        logger.exception("Failed to read backup history")
        raise GovernanceError(f"Failed to read backup history: {exc}") from exc
    return HistoryResponse(history=[_entry_response(e) for e in entries])


@router.post(
    "/restore",
    response_model=RestoreResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Restore a file from a specific backup",
)
def restore(body: RestoreRequest, core: GovernanceCore = Depends(get_core)):
    try:
        result = core.restore.restore_by_id(body.backup_id)
    except (OSError, ValueError) as exc:
        logger.exception("Restore of %s failed", body.backup_id)
        raise GovernanceError(str(exc)) from exc
    return _restore_response(result)


@router.post(
    "/restore-latest",
    response_model=RestoreResponse,
    summary="Restore the most recent backup for a file (or overall)",
)
def restore_latest(
    body: Optional[RestoreLatestRequest] = None,
    core: GovernanceCore = Depends(get_core),
):
    target_path = body.target_path if body else None
    try:
        result = core.restore.restore_latest(target_path)
    except (OSError, ValueError) as exc:
        logger.exception("Restore-latest failed")
        raise GovernanceError(str(exc)) from exc
    return _restore_response(result)
