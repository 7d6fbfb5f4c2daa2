"""Tokens router -- guarded writes, tuning batches, and Figma export/validation."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Query

from dtm.core import GovernanceCore
from dtm.errors import GovernanceError
from dtm.guard.models import BackupAction, TokenWrite, TuningEdit
from web.backend.app.deps import get_core
from web.backend.app.models.api import (
    DeleteTokenRequest,
    ErrorResponse,
    SaveTokenRequest,
    SaveTokenResponse,
    SaveTuningRequest,
    SaveTuningResponse,
    TuningFileResult,
    ValidateExportResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tokens"])


@router.post(
    "/save-token",
    response_model=SaveTokenResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Create, update, or delete a single token",
)
def save_token(
    body: Annotated[SaveTokenRequest, Body(discriminator="action")],
    core: GovernanceCore = Depends(get_core),
):
    """Write one token through the global guard.

    Global-tier files are backed up first; deletes there need ``confirm``.
    """
    op = TokenWrite(
        target_path=body.target_path,
        token_path=body.token_path,
        action=BackupAction(body.action),
        value=None if isinstance(body, DeleteTokenRequest) else body.value_obj,
        confirm=body.confirm if isinstance(body, DeleteTokenRequest) else False,
    )
    try:
        result = core.guard.save_token(op)
    except (OSError, ValueError) as exc:
        logger.exception("Sync error writing %s", body.target_path)
        raise GovernanceError(str(exc)) from exc
    return SaveTokenResponse(path=result.path, backup_id=result.backup_id)


@router.post(
    "/save-tuning",
    response_model=SaveTuningResponse,
    summary="Save a batch of tuned token values",
)
def save_tuning(body: SaveTuningRequest, core: GovernanceCore = Depends(get_core)):
    """Apply tuning overrides, one write (and at most one backup) per file."""
    edits = [
        TuningEdit(file=e.file, token_path=e.token_path, value=e.value, type=e.type, css_var=e.css_var)
        for e in body.entries
    ]
    try:
        results = core.guard.save_tuning(edits)
    except (OSError, ValueError) as exc:
        logger.exception("Tuning save failed")
        raise GovernanceError(str(exc)) from exc
    return SaveTuningResponse(
        results=[TuningFileResult(file=r.file, saved=r.saved, backup_id=r.backup_id) for r in results]
    )


@router.get(
    "/validate-figma-export",
    response_model=ValidateExportResponse,
    summary="Validate alias integrity before a Figma export",
)
def validate_figma_export(
    project: Optional[str] = Query(None, description="Restrict to one project's lineage: client/project"),
    core: GovernanceCore = Depends(get_core),
):
    """Always 200 on a completed run; findings are reported in ``errors``/``warnings``."""
    try:
        report = core.validator.validate(project_key=project)
    except OSError as exc:
        logger.exception("Validation failed")
        raise GovernanceError(str(exc), code="VALIDATION_FAILED") from exc
    return ValidateExportResponse(**report.to_dict())


@router.get(
    "/export-figma",
    summary="Export all tokens in W3C DTCG format",
)
def export_figma(
    project: Optional[str] = Query(None),
    core: GovernanceCore = Depends(get_core),
):
    """Return the flattened ``{path: {$value, $type}}`` map without validation."""
    try:
        tokens = core.validator.build_export(project_key=project)
    except OSError as exc:
        logger.exception("Figma export failed")
        raise GovernanceError(str(exc), code="EXPORT_ERROR") from exc
    logger.info("[FIGMA] Exporting %d tokens in W3C DTCG format", len(tokens))
    return tokens
