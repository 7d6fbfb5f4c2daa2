"""Pydantic models for API request/response serialization.

Field names are snake_case in Python and camelCase on the wire
(``targetPath``, ``backupId``...), matching what the token editor sends.
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Token write models
# ---------------------------------------------------------------------------


class _TokenWriteBase(CamelModel):
    target_path: str = Field(min_length=1, description="URL path, e.g. /tokens/global/base/colors.json")
    token_path: str = Field(min_length=1, description="Dotted token path, e.g. color.primary.500")


class CreateTokenRequest(_TokenWriteBase):
    action: Literal["create"]
    value_obj: Any


class UpdateTokenRequest(_TokenWriteBase):
    action: Literal["update"]
    value_obj: Any


class DeleteTokenRequest(_TokenWriteBase):
    action: Literal["delete"]
    confirm: bool = Field(False, description="Required to delete from the global tier")


# Tagged on ``action``; routers pass ``Body(discriminator="action")``
SaveTokenRequest = Union[CreateTokenRequest, UpdateTokenRequest, DeleteTokenRequest]


class SaveTokenResponse(CamelModel):
    success: bool = True
    path: str
    backup_id: Optional[str] = None


class TuningEntry(CamelModel):
    file: str = ""
    token_path: str = ""
    value: Union[str, int, float]
    type: Optional[str] = None
    css_var: str = ""


class SaveTuningRequest(CamelModel):
    entries: list[TuningEntry]


class TuningFileResult(CamelModel):
    file: str
    saved: int
    backup_id: Optional[str] = None


class SaveTuningResponse(CamelModel):
    success: bool = True
    results: list[TuningFileResult] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Global guard models
# ---------------------------------------------------------------------------


class BackupEntryResponse(CamelModel):
    """Mirrors dtm.guard.models.BackupEntry."""

    id: str
    created_at: str
    source_path: str
    backup_path: str
    action: Literal["create", "update", "delete"]
    token_path: Optional[str] = None
    existed: bool = True


class HistoryResponse(CamelModel):
    success: bool = True
    history: list[BackupEntryResponse] = Field(default_factory=list)


class RestoreRequest(CamelModel):
    backup_id: str = Field(min_length=1)


class RestoreLatestRequest(CamelModel):
    target_path: Optional[str] = None


class RestoreResponse(CamelModel):
    success: bool = True
    restored_path: str
    backup_id: str
    removed: bool = False


# ---------------------------------------------------------------------------
# Validation / export models
# ---------------------------------------------------------------------------


class ValidationIssueResponse(CamelModel):
    code: str
    token: str
    path: str
    message: str
    ref: Optional[str] = None


class ValidationSummaryResponse(CamelModel):
    total_tokens: int = 0
    error_count: int = 0
    warning_count: int = 0
    type_counts: dict[str, int] = Field(default_factory=dict)


class ValidateExportResponse(CamelModel):
    success: bool = True
    valid: bool
    tokens: dict[str, dict[str, Any]] = Field(default_factory=dict)
    summary: ValidationSummaryResponse = Field(default_factory=ValidationSummaryResponse)
    errors: list[ValidationIssueResponse] = Field(default_factory=list)
    warnings: list[ValidationIssueResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Workspace models
# ---------------------------------------------------------------------------


class CreateProjectBody(CamelModel):
    client_id: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    brand_id: str = ""
    template: str = ""


class CreateProjectResponse(CamelModel):
    success: bool = True
    project_key: str
    files: list[str] = Field(default_factory=list)


class ProjectListResponse(CamelModel):
    projects: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: str
    code: str
