"""Workspace router -- project provisioning and the manifest registry."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from dtm.core import GovernanceCore
from dtm.errors import GovernanceError, NotFoundError
from dtm.workspace.models import CreateProjectRequest
from web.backend.app.deps import get_core
from web.backend.app.models.api import (
    CreateProjectBody,
    CreateProjectResponse,
    ErrorResponse,
    ProjectListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspace", tags=["workspace"])


@router.post(
    "/create-project",
    response_model=CreateProjectResponse,
    responses={409: {"model": ErrorResponse}},
    summary="Provision a new client/project workspace",
)
def create_project(body: CreateProjectBody, core: GovernanceCore = Depends(get_core)):
    """Scaffold default token files and register the project.

    Answers 409 ``PROJECT_EXISTS`` if the key is already registered.
    """
    request = CreateProjectRequest(
        client_id=body.client_id,
        project_id=body.project_id,
        brand_id=body.brand_id,
        template=body.template,
    )
    try:
        result = core.provisioner.create_project(request)
    except (OSError, ValueError) as exc:
        raise GovernanceError(f"Project setup failed: {exc}") from exc
    return CreateProjectResponse(project_key=result.project_key, files=result.files)


@router.get(
    "/projects",
    response_model=ProjectListResponse,
    summary="List provisioned projects",
)
def list_projects(core: GovernanceCore = Depends(get_core)):
    try:
        projects = core.registry.list_projects()
    except (OSError, ValueError) as exc:
        logger.exception("Failed to read manifest")
        raise GovernanceError(f"Failed to read manifest: {exc}") from exc
    return ProjectListResponse(projects=projects)


@router.get(
    "/projects/{client_id}/{project_id}",
    summary="Get one provisioned project",
)
def get_project(client_id: str, project_id: str, core: GovernanceCore = Depends(get_core)):
    key = f"{client_id}/{project_id}"
    try:
        project = core.registry.get(key)
    except (OSError, ValueError) as exc:
        logger.exception("Failed to read manifest")
        raise GovernanceError(f"Failed to read manifest: {exc}") from exc
    if project is None:
        raise NotFoundError(f"Project '{key}' not found", code="PROJECT_NOT_FOUND")
    return project
