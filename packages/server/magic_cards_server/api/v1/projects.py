"""
Project endpoints for the admin page: list, stats, CRUD.

Stage is never set here. New projects start at Contacts and move only
through the funnel's advance/revert endpoints.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from magic_cards_server.api.deps import get_gateway
from magic_cards_server.core.metrics import MetricsCollector, get_metrics
from magic_cards_server.services import admin
from magic_cards_server.services.gateway import PersistenceGateway
from magic_cards_shared.schemas.common import ProjectStage
from magic_cards_shared.schemas.projects import (
    ProjectCreate,
    ProjectStats,
    ProjectSummary,
    ProjectUpdate,
)

router = APIRouter()


@router.get("/", response_model=List[ProjectSummary])
async def list_projects(
    search: Optional[str] = Query(None, max_length=200),
    stage: Optional[ProjectStage] = None,
    gateway: PersistenceGateway = Depends(get_gateway),
):
    """List projects, newest first, optionally filtered by name or stage."""
    return await admin.list_projects(gateway, search=search, stage=stage)


@router.get("/stats", response_model=ProjectStats)
async def project_stats(gateway: PersistenceGateway = Depends(get_gateway)):
    return await admin.get_stats(gateway)


@router.post("/", response_model=ProjectSummary, status_code=201)
async def create_project(
    project_in: ProjectCreate,
    gateway: PersistenceGateway = Depends(get_gateway),
):
    return await admin.create_project(gateway, project_in)


@router.get("/{project_id}", response_model=ProjectSummary)
async def get_project(project_id: str, gateway: PersistenceGateway = Depends(get_gateway)):
    project = await admin.get_project_or_404(gateway, project_id)
    return admin.to_summary(project)


@router.patch("/{project_id}", response_model=ProjectSummary)
async def update_project(
    project_id: str,
    project_in: ProjectUpdate,
    gateway: PersistenceGateway = Depends(get_gateway),
):
    return await admin.update_project(gateway, project_id, project_in)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    request: Request,
    gateway: PersistenceGateway = Depends(get_gateway),
    metrics: MetricsCollector = Depends(get_metrics),
):
    await admin.delete_project(gateway, project_id)
    boards = request.app.state.editor_boards
    boards.pop(project_id, None)
    metrics.set_gauge("editor_boards", len(boards))
    return {"ok": True}
