"""
Admin service layer: project listing, stats and CRUD for the admin page.

Handles:
- Name search and stage filter over the full project list
- Stats (total / active / completed)
- Create with stage forced to Contacts; updates never touch stage
"""

from __future__ import annotations

from typing import List, Optional

import structlog

from magic_cards_server.core.errors import NotFoundError, ValidationFailure
from magic_cards_server.services.gateway import PersistenceGateway
from magic_cards_server.utils.urls import clean_link, tracking_url
from magic_cards_shared.schemas.common import ProjectStage
from magic_cards_shared.schemas.projects import (
    Project,
    ProjectCreate,
    ProjectStats,
    ProjectSummary,
    ProjectUpdate,
)

log = structlog.get_logger()


def to_summary(project: Project) -> ProjectSummary:
    return ProjectSummary(
        **project.model_dump(),
        tracking_url=tracking_url(project.tracking_number),
    )


def filter_projects(
    projects: List[Project],
    search: Optional[str] = None,
    stage: Optional[ProjectStage] = None,
) -> List[Project]:
    needle = (search or "").strip().lower()
    results = []
    for p in projects:
        if needle and needle not in p.name.lower():
            continue
        if stage and p.stage != stage:
            continue
        results.append(p)
    return results


def project_stats(projects: List[Project]) -> ProjectStats:
    completed = sum(1 for p in projects if p.stage == ProjectStage.PROJECT_COMPLETE)
    return ProjectStats(
        total=len(projects),
        active=len(projects) - completed,
        completed=completed,
    )


async def list_projects(
    gateway: PersistenceGateway,
    search: Optional[str] = None,
    stage: Optional[ProjectStage] = None,
) -> List[ProjectSummary]:
    projects = await gateway.list_projects()
    return [to_summary(p) for p in filter_projects(projects, search, stage)]


async def get_stats(gateway: PersistenceGateway) -> ProjectStats:
    return project_stats(await gateway.list_projects())


async def get_project_or_404(gateway: PersistenceGateway, project_id: str) -> Project:
    project = await gateway.get_project(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


def _clean_fields(data: dict) -> dict:
    if "name" in data:
        data["name"] = data["name"].strip()
        if not data["name"]:
            raise ValidationFailure("Project name is required")
    if data.get("final_design_file_link"):
        data["final_design_file_link"] = clean_link(data["final_design_file_link"])
    return data


async def create_project(gateway: PersistenceGateway, project_in: ProjectCreate) -> ProjectSummary:
    data = _clean_fields(project_in.model_dump(exclude_none=True))
    data["stage"] = ProjectStage.CONTACTS
    project = await gateway.create_project(data)
    log.info("admin.project_created", project_id=project.id, name=project.name)
    return to_summary(project)


async def update_project(
    gateway: PersistenceGateway, project_id: str, project_in: ProjectUpdate
) -> ProjectSummary:
    data = _clean_fields(project_in.model_dump(exclude_unset=True, exclude_none=True))
    if not data:
        return to_summary(await get_project_or_404(gateway, project_id))
    project = await gateway.update_project(project_id, data)
    log.info("admin.project_updated", project_id=project_id, fields=sorted(data))
    return to_summary(project)


async def delete_project(gateway: PersistenceGateway, project_id: str) -> None:
    await gateway.delete_project(project_id)
    log.info("admin.project_deleted", project_id=project_id)
