"""
Funnel endpoints: the staged project view, stage transitions, project-level
editors and exports.

Every action responds with the recomputed funnel view.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response

from magic_cards_server.api.deps import get_controller, raise_if_failed, read_uploads
from magic_cards_server.services.exports import contacts_csv, export_filename
from magic_cards_server.services.funnel import FunnelController
from magic_cards_shared.schemas.funnel import DesignBrief, FunnelView
from magic_cards_shared.schemas.projects import ProjectFieldValue, ProjectTransition

router = APIRouter()


@router.get("", response_model=FunnelView)
async def get_funnel(
    added_by: Optional[str] = None,
    controller: FunnelController = Depends(get_controller),
):
    """Stages revealed up to the current one, with the project's contacts."""
    return controller.view(added_by)


@router.post("/advance", response_model=FunnelView)
async def advance_stage(controller: FunnelController = Depends(get_controller)):
    """Complete the active stage. On the final stage nothing changes."""
    raise_if_failed(controller, await controller.advance())
    return controller.view()


@router.post("/revert", response_model=FunnelView)
async def revert_stage(
    body: ProjectTransition,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.revert(body.to_stage))
    return controller.view()


@router.put("/fields/{field}", response_model=FunnelView)
async def save_project_field(
    field: str,
    body: ProjectFieldValue,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.save_project_field(field, body.value))
    return controller.view()


@router.put("/final-design-link", response_model=FunnelView)
async def save_final_design_link(
    body: ProjectFieldValue,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.save_final_design_link(body.value))
    return controller.view()


@router.post("/final-design-files", response_model=FunnelView)
async def add_final_design_files(
    files: List[UploadFile] = File(...),
    controller: FunnelController = Depends(get_controller),
):
    uploads = await read_uploads(files)
    raise_if_failed(controller, await controller.add_final_design_files(uploads))
    return controller.view()


@router.delete("/final-design-files/{index}", response_model=FunnelView)
async def remove_final_design_file(
    index: int,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.remove_final_design_file(index))
    return controller.view()


@router.get("/brief", response_model=DesignBrief)
async def design_brief(controller: FunnelController = Depends(get_controller)):
    return controller.design_brief()


@router.get("/export.csv")
async def export_contacts(controller: FunnelController = Depends(get_controller)):
    """Recipient list for fulfillment."""
    return Response(
        content=contacts_csv(controller.contacts),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(controller.project)}"'
        },
    )
