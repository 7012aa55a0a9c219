"""
Contact endpoints, scoped to one project's funnel.

Each editor is gated by the stage it belongs to; review verdicts are not.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from magic_cards_server.api.deps import get_controller, raise_if_failed, read_uploads
from magic_cards_server.services.funnel import FunnelController
from magic_cards_shared.schemas.contacts import (
    ContactCopyUpdate,
    ContactCreate,
    ContactFlagsUpdate,
    ContactReviewUpdate,
    ContactUpdate,
    DesignRoundFeedback,
)
from magic_cards_shared.schemas.funnel import FunnelView

router = APIRouter()


@router.post("", response_model=FunnelView, status_code=201)
async def create_contact(
    contact_in: ContactCreate,
    controller: FunnelController = Depends(get_controller),
):
    """Create a contact and link it to the project (Contacts stage only)."""
    raise_if_failed(controller, await controller.create_contact(contact_in))
    return controller.view()


@router.patch("/{contact_id}", response_model=FunnelView)
async def update_contact(
    contact_id: str,
    contact_in: ContactUpdate,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.update_contact(contact_id, contact_in))
    return controller.view()


@router.delete("/{contact_id}", response_model=FunnelView)
async def delete_contact(
    contact_id: str,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.delete_contact(contact_id))
    return controller.view()


@router.put("/{contact_id}/copy", response_model=FunnelView)
async def save_copy(
    contact_id: str,
    body: ContactCopyUpdate,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.save_contact_copy(contact_id, body))
    return controller.view()


@router.put("/{contact_id}/flags", response_model=FunnelView)
async def set_flags(
    contact_id: str,
    body: ContactFlagsUpdate,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.set_contact_flags(contact_id, body))
    return controller.view()


@router.put("/{contact_id}/review", response_model=FunnelView)
async def set_review(
    contact_id: str,
    body: ContactReviewUpdate,
    controller: FunnelController = Depends(get_controller),
):
    """Approve, Flag (feedback required) or Do Not Send.

    Replacing existing feedback with Approve / Do Not Send answers 409 until
    the request is repeated with ``confirm_clear``.
    """
    ok = await controller.set_contact_review(
        contact_id, body.verdict, body.feedback, confirm_clear=body.confirm_clear
    )
    raise_if_failed(controller, ok)
    return controller.view()


@router.put("/{contact_id}/rounds/{round_number}", response_model=FunnelView)
async def save_round_feedback(
    contact_id: str,
    round_number: int,
    body: DesignRoundFeedback,
    controller: FunnelController = Depends(get_controller),
):
    ok = await controller.save_round_feedback(contact_id, round_number, body.feedback)
    raise_if_failed(controller, ok)
    return controller.view()


@router.post("/{contact_id}/rounds/{round_number}/reject", response_model=FunnelView)
async def toggle_round_reject(
    contact_id: str,
    round_number: int,
    controller: FunnelController = Depends(get_controller),
):
    raise_if_failed(controller, await controller.toggle_round_reject(contact_id, round_number))
    return controller.view()


@router.post("/{contact_id}/rounds/{round_number}/drafts", response_model=FunnelView)
async def add_round_drafts(
    contact_id: str,
    round_number: int,
    files: List[UploadFile] = File(...),
    controller: FunnelController = Depends(get_controller),
):
    uploads = await read_uploads(files)
    ok = await controller.add_round_drafts(contact_id, round_number, uploads)
    raise_if_failed(controller, ok)
    return controller.view()


@router.delete("/{contact_id}/rounds/{round_number}/drafts/{index}", response_model=FunnelView)
async def remove_round_draft(
    contact_id: str,
    round_number: int,
    index: int,
    controller: FunnelController = Depends(get_controller),
):
    ok = await controller.remove_round_draft(contact_id, round_number, index)
    raise_if_failed(controller, ok)
    return controller.view()


@router.post("/{contact_id}/images/{kind}", response_model=FunnelView)
async def add_images(
    contact_id: str,
    kind: str,
    files: List[UploadFile] = File(...),
    controller: FunnelController = Depends(get_controller),
):
    """Append headshot or company_logo images."""
    uploads = await read_uploads(files)
    raise_if_failed(controller, await controller.add_contact_images(contact_id, kind, uploads))
    return controller.view()
