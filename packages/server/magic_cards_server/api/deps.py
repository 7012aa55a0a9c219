"""
Request dependencies: shared clients from app state and a loaded controller.

Each request is one page view: a fresh ``FunnelController`` is built and the
project is loaded before the handler runs. Editor status lives on a per-project
``EditorBoard`` kept in ``app.state``, so a save still in flight refuses a
second submission from another request and success badges clear on the board
the next view reads. Boards are per process.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from magic_cards_server.core.config import Settings, get_settings
from magic_cards_server.core.errors import PersistenceError
from magic_cards_server.core.metrics import MetricsCollector, get_metrics
from magic_cards_server.core.uploads import AssetUploader, UploadedFile
from magic_cards_server.services.editors import EditorBoard
from magic_cards_server.services.funnel import FunnelController
from magic_cards_server.services.gateway import PersistenceGateway


def get_gateway(request: Request) -> PersistenceGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise PersistenceError("Record store is not configured")
    return gateway


def get_uploader(request: Request) -> Optional[AssetUploader]:
    return getattr(request.app.state, "uploader", None)


async def get_controller(
    project_id: str,
    request: Request,
    gateway: PersistenceGateway = Depends(get_gateway),
    uploader: Optional[AssetUploader] = Depends(get_uploader),
    settings: Settings = Depends(get_settings),
    metrics: MetricsCollector = Depends(get_metrics),
) -> FunnelController:
    controller = FunnelController(
        gateway,
        uploader,
        contact_creators=settings.contact_creators,
        scroll_delay_seconds=settings.scroll_delay_seconds,
        saved_badge_seconds=settings.saved_badge_seconds,
        max_upload_bytes=settings.max_upload_bytes,
        metrics=metrics,
    )
    if not await controller.load(project_id):
        raise controller.error
    boards: dict[str, EditorBoard] = request.app.state.editor_boards
    controller.editors = boards.setdefault(project_id, controller.editors)
    metrics.set_gauge("editor_boards", len(boards))
    return controller


def raise_if_failed(controller: FunnelController, ok: bool) -> None:
    """Surface the recorded failure of an action as an HTTP error."""
    if not ok and controller.last_error is not None:
        raise controller.last_error


async def read_uploads(files) -> list[UploadedFile]:
    return [
        UploadedFile(
            filename=f.filename or "upload",
            content=await f.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for f in files
    ]
