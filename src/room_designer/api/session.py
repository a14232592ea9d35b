"""Desktop session endpoints driven by the local UI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, File, Request, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from room_designer.api.forms import read_photos
from room_designer.domain.furniture import FurnitureItemRef

if TYPE_CHECKING:
    from room_designer.containers import AppContainer

router = APIRouter(prefix="/session", tags=["session"])


class SelectItemRequest(BaseModel):
    """Selection change in the design view."""

    item_id: str | None = None


@router.get("")
async def session_state(request: Request) -> dict[str, object]:
    """Return the current desktop session state."""
    container: AppContainer = request.app.state.container
    return container.session_controller.snapshot()


@router.post("/start")
async def start_designing(request: Request) -> dict[str, object]:
    """Move from the landing page to the upload step."""
    container: AppContainer = request.app.state.container
    await container.session_controller.start_designing()
    return container.session_controller.snapshot()


@router.post("/new-design")
async def start_new_design(request: Request) -> dict[str, object]:
    """Drop the current project and return to the upload step."""
    container: AppContainer = request.app.state.container
    await container.session_controller.start_new_design()
    return container.session_controller.snapshot()


@router.post("/local-files")
async def select_local_files(
    request: Request, files: list[UploadFile] = File(...)
) -> dict[str, object]:
    """Select photos from this computer, cancelling any phone handoff."""
    container: AppContainer = request.app.state.container
    photos = await read_photos(files)
    await container.session_controller.select_local_files(photos)
    return container.session_controller.snapshot()


@router.post("/phone-handoff")
async def start_phone_handoff(request: Request) -> dict[str, object]:
    """Start a phone handoff and return its link."""
    container: AppContainer = request.app.state.container
    link = await container.session_controller.start_phone_handoff()
    return {
        "session_id": link.session_id,
        "url": link.url,
        "qr_svg_url": f"/handoff/{link.session_id}/qr.svg",
    }


@router.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit(request: Request) -> dict[str, object]:
    """Create a project from the selected photos or the completed phone upload."""
    container: AppContainer = request.app.state.container
    project_id = await container.session_controller.submit()
    return {"project_id": project_id}


@router.post("/furniture")
async def add_furniture(item: FurnitureItemRef, request: Request) -> JSONResponse:
    """Place a catalog item in the room."""
    container: AppContainer = request.app.state.container
    added = container.session_controller.add_furniture(item)
    return JSONResponse(
        {"added": added},
        status_code=status.HTTP_201_CREATED if added else status.HTTP_200_OK,
    )


@router.delete("/furniture/{item_id}")
async def remove_furniture(item_id: str, request: Request) -> dict[str, object]:
    """Remove a placed item."""
    container: AppContainer = request.app.state.container
    return {"removed": container.session_controller.remove_furniture(item_id)}


@router.post("/select")
async def select_item(
    selection: SelectItemRequest, request: Request
) -> dict[str, object]:
    """Change the selected placed item."""
    container: AppContainer = request.app.state.container
    item = container.session_controller.select_item(selection.item_id)
    return {"selected_item_id": item.id if item else None}
