"""Phone-facing upload page reached through the handoff QR code."""

from __future__ import annotations

import html
from typing import TYPE_CHECKING

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, Response

from room_designer.api.forms import read_photos
from room_designer.domain.errors import BackendRejection, NetworkError, ValidationError
from room_designer.services.remote_submitter import RemoteSubmitter, SubmitterState

if TYPE_CHECKING:
    from room_designer.containers import AppContainer

router = APIRouter(tags=["phone-upload"])


@router.get("/phone-upload", response_class=HTMLResponse)
@router.get("/phone-upload/", response_class=HTMLResponse)
async def phone_upload_missing_id(request: Request) -> HTMLResponse:
    """Links without a session id can never upload."""
    container: AppContainer = request.app.state.container
    return _render(container.submitters.get(None))


@router.get("/phone-upload/{session_id}", response_class=HTMLResponse)
async def phone_upload_page(session_id: str, request: Request) -> HTMLResponse:
    """Render the upload form for a handoff session."""
    container: AppContainer = request.app.state.container
    return _render(container.submitters.get(session_id))


@router.post("/phone-upload/{session_id}", response_class=HTMLResponse)
async def phone_upload_submit(
    session_id: str,
    request: Request,
    files: list[UploadFile] | None = File(default=None),
) -> HTMLResponse:
    """Accept the phone's photos and relay them to the backend."""
    container: AppContainer = request.app.state.container
    submitter = container.submitters.claim(session_id)
    if submitter.state is SubmitterState.INVALID_LINK:
        return _render(submitter)
    try:
        submitter.select_files(await read_photos(files))
        await submitter.submit()
    except ValidationError as exc:
        submitter.message = str(exc)
        return _render(submitter, status_code=status.HTTP_400_BAD_REQUEST)
    except BackendRejection:
        return _render(submitter, status_code=status.HTTP_502_BAD_GATEWAY)
    except NetworkError:
        return _render(submitter, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    finally:
        container.submitters.release(submitter)
    return _render(submitter)


@router.get("/handoff/{session_id}/qr.svg")
async def handoff_qr(session_id: str, request: Request) -> Response:
    """QR image for the desktop's active handoff link."""
    container: AppContainer = request.app.state.container
    link = container.session_controller.handoff
    if link is None or link.session_id != session_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return Response(content=link.qr_svg(), media_type="image/svg+xml")


def _render(submitter: RemoteSubmitter, status_code: int | None = None) -> HTMLResponse:
    message = html.escape(submitter.message)
    if submitter.state is SubmitterState.INVALID_LINK:
        body = f"<h1>Invalid Link</h1><p>{message}</p>"
        return HTMLResponse(
            _PAGE.format(body=body), status_code=status.HTTP_400_BAD_REQUEST
        )
    if submitter.state is SubmitterState.SUCCESS:
        body = f"<h1>Upload Successful</h1><p>{message}</p>"
        return HTMLResponse(
            _PAGE.format(body=body), status_code=status_code or status.HTTP_200_OK
        )
    session_id = html.escape(submitter.session_id or "")
    body = _FORM.format(session_id=session_id, message=message)
    return HTMLResponse(
        _PAGE.format(body=body), status_code=status_code or status.HTTP_200_OK
    )


_FORM = """<h1>Upload Room Photos</h1>
    <p>Session ID: {session_id}</p>
    <form method="post" enctype="multipart/form-data">
      <label for="phone-photo-upload">Tap to Take/Select (2-4 photos):</label>
      <input type="file" id="phone-photo-upload" name="files"
             multiple accept="image/*" capture="environment" />
      <button type="submit">Upload Photos</button>
    </form>
    <p class="message">{message}</p>"""

_PAGE = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Room Designer Upload</title>
    <style>
      body {{ font-family: ui-sans-serif, system-ui, sans-serif; padding: 20px; }}
      form {{ display: flex; flex-direction: column; gap: 15px; }}
      input {{ padding: 10px; border: 1px solid #ccc; }}
      button {{ padding: 15px; font-size: 1.1em; background: #007bff;
               color: white; border: none; border-radius: 5px; }}
      .message {{ margin-top: 15px; font-weight: bold; }}
    </style>
  </head>
  <body>
    {body}
  </body>
</html>
"""
