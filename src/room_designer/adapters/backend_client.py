"""Room design backend API client."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar

import httpx
import pydantic

from room_designer.domain.errors import BackendRejection, NetworkError
from room_designer.domain.furniture import FurnitureItemRef
from room_designer.domain.projects import CreatedProject, ProjectSnapshot
from room_designer.domain.uploads import (
    PhoneUploadReceipt,
    PhotoFile,
    UploadStatusReport,
)

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=pydantic.BaseModel)

_FURNITURE_LIST = pydantic.TypeAdapter(list[FurnitureItemRef])


class BackendClient(Protocol):
    """Interface for the project, upload and catalog endpoints."""

    async def create_project_from_files(
        self, files: Sequence[PhotoFile]
    ) -> CreatedProject:
        """Create a project from locally selected photos."""

    async def create_project_from_session(self, session_id: str) -> CreatedProject:
        """Create a project from a completed phone upload session."""

    async def get_project(self, project_id: str) -> ProjectSnapshot:
        """Return the current processing state of a project."""

    async def submit_phone_upload(
        self, session_id: str, files: Sequence[PhotoFile]
    ) -> PhoneUploadReceipt:
        """Attach photos to a phone upload session."""

    async def get_phone_upload_status(self, session_id: str) -> UploadStatusReport:
        """Return the upload state of a phone session."""

    async def list_furniture(
        self, category: str | None = None, style: str | None = None
    ) -> list[FurnitureItemRef]:
        """Return catalog items, optionally filtered."""


@dataclass
class HttpxBackendClient(BackendClient):
    """HTTPX-backed backend client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0

    @classmethod
    def create(cls, base_url: str, timeout: float = 15.0) -> "HttpxBackendClient":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def create_project_from_files(
        self, files: Sequence[PhotoFile]
    ) -> CreatedProject:
        """Upload photos as multipart form data and start processing."""
        payload = await self._request(
            "POST",
            "/projects",
            fallback_detail="Upload failed",
            files=_multipart(files),
        )
        return _parse(CreatedProject, payload)

    async def create_project_from_session(self, session_id: str) -> CreatedProject:
        """Start processing the photos attached to a phone session."""
        payload = await self._request(
            "POST",
            "/projects",
            fallback_detail="Failed to start project from phone upload",
            json={"phone_upload_id": session_id},
        )
        return _parse(CreatedProject, payload)

    async def get_project(self, project_id: str) -> ProjectSnapshot:
        """Fetch the project status document."""
        payload = await self._request(
            "GET",
            f"/projects/{project_id}",
            fallback_detail="Failed to fetch project status",
        )
        return _parse(ProjectSnapshot, payload)

    async def submit_phone_upload(
        self, session_id: str, files: Sequence[PhotoFile]
    ) -> PhoneUploadReceipt:
        """Send the phone's photos for a handoff session."""
        payload = await self._request(
            "POST",
            f"/api/phone-upload/{session_id}",
            fallback_detail="Upload failed from phone",
            files=_multipart(files),
        )
        return _parse(PhoneUploadReceipt, payload)

    async def get_phone_upload_status(self, session_id: str) -> UploadStatusReport:
        """Fetch the phone session status."""
        payload = await self._request(
            "GET",
            f"/api/phone-upload-status/{session_id}",
            fallback_detail="Failed to fetch phone upload status",
        )
        return _parse(UploadStatusReport, payload)

    async def list_furniture(
        self, category: str | None = None, style: str | None = None
    ) -> list[FurnitureItemRef]:
        """Fetch catalog items with optional category and style filters."""
        params = {
            key: value
            for key, value in (("category", category), ("style", style))
            if value
        }
        payload = await self._request(
            "GET",
            "/furniture",
            fallback_detail="Failed to fetch furniture",
            params=params,
        )
        try:
            return _FURNITURE_LIST.validate_python(payload)
        except pydantic.ValidationError as exc:
            raise BackendRejection("Malformed furniture list", status_code=200) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, path: str, *, fallback_detail: str, **kwargs: object
    ) -> object:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.request(
                method, url, timeout=self.timeout, **kwargs
            )
        except httpx.RequestError as exc:
            raise NetworkError(f"{fallback_detail}: {type(exc).__name__}") from exc
        if response.is_error:
            detail = _extract_detail(response) or (
                f"{fallback_detail} ({response.status_code})"
            )
            logger.info("%s %s rejected: %s", method, path, detail)
            raise BackendRejection(detail, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise BackendRejection(
                f"{fallback_detail}: invalid response body",
                status_code=response.status_code,
            ) from exc


def _multipart(files: Sequence[PhotoFile]) -> list[tuple[str, tuple[str, bytes, str]]]:
    """Build the repeated ``files`` form field."""
    return [
        ("files", (photo.filename, photo.content, photo.content_type))
        for photo in files
    ]


def _extract_detail(response: httpx.Response) -> str | None:
    """Return the backend's ``detail`` message, if the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
        if detail:
            return str(detail)
    return None


def _parse(model: type[_ModelT], payload: object) -> _ModelT:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise BackendRejection(
            f"Malformed {model.__name__} response", status_code=200
        ) from exc
