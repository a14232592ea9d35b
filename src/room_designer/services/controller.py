"""Desktop session state machine.

The controller owns the landing -> uploading -> designing flow, decides which
upload path (local files or phone handoff) is authoritative, and owns the
lifetime of both pollers.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import StrEnum
from functools import partial

from room_designer.adapters.backend_client import BackendClient
from room_designer.domain.errors import BackendRejection, NetworkError, ValidationError
from room_designer.domain.furniture import FurnitureItemRef
from room_designer.domain.projects import CreatedProject
from room_designer.domain.uploads import PhotoFile, UploadSession, validate_photo_count
from room_designer.services.handoff import HandoffLink, HandoffPublisher
from room_designer.services.polling import PollerState, PollingConfig, Sleep
from room_designer.services.project_status import ProjectStatusPoller
from room_designer.services.tokens import generate_session_id
from room_designer.services.upload_status import UploadStatusPoller
from room_designer.services.workspace import DesignWorkspace

logger = logging.getLogger(__name__)

NOTHING_TO_SUBMIT_MESSAGE = (
    "Please select photos locally or use the phone upload option."
)
UPLOAD_IN_PROGRESS_MESSAGE = "An upload is already in progress."


class AppState(StrEnum):
    """Top-level screens of the application."""

    LANDING = "landing"
    UPLOADING = "uploading"
    DESIGNING = "designing"


class UploadPath(StrEnum):
    """Which upload source is authoritative at submit time."""

    NONE = "none"
    LOCAL = "local"
    PHONE = "phone"


class SessionController:
    """Coordinates uploads, handoff polling and project status polling."""

    def __init__(  # noqa: PLR0913
        self,
        client: BackendClient,
        publisher: HandoffPublisher,
        polling: PollingConfig,
        static_base_url: str,
        sleep: Sleep = asyncio.sleep,
        on_model_ready: Callable[[str, str], None] | None = None,
    ) -> None:
        self.client = client
        self.publisher = publisher
        self.polling = polling
        self.static_base_url = static_base_url
        self.on_model_ready = on_model_ready
        self._sleep = sleep

        self.app_state = AppState.LANDING
        self.active_path = UploadPath.NONE
        self.project_id: str | None = None
        self.error: str | None = None
        self.message = ""
        self.local_files: list[PhotoFile] = []
        self.phone_session: UploadSession | None = None
        self.handoff: HandoffLink | None = None
        self.workspace = DesignWorkspace()
        self.is_submitting = False
        self._upload_poller: UploadStatusPoller | None = None
        self._project_poller: ProjectStatusPoller | None = None

    @property
    def model_url(self) -> str | None:
        poller = self._project_poller
        return poller.model_url if poller else None

    @property
    def project_status_message(self) -> str | None:
        poller = self._project_poller
        return poller.status_message if poller else None

    @property
    def can_submit(self) -> bool:
        if self.is_submitting or self.app_state is not AppState.UPLOADING:
            return False
        return bool(self.local_files) or self._phone_upload_ready()

    async def start_designing(self) -> None:
        """Leave the landing page (or a finished design) for the upload step."""
        if self.is_submitting:
            raise ValidationError(UPLOAD_IN_PROGRESS_MESSAGE)
        await self._reset()
        self.app_state = AppState.UPLOADING

    async def start_new_design(self) -> None:
        """Discard the current project and placed furniture and upload again."""
        if self.app_state is AppState.LANDING:
            raise ValidationError("No design in progress.")
        await self.start_designing()

    async def select_local_files(self, files: Sequence[PhotoFile]) -> None:
        """Use photos from this device; supersedes any pending phone handoff."""
        self._require_state(AppState.UPLOADING)
        await self._cancel_handoff()
        self.local_files = list(files)
        self.active_path = UploadPath.LOCAL if self.local_files else UploadPath.NONE
        self.message = (
            f"{len(self.local_files)} file(s) selected locally."
            if self.local_files
            else ""
        )

    async def start_phone_handoff(self) -> HandoffLink:
        """Mint a session, publish its link and start watching it."""
        self._require_state(AppState.UPLOADING)
        if self.is_submitting:
            raise ValidationError(UPLOAD_IN_PROGRESS_MESSAGE)
        active_ids = {self.phone_session.id} if self.phone_session else set()
        session_id = generate_session_id(active_ids)
        link = self.publisher.publish(session_id)
        await self._cancel_handoff()
        self.local_files = []
        session = UploadSession(id=session_id)
        poller = UploadStatusPoller(
            self.client,
            session,
            interval=self.polling.upload_interval,
            policy=self.polling.upload_policy,
            sleep=self._sleep,
            on_finish=self._on_upload_finished,
        )
        self.phone_session = session
        self.handoff = link
        self.active_path = UploadPath.PHONE
        self._upload_poller = poller
        self.message = "Scan the QR code with your phone to upload photos."
        poller.start()
        return link

    async def submit(self) -> str:
        """Create a project from the authoritative upload path."""
        self._require_state(AppState.UPLOADING)
        if self.is_submitting:
            raise ValidationError(UPLOAD_IN_PROGRESS_MESSAGE)
        if self._phone_upload_ready() and self.phone_session is not None:
            session = self.phone_session
            self.message = "Starting project processing using phone uploads..."
            project = await self._create(
                partial(self.client.create_project_from_session, session.id),
                consume_phone_session=True,
            )
        elif self.local_files:
            try:
                validate_photo_count(self.local_files)
            except ValidationError as exc:
                self.message = str(exc)
                raise
            self.message = "Uploading photos and starting project..."
            project = await self._create(
                partial(self.client.create_project_from_files, self.local_files),
                consume_phone_session=False,
            )
        else:
            self.message = NOTHING_TO_SUBMIT_MESSAGE
            raise ValidationError(NOTHING_TO_SUBMIT_MESSAGE)
        self.message = (
            f"Project created successfully! Project ID: {project.id}. "
            "Processing started..."
        )
        self._begin_designing(project.id)
        return project.id

    def add_furniture(self, item: FurnitureItemRef) -> bool:
        self._require_state(AppState.DESIGNING)
        return self.workspace.add(item)

    def remove_furniture(self, item_id: str) -> bool:
        self._require_state(AppState.DESIGNING)
        return self.workspace.remove(item_id)

    def select_item(self, item_id: str | None) -> FurnitureItemRef | None:
        self._require_state(AppState.DESIGNING)
        return self.workspace.select(item_id)

    async def close(self) -> None:
        """Stop every poller owned by this controller."""
        await self._cancel_handoff()
        await self._cancel_project_poller()

    def snapshot(self) -> dict[str, object]:
        """Serializable view of the session for the UI."""
        session = self.phone_session
        return {
            "app_state": self.app_state.value,
            "active_path": self.active_path.value,
            "project_id": self.project_id,
            "error": self.error,
            "message": self.message,
            "can_submit": self.can_submit,
            "local_file_count": len(self.local_files),
            "phone_session": (
                {"id": session.id, "status": session.status.value}
                if session
                else None
            ),
            "handoff_url": self.handoff.url if self.handoff else None,
            "model_url": self.model_url,
            "project_status": self.project_status_message,
            "placed_furniture": self.workspace.layout(),
            "selected_item_id": self.workspace.selected_id,
        }

    async def _create(
        self,
        request: Callable[[], Awaitable[CreatedProject]],
        *,
        consume_phone_session: bool,
    ) -> CreatedProject:
        self.is_submitting = True
        try:
            return await request()
        except (NetworkError, BackendRejection) as exc:
            logger.warning("Project creation failed: %s", exc)
            self.error = f"Upload Failed: {exc}"
            self.message = f"Error: {exc}"
            self.app_state = AppState.UPLOADING
            raise
        finally:
            self.is_submitting = False
            if consume_phone_session:
                self._discard_phone_session()

    def _begin_designing(self, project_id: str) -> None:
        self.project_id = project_id
        self.app_state = AppState.DESIGNING
        self.error = None
        self.active_path = UploadPath.NONE
        self.local_files = []
        poller = ProjectStatusPoller(
            self.client,
            project_id,
            self.static_base_url,
            interval=self.polling.project_interval,
            policy=self.polling.project_policy,
            sleep=self._sleep,
            on_finish=self._on_project_finished,
        )
        self._project_poller = poller
        poller.start()

    def _on_upload_finished(self, poller: UploadStatusPoller) -> None:
        if poller is not self._upload_poller:
            return
        self._upload_poller = None
        self.handoff = None
        if poller.state is PollerState.SUCCEEDED:
            self.message = (
                'Phone upload complete! Click "Upload & Start Processing" to continue.'
            )
            logger.info(
                "Phone session %s completed with %d file(s)",
                poller.session.id,
                len(poller.session.files),
            )
            return
        self.message = poller.error or "Phone upload failed. Please try again."
        self._discard_phone_session()

    def _on_project_finished(self, poller: ProjectStatusPoller) -> None:
        if poller is not self._project_poller:
            return
        if poller.state is PollerState.SUCCEEDED and poller.model_url:
            logger.info("Room model ready for project %s", poller.project_id)
            if self.on_model_ready is not None:
                self.on_model_ready(poller.project_id, poller.model_url)
        elif poller.state is PollerState.FAILED:
            self.error = poller.error

    def _phone_upload_ready(self) -> bool:
        session = self.phone_session
        return session is not None and session.is_completed

    def _discard_phone_session(self) -> None:
        self.phone_session = None
        self.handoff = None
        if self.active_path is UploadPath.PHONE:
            self.active_path = UploadPath.NONE

    async def _cancel_handoff(self) -> None:
        poller, self._upload_poller = self._upload_poller, None
        if poller is not None:
            await poller.stop()
        self._discard_phone_session()

    async def _cancel_project_poller(self) -> None:
        poller, self._project_poller = self._project_poller, None
        if poller is not None:
            await poller.stop()

    async def _reset(self) -> None:
        await self._cancel_handoff()
        await self._cancel_project_poller()
        self.project_id = None
        self.error = None
        self.message = ""
        self.local_files = []
        self.active_path = UploadPath.NONE
        self.workspace.clear()

    def _require_state(self, expected: AppState) -> None:
        if self.app_state is not expected:
            raise ValidationError(
                f"Not available while {self.app_state.value}; "
                f"expected {expected.value}."
            )
