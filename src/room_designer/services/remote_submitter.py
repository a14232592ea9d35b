"""Phone-side submission of photos for a handoff session."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from room_designer.adapters.backend_client import BackendClient
from room_designer.domain.errors import BackendRejection, NetworkError, ValidationError
from room_designer.domain.uploads import PhotoFile, validate_photo_count
from room_designer.services.tokens import is_valid_session_id

logger = logging.getLogger(__name__)

INVALID_LINK_MESSAGE = "Error: Invalid Link. No upload ID provided."
DEFAULT_SUCCESS_MESSAGE = "You can now close this window."


class SubmitterState(StrEnum):
    """Stages of a phone upload form."""

    INVALID_LINK = "invalid_link"
    IDLE = "idle"
    FILES_SELECTED = "files_selected"
    SUBMITTING = "submitting"
    SUCCESS = "success"


@dataclass
class RemoteSubmitter:
    """State machine for one phone upload session.

    A session accepts exactly one successful submission. A failed submission
    returns to ``FILES_SELECTED`` with the error in ``last_error``, so the user
    can retry or pick new photos.
    """

    client: BackendClient
    session_id: str | None
    state: SubmitterState = SubmitterState.IDLE
    files: list[PhotoFile] = field(default_factory=list)
    message: str = "Select 2-4 photos using your phone..."
    last_error: str | None = None

    def __post_init__(self) -> None:
        if not is_valid_session_id(self.session_id):
            self.state = SubmitterState.INVALID_LINK
            self.message = INVALID_LINK_MESSAGE

    @property
    def is_open(self) -> bool:
        return self.state in {
            SubmitterState.IDLE,
            SubmitterState.FILES_SELECTED,
        }

    def select_files(self, files: Sequence[PhotoFile]) -> None:
        """Replace the current selection with 2-4 photos."""
        self._require_open()
        try:
            validate_photo_count(files)
        except ValidationError as exc:
            self.message = str(exc)
            raise
        self.files = list(files)
        self.state = SubmitterState.FILES_SELECTED
        self.message = f"{len(self.files)} file(s) selected."

    async def submit(self) -> str:
        """Send the selection to the backend and return the confirmation text."""
        self._require_open()
        if self.state is not SubmitterState.FILES_SELECTED:
            self.message = "Please select between 2 and 4 photos."
            raise ValidationError(self.message)
        session_id = self.session_id or ""
        self.state = SubmitterState.SUBMITTING
        self.message = "Uploading..."
        try:
            receipt = await self.client.submit_phone_upload(session_id, self.files)
        except (NetworkError, BackendRejection) as exc:
            logger.warning("Phone upload for session %s failed: %s", session_id, exc)
            self.last_error = str(exc)
            self.message = f"Error: {exc}"
            self.state = SubmitterState.FILES_SELECTED
            raise
        self.state = SubmitterState.SUCCESS
        self.files = []
        self.last_error = None
        self.message = f"Upload Complete! {receipt.message or DEFAULT_SUCCESS_MESSAGE}"
        logger.info("Phone upload for session %s accepted", session_id)
        return self.message

    def _require_open(self) -> None:
        if self.state is SubmitterState.INVALID_LINK:
            raise ValidationError("Error: Cannot upload without an upload ID.")
        if self.state is SubmitterState.SUBMITTING:
            raise ValidationError("An upload is already in progress.")
        if self.state is SubmitterState.SUCCESS:
            raise ValidationError("Photos for this link were already uploaded.")


@dataclass
class SubmitterRegistry:
    """Tracks submitters for sessions that have been posted to.

    Viewing the upload page never registers a session. A session is claimed
    when photos are posted and released afterwards; only submitters that are
    still uploading or already succeeded stay registered, so a completed link
    stays closed. The oldest entries are evicted past ``max_sessions``.
    """

    client: BackendClient
    max_sessions: int = 256
    _submitters: dict[str, RemoteSubmitter] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._submitters)

    def get(self, session_id: str | None) -> RemoteSubmitter:
        """Return the registered submitter, or a fresh unregistered one."""
        submitter = self._submitters.get(session_id or "")
        if submitter is None:
            submitter = RemoteSubmitter(client=self.client, session_id=session_id)
        return submitter

    def claim(self, session_id: str | None) -> RemoteSubmitter:
        """Register the submitter for a session about to receive photos."""
        submitter = self.get(session_id)
        if submitter.state is SubmitterState.INVALID_LINK or session_id is None:
            return submitter
        if session_id not in self._submitters:
            self._submitters[session_id] = submitter
            self._evict()
        return submitter

    def release(self, submitter: RemoteSubmitter) -> None:
        """Forget a claimed submitter unless it is uploading or succeeded."""
        if submitter.state in {SubmitterState.SUBMITTING, SubmitterState.SUCCESS}:
            return
        key = submitter.session_id or ""
        if self._submitters.get(key) is submitter:
            del self._submitters[key]

    def _evict(self) -> None:
        while len(self._submitters) > self.max_sessions:
            oldest = next(iter(self._submitters))
            logger.info("Evicting phone upload session %s", oldest)
            del self._submitters[oldest]
