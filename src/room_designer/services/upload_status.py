"""Polls a phone handoff session until the phone has uploaded."""

import asyncio
import logging
from collections.abc import Callable

from room_designer.adapters.backend_client import BackendClient
from room_designer.domain.errors import BackendRejection
from room_designer.domain.uploads import (
    UploadSession,
    UploadStatus,
    UploadStatusReport,
)
from room_designer.services.polling import Poller, RetryPolicy, Sleep

logger = logging.getLogger(__name__)

PHONE_UPLOAD_FAILED_MESSAGE = "Phone upload failed. Please try again."


class UploadStatusPoller(Poller[UploadStatusReport]):
    """Watches ``/api/phone-upload-status/{id}`` for a terminal status.

    The first check happens one interval after ``start()``. A 404 counts as
    ``pending``. On ``completed`` the reported file references are copied onto
    the session.
    """

    name = "upload-status"

    def __init__(
        self,
        client: BackendClient,
        session: UploadSession,
        *,
        interval: float,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        on_finish: Callable[["UploadStatusPoller"], None] | None = None,
    ) -> None:
        super().__init__(
            interval=interval, policy=policy, sleep=sleep, on_finish=on_finish
        )
        self.client = client
        self.session = session

    async def _query(self) -> UploadStatusReport:
        try:
            return await self.client.get_phone_upload_status(self.session.id)
        except BackendRejection as exc:
            # The backend only learns about a session once the phone uploads.
            if exc.status_code != 404:
                raise
            logger.debug("Upload session %s not known yet", self.session.id)
            return UploadStatusReport(status=UploadStatus.PENDING)

    def _apply(self, result: UploadStatusReport) -> None:
        self.session.status = result.status
        if result.status is UploadStatus.COMPLETED:
            self.session.files = list(result.files)
            self._succeed()
        elif result.status is UploadStatus.FAILED:
            self._fail(PHONE_UPLOAD_FAILED_MESSAGE)
