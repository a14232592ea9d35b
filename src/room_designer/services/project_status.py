"""Polls a project until its room model can be loaded."""

import asyncio
from collections.abc import Callable

from room_designer.adapters.backend_client import BackendClient
from room_designer.domain.projects import ProjectSnapshot, resolve_model_url
from room_designer.services.polling import Poller, RetryPolicy, Sleep


class ProjectStatusPoller(Poller[ProjectSnapshot]):
    """Watches ``/projects/{id}`` until a model URL resolves or processing fails."""

    name = "project-status"
    immediate = True

    def __init__(
        self,
        client: BackendClient,
        project_id: str,
        static_base_url: str,
        *,
        interval: float,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        on_finish: Callable[["ProjectStatusPoller"], None] | None = None,
    ) -> None:
        super().__init__(
            interval=interval, policy=policy, sleep=sleep, on_finish=on_finish
        )
        self.client = client
        self.project_id = project_id
        self.static_base_url = static_base_url
        self.last_status: str | None = None
        self.model_url: str | None = None
        self.status_message = "Loading project status..."

    async def _query(self) -> ProjectSnapshot:
        return await self.client.get_project(self.project_id)

    def _apply(self, result: ProjectSnapshot) -> None:
        self.last_status = result.status
        self.status_message = f"Project status: {result.status}"
        if result.has_ready_model and result.room_model_path:
            self.model_url = resolve_model_url(
                result.room_model_path, self.static_base_url
            )
            self.status_message = "Room model generated. Loading..."
            self._succeed()
        elif result.is_failed:
            self._fail(f"Processing failed: {result.status}")

    def _fail(self, message: str) -> None:
        self.status_message = f"Error: {message}"
        super()._fail(message)
