"""Shared test fixtures."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from room_designer.adapters.backend_client import BackendClient
from room_designer.config import Settings
from room_designer.containers import AppContainer
from room_designer.domain.furniture import Dimensions, FurnitureItemRef
from room_designer.domain.projects import CreatedProject, ProjectSnapshot
from room_designer.domain.uploads import (
    PhoneUploadReceipt,
    PhotoFile,
    UploadStatus,
    UploadStatusReport,
)
from room_designer.services.cache import InMemoryCache
from room_designer.services.controller import SessionController
from room_designer.services.furniture import FurnitureCatalogService
from room_designer.services.handoff import HandoffPublisher
from room_designer.services.polling import PollingConfig, RetryPolicy
from room_designer.services.remote_submitter import SubmitterRegistry

LAN_HOST = "192.168.1.20"


def _next(script: list, default: object) -> object:
    """Pop scripted responses; the last one repeats forever."""
    if not script:
        return default
    item = script.pop(0) if len(script) > 1 else script[0]
    if isinstance(item, Exception):
        raise item
    return item


def pending() -> UploadStatusReport:
    return UploadStatusReport(status=UploadStatus.PENDING)


def completed(files: list[object] | None = None) -> UploadStatusReport:
    return UploadStatusReport(status=UploadStatus.COMPLETED, files=files or [])


def failed() -> UploadStatusReport:
    return UploadStatusReport(status=UploadStatus.FAILED)


def snapshot(status: str, room_model_path: str | None = None) -> ProjectSnapshot:
    return ProjectSnapshot(status=status, room_model_path=room_model_path)


def photos(count: int) -> list[PhotoFile]:
    return [
        PhotoFile(filename=f"room-{index}.jpg", content=b"jpeg-bytes")
        for index in range(count)
    ]


def furniture_item(item_id: str = "chair-1", name: str = "Chair") -> FurnitureItemRef:
    return FurnitureItemRef(
        id=item_id,
        name=name,
        category="Chairs",
        style="modern",
        dimensions=Dimensions(width=0.5, height=0.9, depth=0.5),
        model_path=f"furniture/{item_id}.glb",
    )


@dataclass
class FakeBackendClient(BackendClient):
    """Scripted backend that records every call."""

    upload_statuses: list[UploadStatusReport | Exception] = field(default_factory=list)
    project_snapshots: list[ProjectSnapshot | Exception] = field(default_factory=list)
    created_project: CreatedProject | Exception = field(
        default_factory=lambda: CreatedProject(id="p1")
    )
    phone_receipt: PhoneUploadReceipt | Exception = field(
        default_factory=PhoneUploadReceipt
    )
    furniture: list[FurnitureItemRef] = field(default_factory=list)
    status_queries: list[str] = field(default_factory=list)
    project_queries: list[str] = field(default_factory=list)
    created_from_files: list[list[PhotoFile]] = field(default_factory=list)
    created_from_sessions: list[str] = field(default_factory=list)
    phone_submissions: list[tuple[str, list[PhotoFile]]] = field(default_factory=list)
    furniture_queries: list[tuple[str | None, str | None]] = field(
        default_factory=list
    )

    async def create_project_from_files(
        self, files: Sequence[PhotoFile]
    ) -> CreatedProject:
        self.created_from_files.append(list(files))
        return self._created()

    async def create_project_from_session(self, session_id: str) -> CreatedProject:
        self.created_from_sessions.append(session_id)
        return self._created()

    async def get_project(self, project_id: str) -> ProjectSnapshot:
        self.project_queries.append(project_id)
        result = _next(self.project_snapshots, snapshot("created"))
        return result  # type: ignore[return-value]

    async def submit_phone_upload(
        self, session_id: str, files: Sequence[PhotoFile]
    ) -> PhoneUploadReceipt:
        self.phone_submissions.append((session_id, list(files)))
        if isinstance(self.phone_receipt, Exception):
            raise self.phone_receipt
        return self.phone_receipt

    async def get_phone_upload_status(self, session_id: str) -> UploadStatusReport:
        self.status_queries.append(session_id)
        return _next(self.upload_statuses, pending())  # type: ignore[return-value]

    async def list_furniture(
        self, category: str | None = None, style: str | None = None
    ) -> list[FurnitureItemRef]:
        self.furniture_queries.append((category, style))
        return list(self.furniture)

    def _created(self) -> CreatedProject:
        if isinstance(self.created_project, Exception):
            raise self.created_project
        return self.created_project


async def settle() -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(20):
        await asyncio.sleep(0)


class ManualClock:
    """Injectable sleep that only returns when the test advances time."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self._waiters: list[asyncio.Future[None]] = []

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    async def advance(self, steps: int = 1) -> None:
        for _ in range(steps):
            await settle()
            waiters, self._waiters = self._waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)
            await settle()


async def sleep_forever(delay: float) -> None:
    await asyncio.Event().wait()


def build_controller(
    client: FakeBackendClient,
    clock: ManualClock,
    *,
    polling: PollingConfig | None = None,
    on_model_ready=None,  # type: ignore[no-untyped-def]
) -> SessionController:
    return SessionController(
        client=client,
        publisher=HandoffPublisher(scheme="http", port=3000, host=LAN_HOST),
        polling=polling or PollingConfig(),
        static_base_url="http://backend.test",
        sleep=clock.sleep,
        on_model_ready=on_model_ready,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        api_url="http://backend.test",
        handoff_host=LAN_HOST,
    )


@pytest.fixture
def backend_client() -> FakeBackendClient:
    return FakeBackendClient()


@pytest.fixture
def container(settings: Settings, backend_client: FakeBackendClient) -> AppContainer:
    publisher = HandoffPublisher(
        scheme=settings.handoff_scheme,
        port=settings.handoff_port,
        host=settings.handoff_host,
    )
    controller = SessionController(
        client=backend_client,
        publisher=publisher,
        polling=PollingConfig(
            upload_policy=RetryPolicy(), project_policy=RetryPolicy(max_attempts=10)
        ),
        static_base_url=settings.static_base_url,
        sleep=sleep_forever,
    )

    async def close_resources() -> None:
        await controller.close()

    return AppContainer(
        settings=settings,
        backend_client=backend_client,
        handoff_publisher=publisher,
        session_controller=controller,
        submitters=SubmitterRegistry(backend_client),
        furniture_service=FurnitureCatalogService(
            client=backend_client, cache=InMemoryCache()
        ),
        close_resources=close_resources,
    )
