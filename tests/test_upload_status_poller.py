"""Tests for the phone upload status poller."""

import asyncio

from room_designer.domain.errors import BackendRejection, NetworkError
from room_designer.domain.uploads import (
    UploadSession,
    UploadStatus,
    UploadStatusReport,
)
from room_designer.services.polling import PollerState, RetryPolicy
from room_designer.services.upload_status import UploadStatusPoller
from tests.conftest import (
    FakeBackendClient,
    ManualClock,
    completed,
    failed,
    pending,
    settle,
)


def test_stops_after_completed_and_captures_files() -> None:
    client = FakeBackendClient(
        upload_statuses=[pending(), pending(), completed(["a.jpg", "b.jpg"])]
    )
    clock = ManualClock()
    session = UploadSession(id="session-1")
    finished: list[UploadStatusPoller] = []

    async def scenario() -> UploadStatusPoller:
        poller = UploadStatusPoller(
            client, session, interval=3.0, sleep=clock.sleep, on_finish=finished.append
        )
        poller.start()
        await settle()
        assert client.status_queries == []
        await clock.advance(6)
        return poller

    poller = asyncio.run(scenario())

    assert len(client.status_queries) == 3
    assert poller.state is PollerState.SUCCEEDED
    assert session.status is UploadStatus.COMPLETED
    assert session.files == ["a.jpg", "b.jpg"]
    assert clock.delays == [3.0, 3.0, 3.0]
    assert finished == [poller]


def test_stops_after_single_failed_observation() -> None:
    client = FakeBackendClient(upload_statuses=[failed()])
    clock = ManualClock()
    session = UploadSession(id="session-1")

    async def scenario() -> UploadStatusPoller:
        poller = UploadStatusPoller(client, session, interval=3.0, sleep=clock.sleep)
        poller.start()
        await clock.advance(4)
        return poller

    poller = asyncio.run(scenario())

    assert client.status_queries == ["session-1"]
    assert poller.state is PollerState.FAILED
    assert poller.error == "Phone upload failed. Please try again."
    assert session.files == []


def test_transient_errors_are_retried_with_backoff() -> None:
    client = FakeBackendClient(
        upload_statuses=[
            NetworkError("offline"),
            BackendRejection("Service unavailable", status_code=503),
            completed(),
        ]
    )
    clock = ManualClock()

    async def scenario() -> UploadStatusPoller:
        poller = UploadStatusPoller(
            client,
            UploadSession(id="session-1"),
            interval=3.0,
            policy=RetryPolicy(max_consecutive_failures=5, backoff_max=30.0),
            sleep=clock.sleep,
        )
        poller.start()
        await clock.advance(5)
        return poller

    poller = asyncio.run(scenario())

    assert poller.state is PollerState.SUCCEEDED
    assert len(client.status_queries) == 3
    assert clock.delays == [3.0, 6.0, 12.0]
    assert poller.consecutive_failures == 0


def test_unknown_session_keeps_polling_until_phone_uploads() -> None:
    not_found = BackendRejection("Upload session not found", status_code=404)
    client = FakeBackendClient(upload_statuses=[*[not_found] * 8, completed(["a.jpg"])])
    clock = ManualClock()
    session = UploadSession(id="session-1")

    async def scenario() -> UploadStatusPoller:
        poller = UploadStatusPoller(
            client,
            session,
            interval=3.0,
            policy=RetryPolicy(max_consecutive_failures=5),
            sleep=clock.sleep,
        )
        poller.start()
        await clock.advance(12)
        return poller

    poller = asyncio.run(scenario())

    assert poller.state is PollerState.SUCCEEDED
    assert len(client.status_queries) == 9
    assert clock.delays == [3.0] * 9
    assert poller.consecutive_failures == 0
    assert session.files == ["a.jpg"]


def test_gives_up_after_consecutive_failures() -> None:
    client = FakeBackendClient(upload_statuses=[NetworkError("offline")])
    clock = ManualClock()

    async def scenario() -> UploadStatusPoller:
        poller = UploadStatusPoller(
            client,
            UploadSession(id="session-1"),
            interval=3.0,
            policy=RetryPolicy(max_consecutive_failures=3),
            sleep=clock.sleep,
        )
        poller.start()
        await clock.advance(10)
        return poller

    poller = asyncio.run(scenario())

    assert poller.state is PollerState.FAILED
    assert poller.error == "offline"
    assert len(client.status_queries) == 3


def test_cancel_prevents_further_queries() -> None:
    client = FakeBackendClient(upload_statuses=[pending()])
    clock = ManualClock()

    async def scenario() -> UploadStatusPoller:
        poller = UploadStatusPoller(
            client, UploadSession(id="session-1"), interval=3.0, sleep=clock.sleep
        )
        poller.start()
        await clock.advance(2)
        await poller.stop()
        await clock.advance(3)
        return poller

    poller = asyncio.run(scenario())

    assert poller.state is PollerState.CANCELLED
    assert len(client.status_queries) == 2


def test_stale_response_is_discarded() -> None:
    class GatedClient(FakeBackendClient):
        def __init__(self) -> None:
            super().__init__()
            self.gates: list[asyncio.Future] = []

        async def get_phone_upload_status(self, session_id: str) -> UploadStatusReport:
            gate = asyncio.get_running_loop().create_future()
            self.gates.append(gate)
            return await gate

    client = GatedClient()
    clock = ManualClock()
    session = UploadSession(id="session-1")

    async def scenario() -> UploadStatusPoller:
        poller = UploadStatusPoller(client, session, interval=3.0, sleep=clock.sleep)
        poller.start()
        first = asyncio.create_task(poller.tick())
        second = asyncio.create_task(poller.tick())
        await settle()
        client.gates[1].set_result(pending())
        await settle()
        client.gates[0].set_result(completed(["late.jpg"]))
        await asyncio.gather(first, second)
        state = poller.state
        await poller.stop()
        return state

    state = asyncio.run(scenario())

    assert state is PollerState.POLLING
    assert session.status is UploadStatus.PENDING
    assert session.files == []


def test_context_manager_releases_task() -> None:
    client = FakeBackendClient(upload_statuses=[pending()])
    clock = ManualClock()

    async def scenario() -> UploadStatusPoller:
        async with UploadStatusPoller(
            client, UploadSession(id="session-1"), interval=3.0, sleep=clock.sleep
        ) as poller:
            await clock.advance(1)
        await clock.advance(2)
        return poller

    poller = asyncio.run(scenario())

    assert poller.state is PollerState.CANCELLED
    assert len(client.status_queries) == 1
