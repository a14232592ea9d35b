"""Shared state machine for status pollers.

A poller owns exactly one background task. It is started with ``start()``
and released through ``cancel()``/``stop()`` or by reaching a terminal state;
nothing outside the poller touches the task. Sleeping goes through an
injectable coroutine so tests can drive the loop without real time.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, Self, TypeVar

from room_designer.config import Settings
from room_designer.domain.errors import (
    BackendRejection,
    NetworkError,
    ProcessingFailure,
)

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

Sleep = Callable[[float], Awaitable[None]]


class PollerState(StrEnum):
    """Lifecycle of a poller."""

    IDLE = "idle"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {PollerState.SUCCEEDED, PollerState.FAILED, PollerState.CANCELLED}
)


@dataclass(frozen=True)
class RetryPolicy:
    """How a poller reacts to failed queries and how long it may run."""

    max_consecutive_failures: int = 5
    backoff_max: float = 30.0
    max_attempts: int | None = None

    def delay(self, interval: float, consecutive_failures: int) -> float:
        """Wait before the next query, doubling per consecutive failure."""
        if consecutive_failures <= 0:
            return interval
        return min(interval * 2**consecutive_failures, max(self.backoff_max, interval))


@dataclass(frozen=True)
class PollingConfig:
    """Intervals and retry policies for both pollers."""

    upload_interval: float = 3.0
    project_interval: float = 5.0
    upload_policy: RetryPolicy = RetryPolicy()
    project_policy: RetryPolicy = RetryPolicy(max_attempts=360)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollingConfig":
        return cls(
            upload_interval=settings.upload_poll_interval,
            project_interval=settings.project_poll_interval,
            upload_policy=RetryPolicy(
                max_consecutive_failures=settings.poll_max_consecutive_failures,
                backoff_max=settings.poll_backoff_max,
            ),
            project_policy=RetryPolicy(
                max_consecutive_failures=settings.poll_max_consecutive_failures,
                backoff_max=settings.poll_backoff_max,
                max_attempts=settings.project_poll_max_attempts,
            ),
        )


class Poller(ABC, Generic[ResultT]):
    """Repeatedly queries a resource until a terminal observation."""

    name = "poller"
    immediate = False

    def __init__(
        self,
        *,
        interval: float,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        on_finish: Callable[[Self], None] | None = None,
    ) -> None:
        self.interval = interval
        self.policy = policy or RetryPolicy()
        self.state = PollerState.IDLE
        self.error: str | None = None
        self.attempts = 0
        self.consecutive_failures = 0
        self._sleep = sleep
        self._on_finish = on_finish
        self._sequence = 0
        self._applied_sequence = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def is_active(self) -> bool:
        return self.state is PollerState.POLLING

    def start(self) -> None:
        """Begin polling on the running event loop."""
        if self.state is not PollerState.IDLE:
            raise RuntimeError(f"{self.name} poller already started")
        self.state = PollerState.POLLING
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Started %s poller", self.name)

    async def tick(self) -> None:
        """Issue one query and apply its result."""
        if not self.is_active:
            return
        self._sequence += 1
        sequence = self._sequence
        self.attempts += 1
        try:
            result = await self._query()
        except (NetworkError, BackendRejection) as exc:
            if self._accepts(sequence):
                self._record_failure(exc)
        else:
            if self._accepts(sequence):
                self.consecutive_failures = 0
                self._apply(result)
            else:
                logger.debug("Discarded stale %s response #%d", self.name, sequence)
        if self.is_active and self._attempts_exhausted():
            self._fail(f"Gave up after {self.attempts} status checks.")

    def cancel(self) -> None:
        """Stop polling immediately; pending queries are discarded."""
        if self.is_active:
            self.state = PollerState.CANCELLED
            logger.info("Cancelled %s poller", self.name)
        self._release_task()

    def raise_for_failure(self) -> None:
        """Raise ``ProcessingFailure`` if polling ended in the failed state."""
        if self.state is PollerState.FAILED:
            raise ProcessingFailure(self.error or f"{self.name} poller failed")

    async def stop(self) -> None:
        """Cancel and wait until the background task has exited."""
        task = self._task
        self.cancel()
        if task is not None and task is not _current_task():
            with suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @abstractmethod
    async def _query(self) -> ResultT:
        """Fetch the current state of the polled resource."""

    @abstractmethod
    def _apply(self, result: ResultT) -> None:
        """Inspect a fresh result; call ``_succeed``/``_fail`` when terminal."""

    def _succeed(self) -> None:
        self.state = PollerState.SUCCEEDED
        logger.info("%s poller finished after %d checks", self.name, self.attempts)
        self._finish()

    def _fail(self, message: str) -> None:
        self.state = PollerState.FAILED
        self.error = message
        logger.info("%s poller failed: %s", self.name, message)
        self._finish()

    async def _run(self) -> None:
        try:
            if not self.immediate:
                await self._sleep(self.interval)
            while self.is_active:
                await self.tick()
                if not self.is_active:
                    break
                await self._sleep(
                    self.policy.delay(self.interval, self.consecutive_failures)
                )
        except Exception as exc:
            logger.exception("%s poller stopped unexpectedly", self.name)
            if self.is_active:
                self._fail(str(exc) or type(exc).__name__)

    def _accepts(self, sequence: int) -> bool:
        if not self.is_active or sequence <= self._applied_sequence:
            return False
        self._applied_sequence = sequence
        return True

    def _record_failure(self, exc: Exception) -> None:
        self.consecutive_failures += 1
        logger.warning(
            "%s status check failed (%d in a row): %s",
            self.name,
            self.consecutive_failures,
            exc,
        )
        if self.consecutive_failures >= self.policy.max_consecutive_failures:
            self._fail(str(exc))

    def _attempts_exhausted(self) -> bool:
        limit = self.policy.max_attempts
        return limit is not None and self.attempts >= limit

    def _finish(self) -> None:
        self._release_task()
        if self._on_finish is not None:
            self._on_finish(self)

    def _release_task(self) -> None:
        # A task that reaches a terminal state exits its loop on its own.
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()


def _current_task() -> asyncio.Task[object] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
