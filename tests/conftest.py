"""
Shared test fixtures.

Provides an in-memory transport whose streams are driven by the test:
messages are pushed and streams are ended explicitly, so every
subscription scenario is deterministic.
"""

from collections.abc import Callable
from typing import Any

import pytest

from src.core.models import (
    FilterExpression,
    JobConditions,
    JobPhase,
    JobSummary,
    ListenLogMode,
    ListenMessage,
    ListJobsResult,
    LogEvent,
    LogEventType,
    OrderExpression,
    Repository,
)
from src.core.transport.base import BaseTransport, StatusCode, StreamHandle, StreamStatus
from src.core.transport.exceptions import NotFoundError


class FakeStream(StreamHandle):
    """Stream handle controlled by the test."""

    def __init__(
        self,
        kind: str,
        criteria: Any,
        on_data: Callable[[Any], None],
        on_end: Callable[[StreamStatus], None],
    ) -> None:
        self.kind = kind
        self.criteria = criteria
        self.on_data = on_data
        self.on_end = on_end
        self.cancel_count = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_count > 0

    def cancel(self) -> None:
        self.cancel_count += 1

    def push(self, message: Any) -> None:
        self.on_data(message)

    def end(self, code: int = StatusCode.OK, details: str = "") -> None:
        self.on_end(StreamStatus(code, details))

    def fail(self, details: str = "connection reset") -> None:
        self.end(StatusCode.UNAVAILABLE, details)


class FakeTransport(BaseTransport):
    """In-memory backend recording every call."""

    def __init__(self) -> None:
        self.jobs: dict[str, JobSummary] = {}
        self.list_calls: list[dict[str, Any]] = []
        self.list_result: ListJobsResult | None = None
        self.streams: list[FakeStream] = []
        self.open_error: Exception | None = None
        self.stopped: list[str] = []
        self.replayed: list[str] = []
        self.started: list[dict[str, Any]] = []
        self.closed = False

    def add(self, *jobs: JobSummary) -> None:
        for job in jobs:
            self.jobs[job.name] = job

    @property
    def latest(self) -> FakeStream:
        return self.streams[-1]

    @property
    def open_streams(self) -> list[FakeStream]:
        return [s for s in self.streams if not s.cancelled]

    async def list_jobs(
        self,
        filter: list[FilterExpression],
        order: list[OrderExpression],
        start: int,
        limit: int,
    ) -> ListJobsResult:
        self.list_calls.append(
            {"filter": filter, "order": order, "start": start, "limit": limit}
        )
        if self.list_result is not None:
            return self.list_result
        jobs = list(self.jobs.values())
        return ListJobsResult(total=len(jobs), results=jobs[start:start + limit])

    async def get_job(self, name: str) -> JobSummary:
        if name not in self.jobs:
            raise NotFoundError(f"{name} not found")
        return self.jobs[name]

    def _open(self, kind: str, criteria: Any, on_data, on_end) -> FakeStream:
        if self.open_error is not None:
            raise self.open_error
        stream = FakeStream(kind, criteria, on_data, on_end)
        self.streams.append(stream)
        return stream

    def subscribe(self, filter, on_data, on_end) -> StreamHandle:
        return self._open("subscribe", filter, on_data, on_end)

    def listen(
        self,
        name: str,
        want_updates: bool,
        log_mode: ListenLogMode,
        on_data,
        on_end,
    ) -> StreamHandle:
        stream = self._open("listen", name, on_data, on_end)
        stream.log_mode = log_mode
        return stream

    async def stop_job(self, name: str) -> None:
        if name not in self.jobs:
            raise NotFoundError(f"{name} not found")
        self.stopped.append(name)

    async def start_from_previous_job(self, previous_name: str) -> JobSummary:
        self.replayed.append(previous_name)
        prefix, _, number = previous_name.rpartition(".")
        return make_job(f"{prefix}.{int(number) + 1}", phase=JobPhase.PREPARING)

    async def start_job(self, spec: dict[str, Any]) -> JobSummary:
        self.started.append(spec)
        return make_job(spec.get("name", "manual.1"), phase=JobPhase.PREPARING)

    async def close(self) -> None:
        self.closed = True


def make_job(
    name: str,
    phase: JobPhase = JobPhase.RUNNING,
    ref: str = "main",
    owner: str = "csweichel",
    repo: str = "werft",
    success: bool = False,
    can_replay: bool = False,
    annotations: dict[str, str] | None = None,
) -> JobSummary:
    """Build a job summary with sensible defaults."""
    return JobSummary(
        name=name,
        owner=owner,
        repository=Repository(host="github.com", owner=owner, repo=repo, ref=ref),
        phase=phase,
        conditions=JobConditions(success=success, can_replay=can_replay),
        annotations=annotations or {},
    )


def slice_message(name: str, event_type: LogEventType, payload: str = "") -> ListenMessage:
    return ListenMessage(slice=LogEvent(name, event_type, payload))


@pytest.fixture
def transport() -> FakeTransport:
    """Provide an empty fake transport."""
    return FakeTransport()
