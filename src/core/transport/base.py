"""
Base interface for the backend transport.

The runtime only talks to the backend through this interface. Unary calls
are coroutines; push streams are opened synchronously and deliver their
messages through callbacks on the event loop.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from src.core.models import (
    FilterExpression,
    JobSummary,
    ListenLogMode,
    ListenMessage,
    ListJobsResult,
    OrderExpression,
)


class StatusCode(IntEnum):
    """Stream termination codes (gRPC numbering)."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    NOT_FOUND = 5
    FAILED_PRECONDITION = 9
    INTERNAL = 13
    UNAVAILABLE = 14


@dataclass(frozen=True)
class StreamStatus:
    """Terminal status of a push stream."""

    code: int = StatusCode.OK
    details: str = ""

    @property
    def ok(self) -> bool:
        """True if the server closed the stream intentionally."""
        return self.code == StatusCode.OK


class StreamHandle(ABC):
    """Handle of an open push stream."""

    @abstractmethod
    def cancel(self) -> None:
        """
        Close the stream.

        After cancel() no further data or end callbacks are delivered.
        Must be safe to call more than once.
        """
        pass


DataCallback = Callable[[Any], None]
EndCallback = Callable[[StreamStatus], None]


class BaseTransport(ABC):
    """
    Abstract backend client.

    Usage:
        transport = SomeTransport(config)

        page = await transport.list_jobs([], [], start=0, limit=50)
        handle = transport.subscribe([], on_data, on_end)
        ...
        handle.cancel()
        await transport.close()
    """

    @abstractmethod
    async def list_jobs(
        self,
        filter: list[FilterExpression],
        order: list[OrderExpression],
        start: int,
        limit: int,
    ) -> ListJobsResult:
        """Fetch one page of jobs matching filter, in the given order."""
        pass

    @abstractmethod
    async def get_job(self, name: str) -> JobSummary:
        """Fetch the status of a single job."""
        pass

    @abstractmethod
    def subscribe(
        self,
        filter: list[FilterExpression],
        on_data: Callable[[JobSummary], None],
        on_end: EndCallback,
    ) -> StreamHandle:
        """Open the fleet-wide status stream scoped by filter."""
        pass

    @abstractmethod
    def listen(
        self,
        name: str,
        want_updates: bool,
        log_mode: ListenLogMode,
        on_data: Callable[[ListenMessage], None],
        on_end: EndCallback,
    ) -> StreamHandle:
        """Open the combined status and log stream of one job."""
        pass

    @abstractmethod
    async def stop_job(self, name: str) -> None:
        """Stop a running job."""
        pass

    @abstractmethod
    async def start_from_previous_job(self, previous_name: str) -> JobSummary:
        """Start a new job with the same configuration as a previous one."""
        pass

    @abstractmethod
    async def start_job(self, spec: dict[str, Any]) -> JobSummary:
        """Start a new job from a job spec."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        pass
