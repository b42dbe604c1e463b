"""
Subscription manager for push streams.

Owns at most one open stream for one logical subject (a job's log feed or
the fleet status feed) and reopens it after a fixed delay when it ends
abnormally. A clean close by the server is final.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from src.core.transport.base import StatusCode, StreamHandle, StreamStatus

logger = logging.getLogger(__name__)

# open_stream(criteria, on_data, on_end) -> StreamHandle
StreamOpener = Callable[
    [Any, Callable[[Any], None], Callable[[StreamStatus], None]],
    StreamHandle,
]


class Subscription:
    """
    One logical push-stream subscription.

    Each instance is owned by exactly one consumer. start() always cancels
    the previous stream before opening a new one, so there are never two
    streams open for the same subject.

    Usage:
        subscription = Subscription(
            lambda flt, on_data, on_end: transport.subscribe(flt, on_data, on_end),
            collection.on_push,
            retry_delay=1.0,
        )
        subscription.start(filter)
        ...
        subscription.stop()
    """

    def __init__(
        self,
        open_stream: StreamOpener,
        on_data: Callable[[Any], None],
        *,
        retry_delay: float = 1.0,
        max_retries: int | None = None,
        on_reopen: Callable[[], None] | None = None,
        on_failure: Callable[[StreamStatus], None] | None = None,
        subject: str = "stream",
    ) -> None:
        """
        Initialize the subscription.

        Args:
            open_stream: Opens a stream for the given criteria.
            on_data: Receives every message, in arrival order.
            retry_delay: Seconds to wait before reopening after an abnormal end.
            max_retries: Consecutive reopen attempts before giving up (None: forever).
            on_reopen: Called right before an automatic reopen.
            on_failure: Called once retries are exhausted.
            subject: Name used in log messages.
        """
        self._open_stream = open_stream
        self._on_data = on_data
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self._on_reopen = on_reopen
        self._on_failure = on_failure
        self.subject = subject

        self._handle: StreamHandle | None = None
        self._retry_timer: asyncio.TimerHandle | None = None
        self._criteria: Any = None
        self._running = False
        self._failed = False
        self.retry_count = 0
        self.last_status: StreamStatus | None = None

    @property
    def criteria(self) -> Any:
        return self._criteria

    @property
    def active(self) -> bool:
        """True while the subscription wants a stream (open or pending reopen)."""
        return self._running

    @property
    def failed(self) -> bool:
        """True once retries are exhausted."""
        return self._failed

    def start(self, criteria: Any = None) -> None:
        """
        Open a stream scoped by criteria, replacing any existing one.

        Args:
            criteria: Passed unchanged to open_stream.
        """
        self._cancel_retry()
        self._cancel_handle()

        self.retry_count = 0
        self._criteria = criteria
        self._running = True
        self._failed = False
        self._open()

    def stop(self) -> None:
        """Close the stream and suppress any pending reopen. Idempotent."""
        if self._running:
            logger.debug(f"Stopping {self.subject} subscription")
        self._running = False
        self._cancel_retry()
        self._cancel_handle()

    def _open(self) -> None:
        handle: StreamHandle | None = None
        ended = False

        def on_data(message: Any) -> None:
            if ended or handle is not self._handle:
                return
            self.retry_count = 0
            self._on_data(message)

        def on_end(status: StreamStatus) -> None:
            nonlocal ended
            if ended or handle is not self._handle:
                # End of a stream we already replaced
                return
            ended = True
            self._handle = None
            self._handle_end(status)

        try:
            handle = self._open_stream(self._criteria, on_data, on_end)
        except Exception as e:
            logger.warning(f"Cannot open {self.subject} stream: {e}")
            self._handle_end(StreamStatus(StatusCode.UNAVAILABLE, str(e)))
            return

        if not ended:
            self._handle = handle
            logger.debug(f"Opened {self.subject} stream")

    def _handle_end(self, status: StreamStatus) -> None:
        self.last_status = status
        if not self._running:
            return

        if status.ok:
            logger.info(f"{self.subject} stream closed by server")
            self._running = False
            return

        if self.max_retries is not None and self.retry_count >= self.max_retries:
            logger.error(
                f"{self.subject} stream failed after {self.retry_count} retries: "
                f"code={status.code} {status.details}"
            )
            self._running = False
            self._failed = True
            if self._on_failure is not None:
                self._on_failure(status)
            return

        self.retry_count += 1
        logger.warning(
            f"{self.subject} stream ended (code={status.code} {status.details}), "
            f"reopening in {self.retry_delay}s (attempt {self.retry_count})"
        )
        loop = asyncio.get_running_loop()
        self._retry_timer = loop.call_later(self.retry_delay, self._reopen)

    def _reopen(self) -> None:
        self._retry_timer = None
        if not self._running:
            return
        if self._on_reopen is not None:
            self._on_reopen()
        self._cancel_handle()
        self._open()

    def _cancel_retry(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def _cancel_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
