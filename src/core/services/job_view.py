"""
Live view of a single job.

Combines the job's status with its reconstructed log. Both are fed by the
job's listen stream, which carries status updates and log slices in one
feed.

Reconnect policy:
    The backend replays a job's log from the beginning whenever a listen
    stream is opened. Before an automatic reopen the log tree is therefore
    reset and rebuilt from the replay, so a reconnect never duplicates
    lines. Events the backend did not persist cannot be recovered either
    way; sections cut short by the gap end up UNKNOWN once a later phase
    starts.
"""

import logging
from collections.abc import Callable, Sequence

from src.core.logs.cutter import LogCutter
from src.core.logs.reconstruction import LogReconstructor
from src.core.models import (
    JobSummary,
    ListenLogMode,
    ListenMessage,
    LogEventType,
    Phase,
    Section,
)
from src.core.streams.subscription import Subscription
from src.core.transport.base import BaseTransport, StreamStatus
from src.core.utils.debounce import Debouncer

logger = logging.getLogger(__name__)


class JobView:
    """
    Status and structured log of one job, kept up to date from its stream.

    Observers are notified after changes, coalesced to at most one
    notification per debounce interval. Every event is applied to the
    state immediately and in order; only the notifications are coalesced.

    Usage:
        view = JobView(transport, "werft-main.12")
        view.subscribe(lambda v: render(v.tree()))
        await view.open()
        ...
        view.close()
    """

    def __init__(
        self,
        transport: BaseTransport,
        name: str,
        *,
        log_mode: ListenLogMode = ListenLogMode.HTML,
        internal_prefixes: Sequence[str] | None = None,
        debounce_interval: float = 0.2,
        retry_delay: float = 1.0,
        max_retries: int | None = None,
    ) -> None:
        self.transport = transport
        self.name = name
        self.log_mode = log_mode
        self.status: JobSummary | None = None
        self.logs = LogReconstructor(internal_prefixes)
        self._cutter = LogCutter()
        self.show_internal = False
        self.connection_lost = False
        self._observers: list[Callable[["JobView"], None]] = []
        self._debouncer = Debouncer(self._notify, debounce_interval)
        self._subscription = Subscription(
            lambda job, on_data, on_end: transport.listen(
                job, True, log_mode, on_data, on_end
            ),
            self._on_message,
            retry_delay=retry_delay,
            max_retries=max_retries,
            on_reopen=self._on_reopen,
            on_failure=self._on_failure,
            subject=f"job {name}",
        )

    @property
    def subscription(self) -> Subscription:
        return self._subscription

    async def open(self) -> None:
        """
        Load the job's status and start listening to its stream.

        Raises:
            NotFoundError: If the job does not exist.
            CallFailedError: If the status call is rejected.
        """
        self.status = await self.transport.get_job(self.name)
        self.connection_lost = False
        self._subscription.start(self.name)
        self._notify()

    def close(self) -> None:
        """Stop the stream and drop observers. Safe to call more than once."""
        self._subscription.stop()
        self._debouncer.cancel()
        self._observers.clear()

    def subscribe(self, callback: Callable[["JobView"], None]) -> Callable[[], None]:
        """
        Register a change callback.

        Returns:
            A function that removes the observer again.
        """
        self._observers.append(callback)

        def remove() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return remove

    def _on_message(self, message: ListenMessage) -> None:
        if message.update is not None:
            self.status = message.update
        if message.slice is not None:
            if self.log_mode == ListenLogMode.UNSLICED:
                self._apply_unsliced(message.slice.payload, message.slice.type)
            else:
                self.logs.apply(message.slice)
        self._debouncer.trigger()

    def _on_reopen(self) -> None:
        logger.info(f"Reconnecting to job {self.name}, discarding log for replay")
        self.logs.reset()
        self._cutter = LogCutter()

    def _apply_unsliced(self, payload: str, event_type: LogEventType | str) -> None:
        # Unsliced streams carry raw output lines; markers are cut locally.
        # The raw buffer keeps each line uncut so internal lines stay
        # recognizable by their prefix.
        if event_type != LogEventType.CONTENT:
            return
        for line in payload.splitlines() or [""]:
            self.logs.append_raw(line)
            for event in self._cutter.cut_line(line):
                self.logs.apply(event, record_raw=False)

    def _on_failure(self, status: StreamStatus) -> None:
        self.connection_lost = True
        self._debouncer.cancel()
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._observers):
            callback(self)

    def flush(self) -> None:
        """Deliver a pending notification immediately."""
        self._debouncer.flush()

    def toggle_internal(self) -> bool:
        """Flip whether internal status lines appear in the raw log."""
        self.show_internal = not self.show_internal
        self._notify()
        return self.show_internal

    # -- read side ---------------------------------------------------------

    @property
    def finished(self) -> bool:
        return self.status is not None and self.status.is_done

    @property
    def phases(self) -> list[Phase]:
        return self.logs.phases

    @property
    def active_step(self) -> int:
        return self.logs.active_step

    def tree(self) -> list[tuple[Phase, list[Section]]]:
        return self.logs.tree()

    def raw_log(self) -> str:
        return self.logs.raw_log(self.show_internal)

    def export(self) -> str:
        """Complete raw log for download."""
        return self.logs.export(show_internal=True)
