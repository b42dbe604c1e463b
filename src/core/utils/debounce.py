"""Coalescing of high-frequency notifications on the event loop."""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Runs a callback at most once per interval while triggers keep coming.

    The first trigger schedules the callback `interval` seconds later; any
    further triggers before it runs are absorbed. Only notifications are
    coalesced: the state the callback reads is always up to date.

    An interval of 0 runs the callback synchronously on every trigger.

    Usage:
        debouncer = Debouncer(render, interval=0.2)
        debouncer.trigger()   # many times
        debouncer.cancel()    # on teardown
    """

    def __init__(self, callback: Callable[[], None], interval: float = 0.2) -> None:
        self._callback = callback
        self.interval = interval
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        if self.interval <= 0:
            self._callback()
            return
        if self._timer is not None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.interval, self._fire)

    def flush(self) -> None:
        """Run a pending callback right away."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._fire()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        self._callback()
