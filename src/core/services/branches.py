"""
Branch board: the most recent jobs of every branch, kept live.
"""

import logging
from collections.abc import Callable

from src.core.config.loader import ClientConfig
from src.core.jobs.branches import DEFAULT_JOB_LIMIT, BranchIndex, BranchRow
from src.core.models import JobSummary, OrderExpression
from src.core.streams.subscription import Subscription
from src.core.transport.base import BaseTransport

logger = logging.getLogger(__name__)

SNAPSHOT_LIMIT = 200


class BranchBoard:
    """
    Loads recent jobs once, then applies live updates to a BranchIndex.

    Usage:
        board = BranchBoard(transport)
        await board.start()
        for row in board.rows():
            print(row.name, [j.name for j in row.jobs])
        board.stop()
    """

    def __init__(
        self,
        transport: BaseTransport,
        *,
        snapshot_limit: int = SNAPSHOT_LIMIT,
        max_jobs: int = DEFAULT_JOB_LIMIT,
        retry_delay: float = 1.0,
        max_retries: int | None = None,
    ) -> None:
        self.transport = transport
        self.snapshot_limit = snapshot_limit
        self.index = BranchIndex(max_jobs)
        self._listeners: list[Callable[["BranchBoard"], None]] = []
        self._subscription = Subscription(
            lambda flt, on_data, on_end: transport.subscribe(flt, on_data, on_end),
            self._on_push,
            retry_delay=retry_delay,
            max_retries=max_retries,
            subject="branch board",
        )

    @classmethod
    def from_config(cls, transport: BaseTransport, config: ClientConfig) -> "BranchBoard":
        """Build a board with the per-branch job limit and retry policy from config."""
        return cls(
            transport,
            max_jobs=config.jobs.branch_job_limit,
            retry_delay=config.subscription.retry_delay,
            max_retries=config.subscription.max_retries,
        )

    @property
    def subscription(self) -> Subscription:
        return self._subscription

    def add_listener(self, callback: Callable[["BranchBoard"], None]) -> None:
        self._listeners.append(callback)

    async def start(self) -> None:
        """Load the most recent jobs and subscribe to all updates."""
        result = await self.transport.list_jobs(
            [],
            [OrderExpression(field="created", ascending=False)],
            0,
            self.snapshot_limit,
        )
        self.index.add(result.results)
        logger.info(f"Branch board loaded {len(result.results)} jobs in {len(self.index)} branches")
        self._notify()
        self._subscription.start([])

    def stop(self) -> None:
        self._subscription.stop()
        self._listeners.clear()

    def rows(self) -> list[BranchRow]:
        return self.index.rows()

    def _on_push(self, job: JobSummary) -> None:
        self.index.add([job])
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)
