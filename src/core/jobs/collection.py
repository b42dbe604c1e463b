"""
Job collection synchronizer.

Keeps a page of job summaries consistent with the backend: the page itself
comes from a listing snapshot, and live updates from the fleet status
stream are applied on top of it.

Design Decisions:
    - A snapshot replaces the displayed set entirely. Page 2 shows exactly
      the server's page 2, never a local subset of everything seen.
    - Live updates replace a known job in place, or put an unknown job at
      the front so new jobs show up before they belong to any page. The
      displayed set is capped at MAX_DISPLAYED_PAGES pages; jobs pushed
      past the cap drop off the end until the next snapshot.
    - Updates replace whole records; fields are never merged.
    - Query parameters (filter, sort, explicit order, page, page size) are
      committed together, and only once the listing for them succeeded.
      A failed or superseded query leaves the displayed state untouched.
    - A new filter goes back to the first page. The live stream is
      reopened for it once its first page has loaded, so live updates
      always belong to the filter of the displayed jobs.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from src.core.config.loader import ClientConfig
from src.core.jobs.sorting import SortState
from src.core.models import FilterExpression, JobPhase, JobSummary, OrderExpression
from src.core.streams.subscription import Subscription
from src.core.transport.base import BaseTransport

logger = logging.getLogger(__name__)

# Ordering used only to notice phase regressions in live updates
PHASE_ORDER: dict[JobPhase, int] = {
    JobPhase.UNKNOWN: 0,
    JobPhase.WAITING: 1,
    JobPhase.PREPARING: 2,
    JobPhase.STARTING: 3,
    JobPhase.RUNNING: 4,
    JobPhase.DONE: 5,
    JobPhase.CLEANUP: 6,
}

# Pushed jobs may grow the displayed set to this many pages
MAX_DISPLAYED_PAGES = 2

SubscriptionFactory = Callable[[Callable[[JobSummary], None]], Subscription]


@dataclass(frozen=True)
class QueryState:
    """Parameters of a listing query."""

    filter: list[FilterExpression] = field(default_factory=list)
    sort: SortState = field(default_factory=SortState)
    # Explicit order given to query(); overrides the sort column until
    # the next sort change
    order: list[OrderExpression] | None = None
    page: int = 0
    page_size: int = 50

    @property
    def start(self) -> int:
        return self.page * self.page_size

    def to_order(self) -> list[OrderExpression]:
        if self.order is not None:
            return list(self.order)
        return self.sort.to_order()


class JobCollection:
    """
    Filterable, sortable, paginated view of job summaries.

    Usage:
        collection = JobCollection(transport, page_size=50)
        await collection.start()

        await collection.change_filter(parse_filter(["phase==running"]))
        await collection.change_sort("age")
        await collection.change_page(1)

        collection.stop()
    """

    def __init__(
        self,
        transport: BaseTransport,
        *,
        page_size: int = 50,
        retry_delay: float = 1.0,
        max_retries: int | None = None,
        subscription_factory: SubscriptionFactory | None = None,
    ) -> None:
        """
        Initialize the collection.

        Args:
            transport: Backend client.
            page_size: Number of jobs per page.
            retry_delay: Delay before reopening the live stream.
            max_retries: Reopen attempts before the live stream gives up.
            subscription_factory: Builds the live subscription (for tests).
        """
        self.transport = transport
        self.total = 0
        self._state = QueryState(page_size=page_size)
        # Parameters of the most recent query, committed or not
        self._requested = self._state
        self._jobs: list[JobSummary] = []
        self._query_seq = 0
        self._listeners: list[Callable[["JobCollection"], None]] = []

        if subscription_factory is not None:
            self._subscription = subscription_factory(self.on_push)
        else:
            self._subscription = Subscription(
                lambda flt, on_data, on_end: transport.subscribe(flt, on_data, on_end),
                self.on_push,
                retry_delay=retry_delay,
                max_retries=max_retries,
                subject="job list",
            )

    @classmethod
    def from_config(cls, transport: BaseTransport, config: ClientConfig) -> "JobCollection":
        """Build a collection with page size and retry policy from config."""
        return cls(
            transport,
            page_size=config.jobs.page_size,
            retry_delay=config.subscription.retry_delay,
            max_retries=config.subscription.max_retries,
        )

    @property
    def jobs(self) -> list[JobSummary]:
        """Displayed jobs, in display order (read-only copy)."""
        return list(self._jobs)

    @property
    def subscription(self) -> Subscription:
        return self._subscription

    @property
    def filter(self) -> list[FilterExpression]:
        return list(self._state.filter)

    @property
    def sort(self) -> SortState:
        return self._state.sort

    @property
    def order(self) -> list[OrderExpression]:
        """Order of the displayed page."""
        return self._state.to_order()

    @property
    def page(self) -> int:
        return self._state.page

    @property
    def page_size(self) -> int:
        return self._state.page_size

    @property
    def page_count(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size

    def get(self, name: str) -> JobSummary | None:
        for job in self._jobs:
            if job.name == name:
                return job
        return None

    def add_listener(self, callback: Callable[["JobCollection"], None]) -> None:
        """Register a callback invoked after every change of the displayed set."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    async def start(self) -> None:
        """Fetch the first page and start receiving live updates."""
        self._subscription.start(self.filter)
        await self.query()

    def stop(self) -> None:
        """Stop live updates and drop listeners."""
        self._subscription.stop()
        self._listeners.clear()

    async def query(
        self,
        filter: list[FilterExpression] | None = None,
        order: list[OrderExpression] | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> None:
        """
        Fetch a snapshot page and replace the displayed set with it.

        Arguments left as None keep the value of the previous query. A
        filter different from the previous one starts at page 0 unless a
        page is given, and reopens the live stream for it. An explicit
        order stays in effect for later pages until the sort changes.

        When a newer query was issued while this one was in flight, this
        response is dropped.

        Raises:
            CallFailedError: If the listing call is rejected.
            ConnectionError: If the backend cannot be reached.
        """
        base = self._requested
        changes: dict = {}
        if filter is not None and list(filter) != base.filter:
            changes["filter"] = list(filter)
            changes["page"] = 0
        if order is not None:
            changes["order"] = list(order)
        if page is not None:
            changes["page"] = page
        if page_size is not None:
            changes["page_size"] = page_size
        await self._load(replace(base, **changes))

    async def _load(self, state: QueryState) -> None:
        self._requested = state
        self._query_seq += 1
        seq = self._query_seq

        try:
            result = await self.transport.list_jobs(
                state.filter, state.to_order(), state.start, state.page_size
            )
        except Exception as e:
            logger.warning(f"Loading page {state.page} failed: {e}")
            if seq == self._query_seq:
                self._requested = self._state
            raise

        if seq != self._query_seq:
            logger.debug(f"Dropping stale listing response (query {seq})")
            return

        filter_changed = state.filter != self._state.filter
        self._state = state
        self._jobs = list(result.results)
        self.total = result.total
        if filter_changed:
            self._subscription.start(state.filter)
        logger.debug(
            f"Loaded page {state.page}: {len(self._jobs)} of {self.total} jobs"
        )
        self._notify()

    def on_push(self, job: JobSummary) -> None:
        """
        Apply a live update.

        A known job is replaced in place; an unknown job is inserted at the
        front, and the displayed set is trimmed to MAX_DISPLAYED_PAGES pages.
        """
        for idx, existing in enumerate(self._jobs):
            if existing.name == job.name:
                if PHASE_ORDER[job.phase] < PHASE_ORDER[existing.phase]:
                    logger.debug(
                        f"Job {job.name} went back from {existing.phase} to {job.phase}"
                    )
                self._jobs[idx] = job
                break
        else:
            self._jobs.insert(0, job)
            limit = self.page_size * MAX_DISPLAYED_PAGES
            if limit > 0 and len(self._jobs) > limit:
                del self._jobs[limit:]

        self._notify()

    async def change_filter(self, filter: list[FilterExpression]) -> None:
        """Switch to a new filter: load its page 0 and reopen the live stream."""
        await self._load(replace(self._requested, filter=list(filter), page=0))

    async def change_page(self, page: int) -> None:
        if page < 0:
            raise ValueError(f"Invalid page: {page}")
        await self.query(page=page)

    async def change_page_size(self, page_size: int) -> None:
        if page_size <= 0:
            raise ValueError(f"Invalid page size: {page_size}")
        await self.query(page=0, page_size=page_size)

    async def change_sort(self, column: str) -> None:
        """Select a sort column (toggling direction on re-selection) and reload."""
        sort = self._requested.sort.select(column)
        await self._load(replace(self._requested, sort=sort, order=None))
