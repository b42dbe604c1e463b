"""
Service for imperative job actions.

Wraps the unary calls used by the job views (stop, replay, start). Call
failures are raised to the caller as transport errors; nothing is
retried automatically.
"""

import logging
from typing import Any

from src.core.models import JobSummary
from src.core.transport.base import BaseTransport, StatusCode
from src.core.transport.exceptions import CallFailedError

logger = logging.getLogger(__name__)


class ReplayNotAllowedError(CallFailedError):
    """The job cannot be started again from its previous configuration."""

    def __init__(self, message: str, code: int = StatusCode.FAILED_PRECONDITION) -> None:
        super().__init__(message, code)


class JobActions:
    """Stop, replay and start jobs."""

    def __init__(self, transport: BaseTransport) -> None:
        self.transport = transport

    async def get(self, name: str) -> JobSummary:
        return await self.transport.get_job(name)

    async def stop(self, name: str) -> None:
        """
        Stop a running job.

        Raises:
            NotFoundError: If the job does not exist.
            CallFailedError: If the backend rejects the request.
        """
        logger.info(f"Stopping job {name}")
        await self.transport.stop_job(name)

    async def replay(self, job: JobSummary | str) -> JobSummary:
        """
        Start a new job from a previous job's configuration.

        Args:
            job: The previous job, or its name (its status is fetched first).

        Returns:
            Status of the newly started job.

        Raises:
            ReplayNotAllowedError: If the previous job cannot be replayed.
        """
        if isinstance(job, str):
            job = await self.transport.get_job(job)

        if not job.conditions.can_replay:
            raise ReplayNotAllowedError(f"Job {job.name} cannot be replayed")

        started = await self.transport.start_from_previous_job(job.name)
        logger.info(f"Replayed job {job.name} as {started.name}")
        return started

    async def start(self, spec: dict[str, Any]) -> JobSummary:
        started = await self.transport.start_job(spec)
        logger.info(f"Started job {started.name}")
        return started
