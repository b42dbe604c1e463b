"""Tests for JobActions."""

from unittest.mock import AsyncMock

import pytest

from src.core.services.actions import JobActions, ReplayNotAllowedError
from src.core.transport.exceptions import CallFailedError, NotFoundError
from tests.conftest import FakeTransport, make_job


@pytest.fixture
def actions(transport: FakeTransport) -> JobActions:
    transport.add(
        make_job("werft-main.1", can_replay=True),
        make_job("werft-main.2", can_replay=False),
    )
    return JobActions(transport)


class TestStop:
    """Tests for stopping jobs."""

    async def test_stop(self, actions, transport):
        await actions.stop("werft-main.1")

        assert transport.stopped == ["werft-main.1"]

    async def test_stop_unknown_job(self, actions):
        with pytest.raises(NotFoundError):
            await actions.stop("missing.1")

    async def test_failure_is_not_retried(self, actions, transport):
        transport.stop_job = AsyncMock(side_effect=CallFailedError("rejected"))

        with pytest.raises(CallFailedError):
            await actions.stop("werft-main.1")

        transport.stop_job.assert_awaited_once_with("werft-main.1")


class TestReplay:
    """Tests for replaying jobs."""

    async def test_replay_by_name(self, actions, transport):
        started = await actions.replay("werft-main.1")

        assert transport.replayed == ["werft-main.1"]
        assert started.name == "werft-main.2"

    async def test_replay_summary(self, actions, transport):
        job = make_job("werft-main.7", can_replay=True)

        await actions.replay(job)

        assert transport.replayed == ["werft-main.7"]

    async def test_replay_refused_when_not_allowed(self, actions, transport):
        with pytest.raises(ReplayNotAllowedError) as exc_info:
            await actions.replay("werft-main.2")

        assert isinstance(exc_info.value, CallFailedError)
        assert transport.replayed == []


class TestStartAndGet:
    """Tests for starting and fetching jobs."""

    async def test_start(self, actions, transport):
        started = await actions.start({"name": "manual.1"})

        assert transport.started == [{"name": "manual.1"}]
        assert started.name == "manual.1"

    async def test_get(self, actions):
        job = await actions.get("werft-main.1")

        assert job.name == "werft-main.1"
