"""Tests for JobView."""

import asyncio
from unittest.mock import MagicMock

import pytest

from src.core.models import (
    JobPhase,
    ListenLogMode,
    ListenMessage,
    LogEventType,
    SectionStatus,
)
from src.core.services.job_view import JobView
from src.core.transport.exceptions import NotFoundError
from tests.conftest import FakeTransport, make_job, slice_message

JOB_NAME = "werft-main.12"


@pytest.fixture
def view(transport: FakeTransport) -> JobView:
    transport.add(make_job(JOB_NAME))
    return JobView(transport, JOB_NAME, debounce_interval=0, retry_delay=0.01)


class TestOpen:
    """Tests for opening a view."""

    async def test_open_loads_status_and_listens(self, view, transport):
        await view.open()

        assert view.status.name == JOB_NAME
        assert transport.latest.kind == "listen"
        assert transport.latest.criteria == JOB_NAME
        assert transport.latest.log_mode == ListenLogMode.HTML

    async def test_open_unknown_job_raises(self, transport):
        view = JobView(transport, "missing.1")

        with pytest.raises(NotFoundError):
            await view.open()

        assert transport.streams == []

    async def test_observer_notified_on_open(self, view):
        observer = MagicMock()
        view.subscribe(observer)

        await view.open()

        observer.assert_called_once_with(view)


class TestMessages:
    """Tests for routing listen stream messages."""

    async def test_update_replaces_status(self, view, transport):
        await view.open()
        update = make_job(JOB_NAME, phase=JobPhase.DONE, success=True)

        transport.latest.push(ListenMessage(update=update))

        assert view.status is update
        assert view.finished

    async def test_slices_build_log_tree(self, view, transport):
        await view.open()
        stream = transport.latest

        stream.push(slice_message("build", LogEventType.PHASE, "Build"))
        stream.push(slice_message("compile", LogEventType.START))
        stream.push(slice_message("compile", LogEventType.CONTENT, "go build"))
        stream.push(slice_message("compile", LogEventType.DONE))

        assert [p.name for p in view.phases] == ["build"]
        assert view.active_step == 1
        phase, sections = view.tree()[0]
        assert sections[0].lines == ["go build"]
        assert sections[0].status == SectionStatus.DONE

    async def test_unsliced_lines_are_cut_locally(self, transport):
        transport.add(make_job(JOB_NAME))
        view = JobView(transport, JOB_NAME, log_mode=ListenLogMode.UNSLICED, debounce_interval=0)
        await view.open()

        for line in ["[build|PHASE] Build", "[compile] go build", "[compile|FAIL] exit 1"]:
            transport.latest.push(slice_message("", LogEventType.CONTENT, line))

        section = view.logs.section("build", "compile")
        assert section.lines == ["go build"]
        assert section.status == SectionStatus.FAILED

    async def test_unsliced_raw_log_keeps_internal_prefixes(self, transport):
        transport.add(make_job(JOB_NAME))
        view = JobView(transport, JOB_NAME, log_mode=ListenLogMode.UNSLICED, debounce_interval=0)
        await view.open()

        for line in ["[werft:kubernetes] pod scheduled", "hello"]:
            transport.latest.push(slice_message("", LogEventType.CONTENT, line))

        assert view.logs.raw_lines(show_internal=False) == ["hello"]
        assert view.logs.raw_lines(show_internal=True) == [
            "[werft:kubernetes] pod scheduled",
            "hello",
        ]
        assert view.toggle_internal() is True
        assert view.raw_log() == "[werft:kubernetes] pod scheduled\nhello"
        assert view.logs.section("default", "werft:kubernetes").lines == ["pod scheduled"]

    async def test_notifications_are_coalesced(self, transport):
        transport.add(make_job(JOB_NAME))
        view = JobView(transport, JOB_NAME, debounce_interval=0.02)
        await view.open()
        observer = MagicMock()
        view.subscribe(observer)

        transport.latest.push(slice_message("x", LogEventType.START))
        for i in range(50):
            transport.latest.push(slice_message("x", LogEventType.CONTENT, str(i)))

        # State is current even before observers hear about it
        assert len(view.logs.section("default", "x").lines) == 50
        observer.assert_not_called()

        await asyncio.sleep(0.1)

        observer.assert_called_once_with(view)

    async def test_unsubscribe(self, view, transport):
        observer = MagicMock()
        remove = view.subscribe(observer)
        await view.open()
        observer.reset_mock()

        remove()
        transport.latest.push(slice_message("x", LogEventType.START))

        observer.assert_not_called()


class TestReconnect:
    """Tests for stream recovery."""

    async def test_reopen_replays_without_duplicates(self, view, transport):
        await view.open()
        history = [
            slice_message("x", LogEventType.START),
            slice_message("x", LogEventType.CONTENT, "one"),
        ]
        for message in history:
            transport.latest.push(message)

        transport.latest.fail()
        await asyncio.sleep(0.05)
        for message in history:
            transport.latest.push(message)

        assert len(transport.streams) == 2
        assert view.logs.section("default", "x").lines == ["one"]
        assert view.raw_log() == "one"

    async def test_exhausted_retries_mark_connection_lost(self, transport):
        transport.add(make_job(JOB_NAME))
        view = JobView(transport, JOB_NAME, debounce_interval=0, max_retries=0)
        observer = MagicMock()
        view.subscribe(observer)
        await view.open()
        observer.reset_mock()

        transport.latest.fail()

        assert view.connection_lost
        observer.assert_called_once_with(view)

    async def test_close_stops_stream_and_drops_observers(self, view, transport):
        observer = MagicMock()
        view.subscribe(observer)
        await view.open()
        observer.reset_mock()

        view.close()
        view.close()

        assert transport.latest.cancel_count == 1
        transport.latest.push(slice_message("x", LogEventType.START))
        observer.assert_not_called()


class TestRawLog:
    """Tests for the raw log accessors."""

    async def test_toggle_internal(self, view, transport):
        await view.open()
        transport.latest.push(slice_message("x", LogEventType.CONTENT, "[werft:status] building"))
        transport.latest.push(slice_message("x", LogEventType.CONTENT, "hello"))

        assert view.raw_log() == "hello"
        assert view.toggle_internal() is True
        assert view.raw_log() == "[werft:status] building\nhello"
        assert view.export() == "[werft:status] building\nhello\n"
