"""
HTTP transport using httpx.

Unary calls are JSON POST requests. Push streams are POST requests whose
response body is newline-delimited JSON, read by one asyncio task per
stream. A stream line of the form {"error": {"code": ..., "message": ...}}
ends the stream with that status; a plain EOF ends it with status OK.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import httpx

from src.core.config.loader import TransportConfig
from src.core.models import (
    FilterExpression,
    JobSummary,
    ListenLogMode,
    ListenMessage,
    ListJobsResult,
    OrderExpression,
)
from src.core.transport.base import (
    BaseTransport,
    EndCallback,
    StatusCode,
    StreamHandle,
    StreamStatus,
)
from src.core.transport.exceptions import (
    CallFailedError,
    ConfigurationError,
    ConnectionError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _status_from_http(status_code: int) -> int:
    """Map an HTTP status to a stream status code."""
    if status_code == 404:
        return StatusCode.NOT_FOUND
    if status_code in (502, 503, 504):
        return StatusCode.UNAVAILABLE
    if status_code >= 500:
        return StatusCode.INTERNAL
    return StatusCode.UNKNOWN


class HttpStream(StreamHandle):
    """
    A push stream read by a background task.

    Callbacks run on the event loop, one message at a time, in the order
    the server wrote them.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        path: str,
        body: dict[str, Any],
        decode: Callable[[dict[str, Any]], Any | None],
        on_data: Callable[[Any], None],
        on_end: EndCallback,
    ) -> None:
        self._client = client
        self._path = path
        self._body = body
        self._decode = decode
        self._on_data = on_data
        self._on_end = on_end
        self._cancelled = False
        # Streams stay open indefinitely; only connecting is bounded
        self._timeout = httpx.Timeout(client.timeout.connect, read=None)
        # Raises RuntimeError when no event loop is running
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> asyncio.Task:
        return self._task

    def cancel(self) -> None:
        """Close the stream; no end callback is delivered afterwards."""
        if self._cancelled:
            return
        self._cancelled = True
        self._task.cancel()

    async def _run(self) -> None:
        status = StreamStatus(StatusCode.OK)

        try:
            async with self._client.stream(
                "POST", self._path, json=self._body, timeout=self._timeout
            ) as response:
                if response.status_code >= 400:
                    status = StreamStatus(
                        _status_from_http(response.status_code),
                        f"HTTP {response.status_code}",
                    )
                else:
                    async for line in response.aiter_lines():
                        if self._cancelled:
                            return
                        if not line.strip():
                            continue

                        try:
                            obj = json.loads(line)
                        except json.JSONDecodeError:
                            logger.debug(f"Skipping malformed stream line on {self._path}")
                            continue

                        error = obj.get("error") if isinstance(obj, dict) else None
                        if error:
                            status = StreamStatus(
                                int(error.get("code", StatusCode.UNKNOWN)),
                                error.get("message", ""),
                            )
                            break

                        message = self._decode(obj)
                        if message is not None:
                            self._on_data(message)

        except asyncio.CancelledError:
            raise

        except httpx.HTTPError as e:
            logger.warning(f"Stream {self._path} interrupted: {e}")
            status = StreamStatus(StatusCode.UNAVAILABLE, str(e))

        except Exception as e:
            logger.error(f"Error handling stream {self._path}: {e}", exc_info=True)
            status = StreamStatus(StatusCode.INTERNAL, str(e))

        if not self._cancelled:
            self._on_end(status)


class HttpTransport(BaseTransport):
    """
    Backend client over HTTP.

    Usage:
        transport = HttpTransport(TransportConfig(base_url="https://werft.example.com"))

        job = await transport.get_job("werft-main.12")
        handle = transport.listen("werft-main.12", True, ListenLogMode.HTML, on_data, on_end)

        await transport.close()
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or TransportConfig()
        if not self.config.base_url:
            raise ConfigurationError("Transport base_url is not configured")

        self._client = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            headers=self.config.headers,
        )
        self._streams: set[HttpStream] = set()

    def _path(self, method: str) -> str:
        prefix = self.config.path_prefix.strip("/")
        return f"/{prefix}/{method}" if prefix else f"/{method}"

    async def _call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        """Issue a unary call and return the decoded JSON response."""
        try:
            response = await self._client.post(self._path(method), json=body)
        except httpx.TimeoutException as e:
            raise ConnectionError(f"Timeout calling {method}") from e
        except httpx.RequestError as e:
            raise ConnectionError(f"Failed to call {method}: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{method}: not found")

        if not response.is_success:
            raise CallFailedError(
                f"{method} failed: HTTP {response.status_code}: {response.text}",
                code=_status_from_http(response.status_code),
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise CallFailedError(f"{method} returned invalid JSON") from e

    def _open(
        self,
        method: str,
        body: dict[str, Any],
        decode: Callable[[dict[str, Any]], Any | None],
        on_data: Callable[[Any], None],
        on_end: EndCallback,
    ) -> StreamHandle:
        if self._client.is_closed:
            raise ConnectionError("Transport is closed")

        stream = HttpStream(self._client, self._path(method), body, decode, on_data, on_end)
        self._streams.add(stream)
        stream.task.add_done_callback(lambda _: self._streams.discard(stream))
        logger.debug(f"Opened stream {method}")
        return stream

    async def list_jobs(
        self,
        filter: list[FilterExpression],
        order: list[OrderExpression],
        start: int,
        limit: int,
    ) -> ListJobsResult:
        data = await self._call(
            "ListJobs",
            {
                "filter": [f.to_dict() for f in filter],
                "order": [o.to_dict() for o in order],
                "start": start,
                "limit": limit,
            },
        )
        return ListJobsResult.from_dict(data)

    async def get_job(self, name: str) -> JobSummary:
        data = await self._call("GetJob", {"name": name})
        return JobSummary.from_dict(data.get("result", {}))

    def subscribe(
        self,
        filter: list[FilterExpression],
        on_data: Callable[[JobSummary], None],
        on_end: EndCallback,
    ) -> StreamHandle:
        def decode(obj: dict[str, Any]) -> JobSummary | None:
            result = obj.get("result")
            return JobSummary.from_dict(result) if result else None

        return self._open(
            "Subscribe",
            {"filter": [f.to_dict() for f in filter]},
            decode,
            on_data,
            on_end,
        )

    def listen(
        self,
        name: str,
        want_updates: bool,
        log_mode: ListenLogMode,
        on_data: Callable[[ListenMessage], None],
        on_end: EndCallback,
    ) -> StreamHandle:
        def decode(obj: dict[str, Any]) -> ListenMessage | None:
            message = ListenMessage.from_dict(obj)
            if message.update is None and message.slice is None:
                return None
            return message

        return self._open(
            "Listen",
            {"name": name, "updates": want_updates, "logs": str(log_mode)},
            decode,
            on_data,
            on_end,
        )

    async def stop_job(self, name: str) -> None:
        await self._call("StopJob", {"name": name})
        logger.info(f"Requested stop of job {name}")

    async def start_from_previous_job(self, previous_name: str) -> JobSummary:
        data = await self._call("StartFromPreviousJob", {"previousJob": previous_name})
        return JobSummary.from_dict(data.get("status", {}))

    async def start_job(self, spec: dict[str, Any]) -> JobSummary:
        data = await self._call("StartJob", spec)
        return JobSummary.from_dict(data.get("status", {}))

    async def close(self) -> None:
        """Cancel open streams and close the HTTP client."""
        for stream in list(self._streams):
            stream.cancel()
        self._streams.clear()
        await self._client.aclose()
        logger.debug("Transport closed")
