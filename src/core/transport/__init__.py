"""
Transport module.

Provides the backend client interface and its HTTP implementation.

Usage:
    from src.core.transport import HttpTransport

    transport = HttpTransport(config.transport)
    page = await transport.list_jobs([], [], start=0, limit=50)
"""

from src.core.transport.base import (
    BaseTransport,
    StatusCode,
    StreamHandle,
    StreamStatus,
)
from src.core.transport.exceptions import (
    CallFailedError,
    ConfigurationError,
    ConnectionError,
    NotFoundError,
    TransportError,
)
from src.core.transport.http import HttpStream, HttpTransport

__all__ = [
    "BaseTransport",
    "StatusCode",
    "StreamHandle",
    "StreamStatus",
    "CallFailedError",
    "ConfigurationError",
    "ConnectionError",
    "NotFoundError",
    "TransportError",
    "HttpStream",
    "HttpTransport",
]
