"""
Transport exceptions.

All transport implementations raise these exceptions for consistent error
handling. Stream failures are not raised; they end the stream with a
non-OK StreamStatus instead.
"""


class TransportError(Exception):
    """Base exception for all transport errors."""

    pass


class ConnectionError(TransportError):
    """Cannot reach the backend."""

    pass


class CallFailedError(TransportError):
    """A unary call was rejected by the backend."""

    def __init__(self, message: str, code: int = 2) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class NotFoundError(CallFailedError):
    """Requested job does not exist."""

    def __init__(self, message: str, code: int = 5) -> None:
        super().__init__(message, code)


class ConfigurationError(TransportError):
    """Invalid transport configuration."""

    pass
