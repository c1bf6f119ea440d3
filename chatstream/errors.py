"""Exception hierarchy for the streaming conversation engine.

Only ``TransportError``, ``ServerReportedError`` and the base
``ChatStreamError`` ever reach caller error callbacks. ``FrameDecodeError``
and ``PersistenceError`` are raised and handled internally and end up in
the log.
"""


class ChatStreamError(Exception):
    """Base class for all chatstream errors."""

    pass


class TransportError(ChatStreamError):
    """Raised when an HTTP exchange fails (non-2xx status or network error).

    Attributes:
        status_code: HTTP status of the failed response, if one was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FrameDecodeError(ChatStreamError):
    """Raised when a single ``data:`` line cannot be decoded into an event."""

    pass


class ServerReportedError(ChatStreamError):
    """Raised for an ``error`` event sent by the server mid-stream."""

    pass


class PersistenceError(ChatStreamError):
    """Raised when saving the finished transcript fails."""

    pass
