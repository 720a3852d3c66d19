from __future__ import annotations


class AppError(Exception):
    """Base client error."""

    code = "app_error"
    retryable = False

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotConnected(AppError):
    code = "not_connected"


class InvalidInput(AppError):
    code = "invalid_input"


class RoomOperationFailed(AppError):
    code = "room_operation_failed"
    retryable = True


class TransportClosed(AppError):
    code = "transport_closed"


class LifecycleError(RuntimeError):
    """Raised when the connection lifecycle contract is broken by the caller.

    Not an AppError: intent handlers let it propagate.
    """
