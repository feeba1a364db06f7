"""Custom exceptions for Synse client operations.

All exceptions inherit from SynseError for consistent error handling.
Each exception carries a message and an optional troubleshooting hint.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from synse_client.models import ErrorResponse


class SynseError(Exception):
    """Base exception for all Synse client errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional troubleshooting hint.
    """

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
    ) -> None:
        self.message = message
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional hint."""
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class ConfigurationError(SynseError):
    """Client options are invalid.

    Raised synchronously while building a client, before any I/O:
    - No address specified
    - TLS enabled without certificates
    - Certificate files missing or unreadable
    """


class ConnectionError(SynseError):
    """Cannot talk to Synse Server.

    This typically occurs when:
    - Server is not running or the address is wrong
    - The WebSocket was closed, or never opened
    - The server answered with a non-success status and no error body
    """

    def __init__(
        self,
        message: str = "Cannot connect to Synse Server",
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message=message, hint=hint)


class HandshakeError(ConnectionError):
    """WebSocket handshake with Synse Server failed."""


class RequestTimeoutError(SynseError):
    """No response arrived before the request deadline."""

    def __init__(
        self,
        message: str = "Request to Synse Server timed out",
        hint: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.timeout = timeout
        super().__init__(message=message, hint=hint)


class ServerError(SynseError):
    """Synse Server reported an error payload.

    The server-supplied fields are preserved verbatim.

    Attributes:
        error: The decoded error payload.
        http_code: HTTP status code reported by the server.
        description: Error description.
        timestamp: When the error occurred, as reported by the server.
        context: Additional error context.
    """

    def __init__(self, error: "ErrorResponse") -> None:
        self.error = error
        self.http_code = error.http_code
        self.description = error.description
        self.timestamp = error.timestamp
        self.context = error.context
        super().__init__(
            message=(
                f"got a {error.http_code} error response from synse server "
                f"at {error.timestamp}, saying {error.description}, "
                f"with context: {error.context}"
            )
        )


class ProtocolError(SynseError):
    """A response could not be decoded or did not match the request."""


class StreamOverflowError(SynseError):
    """A stream consumer fell behind and its subscription was dropped."""

    def __init__(
        self,
        message: str = "Stream sink is full, subscription dropped",
        hint: Optional[str] = (
            "Drain the sink faster or pass a larger queue to the streaming call."
        ),
    ) -> None:
        super().__init__(message=message, hint=hint)


class UnsupportedOperationError(SynseError):
    """The operation is not offered by this transport."""
