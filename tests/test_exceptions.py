"""Tests for the Synse client error hierarchy."""

from synse_client.api import (
    ConnectionError,
    HandshakeError,
    RequestTimeoutError,
    ServerError,
    StreamOverflowError,
    SynseError,
)
from synse_client.models import ErrorResponse


class TestSynseError:
    """Tests for message and hint formatting."""

    def test_message_only(self):
        error = SynseError("boom")

        assert str(error) == "boom"
        assert error.hint is None

    def test_message_with_hint(self):
        error = SynseError("boom", hint="try again")

        assert str(error) == "boom\n\nHint: try again"

    def test_connection_error_default_message(self):
        assert ConnectionError().message == "Cannot connect to Synse Server"

    def test_handshake_error_is_connection_error(self):
        assert isinstance(HandshakeError("bad upgrade"), ConnectionError)

    def test_timeout_keeps_deadline(self):
        assert RequestTimeoutError(timeout=2.5).timeout == 2.5

    def test_overflow_has_hint(self):
        assert StreamOverflowError().hint


class TestServerError:
    """Tests for errors reported by Synse Server."""

    def test_fields_preserved(self):
        payload = ErrorResponse(
            http_code=404,
            description="resource not found",
            timestamp="2019-01-24T14:34:24Z",
            context="device abc not found",
        )

        error = ServerError(payload)

        assert error.error is payload
        assert error.http_code == 404
        assert error.description == "resource not found"
        assert error.timestamp == "2019-01-24T14:34:24Z"
        assert error.context == "device abc not found"

    def test_message_names_every_field(self):
        error = ServerError(
            ErrorResponse(http_code=500, description="unknown", timestamp="t1", context="ctx")
        )

        assert str(error) == (
            "got a 500 error response from synse server at t1, saying unknown, with context: ctx"
        )
