"""Synse Server API client module.

This module provides the HTTPClient and WebSocketClient classes for talking
to Synse Server, along with the shared client interface, factories,
endpoint definitions, custom exceptions and retry handling.

WebSocket support:
- WebSocketClient: Many concurrent callers over one persistent connection
- EventCorrelator: Id-based matching of responses to requests
- StreamSubscription: Non-blocking delivery of streamed readings
"""

from synse_client.api.client import (
    SynseClient,
    create_client,
    new_http_client,
    new_websocket_client,
)
from synse_client.api.endpoints import (
    DEFAULT_API_VERSION,
    ENDPOINTS,
    Endpoints,
    build_url,
    versioned_path,
)
from synse_client.api.exceptions import (
    ConfigurationError,
    ConnectionError,
    HandshakeError,
    ProtocolError,
    RequestTimeoutError,
    ServerError,
    StreamOverflowError,
    SynseError,
    UnsupportedOperationError,
)
from synse_client.api.http import HTTPClient
from synse_client.api.session import create_retry_decorator, retry_from_options
from synse_client.api.streams import STREAM_END, StreamSubscription
from synse_client.api.websocket import (
    Envelope,
    EventCorrelator,
    PendingRequest,
    parse_envelope,
)
from synse_client.api.ws_manager import WebSocketClient

__all__ = [
    # Clients
    "HTTPClient",
    "SynseClient",
    "WebSocketClient",
    "create_client",
    "new_http_client",
    "new_websocket_client",
    # WebSocket
    "Envelope",
    "EventCorrelator",
    "PendingRequest",
    "parse_envelope",
    # Streams
    "STREAM_END",
    "StreamSubscription",
    # Exceptions
    "ConfigurationError",
    "ConnectionError",
    "HandshakeError",
    "ProtocolError",
    "RequestTimeoutError",
    "ServerError",
    "StreamOverflowError",
    "SynseError",
    "UnsupportedOperationError",
    # Endpoints
    "DEFAULT_API_VERSION",
    "ENDPOINTS",
    "Endpoints",
    "build_url",
    "versioned_path",
    # Session
    "create_retry_decorator",
    "retry_from_options",
]
