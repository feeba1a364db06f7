"""Shared enumerations for the Synse client."""

from enum import Enum


class Transport(str, Enum):
    """Transport used to talk to Synse Server."""

    HTTP = "http"
    WEBSOCKET = "websocket"


class ConnectionState(str, Enum):
    """Lifecycle state of a WebSocket connection."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSED = "closed"
