"""Transport-agnostic Synse client interface and factories.

Both transports offer the same operations:
- HTTPClient maps every call to one REST request.
- WebSocketClient multiplexes every call over one persistent connection.

Example usage:
    from synse_client.api import create_client
    from synse_client.models import ReadOptions, Transport

    with create_client({"address": "localhost:5000"}, Transport.WEBSOCKET) as client:
        print(client.status().status)
        for reading in client.read(ReadOptions(tags=["type:temperature"])):
            print(reading.device, reading.value)
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Union, runtime_checkable

import structlog

from synse_client.config.loader import build_options
from synse_client.config.settings import ClientOptions
from synse_client.models import (
    Config,
    Info,
    Plugin,
    PluginHealth,
    PluginMeta,
    Read,
    ReadCacheOptions,
    ReadOptions,
    ReadStreamOptions,
    Scan,
    ScanOptions,
    Status,
    TagsOptions,
    Transaction,
    Transport,
    Version,
    Write,
    WriteData,
)

if TYPE_CHECKING:
    from .http import HTTPClient
    from .streams import StreamSubscription
    from .ws_manager import WebSocketClient

logger = structlog.get_logger(__name__)

WriteInput = Union[WriteData, Mapping[str, Any]]
OptionsInput = Union[ClientOptions, Mapping[str, Any]]


@runtime_checkable
class SynseClient(Protocol):
    """Operations offered by every Synse client transport.

    Non-streaming calls return validated records or raise a SynseError
    subclass. Streaming calls return a StreamSubscription as soon as the
    stream is established and deliver readings into the sink.
    """

    def open(self) -> None:
        """Establish the connection (no-op over HTTP)."""
        ...

    def close(self) -> None:
        """Release the connection and fail or drain in-flight work."""
        ...

    def get_options(self) -> ClientOptions:
        """Return the immutable options the client was built with."""
        ...

    def status(self) -> Status:
        """Check that the server is reachable."""
        ...

    def version(self) -> Version:
        """Return the server version and active API version."""
        ...

    def config(self) -> Config:
        """Return the server's unified configuration."""
        ...

    def plugins(self) -> List[PluginMeta]:
        """Return a summary of every registered plugin."""
        ...

    def plugin(self, plugin_id: str) -> Plugin:
        """Return the full detail of one plugin."""
        ...

    def plugin_health(self) -> PluginHealth:
        """Return the aggregate health of registered plugins."""
        ...

    def scan(self, options: Optional[ScanOptions] = None) -> List[Scan]:
        """List the devices the server can read from or write to."""
        ...

    def tags(self, options: Optional[TagsOptions] = None) -> List[str]:
        """List the tags currently associated with devices."""
        ...

    def info(self, device_id: str) -> Info:
        """Return meta info and capabilities for one device."""
        ...

    def read(self, options: Optional[ReadOptions] = None) -> List[Read]:
        """Read from every device matching the options."""
        ...

    def read_device(self, device_id: str, options: Optional[ReadOptions] = None) -> List[Read]:
        """Read from one device."""
        ...

    def read_cache(
        self,
        options: Optional[ReadCacheOptions] = None,
        sink: Optional[queue.Queue] = None,
    ) -> "StreamSubscription":
        """Replay cached readings into the sink; the stream ends with the data."""
        ...

    def read_stream(
        self,
        options: Optional[ReadStreamOptions] = None,
        sink: Optional[queue.Queue] = None,
        stop: Optional[threading.Event] = None,
    ) -> "StreamSubscription":
        """Stream live readings into the sink until stop is set."""
        ...

    def write_async(self, device_id: str, data: Iterable[WriteInput]) -> List[Write]:
        """Write to a device without waiting for the transactions to finish."""
        ...

    def write_sync(self, device_id: str, data: Iterable[WriteInput]) -> List[Transaction]:
        """Write to a device and wait for the transactions to finish."""
        ...

    def transactions(self) -> List[str]:
        """List the ids of every cached transaction."""
        ...

    def transaction(self, transaction_id: str) -> Transaction:
        """Return the state and status of one write transaction."""
        ...


def write_payload(data: Iterable[WriteInput]) -> List[Dict[str, Any]]:
    """Normalize write instructions into their wire form."""
    if isinstance(data, (WriteData, Mapping)):
        data = [data]
    return [
        WriteData.model_validate(item).to_wire() if isinstance(item, Mapping) else item.to_wire()
        for item in data
    ]


def new_http_client(options: OptionsInput) -> "HTTPClient":
    """Build an HTTP client.

    Raises:
        ConfigurationError: If the options are invalid.
    """
    from .http import HTTPClient

    return HTTPClient(build_options(options))


def new_websocket_client(options: OptionsInput) -> "WebSocketClient":
    """Build a WebSocket client. Call open() before any operation.

    Raises:
        ConfigurationError: If the options are invalid.
    """
    from .ws_manager import WebSocketClient

    return WebSocketClient(build_options(options))


def create_client(
    options: OptionsInput,
    transport: Union[Transport, str] = Transport.HTTP,
) -> SynseClient:
    """Build a client for the requested transport.

    Raises:
        ConfigurationError: If the options or transport are invalid.
    """
    from .exceptions import ConfigurationError

    try:
        kind = Transport(transport)
    except ValueError:
        raise ConfigurationError(
            f"Unknown transport '{transport}'",
            hint="Use 'http' or 'websocket'.",
        )

    logger.debug("client_created", transport=kind.value)
    if kind is Transport.WEBSOCKET:
        return new_websocket_client(options)
    return new_http_client(options)
