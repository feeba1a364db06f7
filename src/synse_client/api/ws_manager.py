"""Synchronous WebSocket client for Synse Server.

This module bridges the async WebSocket connection with synchronous
callers. The WebSocketClient runs the connection in a daemon background
thread with its own event loop; callers on any thread submit frames to
that loop and block on per-request futures for their responses.

Features:
- Background thread with isolated event loop
- Any number of concurrent callers over one connection
- Non-blocking stream delivery into caller-supplied queues
- Graceful shutdown that never hangs on in-flight work

Example usage:
    from synse_client.api import WebSocketClient
    from synse_client.config import ClientOptions

    client = WebSocketClient(ClientOptions(address="localhost:5000"))
    client.open()

    # From any thread:
    status = client.status()

    # On shutdown:
    client.close()
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import queue
import threading
from collections.abc import Iterable
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from synse_client.config.settings import ClientOptions
from synse_client.models import (
    Config,
    ConnectionState,
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
)

from . import events
from .client import WriteInput, write_payload
from .endpoints import DEFAULT_API_VERSION, ENDPOINTS, build_url
from .exceptions import ConnectionError, ProtocolError, RequestTimeoutError, SynseError
from .streams import StreamSubscription
from .tls import create_ssl_context
from .websocket import Envelope, EventCorrelator, SynseWebSocketConnection

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Extra time allowed past the handshake timeout for the loop thread to start.
OPEN_GRACE_PERIOD = 1.0
CLOSE_TIMEOUT = 5.0


class WebSocketClient:
    """Client for the Synse Server WebSocket API.

    All operations share one connection. Calls made before open() or
    after close() raise ConnectionError.

    Attributes:
        options: Immutable client options.
        url: WebSocket endpoint, ``ws[s]://{address}/v3/connect``.

    Example:
        with WebSocketClient(ClientOptions(address="localhost:5000")) as client:
            stop = threading.Event()
            sub = client.read_stream(ReadStreamOptions(ids=["dev-1"]), stop=stop)
            for reading in sub:
                print(reading.value)
    """

    transport = Transport.WEBSOCKET

    def __init__(self, options: ClientOptions) -> None:
        """Initialize the WebSocket client.

        No connection is made until open() is called.

        Raises:
            ConfigurationError: TLS certificates cannot be loaded.
        """
        self.options = options
        self._ssl_context = create_ssl_context(options.tls)
        scheme = "wss" if options.tls.enabled else "ws"
        self.url = build_url(scheme, options.address, DEFAULT_API_VERSION, ENDPOINTS.connect)

        self._correlator = EventCorrelator()
        self._connection: SynseWebSocketConnection | None = None
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        """Check if the connection is open and usable."""
        connection = self._connection
        return (
            self._state is ConnectionState.CONNECTED
            and connection is not None
            and not connection.closing
        )

    def get_options(self) -> ClientOptions:
        return self.options

    def open(self) -> None:
        """Connect to the server in a background thread.

        Blocks until the handshake completes. Calling open() on an open
        client does nothing.

        Raises:
            ConnectionError: The client was closed, or the server is unreachable.
            HandshakeError: The server rejected the upgrade.
            RequestTimeoutError: The handshake did not complete in time.
        """
        with self._state_lock:
            if self._state is ConnectionState.CONNECTED:
                logger.debug("websocket_client_already_open", url=self.url)
                return
            if self._state is ConnectionState.CLOSED:
                raise ConnectionError(
                    message="client is closed",
                    hint="Create a new client to reconnect.",
                )

            connection = SynseWebSocketConnection(
                url=self.url,
                correlator=self._correlator,
                ssl_context=self._ssl_context,
                handshake_timeout=self.options.websocket.handshake_timeout,
                ping_interval=self.options.websocket.ping_interval,
            )
            ready: concurrent.futures.Future = concurrent.futures.Future()
            loop = asyncio.new_event_loop()

            thread = threading.Thread(
                target=self._run_loop,
                args=(loop, connection, ready),
                name="synse-websocket",
                daemon=True,
            )
            thread.start()

            wait = self.options.websocket.handshake_timeout + OPEN_GRACE_PERIOD
            try:
                ready.result(timeout=wait)
            except concurrent.futures.TimeoutError:
                loop.call_soon_threadsafe(loop.stop)
                raise RequestTimeoutError(
                    message=f"WebSocket connection to {self.url} was not ready in time",
                    timeout=wait,
                )
            except SynseError:
                thread.join(timeout=CLOSE_TIMEOUT)
                raise

            self._loop = loop
            self._thread = thread
            self._connection = connection
            self._state = ConnectionState.CONNECTED

        logger.info("websocket_client_opened", url=self.url)

    def _run_loop(
        self,
        loop: asyncio.AbstractEventLoop,
        connection: SynseWebSocketConnection,
        ready: concurrent.futures.Future,
    ) -> None:
        """Run the event loop in the background thread."""
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._async_main(connection, ready))
        except Exception as e:
            logger.error(
                "websocket_client_loop_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            if not ready.done():
                ready.set_exception(ConnectionError(message=f"WebSocket loop failed: {e}"))
        finally:
            loop.close()

    async def _async_main(
        self,
        connection: SynseWebSocketConnection,
        ready: concurrent.futures.Future,
    ) -> None:
        """Connect, report readiness, then serve frames until the connection ends."""
        try:
            await connection.connect()
        except SynseError as e:
            ready.set_exception(e)
            return
        ready.set_result(None)

        await connection.run()

        with self._state_lock:
            if self._state is ConnectionState.CONNECTED:
                self._state = ConnectionState.CLOSED
                logger.info("websocket_client_closed_by_peer", url=self.url)

    def close(self) -> None:
        """Close the connection.

        Pending requests fail with ConnectionError; open streams complete
        without error. Closing a closed client does nothing.
        """
        with self._state_lock:
            if self._state is ConnectionState.CLOSED:
                return
            was_connected = self._state is ConnectionState.CONNECTED
            self._state = ConnectionState.CLOSED
            connection, loop, thread = self._connection, self._loop, self._thread

        if not was_connected:
            logger.debug("websocket_client_closed_unopened", url=self.url)
            return

        self._correlator.close(ConnectionError(message="connection closed"))

        if loop is not None and connection is not None:
            try:
                stopping = asyncio.run_coroutine_threadsafe(connection.stop(), loop)
                stopping.result(timeout=CLOSE_TIMEOUT)
            except RuntimeError as e:
                logger.debug("websocket_client_loop_gone", error=str(e))
            except concurrent.futures.TimeoutError:
                logger.warning("websocket_client_stop_timeout", url=self.url)

        if thread is not None:
            thread.join(timeout=CLOSE_TIMEOUT)
            if thread.is_alive():
                logger.warning("websocket_client_thread_timeout")

        logger.info("websocket_client_closed", url=self.url)

    def status(self) -> Status:
        return self._call(events.REQUEST_STATUS, {events.RESPONSE_STATUS}, Status)

    def version(self) -> Version:
        return self._call(events.REQUEST_VERSION, {events.RESPONSE_VERSION}, Version)

    def config(self) -> Config:
        return self._call(events.REQUEST_CONFIG, {events.RESPONSE_CONFIG}, Config)

    def plugins(self) -> List[PluginMeta]:
        return self._call(
            events.REQUEST_PLUGIN,
            {events.RESPONSE_PLUGIN_SUMMARY, events.RESPONSE_PLUGIN},
            List[PluginMeta],
        )

    def plugin(self, plugin_id: str) -> Plugin:
        return self._call(
            events.REQUEST_PLUGIN,
            {events.RESPONSE_PLUGIN_INFO, events.RESPONSE_PLUGIN},
            Plugin,
            {"plugin": plugin_id},
        )

    def plugin_health(self) -> PluginHealth:
        return self._call(
            events.REQUEST_PLUGIN_HEALTH, {events.RESPONSE_PLUGIN_HEALTH}, PluginHealth
        )

    def scan(self, options: Optional[ScanOptions] = None) -> List[Scan]:
        return self._call(
            events.REQUEST_SCAN,
            {events.RESPONSE_DEVICE_SUMMARY},
            List[Scan],
            (options or ScanOptions()).to_payload(),
        )

    def tags(self, options: Optional[TagsOptions] = None) -> List[str]:
        return self._call(
            events.REQUEST_TAGS,
            {events.RESPONSE_TAGS},
            List[str],
            (options or TagsOptions()).to_payload(),
        )

    def info(self, device_id: str) -> Info:
        return self._call(
            events.REQUEST_INFO,
            {events.RESPONSE_DEVICE_INFO, events.RESPONSE_DEVICE},
            Info,
            {"device": device_id},
        )

    def read(self, options: Optional[ReadOptions] = None) -> List[Read]:
        return self._call(
            events.REQUEST_READ,
            {events.RESPONSE_READING},
            List[Read],
            (options or ReadOptions()).to_payload(),
        )

    def read_device(self, device_id: str, options: Optional[ReadOptions] = None) -> List[Read]:
        data: Dict[str, Any] = {"id": device_id}
        data.update((options or ReadOptions()).to_payload())
        return self._call(events.REQUEST_READ_DEVICE, {events.RESPONSE_READING}, List[Read], data)

    def read_cache(
        self,
        options: Optional[ReadCacheOptions] = None,
        sink: Optional[queue.Queue] = None,
    ) -> StreamSubscription:
        """Replay cached readings into the sink.

        The server answers with one batch of readings; the subscription
        ends once the batch has been forwarded.
        """
        return self._open_stream(
            events.REQUEST_READ_CACHE,
            (options or ReadCacheOptions()).to_payload(),
            sink,
            bounded=True,
        )

    def read_stream(
        self,
        options: Optional[ReadStreamOptions] = None,
        sink: Optional[queue.Queue] = None,
        stop: Optional[threading.Event] = None,
    ) -> StreamSubscription:
        """Stream live readings into the sink until stop is set.

        Setting stop releases the subscription and asks the server to stop
        the stream; the connection stays open for other callers.

        Args:
            options: Device ids and tags selecting the stream.
            sink: Queue receiving Read records. A bounded queue sized by
                ``websocket.stream_buffer_size`` is created when omitted.
            stop: Event ending the stream when set.
        """
        options = options or ReadStreamOptions()
        subscription = self._open_stream(
            events.REQUEST_READ_STREAM,
            options.to_payload(),
            sink,
            stop=stop,
            device_ids=options.ids,
            stop_payload=options.model_copy(update={"stop": True}).to_payload(),
        )
        subscription.watch_stop()
        return subscription

    def write_async(self, device_id: str, data: Iterable[WriteInput]) -> List[Write]:
        return self._call(
            events.REQUEST_WRITE_ASYNC,
            {events.RESPONSE_TRANSACTION_INFO, events.RESPONSE_WRITE_STATE},
            List[Write],
            {"id": device_id, "payload": write_payload(data)},
        )

    def write_sync(self, device_id: str, data: Iterable[WriteInput]) -> List[Transaction]:
        return self._call(
            events.REQUEST_WRITE_SYNC,
            {events.RESPONSE_TRANSACTION_STATUS, events.RESPONSE_WRITE_STATE},
            List[Transaction],
            {"id": device_id, "payload": write_payload(data)},
        )

    def transactions(self) -> List[str]:
        return self._call(
            events.REQUEST_TRANSACTION, {events.RESPONSE_TRANSACTION_LIST}, List[str]
        )

    def transaction(self, transaction_id: str) -> Transaction:
        return self._call(
            events.REQUEST_TRANSACTION,
            {events.RESPONSE_TRANSACTION_STATUS, events.RESPONSE_WRITE_STATE},
            Transaction,
            {"transaction": transaction_id},
        )

    def _ensure_connected(self) -> None:
        if not self.is_connected():
            raise ConnectionError(
                message="not connected",
                hint="Call open() before making requests.",
            )

    def _submit(
        self,
        envelope: Envelope,
        on_drop: Optional[Callable[[SynseError], None]] = None,
    ) -> None:
        """Hand a frame to the writer task on the loop thread.

        If the connection is already closing when the frame reaches the
        loop, the frame is dropped and on_drop is called there with a
        ConnectionError.
        """
        loop, connection = self._loop, self._connection
        if loop is None or connection is None:
            raise ConnectionError(message="not connected")

        frame = envelope.encode()

        def enqueue() -> None:
            if not connection.enqueue(frame) and on_drop is not None:
                on_drop(ConnectionError(message="connection lost before the frame was sent"))

        try:
            loop.call_soon_threadsafe(enqueue)
        except RuntimeError as e:
            raise ConnectionError(message="not connected") from e

    def _request(self, event: str, expected: Iterable[str], data: Any = None) -> Any:
        """Send a unary request and wait for its response payload."""
        self._ensure_connected()
        pending = self._correlator.register(event, expected)
        logger.debug("websocket_request", id=pending.request_id, event_name=event)
        try:
            self._submit(
                Envelope(id=pending.request_id, event=event, data=data),
                on_drop=lambda error: self._correlator.fail(pending.request_id, error),
            )
            return pending.result(timeout=self.options.timeout)
        finally:
            self._correlator.discard(pending.request_id)

    def _call(
        self,
        event: str,
        expected: Iterable[str],
        model: Type[T],
        data: Any = None,
    ) -> T:
        payload = self._request(event, expected, data)
        try:
            return TypeAdapter(model).validate_python(payload)
        except ValidationError as e:
            raise ProtocolError(f"failed to decode {event} response: {e}") from e

    def _open_stream(
        self,
        event: str,
        data: Any,
        sink: Optional[queue.Queue],
        *,
        stop: Optional[threading.Event] = None,
        device_ids: Iterable[str] = (),
        bounded: bool = False,
        stop_payload: Optional[Dict[str, Any]] = None,
    ) -> StreamSubscription:
        self._ensure_connected()
        if sink is None:
            sink = queue.Queue(maxsize=self.options.websocket.stream_buffer_size)

        stream_id = self._correlator.next_id()

        def release(subscription: StreamSubscription) -> None:
            self._correlator.unsubscribe(subscription)
            if stop_payload is None or not self.is_connected():
                return
            try:
                self._submit(Envelope(id=stream_id, event=event, data=stop_payload))
            except ConnectionError as e:
                logger.debug("stream_stop_not_sent", stream_id=stream_id, error=str(e))
                return
            logger.debug("stream_stop_requested", stream_id=stream_id)

        subscription = StreamSubscription(
            sink,
            stop=stop,
            stream_id=stream_id,
            device_ids=device_ids,
            bounded=bounded,
            on_release=release,
        )
        self._correlator.subscribe(subscription)

        try:
            self._submit(Envelope(id=stream_id, event=event, data=data), on_drop=subscription.finish)
        except ConnectionError as e:
            subscription.finish(e)
            raise

        logger.debug("stream_opened", stream_id=stream_id, event_name=event, bounded=bounded)
        return subscription

    def __enter__(self) -> "WebSocketClient":
        """Enter context manager - open the connection."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Any,
        exc_val: Any,
        exc_tb: Any,
    ) -> None:
        """Exit context manager - close the connection."""
        self.close()
