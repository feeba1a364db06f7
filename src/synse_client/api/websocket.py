"""WebSocket protocol layer for Synse Server.

Every frame is a JSON envelope ``{"id": <uint>, "event": <str>, "data": ...}``.
Many callers share one connection: the EventCorrelator matches response
frames to waiting requests by id and routes everything else to open
stream subscriptions.

Features:
- Monotonic request ids, never reused while outstanding
- Exactly-once delivery of each response to its caller
- Stream routing by owning id, falling back to device filters
- One reader task and one writer task per connection

Example usage:
    correlator = EventCorrelator()
    connection = SynseWebSocketConnection(
        url="ws://localhost:5000/v3/connect",
        correlator=correlator,
    )

    # In async context:
    await connection.connect()
    await connection.run()
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import ssl
import threading
import time
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

import structlog
import websockets

from synse_client.models import ErrorResponse

from .events import RESPONSE_ERROR, RESPONSE_READING
from .exceptions import (
    ConnectionError,
    HandshakeError,
    ProtocolError,
    RequestTimeoutError,
    ServerError,
    SynseError,
)

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

    from .streams import StreamSubscription

logger = structlog.get_logger(__name__)

# How many answered or expired request ids are remembered so their late
# frames are dropped instead of being broadcast to streams.
RETIRED_ID_LIMIT = 4096


@dataclass(frozen=True)
class Envelope:
    """One WebSocket frame.

    Attributes:
        id: Correlation id chosen by the client for the request.
        event: Event name, e.g. "request/read" or "response/reading".
        data: Event payload.
    """

    id: int
    event: str
    data: Any = None

    def encode(self) -> str:
        """Serialize the envelope to a JSON text frame."""
        frame: dict[str, Any] = {"id": self.id, "event": self.event}
        if self.data is not None:
            frame["data"] = self.data
        return json.dumps(frame)


def parse_envelope(raw_message: str | bytes) -> Envelope | None:
    """Parse a Synse WebSocket frame.

    Malformed frames are logged and dropped so one bad frame does not take
    down the connection.

    Args:
        raw_message: Raw frame from the socket.

    Returns:
        Envelope, or None if the frame is not a valid envelope.
    """
    if isinstance(raw_message, bytes):
        raw_message = raw_message.decode("utf-8", errors="replace")

    try:
        message = json.loads(raw_message)
    except json.JSONDecodeError:
        logger.warning("frame_malformed", reason="invalid_json", message=raw_message[:100])
        return None

    if not isinstance(message, dict):
        logger.warning("frame_malformed", reason="not_an_object", message=raw_message[:100])
        return None

    frame_id = message.get("id")
    event = message.get("event")
    if isinstance(frame_id, bool) or not isinstance(frame_id, int) or frame_id < 0:
        logger.warning("frame_malformed", reason="bad_id", message=raw_message[:100])
        return None
    if not isinstance(event, str) or not event:
        logger.warning("frame_malformed", reason="bad_event", message=raw_message[:100])
        return None

    return Envelope(id=frame_id, event=event, data=message.get("data"))


def error_from_envelope(envelope: Envelope) -> SynseError:
    """Classify a ``response/error`` frame."""
    try:
        error = ErrorResponse.model_validate(envelope.data or {})
    except ValueError as e:
        return ProtocolError(f"undecodable error frame for request {envelope.id}: {e}")
    return ServerError(error)


@dataclass
class PendingRequest:
    """An in-flight unary request waiting for its response frame.

    Attributes:
        request_id: Envelope id of the request.
        event: Request event name.
        expected: Response event names that answer this request.
        future: Single-slot result, resolved with the response Envelope.
        created: Monotonic time the request was registered.
    """

    request_id: int
    event: str
    expected: frozenset[str]
    future: concurrent.futures.Future = field(default_factory=concurrent.futures.Future)
    created: float = field(default_factory=time.monotonic)

    def result(self, timeout: float) -> Any:
        """Block until the response arrives and return its payload.

        Raises:
            RequestTimeoutError: No response within the timeout.
            ServerError: The server answered with an error frame.
            ProtocolError: The response event does not answer this request.
            ConnectionError: The connection went away first.
        """
        try:
            envelope: Envelope = self.future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            raise RequestTimeoutError(
                message=f"no response to {self.event} (id {self.request_id}) within {timeout}s",
                timeout=timeout,
            )

        if envelope.event == RESPONSE_ERROR:
            raise error_from_envelope(envelope)
        if envelope.event not in self.expected:
            raise ProtocolError(
                f"unexpected {envelope.event} in response to {self.event} "
                f"(id {self.request_id})"
            )
        return envelope.data


class EventCorrelator:
    """Routes incoming frames to pending requests and stream subscriptions.

    Thread-safe. Callers register from any thread; the reader task
    dispatches on the event loop thread. Sinks are only fed outside the
    lock, since releasing a subscription takes the lock again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[int, PendingRequest] = {}
        self._subscriptions: dict[int, StreamSubscription] = {}
        self._retired: set[int] = set()
        self._retired_order: deque[int] = deque()
        self._next_id = 1

    def next_id(self) -> int:
        """Allocate an id no outstanding request or stream is using."""
        with self._lock:
            return self._allocate_id()

    def _allocate_id(self) -> int:
        while True:
            request_id = self._next_id
            self._next_id += 1
            if request_id not in self._pending and request_id not in self._subscriptions:
                return request_id

    def register(self, event: str, expected: Iterable[str]) -> PendingRequest:
        """Allocate an id and register a pending request under it."""
        with self._lock:
            pending = PendingRequest(
                request_id=self._allocate_id(),
                event=event,
                expected=frozenset(expected),
            )
            self._pending[pending.request_id] = pending
        return pending

    def discard(self, request_id: int) -> None:
        """Forget a pending request; a late frame for it is dropped."""
        with self._lock:
            if self._pending.pop(request_id, None) is not None:
                self._retire(request_id)

    def fail(self, request_id: int, error: SynseError) -> None:
        """Fail one pending request without waiting for a response."""
        with self._lock:
            pending = self._pending.pop(request_id, None)
            if pending is not None:
                self._retire(request_id)
        if pending is not None and not pending.future.done():
            pending.future.set_exception(error)

    def _retire(self, request_id: int) -> None:
        # Call with the lock held.
        self._retired.add(request_id)
        self._retired_order.append(request_id)
        if len(self._retired_order) > RETIRED_ID_LIMIT:
            self._retired.discard(self._retired_order.popleft())

    def is_retired(self, request_id: int) -> bool:
        """Whether the id belonged to a request that was answered or expired."""
        with self._lock:
            return request_id in self._retired

    def subscribe(self, subscription: StreamSubscription) -> None:
        """Register a subscription under its stream id."""
        if subscription.stream_id is None:
            raise ValueError("subscription has no stream id")
        with self._lock:
            self._subscriptions[subscription.stream_id] = subscription

    def unsubscribe(self, subscription: StreamSubscription) -> None:
        with self._lock:
            if self._subscriptions.get(subscription.stream_id) is subscription:
                del self._subscriptions[subscription.stream_id]

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def dispatch(self, envelope: Envelope) -> None:
        """Route one incoming frame."""
        with self._lock:
            pending = self._pending.pop(envelope.id, None)
            retired = pending is None and envelope.id in self._retired
            if pending is not None:
                self._retire(envelope.id)
            owner = None
            targets: list[StreamSubscription] = []
            if pending is None and not retired:
                owner = self._subscriptions.get(envelope.id)
                if owner is not None:
                    targets = [owner]
                else:
                    # Bounded replays only accept frames for their own id.
                    targets = [s for s in self._subscriptions.values() if not s.bounded]

        if pending is not None:
            if not pending.future.done():
                pending.future.set_result(envelope)
            logger.debug(
                "frame_matched",
                id=envelope.id,
                event_name=envelope.event,
                elapsed=round(time.monotonic() - pending.created, 4),
            )
            return

        if retired:
            logger.debug("frame_late_discarded", id=envelope.id, event_name=envelope.event)
            return

        if envelope.event == RESPONSE_ERROR:
            error = error_from_envelope(envelope)
            if owner is not None:
                owner.finish(error)
                return
            logger.warning("frame_unmatched_error", id=envelope.id, error=str(error))
            return

        if envelope.event != RESPONSE_READING or not targets:
            logger.debug("frame_unmatched", id=envelope.id, event_name=envelope.event)
            return

        for subscription in targets:
            subscription.deliver(envelope.data)

    def fail_all(self, error: SynseError) -> None:
        """Fail every pending request and subscription with the same error."""
        pending, subscriptions = self._drain()
        for request in pending:
            if not request.future.done():
                request.future.set_exception(error)
        for subscription in subscriptions:
            subscription.finish(error)
        if pending or subscriptions:
            logger.warning(
                "correlator_failed_all",
                pending=len(pending),
                subscriptions=len(subscriptions),
                error=str(error),
            )

    def close(self, error: SynseError) -> None:
        """Fail pending requests and complete subscriptions cleanly."""
        pending, subscriptions = self._drain()
        for request in pending:
            if not request.future.done():
                request.future.set_exception(error)
        for subscription in subscriptions:
            subscription.finish()
        logger.debug(
            "correlator_closed",
            pending=len(pending),
            subscriptions=len(subscriptions),
        )

    def _drain(self) -> tuple[list[PendingRequest], list[StreamSubscription]]:
        with self._lock:
            pending = list(self._pending.values())
            subscriptions = list(self._subscriptions.values())
            self._pending.clear()
            self._subscriptions.clear()
        return pending, subscriptions


async def connect_websocket(
    url: str,
    ssl_context: ssl.SSLContext | None = None,
    handshake_timeout: float = 10.0,
    ping_interval: float | None = 20.0,
) -> ClientConnection:
    """Open a WebSocket connection to Synse Server.

    Raises:
        RequestTimeoutError: The handshake did not finish in time.
        HandshakeError: The server rejected the upgrade.
        ConnectionError: The server could not be reached.
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ssl=ssl_context,
                open_timeout=None,
                ping_interval=ping_interval,
            ),
            timeout=handshake_timeout,
        )

    except asyncio.TimeoutError:
        logger.warning("websocket_timeout", endpoint=url)
        raise RequestTimeoutError(
            message=f"WebSocket handshake with {url} timed out",
            timeout=handshake_timeout,
        )

    except websockets.exceptions.InvalidHandshake as e:
        logger.warning("websocket_handshake_failed", endpoint=url, error=str(e))
        raise HandshakeError(
            message=f"WebSocket handshake with {url} failed: {e}",
            hint="Check that the address points at Synse Server v3.",
        ) from e

    except OSError as e:
        logger.warning("websocket_connection_error", endpoint=url, error=str(e))
        raise ConnectionError(message=f"Cannot connect to {url}: {e}") from e


class SynseWebSocketConnection:
    """One persistent connection plus its reader and writer tasks.

    Must be driven from a single event loop. Frames are queued with
    enqueue() on that loop; the reader hands every parsed frame to the
    correlator.

    Attributes:
        url: WebSocket endpoint.
        correlator: Router for incoming frames.
    """

    def __init__(
        self,
        url: str,
        correlator: EventCorrelator,
        ssl_context: ssl.SSLContext | None = None,
        handshake_timeout: float = 10.0,
        ping_interval: float | None = 20.0,
    ) -> None:
        self.url = url
        self.correlator = correlator
        self._ssl_context = ssl_context
        self._handshake_timeout = handshake_timeout
        self._ping_interval = ping_interval
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[Optional[str]] | None = None
        self._closing = False

    async def connect(self) -> None:
        """Perform the handshake. Errors propagate to the caller."""
        self._ws = await connect_websocket(
            self.url,
            ssl_context=self._ssl_context,
            handshake_timeout=self._handshake_timeout,
            ping_interval=self._ping_interval,
        )
        self._outbox = asyncio.Queue()
        logger.info("websocket_connected", endpoint=self.url)

    def enqueue(self, frame: str) -> bool:
        """Queue a frame for the writer task. Call on the loop thread.

        Returns:
            False if the connection is closing and the frame was dropped.
        """
        if self._outbox is None or self._closing:
            logger.debug("frame_dropped_closed", endpoint=self.url)
            return False
        self._outbox.put_nowait(frame)
        return True

    async def run(self) -> None:
        """Run the reader and writer until either stops."""
        reader = asyncio.create_task(self._read_loop(), name="synse-ws-reader")
        writer = asyncio.create_task(self._write_loop(), name="synse-ws-writer")

        _, still_running = await asyncio.wait(
            {reader, writer},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)

    async def _read_loop(self) -> None:
        assert self._ws is not None
        try:
            async for message in self._ws:
                envelope = parse_envelope(message)
                if envelope is not None:
                    self.correlator.dispatch(envelope)
        except websockets.exceptions.ConnectionClosed as e:
            self._lost(f"connection lost: {e}")
            return
        except OSError as e:
            self._lost(f"socket read failed: {e}")
            return
        self._lost("connection closed by server")

    async def _write_loop(self) -> None:
        assert self._ws is not None and self._outbox is not None
        while True:
            frame = await self._outbox.get()
            if frame is None:
                return
            try:
                await self._ws.send(frame)
            except (websockets.exceptions.ConnectionClosed, OSError) as e:
                self._lost(f"socket write failed: {e}")
                return

    def _lost(self, reason: str) -> None:
        if self._closing:
            return
        self._closing = True
        logger.warning("websocket_disconnected", endpoint=self.url, reason=reason)
        self.correlator.fail_all(ConnectionError(message=reason))

    @property
    def closing(self) -> bool:
        return self._closing

    async def stop(self) -> None:
        """Close the socket and stop both tasks."""
        self._closing = True
        if self._outbox is not None:
            self._outbox.put_nowait(None)
        if self._ws is not None:
            try:
                await self._ws.close()
            except (websockets.exceptions.WebSocketException, OSError) as e:
                logger.debug("websocket_close_error", endpoint=self.url, error=str(e))
        logger.debug("websocket_stopped", endpoint=self.url)
