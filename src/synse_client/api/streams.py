"""Stream subscriptions shared by both transports.

A StreamSubscription forwards readings into a caller-supplied sink
(a ``queue.Queue``) until the caller stops it, the server ends a bounded
replay, or the connection goes away. Delivery never blocks the producer:
a full sink drops the subscription with StreamOverflowError.

Example usage:
    readings: queue.Queue = queue.Queue(maxsize=256)
    stop = threading.Event()

    sub = client.read_stream(ReadStreamOptions(ids=["dev-1"]), readings, stop)
    for reading in sub:
        print(reading.value)
        if done_watching:
            stop.set()
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterable, Iterator
from typing import Any, Callable

import structlog
from pydantic import ValidationError

from synse_client.models import Read

from .exceptions import StreamOverflowError, SynseError

logger = structlog.get_logger(__name__)

# Placed in the sink when a stream ends, if there is room for it.
STREAM_END = None

STOP_POLL_INTERVAL = 0.05


class StreamSubscription:
    """One open stream of readings.

    Attributes:
        sink: Queue receiving Read records, then STREAM_END when room allows.
        stop: Event the caller sets to end the stream.
        done: Event set once the subscription has terminated.
        error: Why the stream ended abnormally, or None.
        stream_id: Request id that opened the stream (WebSocket only).
        device_ids: Devices whose readings are forwarded (empty = all).
        bounded: True for cache replays that end when the data runs out.
        delivered: Number of readings placed in the sink.
    """

    def __init__(
        self,
        sink: queue.Queue,
        *,
        stop: threading.Event | None = None,
        stream_id: int | None = None,
        device_ids: Iterable[str] = (),
        bounded: bool = False,
        on_release: Callable[[StreamSubscription], None] | None = None,
    ) -> None:
        self.sink = sink
        self.stop = stop if stop is not None else threading.Event()
        self.done = threading.Event()
        self.error: SynseError | None = None
        self.stream_id = stream_id
        self.device_ids = frozenset(device_ids)
        self.bounded = bounded
        self.delivered = 0
        self._on_release = on_release
        self._lock = threading.Lock()
        self._watcher: threading.Thread | None = None

    @property
    def active(self) -> bool:
        """Whether the subscription still forwards readings."""
        return not self.done.is_set()

    def matches(self, payload: Any) -> bool:
        """Check whether a reading payload passes the device filter."""
        if not self.device_ids:
            return True
        return isinstance(payload, dict) and payload.get("device") in self.device_ids

    def deliver(self, data: Any) -> None:
        """Forward one frame's data: a single reading or a batch of readings.

        For a bounded replay, a batch is the whole remaining data set and
        finishes the subscription once forwarded.
        """
        if isinstance(data, list):
            for item in data:
                if not self.offer(item):
                    return
            if self.bounded:
                self.finish()
            return
        self.offer(data)

    def offer(self, payload: Any) -> bool:
        """Hand one reading to the sink without blocking.

        Returns:
            False once the subscription has terminated, True otherwise.
        """
        if self.done.is_set():
            return False
        if self.stop.is_set():
            self.finish()
            return False
        if not self.matches(payload):
            return True

        try:
            reading = payload if isinstance(payload, Read) else Read.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "stream_reading_invalid",
                stream_id=self.stream_id,
                error=str(e),
            )
            return True

        try:
            self.sink.put_nowait(reading)
        except queue.Full:
            logger.warning(
                "stream_overflow",
                stream_id=self.stream_id,
                delivered=self.delivered,
            )
            self.finish(StreamOverflowError())
            return False

        self.delivered += 1
        return True

    def finish(self, error: SynseError | None = None) -> None:
        """Terminate the subscription. Later calls are ignored."""
        with self._lock:
            if self.done.is_set():
                return
            self.error = error
            self.done.set()

        try:
            self.sink.put_nowait(STREAM_END)
        except queue.Full:
            pass

        if self._on_release is not None:
            self._on_release(self)

        logger.debug(
            "stream_finished",
            stream_id=self.stream_id,
            delivered=self.delivered,
            error=str(error) if error else None,
        )

    def cancel(self) -> None:
        """Stop the stream from the consumer side."""
        self.stop.set()
        self.finish()

    def watch_stop(self) -> None:
        """Release the subscription promptly once the stop event is set."""
        if self._watcher is not None:
            return
        self._watcher = threading.Thread(
            target=self._watch_stop,
            name=f"synse-stream-{self.stream_id}",
            daemon=True,
        )
        self._watcher.start()

    def _watch_stop(self) -> None:
        while not self.done.is_set():
            if self.stop.wait(timeout=STOP_POLL_INTERVAL):
                self.finish()
                return

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the subscription terminates.

        Returns:
            True if it terminated within the timeout.
        """
        return self.done.wait(timeout)

    def raise_for_error(self) -> None:
        """Raise the error that ended the stream, if any."""
        if self.error is not None:
            raise self.error

    def __iter__(self) -> Iterator[Read]:
        """Yield readings from the sink until the stream ends.

        Raises the terminal error, if any, once the sink is drained.
        """
        while True:
            try:
                item = self.sink.get(timeout=STOP_POLL_INTERVAL)
            except queue.Empty:
                if self.done.is_set() and self.sink.empty():
                    break
                continue
            if item is STREAM_END:
                break
            yield item
        self.raise_for_error()
