"""Tests for StreamSubscription delivery and termination."""

import queue
import threading

import pytest

from synse_client.api import STREAM_END, StreamOverflowError, StreamSubscription
from synse_client.models import Read


def reading(device: str, value: int = 0) -> dict:
    return {"device": device, "value": value}


class TestOffer:
    """Tests for handing readings to the sink."""

    def test_offer_validates_into_read(self):
        subscription = StreamSubscription(queue.Queue())

        assert subscription.offer(reading("dev-1", 5))

        item = subscription.sink.get_nowait()
        assert isinstance(item, Read)
        assert item.value == 5
        assert subscription.delivered == 1

    def test_device_filter(self):
        subscription = StreamSubscription(queue.Queue(), device_ids=["dev-1"])

        subscription.offer(reading("dev-2"))
        subscription.offer(reading("dev-1"))

        assert subscription.sink.qsize() == 1
        assert subscription.sink.get_nowait().device == "dev-1"

    def test_invalid_reading_is_skipped(self):
        subscription = StreamSubscription(queue.Queue())

        assert subscription.offer({"device": "dev-1", "context": "not a mapping"})
        assert subscription.sink.empty()
        assert subscription.active

    def test_full_sink_drops_subscription(self):
        released = []
        subscription = StreamSubscription(queue.Queue(maxsize=1), on_release=released.append)

        assert subscription.offer(reading("dev-1"))
        assert not subscription.offer(reading("dev-1"))

        assert isinstance(subscription.error, StreamOverflowError)
        assert released == [subscription]
        assert not subscription.offer(reading("dev-1"))

    def test_stop_set_finishes_on_next_offer(self):
        stop = threading.Event()
        subscription = StreamSubscription(queue.Queue(), stop=stop)
        stop.set()

        assert not subscription.offer(reading("dev-1"))
        assert not subscription.active
        assert subscription.sink.get_nowait() is STREAM_END


class TestDeliver:
    """Tests for single readings and batches."""

    def test_batch_on_live_stream_keeps_it_open(self):
        subscription = StreamSubscription(queue.Queue())

        subscription.deliver([reading("a"), reading("b")])

        assert subscription.delivered == 2
        assert subscription.active

    def test_batch_ends_bounded_replay(self):
        subscription = StreamSubscription(queue.Queue(), bounded=True)

        subscription.deliver([reading("a", 1), reading("b", 2)])

        assert not subscription.active
        assert [r.value for r in subscription] == [1, 2]


class TestTermination:
    """Tests for finish, cancel and the stop watcher."""

    def test_finish_is_idempotent(self):
        released = []
        subscription = StreamSubscription(queue.Queue(), on_release=released.append)

        subscription.finish()
        subscription.finish(StreamOverflowError())

        assert subscription.error is None
        assert len(released) == 1
        assert subscription.sink.qsize() == 1

    def test_cancel_sets_stop(self):
        subscription = StreamSubscription(queue.Queue())

        subscription.cancel()

        assert subscription.stop.is_set()
        assert not subscription.active

    def test_watch_stop_releases_promptly(self):
        stop = threading.Event()
        released = threading.Event()
        subscription = StreamSubscription(
            queue.Queue(), stop=stop, stream_id=3, on_release=lambda s: released.set()
        )
        subscription.watch_stop()

        stop.set()

        assert released.wait(1)
        assert subscription.wait(1)

    def test_iteration_raises_terminal_error(self):
        subscription = StreamSubscription(queue.Queue())
        subscription.offer(reading("dev-1"))
        subscription.finish(StreamOverflowError())

        items = []
        with pytest.raises(StreamOverflowError):
            for item in subscription:
                items.append(item)

        assert len(items) == 1

    def test_iteration_ends_when_sink_has_no_room_for_marker(self):
        subscription = StreamSubscription(queue.Queue(maxsize=1))
        subscription.offer(reading("dev-1"))
        subscription.finish()

        assert [r.device for r in subscription] == ["dev-1"]
