"""Tests for the device-side offline queue."""
import asyncio

import pytest

from trove_client.offline_queue import QUEUE_KEY, OfflineQueue
from trove_client.storage import JsonFileStore
from trove_client.transport import TransportError


class FakeTransport:
    """Records submissions; optionally fails on the n-th call or blocks until released."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.submitted = []
        self.calls = 0
        self.gate = None

    async def submit(self, url, device_id):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.calls == self.fail_on:
            raise TransportError("server unreachable")
        self.submitted.append((url, device_id))
        return {"ok": True, "queueItemId": f"item-{self.calls}"}


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(tmp_path / "state.json")


def make_queue(store, transport, *urls):
    queue = OfflineQueue(store, transport)
    for url in urls:
        queue.enqueue(url, "dev-1")
    return queue


class TestEnqueue:
    def test_persists_in_order(self, store):
        make_queue(store, FakeTransport(), "https://video/1", "https://video/2")

        reopened = OfflineQueue(JsonFileStore(store.path), FakeTransport())
        assert reopened.peek_all() == [
            {"url": "https://video/1", "deviceId": "dev-1"},
            {"url": "https://video/2", "deviceId": "dev-1"},
        ]

    def test_duplicates_are_kept_locally(self, store):
        queue = make_queue(store, FakeTransport(), "https://video/1", "https://video/1")
        assert len(queue.peek_all()) == 2

    def test_clear(self, store):
        queue = make_queue(store, FakeTransport(), "https://video/1")
        queue.clear_queue()
        assert queue.peek_all() == []
        assert store.get_item(QUEUE_KEY) == []


class TestFlush:
    async def test_sends_everything_in_order_and_clears(self, store):
        transport = FakeTransport()
        queue = make_queue(store, transport, "https://video/1", "https://video/2", "https://video/3")

        assert await queue.flush_queue() == 3

        assert [url for url, _ in transport.submitted] == [
            "https://video/1",
            "https://video/2",
            "https://video/3",
        ]
        assert queue.peek_all() == []

    async def test_failure_keeps_whole_queue(self, store):
        transport = FakeTransport(fail_on=2)
        queue = make_queue(store, transport, "https://video/1", "https://video/2", "https://video/3")

        assert await queue.flush_queue() == 0

        # item 1 reached the server, but it stays queued and will be resent
        assert transport.submitted == [("https://video/1", "dev-1")]
        assert len(queue.peek_all()) == 3
        assert transport.calls == 2

    async def test_retry_after_failure_resends_from_start(self, store):
        transport = FakeTransport(fail_on=2)
        queue = make_queue(store, transport, "https://video/1", "https://video/2")

        await queue.flush_queue()
        transport.fail_on = None
        assert await queue.flush_queue() == 2

        assert [url for url, _ in transport.submitted] == [
            "https://video/1",
            "https://video/1",
            "https://video/2",
        ]
        assert queue.peek_all() == []

    async def test_empty_queue_is_a_no_op(self, store):
        transport = FakeTransport()
        queue = OfflineQueue(store, transport)

        assert await queue.flush_queue() == 0
        assert transport.calls == 0

    async def test_concurrent_flush_is_skipped(self, store):
        transport = FakeTransport()
        transport.gate = asyncio.Event()
        queue = make_queue(store, transport, "https://video/1")

        first = asyncio.create_task(queue.flush_queue())
        await asyncio.sleep(0)
        assert queue.flushing

        assert await queue.flush_queue() == 0
        transport.gate.set()
        assert await first == 1
        assert transport.calls == 1
        assert not queue.flushing

    async def test_capture_during_flush_is_kept(self, store):
        transport = FakeTransport()
        transport.gate = asyncio.Event()
        queue = make_queue(store, transport, "https://video/1")

        first = asyncio.create_task(queue.flush_queue())
        await asyncio.sleep(0)
        queue.enqueue("https://video/2", "dev-1")
        transport.gate.set()
        await first

        assert queue.peek_all() == [{"url": "https://video/2", "deviceId": "dev-1"}]

    async def test_clear_then_capture_during_flush_is_kept(self, store):
        transport = FakeTransport()
        transport.gate = asyncio.Event()
        queue = make_queue(store, transport, "https://video/1", "https://video/2", "https://video/3")

        first = asyncio.create_task(queue.flush_queue())
        await asyncio.sleep(0)
        queue.clear_queue()
        queue.enqueue("https://video/new", "dev-1")
        transport.gate.set()

        assert await first == 3
        assert queue.peek_all() == [{"url": "https://video/new", "deviceId": "dev-1"}]


class TestEnqueueValidation:
    """Items the server would reject never enter the local queue."""

    @pytest.mark.parametrize(
        "url,device_id",
        [("", "dev-1"), ("   ", "dev-1"), ("https://video/1", ""), ("https://video/1", "  "), (None, "dev-1")],
    )
    def test_blank_values_rejected(self, store, url, device_id):
        queue = OfflineQueue(store, FakeTransport())
        with pytest.raises(ValueError):
            queue.enqueue(url, device_id)
        assert queue.peek_all() == []

    def test_values_are_trimmed(self, store):
        queue = OfflineQueue(store, FakeTransport())
        queue.enqueue(" https://video/1 ", " dev-1 ")
        assert queue.peek_all() == [{"url": "https://video/1", "deviceId": "dev-1"}]

    async def test_rejected_capture_does_not_block_later_ones(self, store):
        transport = FakeTransport()
        queue = OfflineQueue(store, transport)

        with pytest.raises(ValueError):
            queue.enqueue("", "dev-1")
        queue.enqueue("https://video/1", "dev-1")

        assert await queue.flush_queue() == 1
        assert transport.submitted == [("https://video/1", "dev-1")]
