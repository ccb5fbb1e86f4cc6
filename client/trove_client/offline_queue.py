"""Device-side queue of captured links that survives being offline."""
import asyncio
import logging
from typing import List, TypedDict

from trove_client.storage import JsonFileStore
from trove_client.transport import HttpTransport, TransportError

logger = logging.getLogger(__name__)

QUEUE_KEY = "shareQueue:v2"


class PendingCapture(TypedDict):
    url: str
    deviceId: str


class OfflineQueue:
    def __init__(self, store: JsonFileStore, transport: HttpTransport):
        self.store = store
        self.transport = transport
        # single slot: a flush that finds it taken returns instead of waiting
        self._flush_lock = asyncio.Lock()

    @property
    def flushing(self) -> bool:
        return self._flush_lock.locked()

    def enqueue(self, url: str, device_id: str) -> None:
        url, device_id = (url or "").strip(), (device_id or "").strip()
        # the server rejects these, and a rejected item would block every flush behind it
        if not url or not device_id:
            raise ValueError("Both url and deviceId are required.")
        items = self.peek_all()
        items.append({"url": url, "deviceId": device_id})
        self.store.set_item(QUEUE_KEY, items)

    def peek_all(self) -> List[PendingCapture]:
        return list(self.store.get_item(QUEUE_KEY) or [])

    def clear_queue(self) -> None:
        self.store.set_item(QUEUE_KEY, [])

    async def flush_queue(self) -> int:
        """
        Submit every queued capture in order, one at a time.

        The local list is cleared only when all submissions succeed; on the
        first failure everything stays queued and is sent again next time, so
        the server must absorb duplicates. Returns how many items were
        delivered (0 when empty, already flushing, or failed).
        """
        if self._flush_lock.locked():
            logger.debug("Flush already in progress, skipping")
            return 0

        async with self._flush_lock:
            items = self.peek_all()
            if not items:
                return 0

            try:
                for item in items:
                    await self.transport.submit(item["url"], item["deviceId"])
            except TransportError as e:
                logger.warning("Flush failed, keeping %d queued items: %s", len(items), e)
                return 0

            # drop the delivered prefix only if the stored list still starts with it;
            # anything enqueued (or a clear) during the flush is preserved
            current = self.peek_all()
            if current[:len(items)] == items:
                self.store.set_item(QUEUE_KEY, current[len(items):])
            logger.info("Flushed %d queued items", len(items))
            return len(items)
