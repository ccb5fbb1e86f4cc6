import asyncio
import logging
from typing import Optional

from trove_client.offline_queue import OfflineQueue
from trove_client.transport import HttpTransport

logger = logging.getLogger(__name__)


class SyncTriggers:
    """Flush the offline queue when the app comes to the foreground or the network comes back."""

    def __init__(self, queue: OfflineQueue, transport: HttpTransport):
        self.queue = queue
        self.transport = transport
        self._reachable: Optional[bool] = None

    async def on_app_state(self, state: str) -> int:
        if state != "active":
            return 0
        return await self.queue.flush_queue()

    async def on_network_change(self, reachable: bool) -> int:
        previous, self._reachable = self._reachable, reachable
        if not reachable:
            return 0
        if previous is not True:
            logger.info("Server reachable again")
        # an empty queue makes this a no-op, so a failed flush is retried on the next poll
        return await self.queue.flush_queue()

    async def watch(self, interval: float = 15.0, stop: Optional[asyncio.Event] = None) -> None:
        """Poll the health endpoint and flush whenever the server answers."""
        stop = stop or asyncio.Event()
        while not stop.is_set():
            await self.on_network_change(await self.transport.ping())
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
