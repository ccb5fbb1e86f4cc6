import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import crud
from app.models import Job, QueueStatus
from app.services.extraction import GeminiExtractor
from app.services.transcript import TranscriptService

logger = logging.getLogger(__name__)


class ExtractionProcessor:
    """
    Runs one job: transcript -> product extraction -> one persistence transaction.

    The QueueItem moves PENDING -> PROCESSING before any external call and ends
    COMPLETED, or FAILED when a step raises. The error is re-raised after the
    FAILED write so the broker records the failure too.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        transcripts: TranscriptService,
        extractor: GeminiExtractor,
    ):
        self.session_factory = session_factory
        self.transcripts = transcripts
        self.extractor = extractor

    async def process(self, job: Job) -> Dict[str, Any]:
        queue_item_id = job.data["queueItemId"]

        # a missing QueueItem raises QueueItemNotFoundError before anything is touched
        async with self.session_factory() as db:
            item = await crud.get_queue_item(db, queue_item_id, with_device=True)
            device_id, url = item.device.id, item.url
            await crud.set_status(db, queue_item_id, QueueStatus.PROCESSING)

        logger.info("QueueItem %s PROCESSING (%s)", queue_item_id, url)

        try:
            transcript = await self.transcripts.get_transcript(url)

            async with self.session_factory() as db:
                known_categories = await crud.list_active_categories(db, device_id)
            extracted = await self.extractor.extract_products(transcript, known_categories)

            async with self.session_factory() as db:
                async with db.begin():
                    product_ids = await crud.store_extraction(db, device_id, url, extracted)
        except Exception:
            await self._mark(queue_item_id, QueueStatus.FAILED)
            raise

        await self._mark(queue_item_id, QueueStatus.COMPLETED)
        return {
            "queueItemId": queue_item_id,
            "categories": len(extracted),
            "products": len(product_ids),
        }

    async def _mark(self, queue_item_id: str, status: QueueStatus) -> None:
        async with self.session_factory() as db:
            await crud.set_status(db, queue_item_id, status)
        logger.info("QueueItem %s %s", queue_item_id, status.value)
