import asyncio
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.models import Job
from app.queue.broker import JobBroker
from app.services.extraction import GeminiExtractor
from app.services.transcript import TranscriptService
from app.worker.processor import ExtractionProcessor

logger = logging.getLogger(__name__)


class QueueWorker:
    """Fixed pool of slots; each slot runs one job to completion before claiming the next."""

    def __init__(
        self,
        broker: JobBroker,
        processor: ExtractionProcessor,
        concurrency: int = 3,
        poll_interval: float = 1.0,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.broker = broker
        self.processor = processor
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self._tasks: List[asyncio.Task] = []
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._slot(n), name=f"worker-slot-{n}")
            for n in range(self.concurrency)
        ]
        logger.info("Worker started on %s (concurrency=%d)", self.broker.queue_name, self.concurrency)

    async def stop(self) -> None:
        """Stop claiming new jobs and wait for in-flight ones to finish."""
        self._stopping.set()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Worker stopped")

    async def run_once(self) -> bool:
        """Claim and run a single job. Returns False when nothing was due."""
        job = await self.broker.claim()
        if job is None:
            return False
        await self._execute(job)
        return True

    async def run_until_idle(self) -> None:
        async def drain():
            while await self.run_once():
                pass

        await asyncio.gather(*(drain() for _ in range(self.concurrency)))

    async def _execute(self, job: Job) -> None:
        logger.info("Job %s started", job.id)
        try:
            result = await self.processor.process(job)
        except Exception as e:
            logger.warning("Job %s failed: %s", job.id, e)
            await self.broker.fail(job.id, e)
            return
        await self.broker.complete(job.id, result)
        logger.info("Job %s completed", job.id)

    async def _slot(self, n: int) -> None:
        while not self._stopping.is_set():
            try:
                ran = await self.run_once()
            except Exception:
                # broker/database trouble; keep the slot alive and retry after a pause
                logger.exception("Worker slot %d error", n)
                ran = False
            if ran:
                continue
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass


def build_worker(
    session_factory: async_sessionmaker[AsyncSession],
    broker: Optional[JobBroker] = None,
    transcripts: Optional[TranscriptService] = None,
    extractor: Optional[GeminiExtractor] = None,
) -> QueueWorker:
    broker = broker or JobBroker(
        session_factory,
        queue_name=settings.QUEUE_NAME,
        remove_on_complete=settings.JOB_REMOVE_ON_COMPLETE,
        remove_on_fail=settings.JOB_REMOVE_ON_FAIL,
    )
    processor = ExtractionProcessor(
        session_factory,
        transcripts or TranscriptService(),
        extractor or GeminiExtractor(),
    )
    return QueueWorker(
        broker,
        processor,
        concurrency=settings.WORKER_CONCURRENCY,
        poll_interval=settings.WORKER_POLL_INTERVAL,
    )
