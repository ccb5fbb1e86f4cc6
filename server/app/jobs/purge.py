import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import crud
from app.queue.broker import JobBroker

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


async def purge_old_data(
    session_factory: async_sessionmaker[AsyncSession],
    broker: Optional[JobBroker] = None,
    days: int = 30,
    now: Optional[datetime] = None,
) -> dict:
    """Delete Products, QueueItems and finished jobs older than `days`."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)

    async with session_factory() as db:
        products, queue_items = await crud.delete_rows_before(db, cutoff)
    jobs = await broker.remove_finished_before(cutoff) if broker is not None else 0

    logger.info(
        "Purged rows older than %d days: %d products, %d queue items, %d jobs",
        days, products, queue_items, jobs,
    )
    return {"products": products, "queueItems": queue_items, "jobs": jobs}


def seconds_until(hour: int, now: Optional[datetime] = None) -> float:
    """Seconds from `now` until the next `hour`:00 UTC."""
    now = now or datetime.now(timezone.utc)
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += ONE_DAY
    return (target - now).total_seconds()


async def run_purge_schedule(
    session_factory: async_sessionmaker[AsyncSession],
    broker: Optional[JobBroker] = None,
    days: int = 30,
    hour: int = 2,
) -> None:
    """First run at the next `hour`:00 UTC, then every 24h. Cancel the task to stop."""
    await asyncio.sleep(seconds_until(hour))
    while True:
        try:
            await purge_old_data(session_factory, broker, days)
        except Exception:
            logger.exception("Purge failed")
        await asyncio.sleep(ONE_DAY.total_seconds())


def schedule_purge(
    session_factory: async_sessionmaker[AsyncSession],
    broker: Optional[JobBroker] = None,
    days: int = 30,
    hour: int = 2,
) -> asyncio.Task:
    return asyncio.create_task(
        run_purge_schedule(session_factory, broker, days, hour), name="purge-old-data"
    )
