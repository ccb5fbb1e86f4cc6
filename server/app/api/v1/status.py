from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_broker
from app.core.exceptions import NotFoundError, QueueItemNotFoundError
from app.db import crud
from app.db.db import get_db
from app.queue.broker import JobBroker
from app.schemas.schemas import HealthOut, QueueItemOut, QueueStatusOut

router = APIRouter()
health_router = APIRouter()


@health_router.get("/health", response_model=HealthOut)
async def health():
    return HealthOut(
        status="OK",
        message="Trove backend is alive",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/queue-status", response_model=QueueStatusOut)
async def queue_status(broker: JobBroker = Depends(get_broker)):
    """Broker counters, read-only."""
    counts = await broker.counts()
    return QueueStatusOut(
        waiting=counts["waiting"],
        active=counts["active"],
        delayed=counts["delayed"],
        paused=await broker.is_paused(),
        completed=counts["completed"],
        failed=counts["failed"],
        jobCounts=counts,
    )


@router.get("/queue-items/{item_id}", response_model=QueueItemOut)
async def queue_item_status(item_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await crud.get_queue_item(db, item_id)
    except QueueItemNotFoundError:
        raise NotFoundError("QueueItem not found")
