import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_broker
from app.core.exceptions import ValidationError
from app.db import crud
from app.db.db import get_db
from app.models import QueueStatus
from app.queue.broker import JobBroker, job_identity
from app.schemas.schemas import QueueRequest, QueueResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=202, response_model=QueueResponse, response_model_exclude_none=True)
async def enqueue_url(
    body: QueueRequest,
    db: AsyncSession = Depends(get_db),
    broker: JobBroker = Depends(get_broker),
):
    """
    Accept a captured link. Resubmitting the same (deviceId, url) is answered
    with `duplicate: true` and never schedules a second job.
    """
    url = (body.url or "").strip()
    device_id = (body.deviceId or "").strip()
    if not url or not device_id:
        raise ValidationError("Both url and deviceId are required.")

    job_id = job_identity(device_id, url)

    await crud.ensure_device(db, device_id)
    item, created = await crud.create_queue_item(db, device_id, url)
    await db.commit()

    if created:
        logger.info("Created QueueItem %s for %s", item.id, device_id)
        await broker.add("process", {"queueItemId": item.id}, job_id=job_id)
        return QueueResponse(queueItemId=item.id)

    # row exists but its job was never published (or already reclaimed) while still PENDING
    if item.status == QueueStatus.PENDING and await broker.get_job(job_id) is None:
        logger.warning("Re-publishing job %s for pending QueueItem %s", job_id, item.id)
        await broker.add("process", {"queueItemId": item.id}, job_id=job_id)
    else:
        logger.info("Duplicate capture for QueueItem %s (%s)", item.id, item.status.value)

    return QueueResponse(queueItemId=item.id, duplicate=True)
