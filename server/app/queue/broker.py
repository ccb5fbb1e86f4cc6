"""Durable job broker backed by the relational store.

Jobs live in the `jobs` table keyed by their identity, so publishing the same
identity twice is absorbed by the primary key instead of creating a second job.
"""
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import dialect_insert
from app.models import Job, JobQueue, JobState
from app.models.models import utcnow

logger = logging.getLogger(__name__)

FINISHED_STATES = (JobState.COMPLETED, JobState.FAILED)


def job_identity(device_id: str, url: str) -> str:
    """Deterministic job id for a (device, url) pair."""
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()
    return f"{device_id}-{digest}"


class JobBroker:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        queue_name: str = "tiktok-extract",
        remove_on_complete: bool = False,
        remove_on_fail: bool = False,
    ):
        self.session_factory = session_factory
        self.queue_name = queue_name
        self.remove_on_complete = remove_on_complete
        self.remove_on_fail = remove_on_fail

    async def add(
        self,
        name: str,
        data: Dict[str, Any],
        job_id: str,
        delay: float = 0,
        attempts: int = 1,
    ) -> Tuple[Job, bool]:
        """Publish a job. Returns (job, created); an existing id is left untouched."""
        now = utcnow()
        state = JobState.DELAYED if delay > 0 else JobState.WAITING

        async with self.session_factory() as session:
            stmt = (
                dialect_insert(session, Job)
                .values(
                    id=job_id,
                    queue=self.queue_name,
                    name=name,
                    data=data,
                    state=state,
                    attempts=attempts,
                    attempts_made=0,
                    run_at=now + timedelta(seconds=delay),
                    created_at=now,
                )
                .on_conflict_do_nothing(index_elements=["id"])
                .returning(Job.id)
            )
            inserted = (await session.execute(stmt)).scalar_one_or_none()
            await session.commit()
            job = await session.get(Job, job_id)

        if inserted is None:
            logger.info("Duplicate job %s ignored (state=%s)", job_id, job.state.value if job else "gone")
            return job, False

        logger.info("Job %s added to %s", job_id, self.queue_name)
        return job, True

    async def get_job(self, job_id: str) -> Optional[Job]:
        async with self.session_factory() as session:
            return await session.get(Job, job_id)

    async def claim(self) -> Optional[Job]:
        """Take the oldest due job and mark it active, or return None."""
        now = utcnow()
        async with self.session_factory() as session:
            if await self._is_paused(session):
                return None

            stmt = (
                select(Job)
                .where(
                    Job.queue == self.queue_name,
                    Job.state.in_((JobState.WAITING, JobState.DELAYED)),
                    Job.run_at <= now,
                )
                .order_by(Job.run_at, Job.created_at)
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            job = (await session.execute(stmt)).scalar_one_or_none()
            if job is None:
                return None

            # guarded so two workers cannot both move the same job to active
            result = await session.execute(
                update(Job)
                .where(Job.id == job.id, Job.state == job.state)
                .values(state=JobState.ACTIVE, processed_at=now)
                .returning(Job.id)
            )
            if result.scalar_one_or_none() is None:
                await session.rollback()
                return None

            await session.commit()
            await session.refresh(job)
            return job

    async def complete(self, job_id: str, return_value: Any = None) -> None:
        async with self.session_factory() as session:
            if self.remove_on_complete:
                await session.execute(delete(Job).where(Job.id == job_id))
            else:
                await session.execute(
                    update(Job)
                    .where(Job.id == job_id)
                    .values(
                        state=JobState.COMPLETED,
                        return_value=return_value,
                        attempts_made=Job.attempts_made + 1,
                        finished_at=utcnow(),
                    )
                )
            await session.commit()

    async def fail(self, job_id: str, error: BaseException) -> None:
        reason = str(error) or error.__class__.__name__
        async with self.session_factory() as session:
            if self.remove_on_fail:
                await session.execute(delete(Job).where(Job.id == job_id))
            else:
                await session.execute(
                    update(Job)
                    .where(Job.id == job_id)
                    .values(
                        state=JobState.FAILED,
                        failed_reason=reason,
                        attempts_made=Job.attempts_made + 1,
                        finished_at=utcnow(),
                    )
                )
            await session.commit()

    async def pause(self) -> None:
        await self._set_paused(True)

    async def resume(self) -> None:
        await self._set_paused(False)

    async def is_paused(self) -> bool:
        async with self.session_factory() as session:
            return await self._is_paused(session)

    async def counts(self) -> Dict[str, int]:
        async with self.session_factory() as session:
            rows = await session.execute(
                select(Job.state, func.count())
                .where(Job.queue == self.queue_name)
                .group_by(Job.state)
            )
            counts = {state.value: 0 for state in JobState}
            for state, total in rows:
                counts[JobState(state).value] = total

            counts["paused"] = 0
            if await self._is_paused(session):
                counts["paused"], counts["waiting"] = counts["waiting"], 0
            return counts

    async def remove_finished_before(self, cutoff: datetime) -> int:
        """Delete completed/failed jobs that finished before `cutoff`."""
        async with self.session_factory() as session:
            result = await session.execute(
                delete(Job)
                .where(
                    Job.queue == self.queue_name,
                    Job.state.in_(FINISHED_STATES),
                    Job.finished_at < cutoff,
                )
                .returning(Job.id)
            )
            removed = len(result.all())
            await session.commit()
            return removed

    async def _is_paused(self, session: AsyncSession) -> bool:
        paused = await session.scalar(select(JobQueue.paused).where(JobQueue.name == self.queue_name))
        return bool(paused)

    async def _set_paused(self, paused: bool) -> None:
        async with self.session_factory() as session:
            stmt = dialect_insert(session, JobQueue).values(name=self.queue_name, paused=paused)
            stmt = stmt.on_conflict_do_update(index_elements=["name"], set_={"paused": paused})
            await session.execute(stmt)
            await session.commit()
        logger.info("Queue %s %s", self.queue_name, "paused" if paused else "resumed")
