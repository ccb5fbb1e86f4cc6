"""Tests for the database-backed job broker."""
from datetime import timedelta

from app.models import JobState
from app.models.models import utcnow
from app.queue.broker import JobBroker, job_identity


class TestJobIdentity:
    def test_deterministic(self):
        assert job_identity("dev-1", "https://video/1") == job_identity("dev-1", "https://video/1")

    def test_prefixed_by_device(self):
        job_id = job_identity("dev-1", "https://video/1")
        assert job_id.startswith("dev-1-")
        assert len(job_id) == len("dev-1-") + 40

    def test_differs_per_device_and_url(self):
        ids = {
            job_identity("dev-1", "https://video/1"),
            job_identity("dev-2", "https://video/1"),
            job_identity("dev-1", "https://video/2"),
        }
        assert len(ids) == 3


class TestAdd:
    """Publishing is idempotent on the job id."""

    async def test_creates_waiting_job(self, broker):
        job, created = await broker.add("process", {"queueItemId": "q1"}, job_id="j1")
        assert created is True
        assert job.state == JobState.WAITING
        assert job.data == {"queueItemId": "q1"}

    async def test_same_id_is_absorbed(self, broker):
        await broker.add("process", {"queueItemId": "q1"}, job_id="j1")
        job, created = await broker.add("process", {"queueItemId": "other"}, job_id="j1")
        assert created is False
        assert job.data == {"queueItemId": "q1"}
        assert (await broker.counts())["waiting"] == 1

    async def test_delayed_job_is_not_claimable_yet(self, broker):
        await broker.add("process", {}, job_id="later", delay=3600)
        assert (await broker.counts())["delayed"] == 1
        assert await broker.claim() is None


class TestClaim:
    async def test_claims_oldest_first(self, broker):
        await broker.add("process", {"n": 1}, job_id="first")
        await broker.add("process", {"n": 2}, job_id="second")

        job = await broker.claim()
        assert job.id == "first"
        assert job.state == JobState.ACTIVE
        assert job.processed_at is not None
        assert (await broker.claim()).id == "second"
        assert await broker.claim() is None

    async def test_empty_queue(self, broker):
        assert await broker.claim() is None

    async def test_queues_are_isolated(self, broker, session_factory):
        other = JobBroker(session_factory, queue_name="other")
        await other.add("process", {}, job_id="elsewhere")
        assert await broker.claim() is None


class TestFinish:
    async def test_complete_keeps_return_value(self, broker):
        await broker.add("process", {}, job_id="j1")
        await broker.claim()
        await broker.complete("j1", {"products": 2})

        job = await broker.get_job("j1")
        assert job.state == JobState.COMPLETED
        assert job.return_value == {"products": 2}
        assert job.attempts_made == 1
        assert job.finished_at is not None

    async def test_fail_records_reason(self, broker):
        await broker.add("process", {}, job_id="j1")
        await broker.claim()
        await broker.fail("j1", RuntimeError("transcript down"))

        job = await broker.get_job("j1")
        assert job.state == JobState.FAILED
        assert job.failed_reason == "transcript down"
        assert (await broker.counts())["failed"] == 1

    async def test_failed_job_is_not_claimed_again(self, broker):
        await broker.add("process", {}, job_id="j1")
        await broker.claim()
        await broker.fail("j1", RuntimeError("boom"))
        assert await broker.claim() is None

    async def test_remove_on_complete(self, session_factory):
        broker = JobBroker(session_factory, queue_name="q", remove_on_complete=True)
        await broker.add("process", {}, job_id="j1")
        await broker.claim()
        await broker.complete("j1")
        assert await broker.get_job("j1") is None


class TestPauseAndCounts:
    async def test_counts_cover_every_state(self, broker):
        counts = await broker.counts()
        assert counts == {
            "waiting": 0,
            "delayed": 0,
            "active": 0,
            "completed": 0,
            "failed": 0,
            "paused": 0,
        }

    async def test_paused_queue_hands_out_nothing(self, broker):
        await broker.add("process", {}, job_id="j1")
        await broker.pause()

        assert await broker.is_paused() is True
        assert await broker.claim() is None
        counts = await broker.counts()
        assert counts["paused"] == 1
        assert counts["waiting"] == 0

        await broker.resume()
        assert await broker.is_paused() is False
        assert (await broker.claim()).id == "j1"


class TestRemoveFinished:
    async def test_only_old_finished_jobs_go(self, broker):
        await broker.add("process", {}, job_id="done")
        await broker.add("process", {}, job_id="pending")
        await broker.claim()
        await broker.complete("done")

        assert await broker.remove_finished_before(utcnow() - timedelta(days=1)) == 0
        assert await broker.remove_finished_before(utcnow() + timedelta(seconds=1)) == 1
        assert await broker.get_job("done") is None
        assert await broker.get_job("pending") is not None
