"""Tests for the liveness and queue status endpoints."""


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["message"]
        assert body["timestamp"]

    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200


class TestQueueStatus:
    async def test_empty_counters(self, client):
        body = (await client.get("/api/status/queue-status")).json()

        for key in ("waiting", "active", "delayed", "completed", "failed"):
            assert body[key] == 0
        assert body["paused"] is False
        assert body["jobCounts"]["waiting"] == 0

    async def test_counts_follow_ingestion(self, client):
        await client.post("/api/queue", json={"url": "https://video/1", "deviceId": "dev-1"})
        await client.post("/api/queue", json={"url": "https://video/1", "deviceId": "dev-1"})
        await client.post("/api/queue", json={"url": "https://video/2", "deviceId": "dev-1"})

        body = (await client.get("/api/status/queue-status")).json()
        assert body["waiting"] == 2
        assert body["jobCounts"]["waiting"] == 2

    async def test_paused_queue(self, client, broker):
        await client.post("/api/queue", json={"url": "https://video/1", "deviceId": "dev-1"})
        await broker.pause()

        body = (await client.get("/api/status/queue-status")).json()
        assert body["paused"] is True
        assert body["waiting"] == 0
        assert body["jobCounts"]["paused"] == 1

    async def test_failed_jobs_are_counted(self, client, broker):
        await broker.add("process", {"queueItemId": "x"}, job_id="j1")
        await broker.claim()
        await broker.fail("j1", RuntimeError("boom"))

        body = (await client.get("/api/status/queue-status")).json()
        assert body["failed"] == 1


class TestQueueItemStatus:
    async def test_reports_item(self, client):
        created = await client.post("/api/queue", json={"url": "https://video/1", "deviceId": "dev-1"})
        item_id = created.json()["queueItemId"]

        body = (await client.get(f"/api/status/queue-items/{item_id}")).json()
        assert body["id"] == item_id
        assert body["status"] == "PENDING"
        assert body["url"] == "https://video/1"
        assert body["device_id"] == "dev-1"

    async def test_unknown_item(self, client):
        response = await client.get("/api/status/queue-items/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "QueueItem not found"}
