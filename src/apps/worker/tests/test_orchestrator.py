"""Tests for the job worker."""
import asyncio
import sqlite3

import pytest
from structlog.testing import capture_logs

from bulk_transfer_core.jobs import COMPLETED, PENDING, PROCESSING
from bulk_transfer_worker.orchestrator import JobRef, JobWorker


class GatedRunner:
    """Runs each job until its gate is opened, then completes it."""

    def __init__(self, store):
        self.store = store
        self.gates: dict[int, asyncio.Event] = {}
        self.started: list[JobRef] = []

    def gate(self, job_id):
        return self.gates.setdefault(job_id, asyncio.Event())

    async def __call__(self, ref):
        self.started.append(ref)
        await self.gate(ref.job_id).wait()
        await self.store.finish_job(ref.kind, ref.job_id, COMPLETED)


async def statuses(store, ids):
    return [(await store.get_import_job(i)).status for i in ids]


async def settle(worker, job_id):
    task = next(t for ref, t in zip(worker.active_jobs, worker.tasks) if ref.job_id == job_id)
    await asyncio.wait_for(task, timeout=5)


@pytest.mark.asyncio
async def test_at_most_three_jobs_run(store, settings):
    ids = [await store.create_import_job(f"k{i}", "users", None) for i in range(5)]
    runner = GatedRunner(store)
    worker = JobWorker(store, settings, runner=runner)

    started = await worker.poll_once()
    assert [ref.job_id for ref in started] == ids[:3]
    assert await statuses(store, ids) == [PROCESSING] * 3 + [PENDING] * 2
    assert await worker.poll_once() == []

    runner.gate(ids[0]).set()
    await settle(worker, ids[0])
    assert len(worker.active_jobs) == 2

    started = await worker.poll_once()
    assert [ref.job_id for ref in started] == [ids[3]]
    assert await statuses(store, ids) == [COMPLETED] + [PROCESSING] * 3 + [PENDING]

    for job_id in ids:
        runner.gate(job_id).set()
    await asyncio.gather(*worker.tasks)
    await worker.poll_once()
    await asyncio.gather(*worker.tasks)
    assert await statuses(store, ids) == [COMPLETED] * 5


@pytest.mark.asyncio
async def test_imports_are_offered_slots_first(store, settings):
    export_ids = [await store.create_export_job(f"e{i}", "users", "ndjson") for i in range(2)]
    import_ids = [await store.create_import_job(f"i{i}", "users", None) for i in range(2)]
    runner = GatedRunner(store)
    worker = JobWorker(store, settings, runner=runner)

    started = await worker.poll_once()
    assert started == [
        JobRef("import", import_ids[0]),
        JobRef("import", import_ids[1]),
        JobRef("export", export_ids[0]),
    ]
    for ref in started:
        runner.gate(ref.job_id).set()
    await asyncio.gather(*worker.tasks)


@pytest.mark.asyncio
async def test_failed_job_frees_its_slot(store, settings):
    settings.max_concurrent_jobs = 1
    ids = [await store.create_import_job(f"k{i}", "users", None) for i in range(2)]

    async def runner(ref):
        if ref.job_id == ids[0]:
            raise RuntimeError("boom")

    worker = JobWorker(store, settings, runner=runner)
    assert [ref.job_id for ref in await worker.poll_once()] == [ids[0]]
    await asyncio.gather(*worker.tasks)
    assert worker.active_jobs == []
    assert [ref.job_id for ref in await worker.poll_once()] == [ids[1]]
    await asyncio.gather(*worker.tasks)


@pytest.mark.asyncio
async def test_job_claimed_elsewhere_is_skipped(store, settings):
    job_id = await store.create_import_job("k", "users", None)

    class RacingStore:
        """Lists the job as pending but loses the claim to another worker."""

        def __getattr__(self, name):
            return getattr(store, name)

        async def list_pending_jobs(self, kind, limit):
            pending = await store.list_pending_jobs(kind, limit)
            for other in pending:
                await store.claim_job(kind, other)
            return pending

    worker = JobWorker(RacingStore(), settings, runner=GatedRunner(store))
    assert await worker.poll_once() == []
    assert worker.capacity == settings.max_concurrent_jobs
    assert (await store.get_import_job(job_id)).status == PROCESSING


@pytest.mark.asyncio
async def test_stop_ends_the_poll_loop(store, settings):
    settings.poll_interval_seconds = 60
    settings.heartbeat_every_polls = 1
    worker = JobWorker(store, settings, runner=GatedRunner(store))
    loop_task = asyncio.create_task(worker.run())
    await asyncio.sleep(0.05)
    worker.stop()
    await asyncio.wait_for(loop_task, timeout=5)
    assert worker.polls >= 1


@pytest.mark.asyncio
async def test_claim_error_gives_the_slot_back(store, settings):
    job_id = await store.create_import_job("k", "users", None)

    class LockedStore:
        """Fails the first three claims as if the database were locked."""

        def __init__(self):
            self.failures = 3

        def __getattr__(self, name):
            return getattr(store, name)

        async def claim_job(self, kind, job_id):
            if self.failures:
                self.failures -= 1
                raise sqlite3.OperationalError("database is locked")
            return await store.claim_job(kind, job_id)

    runner = GatedRunner(store)
    worker = JobWorker(LockedStore(), settings, runner=runner)
    for _ in range(3):
        with pytest.raises(sqlite3.OperationalError):
            await worker.poll_once()
    assert not worker._slots.locked()
    assert worker.capacity == settings.max_concurrent_jobs

    assert await worker.poll_once() == [JobRef("import", job_id)]
    runner.gate(job_id).set()
    await asyncio.gather(*worker.tasks)
    assert (await store.get_import_job(job_id)).status == COMPLETED


@pytest.mark.asyncio
async def test_heartbeat_every_nth_poll(store, settings):
    settings.poll_interval_seconds = 0.01
    settings.heartbeat_every_polls = 2
    with capture_logs() as logs:
        worker = JobWorker(store, settings, runner=GatedRunner(store))
        loop_task = asyncio.create_task(worker.run())
        while worker.polls < 4:
            await asyncio.sleep(0.01)
        worker.stop()
        await asyncio.wait_for(loop_task, timeout=5)

    beats = [e for e in logs if e["event"] == "worker_heartbeat"]
    assert len(beats) == worker.polls // 2
    assert beats[0] == {
        "event": "worker_heartbeat",
        "log_level": "info",
        "active": 0,
        "max": settings.max_concurrent_jobs,
    }
