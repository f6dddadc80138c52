"""Poll loop that claims pending jobs and runs them concurrently."""
import asyncio
from typing import Any, Awaitable, Callable, NamedTuple

import structlog

from bulk_transfer_core.jobs import JobKind, MetricsTracker
from bulk_transfer_core.settings import Settings, get_settings
from bulk_transfer_worker.tasks import run_job

logger = structlog.get_logger()

# Imports are offered free slots before exports.
JOB_KINDS: tuple[JobKind, ...] = ("import", "export")


class JobRef(NamedTuple):
    kind: JobKind
    job_id: int


Runner = Callable[[JobRef], Awaitable[Any]]


class JobWorker:
    """Runs up to ``max_concurrent_jobs`` jobs at a time.

    Each running job holds a permit of the worker's semaphore. The poll loop
    never waits for a job; a job gives its permit back when it settles,
    whether it succeeded or failed.
    """

    def __init__(
        self,
        store,
        settings: Settings | None = None,
        runner: Runner | None = None,
        metrics: MetricsTracker | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.metrics = metrics if metrics is not None else MetricsTracker()
        self.max_concurrent = self.settings.max_concurrent_jobs
        self.polls = 0
        self._runner = runner or self._run_job
        self._slots = asyncio.Semaphore(self.max_concurrent)
        self._tasks: dict[JobRef, asyncio.Task] = {}
        self._stopping = asyncio.Event()

    @property
    def active_jobs(self) -> list[JobRef]:
        return list(self._tasks)

    @property
    def tasks(self) -> list[asyncio.Task]:
        return list(self._tasks.values())

    @property
    def capacity(self) -> int:
        return self.max_concurrent - len(self._tasks)

    async def _run_job(self, ref: JobRef) -> bool:
        return await run_job(ref.kind, ref.job_id, self.store, metrics=self.metrics, settings=self.settings)

    async def _run(self, ref: JobRef) -> None:
        try:
            await self._runner(ref)
        except Exception as e:
            logger.exception("job_task_failed", job_id=ref.job_id, kind=ref.kind, error=str(e))
        finally:
            self._tasks.pop(ref, None)
            self._slots.release()

    async def poll_once(self) -> list[JobRef]:
        """Claim pending jobs up to the free capacity and start them."""
        started: list[JobRef] = []
        for kind in JOB_KINDS:
            if self.capacity <= 0:
                break
            for job_id in await self.store.list_pending_jobs(kind, self.capacity):
                if self._slots.locked():
                    break
                await self._slots.acquire()
                try:
                    claimed = await self.store.claim_job(kind, job_id)
                except BaseException:
                    self._slots.release()
                    raise
                if not claimed:
                    self._slots.release()
                    logger.debug("job_already_claimed", job_id=job_id, kind=kind)
                    continue
                ref = JobRef(kind, job_id)
                self._tasks[ref] = asyncio.create_task(self._run(ref), name=f"{kind}-job-{job_id}")
                started.append(ref)
                logger.info("job_dispatched", job_id=job_id, kind=kind, active=len(self._tasks))
        return started

    async def run(self) -> None:
        """Poll until ``stop`` is called. Running jobs are left alone on exit."""
        logger.info(
            "worker_started",
            max_concurrent=self.max_concurrent,
            poll_interval_s=self.settings.poll_interval_seconds,
        )
        while not self._stopping.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                logger.exception("poll_failed", error=str(e))
            self.polls += 1
            if self.polls % self.settings.heartbeat_every_polls == 0:
                logger.info("worker_heartbeat", active=len(self._tasks), max=self.max_concurrent)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.settings.poll_interval_seconds)
            except asyncio.TimeoutError:
                continue
        logger.info("worker_stopped", active=len(self._tasks))

    def stop(self) -> None:
        """Stop polling at the next iteration."""
        logger.info("worker_stopping")
        self._stopping.set()
