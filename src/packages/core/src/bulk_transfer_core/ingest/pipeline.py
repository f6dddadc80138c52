"""Import pipeline: read a source, validate, batch and upsert records."""
import asyncio
import itertools
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Iterator

import structlog

from bulk_transfer_core.ingest.download import download_source, is_remote_source
from bulk_transfer_core.ingest.formats import loader_for
from bulk_transfer_core.ingest.loaders import SourceRecord
from bulk_transfer_core.jobs.metrics import MetricsTracker
from bulk_transfer_core.jobs.lifecycle import mark_job_failed
from bulk_transfer_core.jobs.models import COMPLETED
from bulk_transfer_core.records.identity import IdentityResolver, external_id_of
from bulk_transfer_core.records.models import ArticleRecord, CommentRecord, DomainRecord, UserRecord
from bulk_transfer_core.records.validate import validate
from bulk_transfer_core.settings import Settings, get_settings
from bulk_transfer_core.util.errors import (
    JobNotFoundError,
    RecordValidationError,
    SourceError,
    error_message_of,
    error_type_of,
)
from bulk_transfer_core.util.memory import peak_memory_mb

logger = structlog.get_logger()

BATCH_SIZE = 1000
PROGRESS_EVERY = 10_000


@dataclass
class BatchItem:
    """A validated record waiting for the next flush."""

    index: int
    raw: Any
    record: DomainRecord


@dataclass
class IngestCounts:
    total: int = 0
    success: int = 0
    errors: int = 0

    @property
    def processed(self) -> int:
        return self.success + self.errors

    @property
    def error_rate(self) -> float:
        return round(self.errors / self.processed * 100, 2) if self.processed else 0.0


async def upsert_record(store, resolver: IdentityResolver, record: DomainRecord) -> int:
    """Resolve a record's references and write it to the store."""
    if isinstance(record, UserRecord):
        return await store.upsert_user(record, external_id_of(record.id))
    if isinstance(record, ArticleRecord):
        author_id = await resolver.resolve(record.author_id, "author_id", "users")
        return await store.upsert_article(record, author_id, external_id_of(record.id))
    if isinstance(record, CommentRecord):
        article_id = await resolver.resolve(record.article_id, "article_id", "articles")
        author_id = await resolver.resolve(record.user_id, "user_id", "users")
        return await store.upsert_comment(record, article_id, author_id, external_id_of(record.id))
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def _take(iterator: Iterator[SourceRecord], count: int) -> list[SourceRecord]:
    return list(itertools.islice(iterator, count))


async def read_in_thread(records: Iterable[SourceRecord], chunk_size: int) -> AsyncIterator[SourceRecord]:
    """Advance a blocking record source in a worker thread, a chunk at a time."""
    iterator = iter(records)
    while True:
        chunk = await asyncio.to_thread(_take, iterator, chunk_size)
        if not chunk:
            return
        for item in chunk:
            yield item


class ImportRun:
    """State of one import job while its source is consumed.

    Records are validated as they are read and written in batches. Each
    upsert is isolated: a failure is stored as an ImportError and counted,
    and the rest of the batch carries on.
    """

    def __init__(
        self,
        job_id: int,
        resource: str,
        store,
        metrics: MetricsTracker | None = None,
        batch_size: int = BATCH_SIZE,
        progress_every: int = PROGRESS_EVERY,
    ):
        self.job_id = job_id
        self.resource = resource
        self.store = store
        self.metrics = metrics
        self.batch_size = batch_size
        self.progress_every = progress_every
        self.resolver = IdentityResolver(store)
        self.counts = IngestCounts()
        self.batch: list[BatchItem] = []
        # errors recorded since the last flush, not yet added to the job row
        self._unflushed_errors = 0
        self._next_progress = progress_every
        self.log = logger.bind(job_id=job_id, resource=resource)

    async def consume(self, records: Iterable[SourceRecord]) -> IngestCounts:
        """Process every record of the source, then flush what is left."""
        async for item in read_in_thread(records, self.batch_size):
            self.counts.total += 1
            await self._accept(item)
            if len(self.batch) >= self.batch_size:
                await self.flush()
        await self.flush()
        return self.counts

    async def _accept(self, item: SourceRecord) -> None:
        if item.error is not None:
            await self._record_error(item.index, item.data, item.error)
            return
        try:
            record = validate(self.resource, item.data)
        except RecordValidationError as e:
            await self._record_error(item.index, item.data, e)
            return
        self.batch.append(BatchItem(item.index, item.data, record))

    async def _record_error(self, index: int, raw: Any, exc: Exception) -> None:
        await self.store.add_import_error(
            self.job_id, index, raw, error_message_of(exc), error_type_of(exc)
        )
        self._unflushed_errors += 1

    async def flush(self) -> None:
        """Upsert the pending batch and add its outcome to the job counters."""
        batch, self.batch = self.batch, []
        success = 0
        for item in batch:
            try:
                await upsert_record(self.store, self.resolver, item.record)
            except Exception as e:
                self.log.debug("record_failed", record_index=item.index, error_type=error_type_of(e))
                await self._record_error(item.index, item.raw, e)
            else:
                success += 1

        errors, self._unflushed_errors = self._unflushed_errors, 0
        if success or errors:
            await self.store.increment_import_counts(self.job_id, success, errors)
        self.counts.success += success
        self.counts.errors += errors

        if self.metrics is not None:
            self.metrics.update(self.job_id, self.counts.processed, self.counts.errors)
        if self.counts.processed >= self._next_progress:
            self.log.info(
                "import_progress",
                processed=self.counts.processed,
                success=self.counts.success,
                errors=self.counts.errors,
                error_rate=self.counts.error_rate,
                memory_mb=peak_memory_mb(),
            )
            while self._next_progress <= self.counts.processed:
                self._next_progress += self.progress_every


async def ingest(
    job_id: int,
    resource: str,
    source_location: str | None,
    store,
    metrics: MetricsTracker | None = None,
    settings: Settings | None = None,
) -> IngestCounts:
    """Run a claimed import job to completion.

    Only source-level failures fail the job; they are logged, the job is
    marked failed and the error is re-raised.
    """
    settings = settings or get_settings()
    log = logger.bind(job_id=job_id, resource=resource)
    staged: Path | None = None
    if metrics is not None:
        metrics.start(job_id)
    try:
        if not source_location:
            raise SourceError("Import job has no source")
        file_path = source_location
        if is_remote_source(source_location):
            staged = await download_source(
                source_location, settings.staging_dir, timeout=settings.download_timeout_seconds
            )
            file_path = str(staged)
        if not os.path.exists(file_path):
            raise SourceError(f"Source file not found: {file_path}")

        loader = loader_for(file_path)
        log.info("import_started", source=source_location, format=loader.name)
        run = ImportRun(
            job_id,
            resource,
            store,
            metrics=metrics,
            batch_size=settings.batch_size,
            progress_every=settings.progress_log_every,
        )
        counts = await run.consume(loader.iter_records(file_path))
        await store.set_import_total(job_id, counts.total)
        await store.finish_job("import", job_id, COMPLETED)
        log.info(
            "import_completed",
            total=counts.total,
            success=counts.success,
            errors=counts.errors,
            error_rate=counts.error_rate,
        )
        return counts
    except Exception as e:
        log.exception("import_failed", error=str(e))
        await mark_job_failed(store, "import", job_id, log)
        raise
    finally:
        if metrics is not None:
            metrics.finish(job_id)
        if staged is not None:
            staged.unlink(missing_ok=True)


async def process_import_job(
    job_id: int,
    store,
    metrics: MetricsTracker | None = None,
    settings: Settings | None = None,
) -> IngestCounts:
    """Load an import job and ingest its source."""
    job = await store.get_import_job(job_id)
    if job is None:
        raise JobNotFoundError(f"Import job {job_id} not found")
    return await ingest(job_id, job.resource, job.file_path, store, metrics=metrics, settings=settings)
