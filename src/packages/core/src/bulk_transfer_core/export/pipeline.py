"""Export pipeline: page through the store and write framed records."""
import os
from pathlib import Path
from typing import Any, AsyncIterator, Callable, TextIO

import structlog

from bulk_transfer_core.export.filters import build_predicates
from bulk_transfer_core.export.formatting import format_record
from bulk_transfer_core.export.writer import RecordFramer
from bulk_transfer_core.jobs.metrics import MetricsTracker
from bulk_transfer_core.jobs.lifecycle import mark_job_failed
from bulk_transfer_core.jobs.models import COMPLETED
from bulk_transfer_core.settings import Settings, get_settings
from bulk_transfer_core.store.base import Predicate
from bulk_transfer_core.util.errors import JobNotFoundError
from bulk_transfer_core.util.time import utc_file_stamp

logger = structlog.get_logger()

PAGE_SIZE = 1000
PROGRESS_EVERY = 5000
DOWNLOAD_URL = "/api/v1/exports/{job_id}/download"


def download_url_for(job_id: int) -> str:
    return DOWNLOAD_URL.format(job_id=job_id)


async def iter_rows(
    store,
    resource: str,
    predicates: list[Predicate] | None = None,
    page_size: int = PAGE_SIZE,
) -> AsyncIterator[dict[str, Any]]:
    """Yield stored rows in id order, one page at a time.

    Pages are keyed on the last id seen, so rows inserted while the export
    runs may or may not be included.
    """
    after_id = 0
    while True:
        rows = await store.scan(resource, predicates or [], after_id, page_size)
        for row in rows:
            yield row
        if len(rows) < page_size:
            return
        after_id = rows[-1]["id"]


async def _framed_records(
    framer: RecordFramer,
    store,
    resource: str,
    filters: dict[str, Any] | None,
    fields: list[str] | None,
    page_size: int,
) -> AsyncIterator[str]:
    predicates = build_predicates(resource, filters)
    async for row in iter_rows(store, resource, predicates, page_size):
        yield framer.frame(format_record(resource, row, fields))


async def export_chunks(
    store,
    resource: str,
    fmt: str = "ndjson",
    filters: dict[str, Any] | None = None,
    fields: list[str] | None = None,
    page_size: int = PAGE_SIZE,
) -> AsyncIterator[str]:
    """Text chunks of a full export, for streaming HTTP responses."""
    framer = RecordFramer(fmt)
    yield framer.open()
    async for chunk in _framed_records(framer, store, resource, filters, fields, page_size):
        yield chunk
    yield framer.close()


async def stream_export(
    sink: TextIO,
    store,
    resource: str,
    fmt: str = "ndjson",
    filters: dict[str, Any] | None = None,
    fields: list[str] | None = None,
    progress: Callable[[int], None] | None = None,
    page_size: int = PAGE_SIZE,
) -> int:
    """Write every matching record to an open sink. Returns the record count."""
    framer = RecordFramer(fmt)
    sink.write(framer.open())
    async for chunk in _framed_records(framer, store, resource, filters, fields, page_size):
        sink.write(chunk)
        if progress is not None and framer.count % PROGRESS_EVERY == 0:
            progress(framer.count)
    sink.write(framer.close())
    return framer.count


async def process_export_job(
    job_id: int,
    store,
    metrics: MetricsTracker | None = None,
    settings: Settings | None = None,
) -> int:
    """Run a claimed export job, writing its output under the export directory."""
    settings = settings or get_settings()
    job = await store.get_export_job(job_id)
    if job is None:
        raise JobNotFoundError(f"Export job {job_id} not found")

    log = logger.bind(job_id=job_id, resource=job.resource)
    os.makedirs(settings.export_dir, exist_ok=True)
    path = Path(settings.export_dir) / f"export-{job_id}-{utc_file_stamp()}.{job.format}"

    def on_progress(count: int) -> None:
        if metrics is not None:
            metrics.update(job_id, count, 0)
        log.info("export_progress", exported=count)

    if metrics is not None:
        metrics.start(job_id)
    log.info("export_started", format=job.format, filters=job.filters, fields=job.fields)
    try:
        with open(path, "w", encoding="utf-8") as f:
            total = await stream_export(
                f,
                store,
                job.resource,
                job.format,
                filters=job.filters,
                fields=job.fields,
                progress=on_progress,
                page_size=settings.export_page_size,
            )
        if metrics is not None:
            metrics.update(job_id, total, 0)
        await store.finish_job(
            "export",
            job_id,
            COMPLETED,
            total_records=total,
            success_count=total,
            file_path=str(path),
            download_url=download_url_for(job_id),
        )
        log.info("export_completed", total=total, file_path=str(path))
        return total
    except Exception as e:
        log.exception("export_failed", error=str(e))
        path.unlink(missing_ok=True)
        await mark_job_failed(store, "export", job_id, log)
        raise
    finally:
        if metrics is not None:
            metrics.finish(job_id)
