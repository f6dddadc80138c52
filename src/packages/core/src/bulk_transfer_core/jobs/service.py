"""Job creation and status views."""
from typing import Any

import structlog

from bulk_transfer_core.export.filters import parse_filters
from bulk_transfer_core.export.writer import FORMATS as EXPORT_FORMATS
from bulk_transfer_core.jobs.models import ExportJobStatus, ImportJobStatus
from bulk_transfer_core.records.models import RESOURCES
from bulk_transfer_core.util.errors import JobNotFoundError

logger = structlog.get_logger()

STATUS_ERROR_LIMIT = 100


def _check_resource(resource: str) -> None:
    if resource not in RESOURCES:
        raise ValueError(f"resource must be one of: {', '.join(RESOURCES)}")


async def create_import_job(store, idempotency_key: str, resource: str, source: str | None) -> int:
    """Create an import job; a repeated idempotency key returns the existing job."""
    _check_resource(resource)
    if not idempotency_key:
        raise ValueError("Idempotency-Key is required")
    job_id = await store.create_import_job(idempotency_key, resource, source)
    logger.info("import_job_accepted", job_id=job_id, resource=resource, idempotency_key=idempotency_key)
    return job_id


async def create_export_job(
    store,
    idempotency_key: str,
    resource: str,
    format: str = "ndjson",
    filters: dict[str, Any] | None = None,
    fields: list[str] | None = None,
) -> int:
    """Create an export job; a repeated idempotency key returns the existing job."""
    _check_resource(resource)
    if format not in EXPORT_FORMATS:
        raise ValueError(f"format must be one of: {', '.join(EXPORT_FORMATS)}")
    parse_filters(resource, filters)
    if not idempotency_key:
        raise ValueError("Idempotency-Key is required")
    job_id = await store.create_export_job(idempotency_key, resource, format, filters, fields)
    logger.info("export_job_accepted", job_id=job_id, resource=resource, format=format)
    return job_id


async def get_import_job_status(store, job_id: int) -> ImportJobStatus:
    """Import job status with its most recent errors."""
    job = await store.get_import_job(job_id)
    if job is None:
        raise JobNotFoundError(f"Import job {job_id} not found")
    errors = await store.list_import_errors(job_id, limit=STATUS_ERROR_LIMIT)
    return ImportJobStatus(
        job_id=str(job.id),
        status=job.status,
        resource=job.resource,
        total_records=job.total_records,
        success_count=job.success_count,
        error_count=job.error_count,
        skipped_count=job.skipped_count,
        started_at=job.started_at,
        completed_at=job.completed_at,
        created_at=job.created_at,
        errors=errors,
    )


async def get_export_job_status(store, job_id: int) -> ExportJobStatus:
    """Export job status."""
    job = await store.get_export_job(job_id)
    if job is None:
        raise JobNotFoundError(f"Export job {job_id} not found")
    return ExportJobStatus(
        job_id=str(job.id),
        status=job.status,
        resource=job.resource,
        format=job.format,
        total_records=job.total_records,
        file_path=job.file_path,
        download_url=job.download_url,
        filters=job.filters,
        fields=job.fields,
        started_at=job.started_at,
        completed_at=job.completed_at,
        created_at=job.created_at,
    )
