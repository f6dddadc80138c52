"""Export endpoints: live streaming and export jobs."""
import os
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import FileResponse, StreamingResponse
from pydantic import BaseModel

from bulk_transfer_api.deps import get_store
from bulk_transfer_core.export import FORMATS, export_chunks
from bulk_transfer_core.jobs import COMPLETED
from bulk_transfer_core.jobs.service import create_export_job, get_export_job_status
from bulk_transfer_core.records import RESOURCES
from bulk_transfer_core.util import JobNotFoundError

router = APIRouter(prefix="/exports", tags=["exports"])
logger = structlog.get_logger()

MEDIA_TYPES = {"ndjson": "application/x-ndjson", "json": "application/json"}


class ExportJobCreate(BaseModel):
    """Request to create an export job."""

    resource: str
    format: str = "ndjson"
    filters: dict[str, Any] | None = None
    fields: list[str] | None = None


@router.get("")
async def stream_export(
    resource: str = Query(...),
    format: str = Query("ndjson"),
    store=Depends(get_store),
):
    """Stream every record of a resource."""
    if resource not in RESOURCES:
        raise HTTPException(status_code=400, detail=f"resource must be one of: {', '.join(RESOURCES)}")
    if format not in FORMATS:
        raise HTTPException(status_code=400, detail=f"format must be one of: {', '.join(FORMATS)}")
    logger.info("export_stream_started", resource=resource, format=format)
    return StreamingResponse(export_chunks(store, resource, format), media_type=MEDIA_TYPES[format])


@router.post("", status_code=202)
async def create_export(
    body: ExportJobCreate,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    store=Depends(get_store),
):
    """Accept an export job."""
    if not idempotency_key:
        raise HTTPException(status_code=400, detail="Idempotency-Key header is required")
    try:
        job_id = await create_export_job(
            store, idempotency_key, body.resource, body.format, body.filters, body.fields
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    job = await store.get_export_job(job_id)
    return {"job_id": str(job_id), "status": job.status}


@router.get("/{job_id}")
async def get_export(job_id: int, store=Depends(get_store)):
    """Get export job status."""
    try:
        return await get_export_job_status(store, job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/{job_id}/download")
async def download_export(job_id: int, store=Depends(get_store)):
    """Download the file written by a completed export job."""
    job = await store.get_export_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Export job {job_id} not found")
    if job.status != COMPLETED:
        raise HTTPException(status_code=409, detail=f"Export job {job_id} is {job.status}")
    if not job.file_path or not os.path.exists(job.file_path):
        raise HTTPException(status_code=404, detail="Export file no longer available")
    return FileResponse(
        job.file_path,
        media_type=MEDIA_TYPES[job.format],
        filename=os.path.basename(job.file_path),
    )
