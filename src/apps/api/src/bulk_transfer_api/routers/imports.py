"""Import job endpoints."""
import os

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from bulk_transfer_api.deps import get_settings, get_store
from bulk_transfer_api.uploads import save_upload
from bulk_transfer_core.ingest import is_remote_source
from bulk_transfer_core.jobs.service import create_import_job, get_import_job_status
from bulk_transfer_core.records import RESOURCES
from bulk_transfer_core.settings import Settings
from bulk_transfer_core.util import JobNotFoundError

router = APIRouter(prefix="/imports", tags=["imports"])
logger = structlog.get_logger()


class ImportFromUrl(BaseModel):
    """Request to import from a remote source."""

    url: str


async def _source_from_request(request: Request, settings: Settings) -> str:
    """Save a multipart upload, or take the URL from a JSON body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise HTTPException(status_code=400, detail="Missing file field")
        return await save_upload(upload, settings)

    try:
        body = ImportFromUrl.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=400, detail="Expected a file upload or a JSON body with a url") from e
    if not is_remote_source(body.url):
        raise HTTPException(status_code=400, detail="url must be http or https")
    return body.url


@router.post("", status_code=202)
async def create_import(
    request: Request,
    resource: str = Query(...),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    store=Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Accept an import job for an uploaded file or a URL."""
    if not idempotency_key:
        raise HTTPException(status_code=400, detail="Idempotency-Key header is required")
    if resource not in RESOURCES:
        raise HTTPException(status_code=400, detail=f"resource must be one of: {', '.join(RESOURCES)}")

    source = await _source_from_request(request, settings)
    job_id = await create_import_job(store, idempotency_key, resource, source)
    job = await store.get_import_job(job_id)
    if job.file_path != source and not is_remote_source(source):
        # repeated key: the earlier job keeps its own source
        os.remove(source)
    return {"job_id": str(job_id), "status": job.status}


@router.get("/{job_id}")
async def get_import(job_id: int, store=Depends(get_store)):
    """Get import job status and its most recent errors."""
    try:
        return await get_import_job_status(store, job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
