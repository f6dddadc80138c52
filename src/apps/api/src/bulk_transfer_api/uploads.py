"""Saving uploaded import sources."""
import os
from pathlib import Path

import structlog
from fastapi import HTTPException, UploadFile

from bulk_transfer_core.settings import Settings
from bulk_transfer_core.util import unique_filename

logger = structlog.get_logger()

ALLOWED_SUFFIXES = (".json", ".ndjson", ".jsonl", ".csv")
CHUNK_BYTES = 1024 * 1024


async def save_upload(file: UploadFile, settings: Settings) -> str:
    """Write an uploaded file to the upload directory and return its path."""
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in ALLOWED_SUFFIXES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type; expected one of: {', '.join(ALLOWED_SUFFIXES)}",
        )

    max_bytes = settings.max_upload_mb * 1024 * 1024
    os.makedirs(settings.upload_dir, exist_ok=True)
    save_path = os.path.join(settings.upload_dir, unique_filename(suffix))
    size = 0
    with open(save_path, "wb") as f:
        while True:
            chunk = await file.read(CHUNK_BYTES)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                break
            f.write(chunk)
    if size > max_bytes:
        os.remove(save_path)
        raise HTTPException(
            status_code=413, detail=f"File too large (max {settings.max_upload_mb} MB)"
        )
    logger.info("upload_saved", filename=file.filename, path=save_path, bytes=size)
    return save_path
