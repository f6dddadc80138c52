"""Job models."""
from typing import Any, Literal

from pydantic import BaseModel, Field

JobKind = Literal["import", "export"]
ExportFormat = Literal["ndjson", "json"]

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
TERMINAL_STATUSES = (COMPLETED, FAILED)

# Statuses a job may move into, keyed by the status it comes from.
ALLOWED_TRANSITIONS: dict[str, tuple[str, ...]] = {
    PENDING: (PROCESSING, FAILED),
    PROCESSING: (COMPLETED, FAILED),
    COMPLETED: (),
    FAILED: (),
}


def predecessors_of(status: str) -> tuple[str, ...]:
    """Statuses from which ``status`` can be reached."""
    return tuple(src for src, targets in ALLOWED_TRANSITIONS.items() if status in targets)


class ImportJob(BaseModel):
    """An import job row."""

    id: int
    idempotency_key: str
    resource: str
    status: str
    total_records: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    file_path: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ExportJob(BaseModel):
    """An export job row."""

    id: int
    idempotency_key: str
    resource: str
    format: ExportFormat = "ndjson"
    status: str
    total_records: int = 0
    success_count: int = 0
    error_count: int = 0
    file_path: str | None = None
    download_url: str | None = None
    filters: dict[str, Any] | None = None
    fields: list[str] | None = None
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ImportErrorEntry(BaseModel):
    """A failed record of an import job."""

    record_index: int
    error_message: str
    error_type: str
    record_data: Any = None
    created_at: str | None = None


class ImportJobStatus(BaseModel):
    """Import job status response."""

    job_id: str
    status: str
    resource: str
    total_records: int
    success_count: int
    error_count: int
    skipped_count: int
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None
    errors: list[ImportErrorEntry] = Field(default_factory=list)


class ExportJobStatus(BaseModel):
    """Export job status response."""

    job_id: str
    status: str
    resource: str
    format: ExportFormat
    total_records: int
    file_path: str | None = None
    download_url: str | None = None
    filters: dict[str, Any] | None = None
    fields: list[str] | None = None
    started_at: str | None = None
    completed_at: str | None = None
    created_at: str | None = None
