"""Store contract used by the pipelines and the worker."""
from abc import ABC, abstractmethod
from typing import Any, NamedTuple

from bulk_transfer_core.jobs.models import ExportJob, ImportErrorEntry, ImportJob, JobKind
from bulk_transfer_core.records.models import ArticleRecord, CommentRecord, UserRecord


class Predicate(NamedTuple):
    """A column comparison applied to a scan."""

    column: str
    op: str
    value: Any


class RecordStore(ABC):
    """Relational store holding jobs and domain records.

    Every method is a suspension point for the calling task.
    """

    # Jobs

    @abstractmethod
    async def create_import_job(self, idempotency_key: str, resource: str, file_path: str | None) -> int:
        """Create a pending import job, or return the id of the job with this key."""

    @abstractmethod
    async def create_export_job(
        self,
        idempotency_key: str,
        resource: str,
        format: str,
        filters: dict[str, Any] | None = None,
        fields: list[str] | None = None,
    ) -> int:
        """Create a pending export job, or return the id of the job with this key."""

    @abstractmethod
    async def get_import_job(self, job_id: int) -> ImportJob | None:
        """Get an import job by ID."""

    @abstractmethod
    async def get_export_job(self, job_id: int) -> ExportJob | None:
        """Get an export job by ID."""

    @abstractmethod
    async def list_pending_jobs(self, kind: JobKind, limit: int) -> list[int]:
        """Ids of up to ``limit`` pending jobs, oldest first."""

    @abstractmethod
    async def claim_job(self, kind: JobKind, job_id: int) -> bool:
        """Move a job from pending to processing. False if it was not pending."""

    @abstractmethod
    async def finish_job(self, kind: JobKind, job_id: int, status: str, **fields: Any) -> bool:
        """Move a job to a terminal status, setting completed_at and ``fields``."""

    @abstractmethod
    async def set_import_total(self, job_id: int, total_records: int) -> None:
        """Record the number of records seen in the source."""

    @abstractmethod
    async def increment_import_counts(self, job_id: int, success: int, errors: int) -> None:
        """Atomically add to the success and error counters."""

    @abstractmethod
    async def add_import_error(
        self,
        job_id: int,
        record_index: int,
        record_data: Any,
        error_message: str,
        error_type: str,
    ) -> None:
        """Append a failed record to an import job."""

    @abstractmethod
    async def list_import_errors(self, job_id: int, limit: int = 100) -> list[ImportErrorEntry]:
        """Most recent errors of an import job, newest first."""

    # Records

    @abstractmethod
    async def find_id_by_external_id(self, resource: str, external_id: str) -> int | None:
        """Internal id of the record of ``resource`` with this external id."""

    @abstractmethod
    async def upsert_user(self, record: UserRecord, external_id: str | None) -> int:
        """Insert or update a user keyed by email."""

    @abstractmethod
    async def upsert_article(self, record: ArticleRecord, author_id: int, external_id: str | None) -> int:
        """Insert or update an article keyed by slug."""

    @abstractmethod
    async def upsert_comment(
        self,
        record: CommentRecord,
        article_id: int,
        author_id: int,
        external_id: str | None,
    ) -> int:
        """Insert a comment, or update the one with the same external id."""

    @abstractmethod
    async def scan(
        self,
        resource: str,
        predicates: list[Predicate],
        after_id: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Up to ``limit`` records with id greater than ``after_id``, ordered by id."""
