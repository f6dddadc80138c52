"""Error types shared by the import and export pipelines.

Each error carries an ``error_type`` category. Per-record failures are stored
with that category on their ImportError row; source errors fail the whole job.
"""
from typing import Any


class BulkTransferError(Exception):
    """Base class for pipeline errors."""

    error_type = "UNKNOWN_ERROR"


class RecordValidationError(BulkTransferError):
    """A record violates the structural rules of its resource."""

    error_type = "VALIDATION_ERROR"

    def __init__(self, issues: list[tuple[str, str]]):
        self.issues = issues
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return "; ".join(f"{field}: {msg}" for field, msg in self.issues)

    @property
    def fields(self) -> list[str]:
        return [field for field, _ in self.issues]


class RecordParseError(BulkTransferError):
    """A source line could not be decoded into a record."""

    error_type = "PARSE_ERROR"


class ForeignKeyViolation(BulkTransferError):
    """A record references a row that does not exist."""

    error_type = "FOREIGN_KEY_VIOLATION"

    def __init__(self, message: str, field: str | None = None, reference: Any = None):
        self.field = field
        self.reference = reference
        super().__init__(message)

    @classmethod
    def missing_external_id(cls, field: str, reference: str, resource: str) -> "ForeignKeyViolation":
        return cls(
            f'Foreign key violation: {field} "{reference}" does not exist '
            f"(no {resource} with that external id)",
            field=field,
            reference=reference,
        )


class InvalidReferenceError(BulkTransferError):
    """A reference is neither an internal id nor an external identifier."""

    error_type = "INVALID_REFERENCE"

    def __init__(self, field: str, reference: Any):
        self.field = field
        self.reference = reference
        super().__init__(f"Invalid {field}: {reference!r}")


class SourceError(BulkTransferError):
    """The import source cannot be read at all. Fails the job."""

    error_type = "SOURCE_ERROR"


class StoreError(BulkTransferError):
    """The store rejected an operation."""

    error_type = "STORE_ERROR"


class ConstraintViolation(StoreError):
    """A uniqueness or integrity constraint rejected a write."""

    error_type = "CONSTRAINT_VIOLATION"


class JobNotFoundError(BulkTransferError):
    """No job exists with the requested id."""

    error_type = "JOB_NOT_FOUND"


def error_type_of(exc: BaseException) -> str:
    """Category stored on an ImportError row for this exception."""
    if isinstance(exc, BulkTransferError):
        return exc.error_type
    return type(exc).__name__


def error_message_of(exc: BaseException) -> str:
    """Human readable message for an ImportError row."""
    return str(exc) or type(exc).__name__
