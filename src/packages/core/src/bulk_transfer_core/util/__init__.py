"""Utility modules."""
from bulk_transfer_core.util.ids import unique_filename
from bulk_transfer_core.util.time import utc_file_stamp, utc_now_iso
from bulk_transfer_core.util.errors import (
    BulkTransferError,
    ConstraintViolation,
    ForeignKeyViolation,
    InvalidReferenceError,
    JobNotFoundError,
    RecordParseError,
    RecordValidationError,
    SourceError,
    StoreError,
    error_message_of,
    error_type_of,
)
from bulk_transfer_core.util.logs import configure_logging
from bulk_transfer_core.util.memory import peak_memory_mb

__all__ = [
    "unique_filename",
    "utc_file_stamp",
    "utc_now_iso",
    "BulkTransferError",
    "ConstraintViolation",
    "ForeignKeyViolation",
    "InvalidReferenceError",
    "JobNotFoundError",
    "RecordParseError",
    "RecordValidationError",
    "SourceError",
    "StoreError",
    "error_message_of",
    "error_type_of",
    "configure_logging",
    "peak_memory_mb",
]
