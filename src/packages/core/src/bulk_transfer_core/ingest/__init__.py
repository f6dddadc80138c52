"""Import side: source loaders, format detection and the ingestion pipeline."""
from bulk_transfer_core.ingest.formats import detect_format, get_loader, loader_for
from bulk_transfer_core.ingest.download import download_source, is_remote_source
from bulk_transfer_core.ingest.pipeline import (
    ImportRun,
    IngestCounts,
    ingest,
    process_import_job,
    upsert_record,
)

__all__ = [
    "detect_format",
    "get_loader",
    "loader_for",
    "download_source",
    "is_remote_source",
    "ImportRun",
    "IngestCounts",
    "ingest",
    "process_import_job",
    "upsert_record",
]
