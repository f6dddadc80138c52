"""Export side: filters, record shaping, framing and the export pipeline."""
from bulk_transfer_core.export.filters import build_predicates, parse_filters
from bulk_transfer_core.export.formatting import EXPORT_FIELDS, format_record, project
from bulk_transfer_core.export.writer import FORMATS, RecordFramer
from bulk_transfer_core.export.pipeline import (
    download_url_for,
    export_chunks,
    iter_rows,
    process_export_job,
    stream_export,
)

__all__ = [
    "build_predicates",
    "parse_filters",
    "EXPORT_FIELDS",
    "format_record",
    "project",
    "FORMATS",
    "RecordFramer",
    "download_url_for",
    "export_chunks",
    "iter_rows",
    "process_export_job",
    "stream_export",
]
