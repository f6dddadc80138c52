"""Source loaders for NDJSON, CSV and JSON arrays."""
from bulk_transfer_core.ingest.loaders.base import BaseLoader, SourceRecord
from bulk_transfer_core.ingest.loaders.csv import CSVLoader
from bulk_transfer_core.ingest.loaders.json import JSONLoader
from bulk_transfer_core.ingest.loaders.jsonl import JSONLLoader

__all__ = ["BaseLoader", "SourceRecord", "CSVLoader", "JSONLoader", "JSONLLoader"]
