"""NDJSON file loader."""
import json
from typing import Iterator

from bulk_transfer_core.ingest.loaders.base import BaseLoader, SourceRecord
from bulk_transfer_core.util.errors import RecordParseError


class JSONLLoader(BaseLoader):
    """Loader for NDJSON (newline-delimited JSON) files.

    Blank lines are skipped without consuming an index. A line that is not
    valid JSON is yielded as a per-record parse error.
    """

    name = "ndjson"
    suffixes = (".ndjson", ".jsonl")

    def iter_records(self, file_path: str) -> Iterator[SourceRecord]:
        index = 0
        with open(file_path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except json.JSONDecodeError as e:
                    yield SourceRecord(index, line, RecordParseError(f"line {lineno}: {e.msg}"))
                else:
                    yield SourceRecord(index, obj)
                index += 1
