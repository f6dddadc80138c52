"""Framing of export records as NDJSON or a JSON array."""
import json
from typing import Any

FORMATS = ("ndjson", "json")


class RecordFramer:
    """Turns a sequence of records into text chunks for one output format.

    ``open`` and ``close`` return the text that goes before the first and
    after the last record; ``frame`` returns the text for one record.
    """

    def __init__(self, fmt: str):
        if fmt not in FORMATS:
            raise ValueError(f"Unknown export format: {fmt}")
        self.fmt = fmt
        self.count = 0

    def open(self) -> str:
        return "[\n" if self.fmt == "json" else ""

    def frame(self, record: dict[str, Any]) -> str:
        text = json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)
        first = self.count == 0
        self.count += 1
        if self.fmt == "ndjson":
            return text + "\n"
        return text if first else ",\n" + text

    def close(self) -> str:
        return "\n]" if self.fmt == "json" else ""
