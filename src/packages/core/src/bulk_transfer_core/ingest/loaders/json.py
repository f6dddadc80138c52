"""JSON array file loader."""
import json
from typing import Iterator

from bulk_transfer_core.ingest.loaders.base import BaseLoader, SourceRecord
from bulk_transfer_core.util.errors import SourceError


class JSONLoader(BaseLoader):
    """Loader for files holding a single top-level JSON array.

    The whole document is parsed at once.
    """

    name = "json"
    suffixes = (".json",)
    streaming = False

    def read_array(self, file_path: str) -> list:
        """Parse the file, failing unless it holds a top-level array."""
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SourceError(f"JSON parse error: {e}") from e
        if not isinstance(data, list):
            raise SourceError("JSON source must be a top-level array")
        return data

    def iter_records(self, file_path: str) -> Iterator[SourceRecord]:
        for i, item in enumerate(self.read_array(file_path)):
            yield SourceRecord(i, item)
