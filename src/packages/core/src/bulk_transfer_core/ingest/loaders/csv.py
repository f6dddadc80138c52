"""CSV file loader."""
from typing import Iterator

import pandas as pd

from bulk_transfer_core.ingest.loaders.base import BaseLoader, SourceRecord
from bulk_transfer_core.ingest.normalize import normalize_row
from bulk_transfer_core.util.errors import SourceError

CHUNK_ROWS = 1000


class CSVLoader(BaseLoader):
    """Loader for CSV files.

    The first non-blank line is the header. Rows are read in chunks so the
    file is never fully in memory; cells beyond the header width are dropped.
    """

    name = "csv"
    suffixes = (".csv",)

    def __init__(self, chunk_rows: int = CHUNK_ROWS):
        self.chunk_rows = chunk_rows

    def iter_records(self, file_path: str) -> Iterator[SourceRecord]:
        try:
            header = pd.read_csv(file_path, nrows=0, dtype=str, encoding="utf-8")
        except pd.errors.EmptyDataError:
            return
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            raise SourceError(f"CSV parse error: {e}") from e
        width = len(header.columns)

        reader = pd.read_csv(
            file_path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8",
            engine="python",
            index_col=False,
            on_bad_lines=lambda bad_line: bad_line[:width],
            chunksize=self.chunk_rows,
        )
        index = 0
        with reader:
            try:
                for chunk in reader:
                    for row in chunk.to_dict("records"):
                        yield SourceRecord(index, normalize_row(row))
                        index += 1
            except (UnicodeDecodeError, pd.errors.ParserError) as e:
                raise SourceError(f"CSV parse error: {e}") from e
