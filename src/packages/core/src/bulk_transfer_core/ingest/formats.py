"""Source format detection."""
from pathlib import Path

from bulk_transfer_core.ingest.loaders import BaseLoader, CSVLoader, JSONLoader, JSONLLoader

DEFAULT_FORMAT = "json"

LOADERS: list[BaseLoader] = [JSONLLoader(), CSVLoader(), JSONLoader()]


def detect_format(file_path: str) -> str:
    """Detect the format of a source by its extension.

    Anything that is not NDJSON or CSV is read as a JSON array.
    """
    suffix = Path(file_path).suffix.lower()
    for loader in LOADERS:
        if loader.detect(suffix):
            return loader.name
    return DEFAULT_FORMAT


def get_loader(format_name: str) -> BaseLoader:
    """Get a loader by format name."""
    for loader in LOADERS:
        if loader.name == format_name:
            return loader
    raise ValueError(f"Unknown format: {format_name}")


def loader_for(file_path: str) -> BaseLoader:
    return get_loader(detect_format(file_path))
