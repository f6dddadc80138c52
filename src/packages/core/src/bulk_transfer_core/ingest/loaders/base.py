"""Base loader interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass
class SourceRecord:
    """One record read from a source, or the error that prevented reading it."""

    index: int
    data: Any
    error: Exception | None = None


class BaseLoader(ABC):
    """Abstract base class for source loaders."""

    name: str = ""
    suffixes: tuple[str, ...] = ()
    streaming: bool = True

    def detect(self, suffix: str) -> bool:
        """Detect if this loader handles files with this suffix."""
        return suffix.lower() in self.suffixes

    @abstractmethod
    def iter_records(self, file_path: str) -> Iterator[SourceRecord]:
        """Yield records in source order with 0-based indexes."""
        pass

    def load(self, file_path: str) -> list[SourceRecord]:
        """Load all records from the file."""
        return list(self.iter_records(file_path))
