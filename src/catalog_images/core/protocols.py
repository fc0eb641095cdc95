"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol, Union

from .exceptions import CatalogItemError
from .models import ProcessingResult, Record

# What a catalog source yields: a usable record, or the reason a document was unusable.
CatalogEntry = Union[Record, CatalogItemError]


class CatalogSourceProtocol(Protocol):
    """Protocol for the read-only catalog of records."""

    def iter_records(self) -> Iterator[CatalogEntry]:
        """Yield records; raise CatalogError if the source fails as a whole."""
        ...

    def close(self) -> None:
        """Release connections held by the source."""
        ...


class ImageFetcherProtocol(Protocol):
    """Protocol for downloading image bytes."""

    def fetch(self, url: str) -> bytes:
        """Fetch bytes from url; raise DownloadError on failure."""
        ...

    def close(self) -> None:
        """Release connections held by the fetcher."""
        ...


class ImageStoreProtocol(Protocol):
    """Protocol for persisting encoded images."""

    def ensure_ready(self) -> None:
        """Create the storage location if needed (idempotent)."""
        ...

    def write(self, identifier: str, data: bytes) -> Union[str, Path]:
        """Write data for identifier, overwriting; raise PersistError on failure."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class ProcessingService(ABC):
    """Abstract service for processing one record end to end."""

    @abstractmethod
    def process_record(self, record: Record) -> ProcessingResult:
        """Process a single record. Never raises for per-record failures."""
        ...
