"""Custom exceptions for the catalog images pipeline."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .models import FailureKind


class CatalogImagesError(Exception):
    """Base exception for all catalog images pipeline errors."""


class ConfigurationError(CatalogImagesError):
    """Error raised for invalid configuration options."""


class CatalogError(CatalogImagesError):
    """The catalog source failed as a whole; the run cannot continue."""


class CatalogItemError(CatalogImagesError):
    """A single catalog document could not be turned into a record.

    Instances are yielded by catalog sources as values rather than raised,
    so the dispatcher can skip the document and keep iterating.
    """

    def __init__(self, message: str, document_id: Any = None,
                 document: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.document_id = document_id
        self.document = document or {}


class TaskError(CatalogImagesError):
    """Error raised when one stage of a single task fails."""

    kind: FailureKind = FailureKind.INTERNAL


class DownloadError(TaskError):
    """Network failure, non-success status or empty body."""

    kind = FailureKind.DOWNLOAD


class DecodeError(TaskError):
    """The downloaded bytes are not a supported image."""

    kind = FailureKind.DECODE


class TransformError(TaskError):
    """Resizing or JPEG encoding failed."""

    kind = FailureKind.TRANSFORM


class PersistError(TaskError):
    """Writing the output file failed."""

    kind = FailureKind.PERSIST
