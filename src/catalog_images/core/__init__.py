"""Core utilities and shared components for the catalog images pipeline."""

from .image_utils import (
    calculate_output_path,
    decode_image,
    encode_jpeg,
    resize_image,
)
from .logging_config import (
    get_logger,
    set_debug_logging,
    setup_logger,
)
from .exceptions import (
    CatalogImagesError,
    CatalogError,
    CatalogItemError,
    ConfigurationError,
    DecodeError,
    DownloadError,
    PersistError,
    TaskError,
    TransformError,
)
from .error_handling import BatchOperationContextManager, with_error_handling
from .models import FailureKind, PipelineConfig, ProcessingResult, Record, RunSummary

__all__ = [
    "PipelineConfig",
    "Record",
    "ProcessingResult",
    "RunSummary",
    "FailureKind",
    "calculate_output_path",
    "decode_image",
    "encode_jpeg",
    "resize_image",
    "setup_logger",
    "get_logger",
    "set_debug_logging",
    "CatalogImagesError",
    "CatalogError",
    "CatalogItemError",
    "ConfigurationError",
    "TaskError",
    "DownloadError",
    "DecodeError",
    "TransformError",
    "PersistError",
    "with_error_handling",
    "BatchOperationContextManager",
]
