"""Shared data models for the catalog images pipeline."""

import os
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CATALOG_URI = "mongodb://localhost:27017"


class PipelineConfig(BaseModel):
    """Configuration for a processing run."""

    concurrency: int = Field(default=10, ge=1)
    target_width: int = Field(default=800, ge=1)
    target_height: int = Field(default=800, ge=1)
    jpeg_quality: int = Field(default=75, ge=1, le=100)
    output_dir: Path = Path("img")
    catalog_uri: str = Field(
        default_factory=lambda: os.getenv("CATALOG_URI", DEFAULT_CATALOG_URI)
    )
    catalog_database: str = "podgo"
    catalog_collection: str = "podcasts"
    identifier_field: str = "podlistUrl"
    image_field: str = "image"
    # None disables the per-request timeout
    download_timeout: Optional[float] = 30.0
    debug: bool = False
    fail_on_error: bool = False

    @field_validator("download_timeout")
    @classmethod
    def _normalize_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is None or value <= 0:
            return None
        return value


class Record(BaseModel):
    """One catalog entry: the output filename stem and the image URL."""

    model_config = ConfigDict(frozen=True, strict=True)

    identifier: str = Field(min_length=1)
    image_locator: str = Field(min_length=1)


class FailureKind(str, Enum):
    """Stage at which a task failed."""

    DOWNLOAD = "download"
    DECODE = "decode"
    TRANSFORM = "transform"
    PERSIST = "persist"
    INTERNAL = "internal"


class ProcessingResult(BaseModel):
    """Result of processing a single record."""

    identifier: str
    image_locator: str = ""
    output_path: str = ""
    success: bool = False
    error: str = ""
    failure_kind: Optional[FailureKind] = None
    processing_time: float = 0.0


class RunSummary(BaseModel):
    """Aggregate outcome of a processing run."""

    total_dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    peak_concurrency: int = 0
    processing_time: float = 0.0
    aborted: bool = False
    fatal_error: str = ""
    failures: List[ProcessingResult] = Field(default_factory=list)
