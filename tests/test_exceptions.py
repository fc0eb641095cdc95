import pytest

from catalog_images.core.exceptions import (
    CatalogError,
    CatalogImagesError,
    CatalogItemError,
    ConfigurationError,
    DecodeError,
    DownloadError,
    PersistError,
    TaskError,
    TransformError,
)
from catalog_images.core.models import FailureKind


@pytest.mark.parametrize(
    "error_cls,kind",
    [
        (DownloadError, FailureKind.DOWNLOAD),
        (DecodeError, FailureKind.DECODE),
        (TransformError, FailureKind.TRANSFORM),
        (PersistError, FailureKind.PERSIST),
    ],
)
def test_task_errors_carry_their_failure_kind(error_cls, kind) -> None:
    assert issubclass(error_cls, TaskError)
    assert error_cls("boom").kind is kind


def test_all_errors_share_the_pipeline_base() -> None:
    for error_cls in (CatalogError, CatalogItemError, ConfigurationError, TaskError):
        assert issubclass(error_cls, CatalogImagesError)


def test_catalog_item_error_keeps_document_details() -> None:
    error = CatalogItemError("bad document", document_id="abc", document={"_id": "abc"})

    assert str(error) == "bad document"
    assert error.document_id == "abc"
    assert error.document == {"_id": "abc"}


def test_catalog_item_error_defaults_to_empty_document() -> None:
    assert CatalogItemError("bad document").document == {}
