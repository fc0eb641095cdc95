"""Testing utilities and fakes for the catalog images pipeline."""

from .fakes import (
    FakeCatalog,
    FakeImageFetcher,
    FakeImageStore,
    FakeLogger,
    create_test_image,
    setup_test_catalog,
)

__all__ = [
    "FakeCatalog",
    "FakeImageFetcher",
    "FakeImageStore",
    "FakeLogger",
    "create_test_image",
    "setup_test_catalog",
]
