"""Tests for factory classes."""

import logging
from unittest.mock import MagicMock, patch

import pytest
from pymongo.errors import ConfigurationError as MongoConfigurationError
from requests.adapters import HTTPAdapter

from catalog_images.core.catalog import MongoCatalogSource
from catalog_images.core.exceptions import CatalogError
from catalog_images.core.factories import (
    USER_AGENT,
    CatalogFactory,
    HttpSessionFactory,
    LoggerFactory,
    ProcessingPipelineFactory,
)
from catalog_images.core.models import PipelineConfig
from catalog_images.core.observability import StructuredLogger
from catalog_images.core.services import ProcessingOrchestrator
from catalog_images.testing.fakes import FakeImageStore, FakeLogger, setup_test_catalog


class TestLoggerFactory:
    """Tests for LoggerFactory."""

    def test_create_logger(self):
        logger = LoggerFactory.create_logger("test-factory-logger")

        assert isinstance(logger, StructuredLogger)
        assert logger.name == "test-factory-logger"

    def test_create_logger_with_level(self):
        logger = LoggerFactory.create_logger("test-factory-debug", logging.DEBUG)

        assert logger._logger.level == logging.DEBUG


class TestHttpSessionFactory:
    """Tests for HttpSessionFactory."""

    def test_session_pool_sized_to_workers_without_retries(self):
        session = HttpSessionFactory.create_session(pool_size=7)

        adapter = session.get_adapter("https://images.example.com/a.jpg")
        assert isinstance(adapter, HTTPAdapter)
        assert adapter._pool_maxsize == 7
        assert adapter.max_retries.total == 0
        assert session.headers["User-Agent"] == USER_AGENT
        session.close()


class TestCatalogFactory:
    """Tests for CatalogFactory."""

    def test_create_catalog_uses_configured_collection(self):
        config = PipelineConfig(
            catalog_uri="mongodb://db.example.com:27017",
            catalog_database="media",
            catalog_collection="shows",
            identifier_field="slug",
            image_field="cover",
        )

        with patch("catalog_images.core.factories.MongoClient") as client_cls:
            client = MagicMock()
            client_cls.return_value = client

            source = CatalogFactory.create_catalog(config)

        client_cls.assert_called_once_with(
            "mongodb://db.example.com:27017", serverSelectionTimeoutMS=10_000
        )
        client.__getitem__.assert_called_once_with("media")
        client.__getitem__.return_value.__getitem__.assert_called_once_with("shows")
        assert isinstance(source, MongoCatalogSource)

        source.close()
        client.close.assert_called_once()

    def test_create_catalog_client_kwargs_override(self):
        with patch("catalog_images.core.factories.MongoClient") as client_cls:
            CatalogFactory.create_catalog(PipelineConfig(), serverSelectionTimeoutMS=500)

        assert client_cls.call_args.kwargs["serverSelectionTimeoutMS"] == 500

    def test_create_catalog_invalid_uri(self):
        with patch(
            "catalog_images.core.factories.MongoClient",
            side_effect=MongoConfigurationError("bad uri"),
        ):
            with pytest.raises(CatalogError, match="bad uri"):
                CatalogFactory.create_catalog(PipelineConfig(catalog_uri="mongodb://"))


class TestProcessingPipelineFactory:
    """Tests for ProcessingPipelineFactory."""

    def test_create_pipeline_with_injected_parts(self):
        catalog, fetcher = setup_test_catalog(2)
        store = FakeImageStore()
        config = PipelineConfig(concurrency=2, target_width=16, target_height=16)

        orchestrator = ProcessingPipelineFactory.create_pipeline(
            config, catalog=catalog, fetcher=fetcher, store=store, logger=FakeLogger()
        )
        summary = orchestrator.process_all()

        assert isinstance(orchestrator, ProcessingOrchestrator)
        assert summary.succeeded == 2
        assert sorted(store.files) == ["show-0", "show-1"]
        assert fetcher.closed
        assert catalog.closed

    def test_create_pipeline_builds_catalog_from_config(self):
        config = PipelineConfig()

        with patch.object(CatalogFactory, "create_catalog") as create_catalog:
            ProcessingPipelineFactory.create_pipeline(config, logger=FakeLogger())

        create_catalog.assert_called_once_with(config)

    def test_create_pipeline_debug_logger(self):
        config = PipelineConfig(debug=True)

        with patch.object(CatalogFactory, "create_catalog"), patch.object(
            LoggerFactory, "create_logger"
        ) as create_logger:
            ProcessingPipelineFactory.create_pipeline(config)

        create_logger.assert_called_once_with("catalog-images.pipeline", logging.DEBUG)
