"""Factory classes for creating configured service instances."""

import logging
from typing import Optional

import requests
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from requests.adapters import HTTPAdapter

from .catalog import MongoCatalogSource
from .exceptions import CatalogError
from .models import PipelineConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import (
    CatalogSourceProtocol,
    ImageFetcherProtocol,
    ImageStoreProtocol,
    LoggerProtocol,
)
from .services import (
    HttpImageFetcher,
    ImageProcessingService,
    ImageTransformService,
    LocalImageStore,
    ProcessingOrchestrator,
)

USER_AGENT = "catalog-images/0.1"


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: Optional[int] = None) -> StructuredLogger:
        """Create a structured logger; `level=None` keeps the LOG_LEVEL default."""
        return StructuredLogger(name, level)


class HttpSessionFactory:
    """Factory for requests sessions used by the image fetcher."""

    @staticmethod
    def create_session(pool_size: int = 10) -> requests.Session:
        """Create a session with a connection pool sized to the worker count and no retries."""
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=pool_size,
            pool_maxsize=pool_size,
            max_retries=0,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"User-Agent": USER_AGENT})
        return session


class CatalogFactory:
    """Factory for catalog sources."""

    @staticmethod
    def create_catalog(config: PipelineConfig, **client_kwargs) -> MongoCatalogSource:
        """Connect to MongoDB and return a source over the configured collection."""
        client_kwargs.setdefault("serverSelectionTimeoutMS", 10_000)
        try:
            client: MongoClient = MongoClient(config.catalog_uri, **client_kwargs)
        except PyMongoError as e:
            raise CatalogError(f"Cannot create catalog client: {e}") from e

        collection = client[config.catalog_database][config.catalog_collection]
        return MongoCatalogSource(
            collection,
            identifier_field=config.identifier_field,
            image_field=config.image_field,
            client=client,
        )


class ProcessingPipelineFactory:
    """Factory for creating the complete processing pipeline."""

    @staticmethod
    def create_pipeline(
        config: PipelineConfig,
        catalog: Optional[CatalogSourceProtocol] = None,
        fetcher: Optional[ImageFetcherProtocol] = None,
        store: Optional[ImageStoreProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> ProcessingOrchestrator:
        """Create a fully configured processing pipeline."""

        if logger is None:
            logger = LoggerFactory.create_logger(
                "catalog-images.pipeline", logging.DEBUG if config.debug else None
            )

        if catalog is None:
            catalog = CatalogFactory.create_catalog(config)

        if fetcher is None:
            fetcher = HttpImageFetcher(
                session_factory=lambda: HttpSessionFactory.create_session(config.concurrency),
                timeout=config.download_timeout,
            )

        if store is None:
            store = LocalImageStore(config.output_dir)

        if metrics_collector is None:
            metrics_collector = MetricsCollector()

        transformer = ImageTransformService(
            target_width=config.target_width,
            target_height=config.target_height,
            jpeg_quality=config.jpeg_quality,
        )
        processing_service = ImageProcessingService(
            fetcher, transformer, store, logger, metrics_collector
        )

        return ProcessingOrchestrator(
            config=config,
            catalog=catalog,
            store=store,
            processing_service=processing_service,
            logger=logger,
            metrics_collector=metrics_collector,
            fetcher=fetcher,
        )
