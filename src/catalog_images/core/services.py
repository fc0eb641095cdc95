"""Service implementations for the catalog images pipeline."""

import contextlib
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

import requests
from PIL import Image

from .error_handling import BatchOperationContextManager, with_error_handling
from .exceptions import DownloadError, PersistError, TaskError
from .image_utils import (
    calculate_output_path,
    decode_image,
    describe_image,
    encode_jpeg,
    resize_image,
)
from .models import PipelineConfig, ProcessingResult, Record, RunSummary
from .observability import LogContext, MetricsCollector, log_metrics_summary, timed_operation
from .protocols import (
    CatalogSourceProtocol,
    ImageFetcherProtocol,
    ImageStoreProtocol,
    LoggerProtocol,
    ProcessingService,
)
from ..processors import AdmissionController, CompletionBarrier, Dispatcher

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class ImageTransformService:
    """Pure image transform stage with no I/O dependencies."""

    def __init__(self, target_width: int = 800, target_height: int = 800, jpeg_quality: int = 75):
        self.target_width = target_width
        self.target_height = target_height
        self.jpeg_quality = jpeg_quality

    def decode(self, image_bytes: bytes) -> Image.Image:
        return decode_image(image_bytes)

    def resize(self, image: Image.Image) -> Image.Image:
        return resize_image(image, self.target_width, self.target_height)

    def encode(self, image: Image.Image) -> bytes:
        return encode_jpeg(image, self.jpeg_quality)


class HttpImageFetcher:
    """Downloads images over HTTP(S), one requests session per worker thread."""

    def __init__(
        self,
        session_factory: Callable[[], requests.Session] = requests.Session,
        timeout: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self._timeout = timeout
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    @with_error_handling(DownloadError)
    def fetch(self, url: str) -> bytes:
        """
        Fetch the body at `url`; any 2xx response with a non-empty body is accepted.

        `timeout` bounds the whole download: requests applies it to the connect
        and to each socket read, and the body is read in chunks against a
        deadline so a server trickling bytes cannot hold a worker forever.
        """
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        chunks = []
        with self._session().get(url, timeout=self._timeout, stream=True) as response:
            if not 200 <= response.status_code < 300:
                raise DownloadError(f"HTTP {response.status_code} from {url}")
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                chunks.append(chunk)
                if deadline is not None and time.monotonic() > deadline:
                    raise DownloadError(
                        f"Download of {url} exceeded {self._timeout:g}s timeout"
                    )
        content = b"".join(chunks)

        if not content:
            raise DownloadError(f"Empty response body from {url}")
        return content

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()


class LocalImageStore:
    """Writes encoded images to `<output_dir>/<identifier>.jpg`."""

    def __init__(self, output_dir: Union[str, Path]):
        self._output_dir = Path(output_dir)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @with_error_handling(PersistError)
    def ensure_ready(self) -> None:
        self._output_dir.mkdir(parents=True, exist_ok=True)

    @with_error_handling(PersistError)
    def write(self, identifier: str, data: bytes) -> Path:
        """
        Write `data` for `identifier`, replacing any existing file.

        The bytes go to a temporary file in the destination directory which is
        then renamed over the target, so readers never see a partial file and
        concurrent writers to the same identifier leave one whole file behind.
        """
        path = calculate_output_path(self._output_dir, identifier)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".jpg")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
        return path


class ImageProcessingService(ProcessingService):
    """Runs download -> decode -> resize -> encode -> persist for one record."""

    def __init__(
        self,
        fetcher: ImageFetcherProtocol,
        transformer: ImageTransformService,
        store: ImageStoreProtocol,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._fetcher = fetcher
        self._transformer = transformer
        self._store = store
        self._logger = logger
        self._metrics_collector = metrics_collector

    def process_record(self, record: Record) -> ProcessingResult:
        """Process a single record; stage failures become a failed result."""
        start_time = time.time()
        log_context = LogContext(
            correlation_id=f"rec_{record.identifier}_{int(start_time * 1000)}",
            operation="process_record",
            component="image_processing_service",
        ).with_metadata(
            identifier=record.identifier,
            locator=record.image_locator,
        )

        result = ProcessingResult(
            identifier=record.identifier, image_locator=record.image_locator
        )

        try:
            self._logger.debug("Downloading image", log_context.with_operation("download"))
            with timed_operation("download", self._metrics_collector):
                image_bytes = self._fetcher.fetch(record.image_locator)

            with timed_operation("decode", self._metrics_collector):
                image = self._transformer.decode(image_bytes)
            self._logger.debug(
                "Decoded image", log_context.with_operation("decode"), **describe_image(image)
            )

            with timed_operation("resize", self._metrics_collector):
                resized = self._transformer.resize(image)

            with timed_operation("encode", self._metrics_collector):
                encoded = self._transformer.encode(resized)

            with timed_operation("persist", self._metrics_collector):
                output_path = self._store.write(record.identifier, encoded)

            result.success = True
            result.output_path = str(output_path)
            result.processing_time = time.time() - start_time

            self._logger.info(
                "Saved image",
                log_context,
                path=result.output_path,
                processing_time_ms=round(result.processing_time * 1000, 1),
            )

        except TaskError as e:
            result.success = False
            result.error = str(e)
            result.failure_kind = e.kind
            result.processing_time = time.time() - start_time

            error_context = log_context.with_operation(e.kind.value).with_metadata(error=str(e))
            self._logger.error(f"{e.kind.value.capitalize()} failed", error_context)

        return result


class ProcessingOrchestrator:
    """Main orchestrator for a processing run."""

    def __init__(
        self,
        config: PipelineConfig,
        catalog: CatalogSourceProtocol,
        store: ImageStoreProtocol,
        processing_service: ProcessingService,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
        fetcher: Optional[ImageFetcherProtocol] = None,
    ):
        self._config = config
        self._fetcher = fetcher
        self._catalog = catalog
        self._store = store
        self._processing_service = processing_service
        self._logger = logger
        self._metrics_collector = metrics_collector

    def process_all(self) -> RunSummary:
        """Process every catalog record and return the aggregate outcome."""
        start_time = time.time()
        self._log_configuration()

        try:
            self._store.ensure_ready()

            admission = AdmissionController(self._config.concurrency)
            barrier = CompletionBarrier()

            with BatchOperationContextManager("Catalog image processing") as error_collector:
                dispatcher = Dispatcher(
                    self._processing_service,
                    admission,
                    barrier,
                    self._logger,
                    error_collector=error_collector,
                )
                report = dispatcher.dispatch(self._catalog.iter_records())
        finally:
            try:
                self._catalog.close()
            finally:
                if self._fetcher is not None:
                    self._fetcher.close()

        summary = RunSummary(
            total_dispatched=report.dispatched,
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=report.skipped,
            peak_concurrency=report.peak_concurrency,
            processing_time=time.time() - start_time,
            aborted=report.aborted,
            fatal_error=str(report.fatal_error) if report.fatal_error else "",
            failures=report.failures,
        )

        if self._metrics_collector is not None:
            log_metrics_summary(self._logger, self._metrics_collector)
        self._log_final_statistics(summary)
        return summary

    def _log_configuration(self) -> None:
        config = self._config
        self._logger.info("=" * 60)
        self._logger.info("CATALOG IMAGE PROCESSOR")
        self._logger.info("=" * 60)
        self._logger.info(
            f"  Catalog:      {config.catalog_database}.{config.catalog_collection} "
            f"({config.identifier_field} -> {config.image_field})"
        )
        self._logger.info(f"  Output dir:   {config.output_dir}")
        self._logger.info(f"  Target size:  {config.target_width}x{config.target_height}")
        self._logger.info(f"  JPEG quality: {config.jpeg_quality}")
        self._logger.info(f"  Concurrency:  {config.concurrency}")
        timeout = f"{config.download_timeout:g}s" if config.download_timeout else "none"
        self._logger.info(f"  Timeout:      {timeout}")
        self._logger.info("=" * 60)

    def _log_final_statistics(self, summary: RunSummary) -> None:
        rate = summary.total_dispatched / summary.processing_time if summary.processing_time > 0 else 0

        self._logger.info("=" * 60)
        self._logger.info(f"Total execution time: {summary.processing_time:.1f}s")
        self._logger.info(f"Overall processing rate: {rate:.1f} items/sec")
        self._logger.info(f"Peak concurrent tasks: {summary.peak_concurrency}")
        self._logger.info("=" * 60)

        line = (
            f"{summary.succeeded} succeeded, {summary.failed} failed, "
            f"{summary.skipped} skipped"
        )
        if summary.aborted:
            self._logger.error(f"Run aborted by catalog failure after draining: {line}",
                               error=summary.fatal_error)
        else:
            self._logger.info(f"All images processed: {line}")
