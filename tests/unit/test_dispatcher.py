"""Tests for the Dispatcher."""

import threading
import time

import pytest

from catalog_images.core.error_handling import BatchOperationContextManager
from catalog_images.core.exceptions import CatalogError
from catalog_images.core.models import FailureKind, ProcessingResult, Record
from catalog_images.core.protocols import ProcessingService
from catalog_images.processors.admission import AdmissionController
from catalog_images.processors.barrier import CompletionBarrier
from catalog_images.processors.dispatcher import Dispatcher
from catalog_images.testing.fakes import FakeCatalog, FakeLogger


class RecordingService(ProcessingService):
    """Processing service that tracks how many records run at once."""

    def __init__(self, delay_seconds=0.0, failing=()):
        self.delay_seconds = delay_seconds
        self.failing = set(failing)
        self.processed = []
        self.active = 0
        self.peak_active = 0
        self._lock = threading.Lock()

    def process_record(self, record: Record) -> ProcessingResult:
        with self._lock:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            time.sleep(self.delay_seconds)
            success = record.identifier not in self.failing
            with self._lock:
                self.processed.append(record.identifier)
            return ProcessingResult(
                identifier=record.identifier,
                image_locator=record.image_locator,
                success=success,
                error="" if success else "HTTP 404",
                failure_kind=None if success else FailureKind.DOWNLOAD,
            )
        finally:
            with self._lock:
                self.active -= 1


def make_records(count):
    return [
        Record(identifier=f"show-{i}", image_locator=f"https://images.example.com/{i}.jpg")
        for i in range(count)
    ]


def make_dispatcher(service, capacity=10, error_collector=None, logger=None):
    admission = AdmissionController(capacity)
    barrier = CompletionBarrier()
    dispatcher = Dispatcher(
        service, admission, barrier, logger or FakeLogger(), error_collector=error_collector
    )
    return dispatcher, admission, barrier


class TestDispatcher:
    """Tests for Dispatcher.dispatch."""

    def test_empty_catalog(self):
        service = RecordingService()
        dispatcher, admission, barrier = make_dispatcher(service)

        report = dispatcher.dispatch([])

        assert report.dispatched == 0
        assert report.succeeded == 0
        assert report.failed == 0
        assert not report.aborted
        assert barrier.sealed
        assert admission.in_use == 0

    def test_every_record_processed_exactly_once(self):
        service = RecordingService()
        dispatcher, admission, _ = make_dispatcher(service, capacity=3)

        report = dispatcher.dispatch(make_records(25))

        assert sorted(service.processed) == sorted(f"show-{i}" for i in range(25))
        assert report.dispatched == 25
        assert report.succeeded == 25
        assert admission.in_use == 0

    def test_concurrency_bounded_by_capacity(self):
        service = RecordingService(delay_seconds=0.02)
        dispatcher, admission, _ = make_dispatcher(service, capacity=4)

        report = dispatcher.dispatch(make_records(20))

        assert service.peak_active <= 4
        assert report.peak_concurrency <= 4
        assert admission.peak_in_use <= 4

    def test_records_run_concurrently(self):
        service = RecordingService(delay_seconds=0.05)
        dispatcher, _, _ = make_dispatcher(service, capacity=5)

        dispatcher.dispatch(make_records(10))

        assert service.peak_active > 1

    def test_failures_are_counted_and_collected(self):
        service = RecordingService(failing={"show-1", "show-3"})
        collector = BatchOperationContextManager("test")
        dispatcher, _, _ = make_dispatcher(service, error_collector=collector)

        report = dispatcher.dispatch(make_records(5))

        assert report.succeeded == 3
        assert report.failed == 2
        assert sorted(r.identifier for r in report.failures) == ["show-1", "show-3"]
        assert {e["kind"] for e in collector.snapshot()} == {"download"}
        assert collector.error_count == 2

    def test_invalid_documents_are_skipped(self):
        service = RecordingService()
        catalog = FakeCatalog()
        catalog.add_record("good", "https://images.example.com/good.jpg")
        catalog.add_invalid_document("doc-42", "Invalid catalog document: bad or missing field(s) image")
        collector = BatchOperationContextManager("test")
        logger = FakeLogger()
        dispatcher, _, _ = make_dispatcher(service, error_collector=collector, logger=logger)

        report = dispatcher.dispatch(catalog.iter_records())

        assert report.dispatched == 1
        assert report.skipped == 1
        assert service.processed == ["good"]
        (entry,) = logger.get_logs("ERROR")
        assert entry["message"] == "Skipping unreadable catalog document"
        assert entry["document_id"] == "doc-42"
        assert collector.snapshot()[0]["kind"] == "catalog"

    def test_catalog_failure_drains_in_flight_tasks(self):
        service = RecordingService(delay_seconds=0.05)
        catalog = FakeCatalog(make_records(10), fail_after=4)
        logger = FakeLogger()
        dispatcher, admission, barrier = make_dispatcher(service, capacity=10, logger=logger)

        report = dispatcher.dispatch(catalog.iter_records())

        assert report.aborted
        assert isinstance(report.fatal_error, CatalogError)
        assert report.dispatched == 4
        # Every started task finished before dispatch returned
        assert sorted(service.processed) == [f"show-{i}" for i in range(4)]
        assert report.succeeded == 4
        assert barrier.outstanding == 0
        assert admission.in_use == 0
        assert any(
            log["message"].startswith("Catalog failed") for log in logger.get_logs("ERROR")
        )

    def test_unexpected_iteration_error_still_drains(self):
        service = RecordingService(delay_seconds=0.02)
        dispatcher, admission, barrier = make_dispatcher(service, capacity=2)

        def entries():
            yield from make_records(3)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            dispatcher.dispatch(entries())

        assert sorted(service.processed) == ["show-0", "show-1", "show-2"]
        assert barrier.sealed
        assert barrier.outstanding == 0
        assert admission.in_use == 0

    def test_dispatch_does_not_wait_for_each_task(self):
        """The next record is pulled while earlier tasks are still running."""
        started = threading.Event()
        release = threading.Event()
        pulled = []

        class BlockingService(ProcessingService):
            def process_record(self, record):
                started.set()
                release.wait(2.0)
                return ProcessingResult(
                    identifier=record.identifier,
                    image_locator=record.image_locator,
                    success=True,
                )

        def entries():
            for record in make_records(3):
                pulled.append(record.identifier)
                yield record
                if record.identifier == "show-0":
                    assert started.wait(2.0)
            release.set()

        dispatcher, _, _ = make_dispatcher(BlockingService(), capacity=3)

        report = dispatcher.dispatch(entries())

        assert pulled == ["show-0", "show-1", "show-2"]
        assert report.succeeded == 3
