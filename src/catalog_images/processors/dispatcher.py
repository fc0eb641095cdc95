"""Dispatcher: fans catalog records out to worker threads under admission control."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..core.error_handling import BatchOperationContextManager
from ..core.exceptions import CatalogError, CatalogItemError
from ..core.models import ProcessingResult, Record
from ..core.observability import LogContext
from ..core.protocols import CatalogEntry, LoggerProtocol, ProcessingService
from .admission import AdmissionController
from .barrier import CompletionBarrier
from .task import ImageTask


@dataclass
class DispatchReport:
    """What happened during one dispatch pass."""

    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    peak_concurrency: int = 0
    fatal_error: Optional[CatalogError] = None
    failures: List[ProcessingResult] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.fatal_error is not None


class Dispatcher:
    """
    Starts one `ImageTask` per record without waiting for it to finish.

    For each record the dispatcher takes a token (blocking while the pool is
    exhausted), registers the task with the barrier and submits it to a
    thread pool sized to the admission capacity. Unusable catalog documents
    are logged and skipped. If the catalog fails as a whole, iteration stops
    but tasks already started are drained before the report is returned.
    """

    def __init__(
        self,
        processing_service: ProcessingService,
        admission: AdmissionController,
        barrier: CompletionBarrier,
        logger: LoggerProtocol,
        error_collector: Optional[BatchOperationContextManager] = None,
    ):
        self._processing_service = processing_service
        self._admission = admission
        self._barrier = barrier
        self._logger = logger
        self._error_collector = error_collector
        self._failures: List[ProcessingResult] = []
        self._failures_lock = threading.Lock()

    def dispatch(self, entries: Iterable[CatalogEntry]) -> DispatchReport:
        """Dispatch every record in `entries` and wait for all tasks to finish."""
        report = DispatchReport()
        context = LogContext(operation="dispatch", component="dispatcher")

        with ThreadPoolExecutor(
            max_workers=self._admission.capacity, thread_name_prefix="image-task"
        ) as executor:
            try:
                for entry in entries:
                    if isinstance(entry, CatalogItemError):
                        self._skip(entry, context)
                        report.skipped += 1
                        continue
                    self._submit(entry, executor)
                    report.dispatched += 1
            except CatalogError as e:
                report.fatal_error = e
                self._logger.error(
                    "Catalog failed; draining in-flight tasks before aborting",
                    context,
                    error=str(e),
                    in_flight=self._barrier.outstanding,
                )
            finally:
                self._barrier.seal()
                self._barrier.wait()

        report.succeeded = self._barrier.succeeded
        report.failed = self._barrier.failed
        report.peak_concurrency = self._admission.peak_in_use
        with self._failures_lock:
            report.failures = list(self._failures)
        return report

    def _submit(self, record: Record, executor: ThreadPoolExecutor) -> None:
        self._admission.acquire()
        self._barrier.register()
        task = ImageTask(
            record,
            self._processing_service,
            self._admission,
            self._barrier,
            self._logger,
            on_result=self._collect,
        )
        try:
            executor.submit(task.run)
        except BaseException:
            # The task never started, so it cannot release for itself
            self._admission.release()
            self._barrier.complete(False)
            raise

    def _skip(self, item_error: CatalogItemError, context: LogContext) -> None:
        self._logger.error(
            "Skipping unreadable catalog document",
            context,
            document_id=item_error.document_id,
            error=str(item_error),
        )
        if self._error_collector is not None:
            self._error_collector.add_error(
                str(item_error), item_identifier=str(item_error.document_id), kind="catalog"
            )

    def _collect(self, result: ProcessingResult) -> None:
        if result.success:
            return
        with self._failures_lock:
            self._failures.append(result)
        if self._error_collector is not None:
            kind = result.failure_kind.value if result.failure_kind else "unknown"
            self._error_collector.add_error(
                result.error, item_identifier=result.identifier, kind=kind
            )
