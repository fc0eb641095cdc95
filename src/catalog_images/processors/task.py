"""The unit of work for one record: process, then release and report."""

import time
from typing import Callable, Optional

from ..core.error_handling import describe_exception
from ..core.models import FailureKind, ProcessingResult, Record
from ..core.observability import LogContext
from ..core.protocols import LoggerProtocol, ProcessingService
from .admission import AdmissionController
from .barrier import CompletionBarrier

ResultCallback = Callable[[ProcessingResult], None]


class ImageTask:
    """
    Processes one record on a worker thread.

    The dispatcher has already acquired a token and registered the task with
    the barrier. `run()` gives the token back and signals the barrier on every
    exit path, including unexpected exceptions.
    """

    def __init__(
        self,
        record: Record,
        processing_service: ProcessingService,
        admission: AdmissionController,
        barrier: CompletionBarrier,
        logger: LoggerProtocol,
        on_result: Optional[ResultCallback] = None,
    ):
        self.record = record
        self._processing_service = processing_service
        self._admission = admission
        self._barrier = barrier
        self._logger = logger
        self._on_result = on_result

    def run(self) -> ProcessingResult:
        start_time = time.time()
        result: Optional[ProcessingResult] = None
        try:
            try:
                result = self._processing_service.process_record(self.record)
            except Exception as e:
                result = ProcessingResult(
                    identifier=self.record.identifier,
                    image_locator=self.record.image_locator,
                    success=False,
                    error=describe_exception(e),
                    failure_kind=FailureKind.INTERNAL,
                    processing_time=time.time() - start_time,
                )
                context = LogContext(operation="task", component="image_task").with_metadata(
                    identifier=self.record.identifier,
                    locator=self.record.image_locator,
                    error=result.error,
                )
                self._logger.error("Unexpected task failure", context)

            if self._on_result is not None:
                self._on_result(result)
        finally:
            self._admission.release()
            self._barrier.complete(result is not None and result.success)

        return result
