"""Bounded-concurrency execution: admission control, tasks, dispatch and completion."""

from .admission import AdmissionController
from .barrier import CompletionBarrier
from .dispatcher import DispatchReport, Dispatcher
from .task import ImageTask

__all__ = [
    "AdmissionController",
    "CompletionBarrier",
    "Dispatcher",
    "DispatchReport",
    "ImageTask",
]
