"""Observability utilities for logging, metrics, and tracing."""

import threading
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from .logging_config import setup_logger


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        """Create new context with operation set."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=operation,
            component=self.component,
            metadata=self.metadata.copy(),
        )

    def with_metadata(self, **kwargs) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata=new_metadata,
        )


class StructuredLogger:
    """Structured logger with context support.

    Each call renders to a single line:
    ``[operation] [correlation_id] message (key=value, ...)``.
    """

    def __init__(self, name: str, level: Optional[int] = None):
        self._logger = setup_logger(name)
        if level is not None:
            self._logger.setLevel(level)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        **kwargs,
    ):
        """Internal logging method with context support."""
        if context:
            formatted_message = f"[{context.correlation_id}] {message}"
            if context.operation:
                formatted_message = f"[{context.operation}] {formatted_message}"
            details = {**context.metadata, **kwargs}
        else:
            formatted_message = message
            details = kwargs

        if details:
            metadata_str = ", ".join(f"{k}={v}" for k, v in details.items())
            formatted_message = f"{formatted_message} ({metadata_str})"

        getattr(self._logger, level.value.lower())(formatted_message)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log info message."""
        self._log(LogLevel.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log error message."""
        self._log(LogLevel.ERROR, message, context, **kwargs)


@dataclass
class PerformanceMetrics:
    """Performance metrics for operations."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Calculate operation duration in seconds."""
        return self.end_time - self.start_time


class MetricsCollector:
    """Thread-safe collector for performance metrics."""

    def __init__(self):
        self._metrics: List[PerformanceMetrics] = []
        self._lock = threading.Lock()

    def record_metric(self, metric: PerformanceMetrics):
        """Record a performance metric."""
        with self._lock:
            self._metrics.append(metric)

    def get_metrics(self, operation: Optional[str] = None) -> List[PerformanceMetrics]:
        """Get recorded metrics, optionally filtered by operation."""
        with self._lock:
            if operation:
                return [m for m in self._metrics if m.operation == operation]
            return self._metrics.copy()

    def operations(self) -> List[str]:
        """Distinct operation names in the order they were first recorded."""
        seen: Dict[str, None] = {}
        for metric in self.get_metrics():
            seen.setdefault(metric.operation, None)
        return list(seen)

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for metrics."""
        metrics = self.get_metrics(operation)

        if not metrics:
            return {}

        durations = [m.duration for m in metrics]
        successful = [m for m in metrics if m.success]
        failed = [m for m in metrics if not m.success]

        return {
            "total_operations": len(metrics),
            "successful_operations": len(successful),
            "failed_operations": len(failed),
            "success_rate": len(successful) / len(metrics),
            "avg_duration": sum(durations) / len(durations),
            "min_duration": min(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }


@contextmanager
def timed_operation(
    operation_name: str,
    metrics_collector: Optional[MetricsCollector] = None,
    **metadata: Any,
) -> Iterator[None]:
    """Time the enclosed block and record it, successful or not."""
    start_time = time.time()
    success = False
    error_message = None
    try:
        yield
        success = True
    except Exception as e:
        error_message = str(e)
        raise
    finally:
        if metrics_collector is not None:
            metrics_collector.record_metric(
                PerformanceMetrics(
                    operation=operation_name,
                    start_time=start_time,
                    end_time=time.time(),
                    success=success,
                    error_message=error_message,
                    metadata=dict(metadata),
                )
            )


def log_metrics_summary(logger: StructuredLogger, metrics_collector: MetricsCollector) -> None:
    """Log one timing line per recorded operation."""
    for operation in metrics_collector.operations():
        summary = metrics_collector.get_summary(operation)
        logger.info(
            f"Stage timing: {operation}",
            count=summary["total_operations"],
            failed=summary["failed_operations"],
            avg_ms=round(summary["avg_duration"] * 1000, 1),
            max_ms=round(summary["max_duration"] * 1000, 1),
        )

