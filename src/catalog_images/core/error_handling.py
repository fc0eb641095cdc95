# src/catalog_images/core/error_handling.py

import functools
import logging
import threading
from typing import Any, Callable, Dict, List, Type, TypeVar

from .exceptions import CatalogImagesError, TaskError

F = TypeVar("F", bound=Callable[..., Any])


def describe_exception(exc: BaseException) -> str:
    """Render an exception as 'TypeName: message' for one-line logs."""
    message = str(exc)
    if not message:
        return type(exc).__name__
    return f"{type(exc).__name__}: {message}"


def with_error_handling(error_cls: Type[TaskError]) -> Callable[[F], F]:
    """
    Decorator translating unexpected exceptions of a pipeline stage into `error_cls`.

    Pipeline errors pass through untouched. Anything else (requests, Pillow,
    OSError...) is re-raised as `error_cls` chained to the original exception.
    The traceback is logged at DEBUG; the single ERROR line for a failed task
    is written by the processing service.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except CatalogImagesError:
                raise
            except Exception as e:
                logger = logging.getLogger(func.__module__ + '.' + func.__name__)
                logger.debug(
                    f"Error in '{func.__name__}': {e}",
                    exc_info=True
                )
                raise error_cls(describe_exception(e)) from e
        return wrapper  # type: ignore[return-value]
    return decorator


class BatchOperationContextManager:
    """
    Context manager for a processing run to collect and summarize per-record errors.

    `add_error` may be called concurrently from worker threads.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self._lock = threading.Lock()
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        errors = self.snapshot()
        if errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(errors)} error(s)."
            )
            for i, error_detail in enumerate(errors):
                self.logger.warning(
                    f"  Error {i+1}/{len(errors)} for item '{error_detail['item']}' "
                    f"[{error_detail['kind']}]: {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Never suppress exceptions raised inside the block
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item",
                  kind: str = "unknown"):
        """
        Report an error for a specific item.

        Args:
            error_message (str): The error message or exception string.
            item_identifier (str): The record identifier (or document id) that failed.
            kind (str): Failure category, e.g. "download" or "catalog".
        """
        with self._lock:
            self.errors.append(
                {"item": item_identifier, "error": str(error_message), "kind": kind}
            )
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")

    def snapshot(self) -> List[Dict[str, str]]:
        """Return a copy of the errors collected so far."""
        with self._lock:
            return list(self.errors)

    @property
    def error_count(self) -> int:
        with self._lock:
            return len(self.errors)
