"""Completion barrier: waits until every dispatched task has finished."""

import threading
import time
from typing import Optional


class CompletionBarrier:
    """
    Counts outstanding tasks and lets one caller wait for all of them.

    The dispatcher calls `register()` before starting each task and `seal()`
    once it will register nothing more. Tasks call `complete()` exactly once.
    `wait()` returns only when the barrier is sealed and nothing is
    outstanding, so it cannot report completion while registrations are
    still coming.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._registered = 0
        self._succeeded = 0
        self._failed = 0
        self._sealed = False

    def register(self) -> None:
        """Record one more outstanding task."""
        with self._cond:
            if self._sealed:
                raise RuntimeError("Cannot register a task after the barrier is sealed")
            self._registered += 1

    def complete(self, success: bool) -> None:
        """Mark one registered task as finished."""
        with self._cond:
            if self._succeeded + self._failed >= self._registered:
                raise RuntimeError("complete() called more times than register()")
            if success:
                self._succeeded += 1
            else:
                self._failed += 1
            if self._is_done():
                self._cond.notify_all()

    def seal(self) -> None:
        """Declare that no further tasks will be registered."""
        with self._cond:
            self._sealed = True
            if self._is_done():
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until sealed and drained. Returns False on timeout."""
        with self._cond:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._is_done():
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(timeout=remaining)
            return True

    def _is_done(self) -> bool:
        return self._sealed and self._succeeded + self._failed == self._registered

    @property
    def sealed(self) -> bool:
        with self._cond:
            return self._sealed

    @property
    def registered(self) -> int:
        with self._cond:
            return self._registered

    @property
    def outstanding(self) -> int:
        with self._cond:
            return self._registered - self._succeeded - self._failed

    @property
    def succeeded(self) -> int:
        with self._cond:
            return self._succeeded

    @property
    def failed(self) -> int:
        with self._cond:
            return self._failed
