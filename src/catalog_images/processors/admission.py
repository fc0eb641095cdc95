"""Admission control: a fixed-capacity token pool for concurrent tasks."""

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from ..core.exceptions import ConfigurationError


class AdmissionController:
    """
    Caps the number of tasks executing at once.

    `acquire()` blocks until a token is free and `release()` hands it back,
    waking at most one waiter. Capacity is fixed for the lifetime of the
    controller. Every acquire must be paired with exactly one release;
    releasing a token that was never acquired raises `RuntimeError`.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ConfigurationError(f"Concurrency limit must be >= 1, got {capacity}")
        self._capacity = capacity
        self._in_use = 0
        self._peak_in_use = 0
        self._cond = threading.Condition()

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """Take a token, blocking while the pool is exhausted.

        Returns False only if `timeout` elapsed first.
        """
        with self._cond:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._in_use >= self._capacity:
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(timeout=remaining)
            self._in_use += 1
            self._peak_in_use = max(self._peak_in_use, self._in_use)
            return True

    def release(self) -> None:
        """Return a token to the pool."""
        with self._cond:
            if self._in_use == 0:
                raise RuntimeError("release() called without a matching acquire()")
            self._in_use -= 1
            self._cond.notify(1)

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold one token for the duration of the block."""
        self.acquire()
        try:
            yield
        finally:
            self.release()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        with self._cond:
            return self._in_use

    @property
    def available(self) -> int:
        with self._cond:
            return self._capacity - self._in_use

    @property
    def peak_in_use(self) -> int:
        """Highest number of tokens held at the same time so far."""
        with self._cond:
            return self._peak_in_use
