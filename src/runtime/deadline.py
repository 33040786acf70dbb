"""
Deadline / cancellation context shared by bootstrap, polling and teardown.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Union


class Deadline:
    """
    A point in monotonic time after which work should stop.

    A deadline can also be cancelled explicitly; waiters blocked in wait()
    wake up immediately when that happens.
    """

    def __init__(self, timeout_s: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.timeout_s = max(0.0, float(timeout_s))
        self.started_at = clock()
        self.expires_at = self.started_at + self.timeout_s
        self._cancelled = threading.Event()

    @classmethod
    def coerce(cls, value: Union["Deadline", float, int, None], default_s: float) -> "Deadline":
        """Accept a Deadline, a number of seconds, or None (use default_s)."""
        if isinstance(value, Deadline):
            return value
        return cls(default_s if value is None else float(value))

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def elapsed(self) -> float:
        return self._clock() - self.started_at

    def remaining(self) -> float:
        if self._cancelled.is_set():
            return 0.0
        return max(0.0, self.expires_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def cancel(self) -> None:
        self._cancelled.set()

    def wait(self, seconds: float) -> bool:
        """Block for up to `seconds`. Returns True if cancelled meanwhile."""
        if seconds <= 0:
            return self._cancelled.is_set()
        return self._cancelled.wait(seconds)

    def child(self, timeout_s: Optional[float] = None) -> "Deadline":
        """A nested deadline that never outlives this one."""
        budget = self.remaining()
        if timeout_s is not None:
            budget = min(budget, timeout_s)
        return Deadline(budget, clock=self._clock)

    def __repr__(self) -> str:
        return f"Deadline(timeout_s={self.timeout_s:.2f}, remaining={self.remaining():.2f})"
