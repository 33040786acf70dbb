"""
Bounded-retry polling.

poll_until() keeps calling an operation on a fixed tick until the result
satisfies a predicate or the time budget runs out. Transient failures are
treated as "not ready yet" and retried; only running out of time is terminal.

Timing rules:
- The first attempt happens immediately, so there is always at least one.
- Later attempts land on the grid start + k * interval. If an attempt runs
  past a tick, the next attempt starts as soon as the slow one returns and
  any further ticks missed meanwhile are dropped. Attempts never overlap.
- The deadline is checked before every attempt and wins ties with a tick.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Tuple, Type, TypeVar

from runtime.deadline import Deadline
from runtime.errors import CallError, DeadlineExceeded

T = TypeVar("T")


@dataclass
class PollOutcome(Generic[T]):
    """
    Terminal result of one poll_until run.

    Attributes:
        ok: True if a result satisfied the predicate.
        value: That result (None when ok is False).
        attempts: Number of times the operation was invoked.
        elapsed_s: Time from the first attempt to the outcome.
        timeout_s: The effective time budget.
        last_error: Text of the last absorbed failure, for debugging only.
        name: Label used in reports.
    """
    ok: bool
    value: Optional[T]
    attempts: int
    elapsed_s: float
    timeout_s: float
    last_error: Optional[str] = None
    name: str = "poll"

    @classmethod
    def success(cls, value: T, attempts: int, elapsed_s: float, timeout_s: float, name: str = "poll") -> "PollOutcome[T]":
        return cls(True, value, attempts, elapsed_s, timeout_s, None, name)

    @classmethod
    def deadline_exceeded(
        cls,
        attempts: int,
        elapsed_s: float,
        timeout_s: float,
        last_error: Optional[str] = None,
        name: str = "poll",
    ) -> "PollOutcome[T]":
        return cls(False, None, attempts, elapsed_s, timeout_s, last_error, name)

    def unwrap(self) -> T:
        """
        Raises:
            DeadlineExceeded: the poll did not succeed.
        """
        if not self.ok:
            raise DeadlineExceeded(self.name, self.elapsed_s, self.timeout_s, self.attempts)
        return self.value

    def __bool__(self) -> bool:
        return self.ok


def poll_until(
    operation: Callable[[], T],
    predicate: Optional[Callable[[T], bool]] = None,
    *,
    timeout: float,
    interval: float,
    deadline: Optional[Deadline] = None,
    retry_on: Tuple[Type[BaseException], ...] = (CallError,),
    name: str = "poll",
    clock: Callable[[], float] = time.monotonic,
    sleep: Optional[Callable[[float], Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> PollOutcome[T]:
    """
    Call `operation` until `predicate(result)` holds or `timeout` elapses.

    Args:
        operation: Zero-argument callable to retry.
        predicate: Acceptance test for a result; None accepts any result.
        timeout: Time budget in seconds (0 still allows one attempt).
        interval: Spacing between attempt start times, in seconds.
        deadline: Outer deadline; shortens the budget and interrupts waits
            when cancelled.
        retry_on: Exception types treated as "not ready yet". Anything else
            propagates.
        name: Label for logs and DeadlineExceeded.
        clock, sleep: Injectable time sources.

    Returns:
        PollOutcome: success with the accepted value, or deadline exceeded.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    log = logger or logging.getLogger(__name__)
    start = clock()
    budget = max(0.0, timeout)
    if deadline is not None:
        budget = min(budget, deadline.remaining())
    end = start + budget

    def cancelled() -> bool:
        return deadline is not None and deadline.cancelled

    def wait(seconds: float) -> None:
        if sleep is not None:
            sleep(seconds)
        elif deadline is not None:
            deadline.wait(seconds)
        else:
            time.sleep(seconds)

    attempts = 0
    last_error: Optional[str] = None

    while True:
        attempts += 1
        attempt_start = clock()
        try:
            result = operation()
        except retry_on as e:
            last_error = f"{type(e).__name__}: {e}"
            log.debug(f"{name}: attempt {attempts} not ready: {last_error}")
        else:
            if predicate is None or predicate(result):
                elapsed = clock() - start
                log.debug(f"{name}: succeeded on attempt {attempts} after {elapsed:.2f}s")
                return PollOutcome.success(result, attempts, elapsed, budget, name)
            last_error = "result rejected by predicate"
            log.debug(f"{name}: attempt {attempts} result rejected")

        # first tick after this attempt began; if the attempt overran it, the
        # next attempt starts right away and any further missed ticks are dropped
        next_tick = start + (math.floor((attempt_start - start) / interval) + 1) * interval

        while True:
            now = clock()
            if now >= end or cancelled():
                elapsed = now - start
                log.debug(f"{name}: deadline exceeded after {attempts} attempt(s), {elapsed:.2f}s")
                return PollOutcome.deadline_exceeded(attempts, elapsed, budget, last_error, name)
            if now >= next_tick:
                break
            wait(min(next_tick, end) - now)
