"""
Tests for the bounded-retry polling verifier.
"""

import time

import pytest

from polling.poll import PollOutcome, poll_until
from runtime.deadline import Deadline
from runtime.errors import CallError, DeadlineExceeded


def always_fail():
    raise CallError("not ready")


def failing_until(k, value="frame"):
    """Operation that fails k-1 times then returns value."""
    calls = {"n": 0}

    def op():
        calls["n"] += 1
        if calls["n"] < k:
            raise CallError(f"attempt {calls['n']} not ready")
        return value

    return op, calls


class TestAtLeastOnce:
    def test_zero_timeout_still_attempts(self, fake_clock):
        """timeout=0 makes exactly one attempt before giving up."""
        op, calls = failing_until(5)

        outcome = poll_until(op, timeout=0, interval=0.1, clock=fake_clock, sleep=fake_clock.sleep)

        assert calls["n"] == 1
        assert outcome.ok is False
        assert outcome.attempts == 1

    def test_zero_timeout_can_succeed(self, fake_clock):
        outcome = poll_until(lambda: 42, timeout=0, interval=0.1, clock=fake_clock, sleep=fake_clock.sleep)

        assert outcome.ok is True
        assert outcome.value == 42

    def test_timeout_smaller_than_interval(self, fake_clock):
        op, calls = failing_until(10)

        outcome = poll_until(op, timeout=0.25, interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)

        assert calls["n"] == 1
        assert not outcome.ok
        assert outcome.elapsed_s == pytest.approx(0.25)


class TestDeadline:
    def test_always_failing_respects_bounds(self, fake_clock):
        """DeadlineExceeded lands between timeout and timeout + interval."""
        outcome = poll_until(always_fail, timeout=1.0, interval=0.25, clock=fake_clock, sleep=fake_clock.sleep)

        assert outcome.ok is False
        assert 1.0 <= outcome.elapsed_s <= 1.25
        # attempts at 0, 0.25, 0.5, 0.75; the tick at 1.0 loses to the deadline
        assert outcome.attempts == 4
        assert "not ready" in outcome.last_error

    def test_always_failing_real_clock(self):
        start = time.monotonic()
        outcome = poll_until(always_fail, timeout=0.3, interval=0.1)
        elapsed = time.monotonic() - start

        assert not outcome.ok
        assert elapsed >= 0.3
        assert elapsed < 1.0
        assert outcome.attempts >= 2

    def test_unwrap_raises_with_context(self, fake_clock):
        outcome = poll_until(
            always_fail, timeout=0.5, interval=0.25, name="GetImage",
            clock=fake_clock, sleep=fake_clock.sleep,
        )

        with pytest.raises(DeadlineExceeded) as excinfo:
            outcome.unwrap()

        assert excinfo.value.name == "GetImage"
        assert excinfo.value.timeout_s == 0.5
        assert "GetImage" in str(excinfo.value)
        assert "not ready" not in str(excinfo.value)

    def test_outer_deadline_shortens_budget(self, fake_clock):
        outer = Deadline(0.5, clock=fake_clock)

        outcome = poll_until(
            always_fail, timeout=5.0, interval=0.25, deadline=outer,
            clock=fake_clock, sleep=fake_clock.sleep,
        )

        assert outcome.timeout_s == pytest.approx(0.5)
        assert 0.5 <= outcome.elapsed_s <= 0.75

    def test_cancelled_deadline_stops_retries(self, fake_clock):
        outer = Deadline(10.0, clock=fake_clock)
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            outer.cancel()
            raise CallError("not ready")

        outcome = poll_until(op, timeout=5.0, interval=0.25, deadline=outer,
                             clock=fake_clock, sleep=fake_clock.sleep)

        assert not outcome.ok
        assert calls["n"] == 1

    def test_cancel_interrupts_real_wait(self):
        outer = Deadline(10.0)

        def op():
            outer.cancel()
            raise CallError("not ready")

        start = time.monotonic()
        outcome = poll_until(op, timeout=5.0, interval=2.0, deadline=outer)

        assert not outcome.ok
        assert time.monotonic() - start < 1.0


class TestEventualSuccess:
    def test_success_on_kth_attempt_returns_early(self, fake_clock):
        op, calls = failing_until(3)

        outcome = poll_until(op, timeout=10.0, interval=0.5, clock=fake_clock, sleep=fake_clock.sleep)

        assert outcome.ok is True
        assert outcome.value == "frame"
        assert outcome.attempts == 3
        assert outcome.elapsed_s == pytest.approx(1.0)
        assert fake_clock.now < 10.0

    def test_predicate_miss_is_retried(self, fake_clock):
        results = iter([[], [], ["img"]])

        outcome = poll_until(
            lambda: next(results), lambda r: len(r) > 0,
            timeout=5.0, interval=0.25, clock=fake_clock, sleep=fake_clock.sleep,
        )

        assert outcome.ok
        assert outcome.value == ["img"]
        assert outcome.attempts == 3

    def test_predicate_never_satisfied(self, fake_clock):
        outcome = poll_until(
            lambda: [], lambda r: len(r) > 0,
            timeout=0.5, interval=0.25, clock=fake_clock, sleep=fake_clock.sleep,
        )

        assert not outcome.ok
        assert outcome.last_error == "result rejected by predicate"

    def test_outcome_is_truthy_only_on_success(self, fake_clock):
        assert bool(PollOutcome.success("x", 1, 0.0, 1.0)) is True
        assert bool(PollOutcome.deadline_exceeded(1, 1.0, 1.0)) is False


class TestTicking:
    def test_attempts_follow_fixed_grid(self, fake_clock):
        """Fast operations start on start + k * interval."""
        starts = []

        def op():
            starts.append(fake_clock.now)
            fake_clock.advance(0.125)
            raise CallError("not ready")

        poll_until(op, timeout=1.0, interval=0.5, clock=fake_clock, sleep=fake_clock.sleep)

        assert starts == [0.0, 0.5]

    def test_slow_operation_never_overlaps(self, fake_clock):
        starts = []

        def op():
            starts.append(fake_clock.now)
            fake_clock.advance(0.75)
            raise CallError("slow")

        poll_until(op, timeout=2.0, interval=0.25, clock=fake_clock, sleep=fake_clock.sleep)

        assert starts == [0.0, 0.75, 1.5]
        for earlier, later in zip(starts, starts[1:]):
            assert later - earlier >= 0.75

    def test_unexpected_errors_propagate(self, fake_clock):
        def op():
            raise TypeError("bug in the check itself")

        with pytest.raises(TypeError):
            poll_until(op, timeout=1.0, interval=0.25, clock=fake_clock, sleep=fake_clock.sleep)

    def test_custom_retry_on(self, fake_clock):
        op_calls = {"n": 0}

        def op():
            op_calls["n"] += 1
            if op_calls["n"] == 1:
                raise ConnectionError("reset")
            return "ok"

        outcome = poll_until(op, timeout=1.0, interval=0.25, retry_on=(ConnectionError,),
                             clock=fake_clock, sleep=fake_clock.sleep)

        assert outcome.ok
        assert outcome.attempts == 2

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            poll_until(lambda: 1, timeout=1.0, interval=0)
