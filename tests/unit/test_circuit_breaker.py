"""Unit tests for the shared circuit breaker."""

from __future__ import annotations

import pytest

from src.models.task import TaskErrorType
from src.utils.circuit_breaker import (
    CLOSED,
    BreakerState,
    CircuitBreaker,
    record_failure,
    should_block,
)
from tests.conftest import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def breaker(clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker(threshold=3, cooldown_seconds=60.0, clock=clock)


# ======================================================================
# Pure decision functions
# ======================================================================


class TestPureFunctions:
    def test_closed_state_never_blocks(self) -> None:
        blocked, state = should_block(CLOSED, now=5.0, cooldown_seconds=60.0)
        assert blocked is False
        assert state is CLOSED

    def test_open_within_cooldown_blocks(self) -> None:
        state = BreakerState(failures=3, last_failure=100.0, is_open=True)
        blocked, kept = should_block(state, now=130.0, cooldown_seconds=60.0)
        assert blocked is True
        assert kept is state

    def test_open_after_cooldown_resets(self) -> None:
        state = BreakerState(failures=3, last_failure=100.0, is_open=True)
        blocked, kept = should_block(state, now=161.0, cooldown_seconds=60.0)
        assert blocked is False
        assert kept == CLOSED

    def test_non_breaker_errors_do_not_count(self) -> None:
        for error_type in (TaskErrorType.RATE_LIMIT, TaskErrorType.TIMEOUT, TaskErrorType.UNKNOWN):
            assert record_failure(CLOSED, error_type, now=1.0, threshold=3) is CLOSED

    def test_opens_at_threshold(self) -> None:
        state = CLOSED
        for _ in range(3):
            state = record_failure(state, TaskErrorType.BILLING_LIMIT, now=1.0, threshold=3)
        assert state.is_open is True
        assert state.failures == 3


# ======================================================================
# CircuitBreaker
# ======================================================================


class TestCircuitBreaker:
    def test_initially_closed(self, breaker: CircuitBreaker) -> None:
        assert breaker.allow_request() is True
        status = breaker.status()
        assert status.is_open is False
        assert status.failures == 0
        assert status.reset_in_seconds is None

    def test_opens_after_three_memory_failures(self, breaker: CircuitBreaker) -> None:
        for _ in range(3):
            breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        assert breaker.allow_request() is False
        assert breaker.status().is_open is True

    def test_two_failures_keep_it_closed(self, breaker: CircuitBreaker) -> None:
        breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        breaker.record_failure(TaskErrorType.BILLING_LIMIT)
        assert breaker.allow_request() is True

    def test_rate_limits_never_open_it(self, breaker: CircuitBreaker) -> None:
        for _ in range(10):
            breaker.record_failure(TaskErrorType.RATE_LIMIT)
        assert breaker.allow_request() is True
        assert breaker.status().failures == 0

    def test_success_ends_failure_streak(self, breaker: CircuitBreaker) -> None:
        breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        breaker.record_success()
        breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        assert breaker.allow_request() is True
        assert breaker.status().failures == 1

    def test_auto_reset_after_cooldown(self, breaker: CircuitBreaker, clock: FakeClock) -> None:
        for _ in range(3):
            breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        clock.now += 30
        assert breaker.allow_request() is False
        assert breaker.status().reset_in_seconds == pytest.approx(30.0)

        clock.now += 31
        assert breaker.allow_request() is True
        assert breaker.status().failures == 0

    def test_status_does_not_reset(self, breaker: CircuitBreaker, clock: FakeClock) -> None:
        for _ in range(3):
            breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        clock.now += 120
        status = breaker.status()
        assert status.is_open is True
        assert status.reset_in_seconds == 0.0

    def test_manual_reset(self, breaker: CircuitBreaker) -> None:
        for _ in range(3):
            breaker.record_failure(TaskErrorType.MEMORY_LIMIT)
        breaker.reset()
        assert breaker.allow_request() is True
        assert breaker.status().failures == 0
