"""Circuit breaker shared by every caller of the remote task platform.

The breaker only counts failures that will not go away by retrying --
memory-limit and billing-limit errors.  After ``threshold`` consecutive
such failures it opens and refuses all calls for ``cooldown_seconds``; the
first call attempted after the cooldown resets it.

The decision logic lives in two pure functions, :func:`should_block` and
:func:`record_failure`, operating on an immutable :class:`BreakerState`.
:class:`CircuitBreaker` owns the current state behind a lock so a single
instance can be shared by reference across orchestrators (and threads, if
a caller runs event loops in worker threads).
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

import structlog

from src.models.task import BREAKER_ERROR_TYPES, CircuitBreakerStatus, TaskErrorType
from src.utils.logging import get_logger

DEFAULT_THRESHOLD = 3
DEFAULT_COOLDOWN_SECONDS = 60.0

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class BreakerState:
    """Immutable snapshot of the breaker's counters."""

    failures: int = 0
    last_failure: float = 0.0
    is_open: bool = False


CLOSED = BreakerState()


def should_block(state: BreakerState, now: float, cooldown_seconds: float) -> tuple[bool, BreakerState]:
    """Decide whether a call must be refused.

    Returns the decision together with the state to keep: an open breaker
    whose cooldown has elapsed is replaced by a closed one.
    """
    if not state.is_open:
        return False, state
    if now - state.last_failure > cooldown_seconds:
        return False, CLOSED
    return True, state


def record_failure(
    state: BreakerState,
    error_type: TaskErrorType,
    now: float,
    threshold: int,
) -> BreakerState:
    """Return the state after a failed call of ``error_type``.

    Failures outside :data:`BREAKER_ERROR_TYPES` leave the state unchanged.
    """
    if error_type not in BREAKER_ERROR_TYPES:
        return state
    failures = state.failures + 1
    return BreakerState(
        failures=failures,
        last_failure=now,
        is_open=state.is_open or failures >= threshold,
    )


def record_success(state: BreakerState) -> BreakerState:
    """A successful call ends the consecutive-failure streak."""
    if state.is_open or state.failures == 0:
        return state
    return replace(state, failures=0)


class CircuitBreaker:
    """Thread-safe holder for a :class:`BreakerState`."""

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._threshold = threshold
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CLOSED

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown_seconds

    def allow_request(self) -> bool:
        """Return ``False`` while the breaker is open.

        Has the side effect of closing an open breaker whose cooldown has
        elapsed.
        """
        with self._lock:
            blocked, new_state = should_block(self._state, self._clock(), self._cooldown_seconds)
            if new_state is not self._state:
                _logger.info("circuit_breaker_auto_reset", failures=self._state.failures)
            self._state = new_state
            return not blocked

    def record_failure(self, error_type: TaskErrorType) -> None:
        with self._lock:
            was_open = self._state.is_open
            self._state = record_failure(self._state, error_type, self._clock(), self._threshold)
            if self._state.is_open and not was_open:
                _logger.warning(
                    "circuit_breaker_open",
                    failures=self._state.failures,
                    cooldown_seconds=self._cooldown_seconds,
                )

    def record_success(self) -> None:
        with self._lock:
            self._state = record_success(self._state)

    def status(self) -> CircuitBreakerStatus:
        """Snapshot for introspection; does not reset an expired breaker."""
        with self._lock:
            state = self._state
            now = self._clock()
        reset_in: float | None = None
        if state.is_open:
            reset_in = max(0.0, self._cooldown_seconds - (now - state.last_failure))
        return CircuitBreakerStatus(
            is_open=state.is_open,
            failures=state.failures,
            reset_in_seconds=reset_in,
        )

    def reset(self) -> None:
        with self._lock:
            self._state = CLOSED
        _logger.info("circuit_breaker_manual_reset")
