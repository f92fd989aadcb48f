"""Resilient client for the managed remote-task platform.

Wraps an :class:`ITaskRunner` with:

- a shared circuit breaker that fails fast after repeated memory-limit or
  billing-limit failures (src/utils/circuit_breaker.py),
- classification of every failure into a :class:`TaskErrorType`,
- exponential backoff with jitter for retryable failures,
- a per-call timeout.

``run_task`` never raises: callers always receive a :class:`TaskRunResult`
and decide for themselves how to degrade.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from src.interfaces.task_runner import ITaskRunner, TaskRun
from src.models.task import CircuitBreakerStatus, TaskError, TaskErrorType, TaskRunResult
from src.utils.circuit_breaker import CircuitBreaker
from src.utils.errors import TaskExecutionError
from src.utils.logging import get_logger

SleepFunc = Callable[[float], Awaitable[None]]

_TIMEOUT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TimeoutException,
)


class TaskClientConfig(BaseModel):
    """Retry, backoff and breaker tuning for :class:`ResilientTaskClient`."""

    model_config = ConfigDict(frozen=True)

    circuit_breaker_threshold: int = 3
    circuit_breaker_cooldown_seconds: float = 60.0
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    backoff_max_jitter_seconds: float = 0.5
    default_max_retries: int = 2
    call_timeout_seconds: float | None = 300.0

    @classmethod
    def from_config(cls, config: dict) -> TaskClientConfig:
        """Build from the ``task_platform`` section of the merged config."""
        section = config.get("task_platform", {}) or {}
        fields = {k: v for k, v in section.items() if k in cls.model_fields}
        return cls(**fields)


def classify_error(exc: BaseException) -> TaskError:
    """Map any exception raised while running a task to a :class:`TaskError`.

    Uses the exception's ``status_code`` attribute (if present) and its
    message text.  Only rate-limit, timeout and 5xx unknown failures are
    retryable.
    """
    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()
    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int):
        status_code = None

    if (
        "memory-limit-exceeded" in lowered
        or "exceed the memory limit" in lowered
        or "memory limit" in lowered
        or status_code == 402
    ):
        return TaskError(
            error_type=TaskErrorType.MEMORY_LIMIT,
            message="Task platform memory limit exceeded. Consider upgrading your plan.",
            status_code=402,
            retryable=False,
            suggested_action="Try with lower memory settings or wait for limits to reset",
        )

    if "billing" in lowered or "subscription" in lowered:
        return TaskError(
            error_type=TaskErrorType.BILLING_LIMIT,
            message="Task platform billing limit reached",
            status_code=status_code,
            retryable=False,
            suggested_action="Check the platform subscription and billing limits",
        )

    if status_code == 429 or "rate limit" in lowered or "rate-limit" in lowered:
        return TaskError(
            error_type=TaskErrorType.RATE_LIMIT,
            message="Rate limit exceeded",
            status_code=429,
            retryable=True,
            suggested_action="Wait and retry",
        )

    if (
        isinstance(exc, _TIMEOUT_EXCEPTIONS)
        or "timeout" in lowered
        or "timed out" in lowered
        or "timed-out" in lowered
        or "etimedout" in lowered
    ):
        return TaskError(
            error_type=TaskErrorType.TIMEOUT,
            message="Request timed out",
            status_code=status_code,
            retryable=True,
            suggested_action="Retry with longer timeout",
        )

    if status_code == 404 or "not found" in lowered or "not-found" in lowered:
        return TaskError(
            error_type=TaskErrorType.NOT_FOUND,
            message=message,
            status_code=404,
            retryable=False,
            suggested_action="Check the task identifier",
        )

    return TaskError(
        error_type=TaskErrorType.UNKNOWN,
        message=message,
        status_code=status_code,
        retryable=status_code is not None and status_code >= 500,
    )


class ResilientTaskClient:
    """Retrying, breaker-guarded front for an :class:`ITaskRunner`.

    Construct one per process and share it: the circuit breaker it owns is
    the only piece of state deliberately shared between research runs.
    ``sleep_func`` and ``rng`` are injectable so tests can observe backoff
    delays without waiting.
    """

    def __init__(
        self,
        runner: ITaskRunner,
        config: TaskClientConfig | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        sleep_func: SleepFunc | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._runner = runner
        self._config = config or TaskClientConfig()
        self._breaker = circuit_breaker or CircuitBreaker(
            threshold=self._config.circuit_breaker_threshold,
            cooldown_seconds=self._config.circuit_breaker_cooldown_seconds,
        )
        self._sleep: SleepFunc = sleep_func or asyncio.sleep
        self._rng = rng or random.Random()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # -- Public API -----------------------------------------------------------

    def is_configured(self) -> bool:
        return self._runner.is_available()

    async def run_task(
        self,
        task_id: str,
        task_input: dict[str, Any],
        max_retries: int | None = None,
        timeout_seconds: float | None = None,
    ) -> TaskRunResult:
        """Run a remote task with retries, backoff and the circuit breaker.

        Parameters
        ----------
        task_id:
            Platform identifier of the task.
        task_input:
            JSON input for the task.
        max_retries:
            Total number of attempts allowed (default from config, 2).
        timeout_seconds:
            Per-attempt timeout; defaults to ``call_timeout_seconds``.

        Returns
        -------
        TaskRunResult
            ``success=True`` with the output records, or ``success=False``
            with the last classified error.
        """
        start = time.monotonic()
        budget = max(1, max_retries if max_retries is not None else self._config.default_max_retries)
        timeout = timeout_seconds if timeout_seconds is not None else self._config.call_timeout_seconds

        if not self._breaker.allow_request():
            self._logger.warning("task_blocked_by_circuit_breaker", task_id=task_id)
            return TaskRunResult(
                success=False,
                error=TaskError(
                    error_type=TaskErrorType.MEMORY_LIMIT,
                    message="Task platform temporarily unavailable (circuit breaker open)",
                    retryable=False,
                    suggested_action="Wait for the cooldown period or check platform billing",
                    circuit_open=True,
                ),
                attempts=0,
                duration_ms=_elapsed_ms(start),
            )

        if not self._runner.is_available():
            return TaskRunResult(
                success=False,
                error=TaskError(
                    error_type=TaskErrorType.UNKNOWN,
                    message="Task platform client not configured",
                    retryable=False,
                ),
                attempts=0,
                duration_ms=_elapsed_ms(start),
            )

        attempts = 0
        last_error: TaskError | None = None

        while attempts < budget:
            attempts += 1
            try:
                self._logger.debug("task_dispatch", task_id=task_id, attempt=attempts, max_attempts=budget)
                run = await self._dispatch(task_id, task_input, timeout)
                if not run.succeeded:
                    raise TaskExecutionError(
                        message=f"Task run failed with status: {run.status}",
                        provider_name=self._runner.get_provider_name(),
                    )

                self._breaker.record_success()
                self._logger.info(
                    "task_succeeded",
                    task_id=task_id,
                    attempts=attempts,
                    records=len(run.output_records),
                )
                return TaskRunResult(
                    success=True,
                    data=run.output_records,
                    attempts=attempts,
                    duration_ms=_elapsed_ms(start),
                )
            except Exception as exc:
                last_error = classify_error(exc)
                self._logger.warning(
                    "task_attempt_failed",
                    task_id=task_id,
                    attempt=attempts,
                    error_type=last_error.error_type.value,
                    error=last_error.message,
                )
                self._breaker.record_failure(last_error.error_type)

                if not last_error.retryable:
                    break

                if attempts < budget:
                    delay = self.backoff_delay(attempts)
                    self._logger.info("task_retry_backoff", task_id=task_id, delay_seconds=round(delay, 3))
                    await self._sleep(delay)

        return TaskRunResult(
            success=False,
            error=last_error,
            attempts=attempts,
            duration_ms=_elapsed_ms(start),
        )

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        jitter = self._rng.random() * self._config.backoff_max_jitter_seconds
        delay = self._config.backoff_base_seconds * (2**attempt) + jitter
        return min(delay, self._config.backoff_max_seconds)

    def get_circuit_breaker_status(self) -> CircuitBreakerStatus:
        return self._breaker.status()

    def reset_circuit_breaker(self) -> None:
        self._breaker.reset()

    # -- Private helpers -------------------------------------------------------

    async def _dispatch(
        self,
        task_id: str,
        task_input: dict[str, Any],
        timeout: float | None,
    ) -> TaskRun:
        if timeout is None:
            return await self._runner.run_task(task_id, task_input)
        return await asyncio.wait_for(self._runner.run_task(task_id, task_input), timeout=timeout)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
