"""Models for remote task execution results and the circuit breaker.

The resilient task client (src/services/resilient_task_client.py) never
raises to its callers: every call returns a :class:`TaskRunResult`, and
failures are described by a structured :class:`TaskError` whose
``error_type`` drives the retry and circuit-breaker decisions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskErrorType(str, Enum):  # noqa: UP042
    """Failure categories recognised by the resilient task client."""

    MEMORY_LIMIT = "actor-memory-limit-exceeded"
    BILLING_LIMIT = "billing-limit-exceeded"
    RATE_LIMIT = "rate-limit-exceeded"
    TIMEOUT = "timeout"
    NOT_FOUND = "not-found"
    UNKNOWN = "unknown"


# Only these two categories count towards opening the circuit breaker.
BREAKER_ERROR_TYPES: frozenset[TaskErrorType] = frozenset(
    {TaskErrorType.MEMORY_LIMIT, TaskErrorType.BILLING_LIMIT}
)


class TaskError(BaseModel):
    """A classified remote-task failure."""

    model_config = ConfigDict(frozen=True)

    error_type: TaskErrorType
    message: str
    status_code: int | None = None
    # Whether the client may retry the call after a backoff delay.
    retryable: bool = False
    suggested_action: str | None = None
    # True for the synthetic error returned while the breaker is open;
    # the transport was never contacted.
    circuit_open: bool = False


class TaskRunResult(BaseModel):
    """Outcome of :meth:`ResilientTaskClient.run_task`.

    ``data`` holds the run's output records on success; ``error`` holds the
    last classified failure otherwise.  ``attempts`` is 0 when the call was
    refused before dispatch (breaker open, transport not configured).
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    data: list[dict[str, Any]] = Field(default_factory=list)
    error: TaskError | None = None
    attempts: int = 0
    duration_ms: int = 0


class CircuitBreakerStatus(BaseModel):
    """Read-only snapshot of the shared circuit breaker."""

    model_config = ConfigDict(frozen=True)

    is_open: bool
    failures: int
    # Seconds until the breaker auto-resets; only set while open.
    reset_in_seconds: float | None = None
