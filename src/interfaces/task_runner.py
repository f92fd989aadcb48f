"""Abstract base class for managed remote-task platforms.

A task runner executes a named automation task (an Apify actor, for
example) with a JSON input and hands back the run's terminal status and
output records.  The orchestrator never talks to a runner directly: every
call goes through :class:`~src.services.resilient_task_client.ResilientTaskClient`,
which adds retries, backoff and the circuit breaker on top of this contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

# Terminal status reported by a successful run.
SUCCEEDED = "SUCCEEDED"


@dataclass(frozen=True)
class TaskRun:
    """Terminal state of one remote task run.

    Attributes
    ----------
    status:
        Platform status string, e.g. ``"SUCCEEDED"``, ``"FAILED"``,
        ``"TIMED-OUT"``, ``"ABORTED"``.
    output_records:
        The records the run produced; empty unless the run succeeded.
    """

    status: str
    output_records: list[dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


# Concrete implementation: ApifyTaskRunner (src/providers/task_runner/)
class ITaskRunner(ABC):
    """Contract for remote-task platforms used by the research pipeline."""

    @abstractmethod
    async def run_task(self, task_id: str, task_input: dict[str, Any]) -> TaskRun:
        """Run ``task_id`` with ``task_input`` and wait for it to finish.

        Parameters
        ----------
        task_id:
            Platform identifier of the task, e.g. ``"apify/rag-web-browser"``.
        task_input:
            JSON-serialisable input object for the task.

        Returns
        -------
        TaskRun
            The terminal status and output records.  A non-success status is
            returned, not raised.

        Raises
        ------
        src.utils.errors.TaskExecutionError
            If the platform rejects or fails the call; ``status_code`` and
            the message carry enough detail to classify the failure.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"apify"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
