"""Research progress tracking with callback-based listener notification.

Stores the latest :class:`ResearchState` snapshot per festival and
broadcasts every snapshot to registered listener callbacks.

# ─── HOW PROGRESS TRACKING WORKS ──────────────────────────────────────
#
# This implements the Observer pattern:
#
#   Orchestrator ──publish(state)──→ ProgressTracker ──callback(state)──→ CLI printer
#                                                     ──→ (any other listener)
#
# Data flow:
#   1. The orchestrator awaits tracker.publish(state) after every mutation
#   2. ProgressTracker stores the snapshot and calls all registered listeners
#   3. publish() returns only after every listener has run, so a listener
#      always sees a state before the orchestrator moves on
#
# Key design decisions:
#   - Snapshots are frozen pydantic models, safe to keep after the run moves on
#   - Listener errors are caught and logged → one broken listener can't
#     block the pipeline or crash other listeners
#   - Both sync and async callbacks are supported (asyncio.iscoroutine check)
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from src.models.research import ResearchState
from src.utils.logging import get_logger

ProgressCallback = Callable[[ResearchState], Any]


class ProgressTracker:
    """Tracks and broadcasts research progress via callbacks."""

    def __init__(self) -> None:
        # Latest snapshot per festival_id
        self._latest: dict[str, ResearchState] = {}
        self._listeners: list[ProgressCallback] = []
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def publish(self, state: ResearchState) -> None:
        """Record a state snapshot and notify all registered listeners."""
        self._latest[state.festival_id] = state

        self._logger.debug(
            "progress_update",
            festival_id=state.festival_id,
            phase=state.phase.value,
            errors=len(state.errors),
            warnings=len(state.warnings),
        )

        await self._notify_listeners(state)

    def register_listener(self, callback: ProgressCallback) -> None:
        """Register a sync or async callable accepting a ``ResearchState``."""
        if callback not in self._listeners:
            self._listeners.append(callback)
            self._logger.debug("listener_registered", total_listeners=len(self._listeners))

    def unregister_listener(self, callback: ProgressCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)
            self._logger.debug("listener_unregistered", remaining_listeners=len(self._listeners))

    def latest(self, festival_id: str) -> ResearchState | None:
        """The most recently published snapshot for a festival, if any."""
        return self._latest.get(festival_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, state: ResearchState) -> None:
        """Invoke all listeners in registration order.

        Listeners that raise are logged and skipped so a single faulty
        listener cannot stop the research run.
        """
        for callback in list(self._listeners):
            try:
                result = callback(state)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    festival_id=state.festival_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
