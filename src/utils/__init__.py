"""Utility modules for the festival research orchestrator.

Available utility modules (all re-exported here for convenience):

- **circuit_breaker** -- Process-wide breaker that fails fast after repeated
  memory-limit or billing-limit failures of the remote task platform.
- **confidence** -- Weighted scoring math, per-phase confidence formulas and
  the run-level confidence with its three-band level.
- **errors** -- Domain-specific exception hierarchy rooted at
  FestivalResearchError; adapters raise their own subclass so services can
  absorb failures without broad ``except Exception`` blocks.
- **concurrency** -- asyncio semaphore throttling for fan-out of remote
  task calls.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **quality_metrics** (not re-exported here) -- The 0--100 research quality
  score, its display bands and improvement suggestions.
"""

# -- Circuit breaker -------------------------------------------------------
from src.utils.circuit_breaker import CircuitBreaker

# -- Confidence scoring utilities ------------------------------------------
from src.utils.confidence import (
    calculate_confidence,
    calculate_run_confidence,
    confidence_to_level,
)

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    FestivalResearchError,
    LLMError,
    PipelineError,
    RateLimitError,
    ResearchError,
    TaskExecutionError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import throttled_gather

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "CircuitBreaker",
    "ConfigurationError",
    "FestivalResearchError",
    "LLMError",
    "PipelineError",
    "RateLimitError",
    "ResearchError",
    "TaskExecutionError",
    "calculate_confidence",
    "calculate_run_confidence",
    "confidence_to_level",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
