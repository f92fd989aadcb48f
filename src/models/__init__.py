"""Festival research domain models: re-exports all public model classes.

This __init__.py is the single public entry point for the domain models.
Instead of importing models from their individual module files (e.g.
``from src.models.research import ResearchState``), other parts of the
codebase can import directly from ``src.models``.

The models are organized across three submodules by domain concern:
    - research.py    Research phases, findings and the ResearchState
    - task.py        Remote task results, error taxonomy, breaker status
    - validation.py  Typed AI judgments (company, person, content, ...)

The ``__all__`` list at the bottom controls what ``from src.models import *``
exports. If you add a new model class, remember to add it here too.
"""

from __future__ import annotations

# --- Research models: the phase state machine and everything a run finds. ---
from src.models.research import (
    PHASE_ORDER,
    CalendarResults,
    CalendarSource,
    CompanyDiscoveryScore,
    CompanyPage,
    ConfidenceLevel,
    Connection,
    ConnectionResults,
    ConnectionRole,
    ConnectionsScore,
    DataCompletenessScore,
    DiscoverySource,
    EmploymentVerification,
    MatchType,
    NewsArticle,
    NewsQualityScore,
    NewsResults,
    OrganizingCompany,
    QualityScore,
    ResearchNote,
    ResearchPhase,
    ResearchState,
)
# --- Task models: outcome of resilient remote task calls. ---
from src.models.task import (
    BREAKER_ERROR_TYPES,
    CircuitBreakerStatus,
    TaskError,
    TaskErrorType,
    TaskRunResult,
)
# --- Validation models: strictly-typed AI judgments. ---
from src.models.validation import (
    CompanyValidation,
    ConfidenceJudgment,
    ContentValidation,
    FindingsSummary,
    PersonValidation,
    RetryStep,
    RetryStrategy,
)

__all__ = [
    "BREAKER_ERROR_TYPES",
    "PHASE_ORDER",
    "CalendarResults",
    "CalendarSource",
    "CircuitBreakerStatus",
    "CompanyDiscoveryScore",
    "CompanyPage",
    "CompanyValidation",
    "ConfidenceJudgment",
    "ConfidenceLevel",
    "Connection",
    "ConnectionResults",
    "ConnectionRole",
    "ConnectionsScore",
    "ContentValidation",
    "DataCompletenessScore",
    "DiscoverySource",
    "EmploymentVerification",
    "FindingsSummary",
    "MatchType",
    "NewsArticle",
    "NewsQualityScore",
    "NewsResults",
    "OrganizingCompany",
    "PersonValidation",
    "QualityScore",
    "ResearchNote",
    "ResearchPhase",
    "ResearchState",
    "RetryStep",
    "RetryStrategy",
    "TaskError",
    "TaskErrorType",
    "TaskRunResult",
]
