"""Research state models for the festival research orchestrator.

Defines Pydantic v2 models for the research phases, the findings each phase
produces, and the single :class:`ResearchState` record that a run carries
from start to finish.  All models are frozen: the orchestrator advances the
state by producing new copies via ``model_copy(update={...})``, so any
snapshot handed to a progress listener stays valid after the run moves on.

Architecture note:
    ResearchState is owned by exactly one SelfHealingOrchestrator run
    (src/pipeline/orchestrator.py).  Findings start as ``None`` and are
    filled in phase by phase; the aggregate scores (overall_confidence,
    quality_score) are only written during VALIDATING_RESULTS.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.models.validation import (
    CompanyValidation,
    ConfidenceJudgment,
    ContentValidation,
    PersonValidation,
)


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# ResearchPhase: the state machine that drives a research run.
# ---------------------------------------------------------------------------
class ResearchPhase(str, Enum):  # noqa: UP042
    """Phases of a festival research run.

    The orchestrator moves strictly forward through these phases:
        NOT_STARTED → DISCOVERING_WEBSITE → EXTRACTING_COMPANY →
        SEARCHING_SOCIAL_COMPANY → SEARCHING_SOCIAL_EMPLOYEES →
        FETCHING_NEWS → VERIFYING_CALENDARS → VALIDATING_RESULTS →
        COMPLETED | FAILED
    """

    NOT_STARTED = "not_started"
    DISCOVERING_WEBSITE = "discovering_website"
    EXTRACTING_COMPANY = "extracting_company"
    SEARCHING_SOCIAL_COMPANY = "searching_social_company"
    SEARCHING_SOCIAL_EMPLOYEES = "searching_social_employees"
    FETCHING_NEWS = "fetching_news"
    VERIFYING_CALENDARS = "verifying_calendars"
    VALIDATING_RESULTS = "validating_results"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ResearchPhase.COMPLETED, ResearchPhase.FAILED)


# Forward order used to reject backward transitions.
PHASE_ORDER: tuple[ResearchPhase, ...] = (
    ResearchPhase.NOT_STARTED,
    ResearchPhase.DISCOVERING_WEBSITE,
    ResearchPhase.EXTRACTING_COMPANY,
    ResearchPhase.SEARCHING_SOCIAL_COMPANY,
    ResearchPhase.SEARCHING_SOCIAL_EMPLOYEES,
    ResearchPhase.FETCHING_NEWS,
    ResearchPhase.VERIFYING_CALENDARS,
    ResearchPhase.VALIDATING_RESULTS,
    ResearchPhase.COMPLETED,
    ResearchPhase.FAILED,
)


class ConfidenceLevel(str, Enum):  # noqa: UP042
    """Three-band level derived from a run's overall confidence."""

    HIGH = "high"      # >= 0.7
    MEDIUM = "medium"  # >= 0.4
    LOW = "low"


# ---------------------------------------------------------------------------
# Connections: people discovered around the organizing company.
# ---------------------------------------------------------------------------
class ConnectionRole(str, Enum):  # noqa: UP042
    """Coarse seniority classification from a profile's job title."""

    DECISION_MAKER = "decision_maker"
    MANAGER = "manager"
    TEAM_MEMBER = "team_member"
    UNKNOWN = "unknown"

    @property
    def priority(self) -> int:
        """Sort key: lower sorts first."""
        return _ROLE_PRIORITY[self]


_ROLE_PRIORITY = {
    ConnectionRole.DECISION_MAKER: 0,
    ConnectionRole.MANAGER: 1,
    ConnectionRole.TEAM_MEMBER: 2,
    ConnectionRole.UNKNOWN: 3,
}


class MatchType(str, Enum):  # noqa: UP042
    """How strongly a profile's text ties the person to the company."""

    EXPLICIT_EMPLOYMENT = "explicit_employment"
    TITLE_MATCH = "title_match"
    COMPANY_MENTION = "company_mention"
    UNVERIFIED = "unverified"


class DiscoverySource(str, Enum):  # noqa: UP042
    """Which search pass produced a connection."""

    COMPANY_EMPLOYEE_SEARCH = "company_employee_search"
    FESTIVAL_SEARCH = "festival_search"
    GENERAL_SEARCH = "general_search"


class EmploymentVerification(BaseModel):
    """Pattern-based evidence that a profile works at a company."""

    model_config = ConfigDict(frozen=True)

    is_verified: bool
    confidence: float = Field(ge=0.0, le=1.0)
    match_type: MatchType
    evidence: list[str] = Field(default_factory=list)


class Connection(BaseModel):
    """A candidate person associated with the festival or its organizer."""

    model_config = ConfigDict(frozen=True)

    name: str
    title: str | None = None
    url: str
    company: str | None = None
    role: ConnectionRole = ConnectionRole.UNKNOWN
    employment_verified: bool = False
    verification: EmploymentVerification | None = None
    discovered_via: DiscoverySource
    # Set when the AI validation service scored this person.
    validated: bool = False
    validation: PersonValidation | None = None


class ConnectionResults(BaseModel):
    """Ranked, truncated connection list plus the search confidence."""

    model_config = ConfigDict(frozen=True)

    connections: list[Connection] = Field(default_factory=list)
    # e.g. "Company: Acme Events" or "Festival: Lowlands"
    searched_with: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Company findings
# ---------------------------------------------------------------------------
class OrganizingCompany(BaseModel):
    """The legal entity believed to organize the festival."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    # Chamber-of-commerce (KvK) registration number, 8 digits.
    registration_number: str | None = None
    source_url: str | None = None
    validated: bool = False
    validation: CompanyValidation | None = None


class CompanyPage(BaseModel):
    """The organizing company's LinkedIn company page."""

    model_config = ConfigDict(frozen=True)

    url: str
    name: str
    description: str | None = None
    verified: bool = False


# ---------------------------------------------------------------------------
# News and calendar findings
# ---------------------------------------------------------------------------
class NewsArticle(BaseModel):
    """One news/review article about the festival."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    source: str | None = None
    # Raw date string as found in the article text (ISO or d-m-Y).
    date: str | None = None
    summary: str | None = None
    validated: bool = False
    validation: ContentValidation | None = None


class NewsResults(BaseModel):
    model_config = ConfigDict(frozen=True)

    articles: list[NewsArticle] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class CalendarSource(BaseModel):
    """Presence of the festival on one calendar/listing site."""

    model_config = ConfigDict(frozen=True)

    name: str
    found: bool = False
    url: str | None = None
    edition_year: int | None = None
    is_current: bool = False


class CalendarResults(BaseModel):
    model_config = ConfigDict(frozen=True)

    sources: list[CalendarSource] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Quality score (0–100) and its sub-scores
# ---------------------------------------------------------------------------
class CompanyDiscoveryScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    found: bool
    confidence: float
    has_registration_number: bool
    score: int


class ConnectionsScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    verified: int
    decision_makers: int
    has_company_page: bool
    score: int


class DataCompletenessScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_homepage: bool
    has_company: bool
    has_company_page: bool
    has_verified_contacts: bool
    has_news_articles: bool
    has_calendar_sources: bool
    score: int


class NewsQualityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    article_count: int
    recent_articles: int
    score: int


class QualityScore(BaseModel):
    """How thorough the research process was, 0–100."""

    model_config = ConfigDict(frozen=True)

    overall: int = Field(ge=0, le=100)
    company_discovery: CompanyDiscoveryScore
    connections: ConnectionsScore
    data_completeness: DataCompletenessScore
    news_quality: NewsQualityScore


# ---------------------------------------------------------------------------
# ResearchNote: errors and warnings recorded without aborting the run.
# ---------------------------------------------------------------------------
class ResearchNote(BaseModel):
    """An error or warning raised during a research run."""

    model_config = ConfigDict(frozen=True)

    # Phase (or operation name) the note belongs to.
    phase: str
    message: str
    timestamp: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# ResearchState: the complete snapshot of one research run.
# ---------------------------------------------------------------------------
class ResearchState(BaseModel):
    """The state of a single festival research run.

    Immutable: the orchestrator produces new states with
    ``model_copy(update={...})`` and refreshes ``last_updated_at`` on every
    copy.  ``errors`` and ``warnings`` only ever grow.
    """

    model_config = ConfigDict(frozen=True)

    festival_id: str
    festival_name: str
    festival_url: str | None = None

    phase: ResearchPhase = ResearchPhase.NOT_STARTED
    started_at: datetime = Field(default_factory=_utc_now)
    last_updated_at: datetime = Field(default_factory=_utc_now)
    # Whole-run attempt counter (not per remote call).
    attempts: int = 0

    discovered_homepage: str | None = None
    organizing_company: OrganizingCompany | None = None
    company_page: CompanyPage | None = None
    connection_results: ConnectionResults | None = None
    news_results: NewsResults | None = None
    calendar_results: CalendarResults | None = None

    errors: list[ResearchNote] = Field(default_factory=list)
    warnings: list[ResearchNote] = Field(default_factory=list)

    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW
    quality_score: QualityScore | None = None
    improvement_suggestions: list[str] = Field(default_factory=list)
    confidence_judgment: ConfidenceJudgment | None = None

    @property
    def connections(self) -> list[Connection]:
        """Ranked connections, or an empty list before the employee search."""
        if self.connection_results is None:
            return []
        return self.connection_results.connections
