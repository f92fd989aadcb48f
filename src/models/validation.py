"""Typed judgments returned by the AI validation service.

Each judgment kind is a fixed pydantic model.  The model's JSON answer uses
camelCase keys (``isValid``, ``normalizedName``...), so every judgment
declares a camelCase alias generator while Python code reads snake_case
attributes.  Validation happens once, at the service boundary: a response
that does not satisfy the schema is replaced by the judgment's documented
default (see src/services/validation_service.py), never raised.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_JUDGMENT_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)

CompanyType = Literal["bv", "nv", "stichting", "vof", "unknown"]
ContentQuality = Literal["high", "medium", "low"]
ContentType = Literal["news", "website", "calendar"]
ConfidenceBand = Literal["high", "medium", "low"]


class CompanyValidation(BaseModel):
    """Judgment on an extracted organizing-company name."""

    model_config = _JUDGMENT_CONFIG

    is_valid: bool
    confidence: float = Field(ge=0.0, le=1.0)
    normalized_name: str | None = None
    company_type: CompanyType | None = None
    reasoning: str
    suggested_corrections: list[str] = Field(default_factory=list)


class PersonValidation(BaseModel):
    """Judgment on a discovered person's relevance to the festival."""

    model_config = _JUDGMENT_CONFIG

    is_relevant: bool
    confidence: float = Field(ge=0.0, le=1.0)
    role: str | None = None
    is_decision_maker: bool
    reasoning: str


class ContentValidation(BaseModel):
    """Judgment on a fetched page's relevance, with a short summary."""

    model_config = _JUDGMENT_CONFIG

    is_relevant: bool
    confidence: float = Field(ge=0.0, le=1.0)
    quality: ContentQuality
    summary: str
    key_facts: list[str] = Field(default_factory=list)
    reasoning: str


class ConfidenceJudgment(BaseModel):
    """Overall confidence in a festival's research findings."""

    model_config = _JUDGMENT_CONFIG

    score: float = Field(ge=0.0, le=1.0)
    level: ConfidenceBand
    reasoning: str


class RetryStep(BaseModel):
    """One suggested retry for a failed operation."""

    model_config = _JUDGMENT_CONFIG

    operation: str
    suggestion: str


class RetryStrategy(BaseModel):
    """Advice on whether and how to retry failed research operations."""

    model_config = _JUDGMENT_CONFIG

    should_retry: bool
    strategies: list[RetryStep] = Field(default_factory=list)
    alternative_approaches: list[str] = Field(default_factory=list)


class FindingsSummary(BaseModel):
    """Counts of what a run found; input to the confidence judgment."""

    model_config = _JUDGMENT_CONFIG

    company_found: bool = False
    linkedin_profiles_count: int = 0
    news_articles_count: int = 0
    calendar_sources_found: int = 0
    has_website: bool = False
