"""Research quality metrics.

The quality score (0--100) grades how thorough a research run was, as
opposed to the run confidence (src/utils/confidence.py), which grades how
far its findings can be trusted.  The two deliberately use different
formulas over overlapping inputs.

Sub-scores and their weights in the overall score:

    company discovery   0.25   found 40 + confidence*40 + registration 20
    connections         0.35   page 20 + verified 30 + decision-maker 25
                               + 2.5 per connection (max 10), capped 100
    data completeness   0.25   share of six completeness flags
    news quality        0.15   10 per article (max 5) + recent 30
                               + more-than-3 20, capped 100

Rounding is half-up throughout so that scores are stable across runs.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from src.models.research import (
    CompanyDiscoveryScore,
    Connection,
    ConnectionRole,
    ConnectionsScore,
    DataCompletenessScore,
    NewsArticle,
    NewsQualityScore,
    QualityScore,
    ResearchState,
)

QUALITY_WEIGHTS: dict[str, float] = {
    "company": 0.25,
    "connections": 0.35,
    "completeness": 0.25,
    "news": 0.15,
}

MAX_SUGGESTIONS = 3


@dataclass(frozen=True)
class QualityIndicator:
    """Display band for an overall quality score."""

    level: str
    label: str
    description: str


@dataclass(frozen=True)
class QualityDetail:
    label: str
    value: str
    score: int


@dataclass(frozen=True)
class QualityDisplay:
    badge: str
    details: list[QualityDetail]
    suggestions: list[str]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_quality_score(
    *,
    has_homepage: bool = False,
    company_name: str | None = None,
    company_confidence: float = 0.0,
    has_registration_number: bool = False,
    connections: Sequence[Connection] = (),
    has_company_page: bool = False,
    news_articles: int = 0,
    recent_news_articles: int = 0,
    calendar_sources_found: int = 0,
) -> QualityScore:
    """Compute the 0--100 quality score from already-collected findings."""
    company_found = bool(company_name)
    company_score = _round_half_up(
        (40 if company_found else 0)
        + company_confidence * 40
        + (20 if has_registration_number else 0)
    )

    verified = sum(1 for c in connections if c.employment_verified)
    decision_makers = sum(1 for c in connections if c.role is ConnectionRole.DECISION_MAKER)
    connections_score = min(
        100,
        _round_half_up(
            (20 if has_company_page else 0)
            + (30 if verified > 0 else 0)
            + (25 if decision_makers > 0 else 0)
            + min(len(connections), 10) * 2.5
        ),
    )

    flags = {
        "has_homepage": has_homepage,
        "has_company": company_found,
        "has_company_page": has_company_page,
        "has_verified_contacts": verified > 0,
        "has_news_articles": news_articles > 0,
        "has_calendar_sources": calendar_sources_found > 0,
    }
    completeness_score = _round_half_up(sum(flags.values()) / len(flags) * 100)

    news_score = min(
        100,
        _round_half_up(
            min(news_articles, 5) * 10
            + (30 if recent_news_articles > 0 else 0)
            + (20 if news_articles > 3 else 0)
        ),
    )

    overall = _round_half_up(
        company_score * QUALITY_WEIGHTS["company"]
        + connections_score * QUALITY_WEIGHTS["connections"]
        + completeness_score * QUALITY_WEIGHTS["completeness"]
        + news_score * QUALITY_WEIGHTS["news"]
    )

    return QualityScore(
        overall=overall,
        company_discovery=CompanyDiscoveryScore(
            found=company_found,
            confidence=company_confidence,
            has_registration_number=has_registration_number,
            score=company_score,
        ),
        connections=ConnectionsScore(
            total=len(connections),
            verified=verified,
            decision_makers=decision_makers,
            has_company_page=has_company_page,
            score=connections_score,
        ),
        data_completeness=DataCompletenessScore(**flags, score=completeness_score),
        news_quality=NewsQualityScore(
            article_count=news_articles,
            recent_articles=recent_news_articles,
            score=news_score,
        ),
    )


def count_recent_articles(articles: Sequence[NewsArticle], current_year: int | None = None) -> int:
    """Articles whose extracted date falls in the current year."""
    year = str(current_year or datetime.now(tz=timezone.utc).year)  # noqa: UP017
    return sum(1 for a in articles if a.date and year in a.date)


def quality_score_from_state(state: ResearchState, current_year: int | None = None) -> QualityScore:
    """Quality score of a fully accumulated research state."""
    company = state.organizing_company
    articles = state.news_results.articles if state.news_results else []
    calendars = state.calendar_results.sources if state.calendar_results else []

    return calculate_quality_score(
        has_homepage=bool(state.discovered_homepage),
        company_name=company.name if company else None,
        company_confidence=company.confidence if company else 0.0,
        has_registration_number=bool(company and company.registration_number),
        connections=state.connections,
        has_company_page=state.company_page is not None,
        news_articles=len(articles),
        recent_news_articles=count_recent_articles(articles, current_year),
        calendar_sources_found=sum(1 for s in calendars if s.found),
    )


def get_quality_indicator(score: int) -> QualityIndicator:
    if score >= 80:
        return QualityIndicator(
            level="excellent",
            label="Excellent",
            description="High quality research with verified contacts",
        )
    if score >= 60:
        return QualityIndicator(
            level="good",
            label="Good",
            description="Good research quality with some verified data",
        )
    if score >= 40:
        return QualityIndicator(
            level="fair",
            label="Fair",
            description="Partial data available, needs more research",
        )
    return QualityIndicator(
        level="poor",
        label="Poor",
        description="Limited data, manual verification needed",
    )


def get_improvement_suggestions(score: QualityScore) -> list[str]:
    """Up to three suggestions, highest priority first."""
    suggestions: list[str] = []

    if not score.company_discovery.found:
        suggestions.append("Find the organizing entity via the privacy policy or the KvK register")
    elif score.company_discovery.score < 60:
        suggestions.append("Verify the company name against official sources")

    if not score.connections.has_company_page:
        suggestions.append("Find the company's LinkedIn page for more contacts")

    if score.connections.verified == 0:
        suggestions.append("Search for employees who explicitly work at the company")

    if score.connections.decision_makers == 0:
        suggestions.append("Search for directors, owners or founders")

    if not score.data_completeness.has_news_articles:
        suggestions.append("Search recent news articles for context")

    if not score.data_completeness.has_calendar_sources:
        suggestions.append("Verify the festival's presence on festival calendars")

    return suggestions[:MAX_SUGGESTIONS]


def format_quality_score_for_display(score: QualityScore) -> QualityDisplay:
    indicator = get_quality_indicator(score.overall)
    company = score.company_discovery

    return QualityDisplay(
        badge=f"{score.overall}% - {indicator.label}",
        details=[
            QualityDetail(
                label="Company Discovery",
                value=(
                    f"Found ({_round_half_up(company.confidence * 100)}% confidence)"
                    if company.found
                    else "Not found"
                ),
                score=company.score,
            ),
            QualityDetail(
                label="LinkedIn Connections",
                value=f"{score.connections.verified}/{score.connections.total} verified",
                score=score.connections.score,
            ),
            QualityDetail(
                label="Data Completeness",
                value=f"{score.data_completeness.score}%",
                score=score.data_completeness.score,
            ),
            QualityDetail(
                label="News Coverage",
                value=f"{score.news_quality.article_count} articles",
                score=score.news_quality.score,
            ),
        ],
        suggestions=get_improvement_suggestions(score),
    )
