"""Unit tests for research quality metrics."""

from __future__ import annotations

import pytest

from src.models.research import (
    CalendarResults,
    CalendarSource,
    CompanyPage,
    Connection,
    ConnectionResults,
    ConnectionRole,
    DiscoverySource,
    NewsArticle,
    NewsResults,
    OrganizingCompany,
    ResearchState,
)
from src.utils.quality_metrics import (
    MAX_SUGGESTIONS,
    calculate_quality_score,
    count_recent_articles,
    format_quality_score_for_display,
    get_improvement_suggestions,
    get_quality_indicator,
    quality_score_from_state,
)

_DECISION_MAKER = Connection(
    name="Anna Jansen",
    title="Director",
    url="https://linkedin.com/in/anna",
    company="Acme Events",
    role=ConnectionRole.DECISION_MAKER,
    employment_verified=True,
    discovered_via=DiscoverySource.COMPANY_EMPLOYEE_SEARCH,
)


def _good_state() -> ResearchState:
    return ResearchState(
        festival_id="f1",
        festival_name="Acme Fest",
        discovered_homepage="https://acmefest.nl",
        organizing_company=OrganizingCompany(name="Acme Events", confidence=0.8, registration_number="12345678"),
        company_page=CompanyPage(url="https://linkedin.com/company/acme", name="Acme Events", verified=True),
        connection_results=ConnectionResults(connections=[_DECISION_MAKER], searched_with="Company: Acme Events"),
        news_results=NewsResults(
            articles=[
                NewsArticle(title="Acme Fest returns", url="https://nu.nl/a", date="2026-05-01"),
                NewsArticle(title="Acme Fest review", url="https://nu.nl/b", date="12-08-2025"),
            ]
        ),
        calendar_results=CalendarResults(
            sources=[CalendarSource(name="Festivalinfo", found=True, edition_year=2026, is_current=True)]
        ),
    )


class TestCalculateQualityScore:
    def test_empty_findings_score_zero(self) -> None:
        score = calculate_quality_score()
        assert score.overall == 0
        assert score.company_discovery.found is False
        assert score.data_completeness.score == 0

    def test_good_research_lands_in_good_or_better(self) -> None:
        score = quality_score_from_state(_good_state(), current_year=2026)
        assert score.overall >= 60
        assert get_quality_indicator(score.overall).level in ("good", "excellent")

    def test_sub_scores(self) -> None:
        score = quality_score_from_state(_good_state(), current_year=2026)
        # 40 + 0.8*40 + 20
        assert score.company_discovery.score == 92
        # 20 + 30 + 25 + 1*2.5 = 77.5, rounded half-up
        assert score.connections.score == 78
        assert score.data_completeness.score == 100
        # 2*10 + recent 30
        assert score.news_quality.score == 50
        assert score.news_quality.recent_articles == 1
        assert score.overall == 83

    def test_connection_count_bonus_caps_at_ten(self) -> None:
        connections = [
            _DECISION_MAKER.model_copy(update={"url": f"https://linkedin.com/in/p{i}"}) for i in range(20)
        ]
        score = calculate_quality_score(connections=connections, has_company_page=True)
        assert score.connections.score == 100

    def test_news_volume_bonus(self) -> None:
        score = calculate_quality_score(news_articles=4, recent_news_articles=0)
        assert score.news_quality.score == 60

    def test_completeness_is_fraction_of_flags(self) -> None:
        score = calculate_quality_score(has_homepage=True, company_name="Acme Events")
        # 2 of 6 flags
        assert score.data_completeness.score == 33

    def test_identical_state_gives_identical_scores(self) -> None:
        state = _good_state()
        assert quality_score_from_state(state, 2026) == quality_score_from_state(state, 2026)


class TestRecentArticles:
    def test_counts_current_year_only(self) -> None:
        articles = [
            NewsArticle(title="a", url="u1", date="2026-01-02"),
            NewsArticle(title="b", url="u2", date="01-02-2026"),
            NewsArticle(title="c", url="u3", date="2024-01-02"),
            NewsArticle(title="d", url="u4"),
        ]
        assert count_recent_articles(articles, current_year=2026) == 2


class TestQualityIndicator:
    @pytest.mark.parametrize(
        ("score", "level"),
        [(100, "excellent"), (80, "excellent"), (79, "good"), (60, "good"), (59, "fair"), (40, "fair"), (39, "poor"), (0, "poor")],
    )
    def test_bands(self, score: int, level: str) -> None:
        assert get_quality_indicator(score).level == level


class TestImprovementSuggestions:
    def test_empty_research_gets_top_three_in_priority_order(self) -> None:
        suggestions = get_improvement_suggestions(calculate_quality_score())
        assert len(suggestions) == MAX_SUGGESTIONS
        assert "organizing entity" in suggestions[0]
        assert "LinkedIn page" in suggestions[1]
        assert "explicitly work at" in suggestions[2]

    def test_complete_research_needs_nothing(self) -> None:
        score = quality_score_from_state(_good_state(), current_year=2026)
        assert get_improvement_suggestions(score) == []

    def test_weak_company_suggests_verification(self) -> None:
        score = calculate_quality_score(company_name="Acme", company_confidence=0.1)
        assert get_improvement_suggestions(score)[0] == "Verify the company name against official sources"


class TestDisplay:
    def test_badge_and_details(self) -> None:
        score = quality_score_from_state(_good_state(), current_year=2026)
        display = format_quality_score_for_display(score)
        assert display.badge == "83% - Excellent"
        labels = [d.label for d in display.details]
        assert labels[0] == "Company Discovery"
        assert display.details[0].value == "Found (80% confidence)"
        assert display.details[1].value == "1/1 verified"
