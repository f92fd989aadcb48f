"""Integration tests for the SelfHealingOrchestrator.

The orchestrator runs against real services (task client, search gateway,
validation service, extractors and scorers); only the remote task
platform and the LLM are replaced by in-memory fakes from conftest.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
import pytest_asyncio

from src.interfaces.task_runner import TaskRun
from src.models.research import (
    PHASE_ORDER,
    ConfidenceLevel,
    ConnectionRole,
    DiscoverySource,
    ResearchPhase,
    ResearchState,
)
from src.models.validation import ConfidenceJudgment, FindingsSummary
from src.pipeline.orchestrator import RUN_IN_PROGRESS_MESSAGE, OrchestratorOptions, SelfHealingOrchestrator
from src.pipeline.progress_tracker import ProgressTracker
from src.services.resilient_task_client import ResilientTaskClient
from src.services.validation_service import HEURISTIC_REASONING, AIValidationService
from src.utils.errors import TaskExecutionError
from tests.conftest import (
    COMPANY_PAGE_URL,
    FESTIVAL_NAME,
    HOMEPAGE,
    FakeWebRunner,
    RecordingSleep,
    RoutedLLM,
    ScriptedTaskRunner,
    judgment_handler,
    zomerfeest_pages,
    zomerfeest_search_rules,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _orchestrator(
    runner: Any,
    llm: RoutedLLM | None = None,
    validation_service: AIValidationService | None = None,
    **options: Any,
) -> SelfHealingOrchestrator:
    options.setdefault("current_year", 2026)
    client = ResilientTaskClient(runner, sleep_func=RecordingSleep())
    return SelfHealingOrchestrator(
        task_client=client,
        validation_service=validation_service or AIValidationService(llm_provider=llm),
        options=OrchestratorOptions(**options),
    )


def _notes(notes: list) -> list[tuple[str, str]]:
    return [(note.phase, note.message) for note in notes]


def _comparable(state: ResearchState) -> dict[str, Any]:
    return state.model_dump(exclude={"started_at", "last_updated_at", "errors", "warnings"})


class ExplodingJudge(AIValidationService):
    """Validation service whose confidence judgment fails unexpectedly."""

    async def generate_confidence_score(self, festival_name: str, findings: FindingsSummary) -> ConfidenceJudgment:
        raise RuntimeError("judge exploded")


class BlockingWebRunner(FakeWebRunner):
    """FakeWebRunner that parks every call until ``release`` is set."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def run_task(self, task_id: str, task_input: dict[str, Any]) -> TaskRun:
        self.started.set()
        await self.release.wait()
        return await super().run_task(task_id, task_input)


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------


class TestFullRunWithoutAI:
    @pytest_asyncio.fixture
    async def state(self, fake_web: FakeWebRunner) -> ResearchState:
        return await _orchestrator(fake_web).run_research("f1", FESTIVAL_NAME)

    @pytest.mark.asyncio
    async def test_completes_cleanly(self, state: ResearchState) -> None:
        assert state.phase == ResearchPhase.COMPLETED
        assert state.attempts == 1
        assert state.errors == []
        assert state.warnings == []

    @pytest.mark.asyncio
    async def test_discovers_homepage_skipping_social_sites(self, state: ResearchState) -> None:
        assert state.discovered_homepage == HOMEPAGE

    @pytest.mark.asyncio
    async def test_extracts_company(self, state: ResearchState) -> None:
        company = state.organizing_company
        assert company is not None
        assert company.name == "Zomer Events"
        assert company.registration_number == "12345678"
        assert company.confidence == pytest.approx(0.95)
        assert company.source_url == HOMEPAGE
        assert company.validated is False

    @pytest.mark.asyncio
    async def test_finds_company_page(self, state: ResearchState) -> None:
        assert state.company_page is not None
        assert state.company_page.url == COMPANY_PAGE_URL
        assert state.company_page.name == "Zomer Events"
        assert state.company_page.verified is True

    @pytest.mark.asyncio
    async def test_ranks_connections(self, state: ResearchState) -> None:
        names = [c.name for c in state.connections]
        assert names == ["Anna Jansen", "Pieter de Vries", "Kees Bakker"]

        anna, pieter, kees = state.connections
        assert anna.role == ConnectionRole.DECISION_MAKER
        assert anna.employment_verified is True
        assert pieter.role == ConnectionRole.MANAGER
        assert pieter.employment_verified is True
        assert kees.employment_verified is False
        assert kees.discovered_via == DiscoverySource.FESTIVAL_SEARCH

        assert state.connection_results.searched_with == "Company: Zomer Events"
        assert state.connection_results.confidence == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_collects_news(self, state: ResearchState) -> None:
        articles = state.news_results.articles
        assert [a.url for a in articles] == [
            "https://www.nu.nl/zomerfeest-2026",
            "https://festivalnieuws.nl/zomerfeest-review",
        ]
        first, second = articles
        assert first.source == "nu.nl"
        assert first.date == "2026-03-14"
        assert first.summary.startswith("Published 2026-03-14.")
        assert first.summary.endswith("...")
        assert second.title == "Untitled"
        assert second.summary is None
        assert state.news_results.confidence == pytest.approx(0.54)

    @pytest.mark.asyncio
    async def test_verifies_calendars(self, state: ResearchState) -> None:
        by_name = {s.name: s for s in state.calendar_results.sources}
        assert len(by_name) == 5
        assert by_name["Festivalinfo"].found is True
        assert by_name["Festivalinfo"].edition_year == 2026
        assert by_name["Festivalinfo"].is_current is True
        assert by_name["Partyflock"].edition_year == 2024
        assert by_name["Partyflock"].is_current is False
        assert by_name["EB Live"].found is False
        assert state.calendar_results.confidence == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_scores(self, state: ResearchState) -> None:
        assert state.overall_confidence == pytest.approx(0.826)
        assert state.confidence_level == ConfidenceLevel.HIGH

        quality = state.quality_score
        assert quality.company_discovery.score == 98
        assert quality.connections.score == 83
        assert quality.data_completeness.score == 100
        assert quality.news_quality.score == 50
        assert quality.overall == 86
        assert state.improvement_suggestions == []

    @pytest.mark.asyncio
    async def test_heuristic_judgment(self, state: ResearchState) -> None:
        assert state.confidence_judgment.score == pytest.approx(1.0)
        assert state.confidence_judgment.reasoning == HEURISTIC_REASONING


class TestFullRunWithAI:
    @pytest.mark.asyncio
    async def test_ai_validates_findings(self, fake_web: FakeWebRunner) -> None:
        llm = RoutedLLM(judgment_handler(irrelevant_people=("Kees Bakker",)))
        state = await _orchestrator(fake_web, llm).run_research("f1", FESTIVAL_NAME)

        assert state.phase == ResearchPhase.COMPLETED
        company = state.organizing_company
        assert company.validated is True
        assert company.validation.company_type == "bv"
        assert company.confidence == pytest.approx(0.95)

        assert [c.name for c in state.connections] == ["Anna Jansen", "Pieter de Vries"]
        assert all(c.validated for c in state.connections)

        validated_article = state.news_results.articles[0]
        assert validated_article.validated is True
        assert validated_article.summary == "Zomerfeest sold out in record time."
        assert state.news_results.articles[1].validated is False

        assert state.confidence_judgment.reasoning == "Solid findings"

    @pytest.mark.asyncio
    async def test_relevant_festival_contact_kept(self, fake_web: FakeWebRunner) -> None:
        state = await _orchestrator(fake_web, RoutedLLM(judgment_handler())).run_research("f1", FESTIVAL_NAME)
        assert [c.name for c in state.connections] == ["Anna Jansen", "Pieter de Vries", "Kees Bakker"]

    @pytest.mark.asyncio
    async def test_invalid_company_is_capped(self, fake_web: FakeWebRunner) -> None:
        llm = RoutedLLM(
            judgment_handler(company={"isValid": False, "confidence": 0.2, "reasoning": "Looks like a sponsor"})
        )
        state = await _orchestrator(fake_web, llm).run_research("f1", FESTIVAL_NAME)

        assert state.organizing_company.name == "Zomer Events"
        assert state.organizing_company.confidence == pytest.approx(0.3)
        assert ("extracting_company", 'AI flagged company "Zomer Events" as potentially invalid') in _notes(
            state.warnings
        )

    @pytest.mark.asyncio
    async def test_disabled_ai_never_calls_model(self, fake_web: FakeWebRunner) -> None:
        llm = RoutedLLM(judgment_handler())
        state = await _orchestrator(fake_web, llm, enable_ai_validation=False).run_research("f1", FESTIVAL_NAME)

        assert state.organizing_company.validated is False
        # Only the run-level judgment uses the model when validation is off.
        assert len(llm.calls) == 1
        assert "completeness and reliability" in llm.calls[0][0]


class TestExecutionModes:
    @pytest.mark.asyncio
    async def test_parallel_and_sequential_agree(self) -> None:
        parallel = await _orchestrator(
            FakeWebRunner(zomerfeest_search_rules(), zomerfeest_pages()),
            parallel_execution=True,
        ).run_research("f1", FESTIVAL_NAME)
        sequential = await _orchestrator(
            FakeWebRunner(zomerfeest_search_rules(), zomerfeest_pages()),
            parallel_execution=False,
        ).run_research("f1", FESTIVAL_NAME)

        assert _comparable(parallel) == _comparable(sequential)
        assert _notes(parallel.warnings) == _notes(sequential.warnings)

    @pytest.mark.asyncio
    async def test_known_url_skips_discovery(self, fake_web: FakeWebRunner) -> None:
        state = await _orchestrator(fake_web).run_research("f1", FESTIVAL_NAME, festival_url=HOMEPAGE)

        assert state.discovered_homepage == HOMEPAGE
        assert not any("official website" in q for q in fake_web.searched_queries())

    @pytest.mark.asyncio
    async def test_phases_only_move_forward(self, fake_web: FakeWebRunner) -> None:
        orchestrator = _orchestrator(fake_web, parallel_execution=False)
        phases: list[ResearchPhase] = []
        orchestrator.on_progress(lambda state: phases.append(state.phase))

        await orchestrator.run_research("f1", FESTIVAL_NAME)

        indices = [PHASE_ORDER.index(p) for p in phases]
        assert indices == sorted(indices)
        assert list(dict.fromkeys(phases)) == list(PHASE_ORDER[:-1])

    @pytest.mark.asyncio
    async def test_shared_tracker_sees_final_state(self, fake_web: FakeWebRunner) -> None:
        tracker = ProgressTracker()
        orchestrator = SelfHealingOrchestrator(
            task_client=ResilientTaskClient(fake_web, sleep_func=RecordingSleep()),
            validation_service=AIValidationService(),
            options=OrchestratorOptions(current_year=2026),
            progress_tracker=tracker,
        )

        state = await orchestrator.run_research("f1", FESTIVAL_NAME)

        assert tracker.latest("f1") is state
        assert orchestrator.get_state() is state


# ---------------------------------------------------------------------------
# Degraded runs
# ---------------------------------------------------------------------------


class TestDegradedRuns:
    @pytest.mark.asyncio
    async def test_unconfigured_platform_completes_with_warnings(self) -> None:
        runner = FakeWebRunner(available=False)
        state = await _orchestrator(runner).run_research("f1", FESTIVAL_NAME)

        assert state.phase == ResearchPhase.COMPLETED
        assert state.errors == []
        assert runner.calls == []
        assert _notes(state.warnings) == [
            ("discovering_website", "Could not find festival website via search"),
            ("extracting_company", "No website available for company extraction"),
            ("searching_social_company", "No company LinkedIn page found"),
            ("searching_social_employees", "No relevant LinkedIn profiles found"),
            ("fetching_news", "No news articles found"),
            ("verifying_calendars", "Festival not found on any calendar sites"),
        ]
        assert state.connection_results.searched_with == f"Festival: {FESTIVAL_NAME}"
        assert state.quality_score.overall == 0
        assert state.overall_confidence == 0.0
        assert state.attempts == 1

    @pytest.mark.asyncio
    async def test_low_confidence_records_ai_retry_suggestion(self) -> None:
        def handler(system_prompt: str, user_prompt: str) -> str:
            if "completeness and reliability" in system_prompt:
                return json.dumps({"score": 0.1, "level": "low", "reasoning": "Nothing found"})
            return json.dumps(
                {
                    "shouldRetry": True,
                    "strategies": [{"operation": "discovering_website", "suggestion": "Search the Dutch name"}],
                    "alternativeApproaches": [],
                }
            )

        llm = RoutedLLM(handler)
        state = await _orchestrator(FakeWebRunner(available=False), llm).run_research("f1", FESTIVAL_NAME)

        assert _notes(state.warnings)[-1] == (
            "orchestrator",
            "AI suggested a retry (not re-run): Search the Dutch name",
        )
        assert state.attempts == 2
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_memory_errors_open_the_breaker(self) -> None:
        memory_error = TaskExecutionError(
            "actor-memory-limit-exceeded: By launching this job you will exceed the memory limit",
            "apify",
            402,
        )
        runner = ScriptedTaskRunner([memory_error])
        orchestrator = _orchestrator(runner)

        state = await orchestrator.run_research("f1", FESTIVAL_NAME)

        assert state.phase == ResearchPhase.COMPLETED
        assert len(runner.calls) == 3
        assert state.errors == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_fails_the_run(self, fake_web: FakeWebRunner) -> None:
        state = await _orchestrator(fake_web, validation_service=ExplodingJudge()).run_research("f1", FESTIVAL_NAME)

        assert state.phase == ResearchPhase.FAILED
        assert _notes(state.errors) == [("orchestrator", "judge exploded")]
        # Findings gathered before the failure are kept.
        assert state.organizing_company.name == "Zomer Events"

    @pytest.mark.asyncio
    async def test_invalid_seed_url_is_recorded(self, fake_web: FakeWebRunner) -> None:
        state = await _orchestrator(fake_web).run_research("f1", FESTIVAL_NAME, festival_url="ftp://zomerfeest.nl")

        assert state.phase == ResearchPhase.COMPLETED
        assert _notes(state.errors) == [("discovering_website", "Invalid festival URL: ftp://zomerfeest.nl")]
        assert state.discovered_homepage is None
        assert ("extracting_company", "No website available for company extraction") in _notes(state.warnings)

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_stop_the_run(self, fake_web: FakeWebRunner) -> None:
        orchestrator = _orchestrator(fake_web)

        def broken_listener(state: ResearchState) -> None:
            raise RuntimeError("listener broke")

        orchestrator.on_progress(broken_listener)
        state = await orchestrator.run_research("f1", FESTIVAL_NAME)

        assert state.phase == ResearchPhase.COMPLETED
        assert state.errors == []

    @pytest.mark.asyncio
    async def test_second_concurrent_run_is_rejected(self) -> None:
        runner = BlockingWebRunner(search_rules=zomerfeest_search_rules(), pages=zomerfeest_pages())
        orchestrator = _orchestrator(runner)

        first = asyncio.create_task(orchestrator.run_research("f1", FESTIVAL_NAME))
        await runner.started.wait()

        rejected = await orchestrator.run_research("f2", "Other Fest")

        assert rejected.phase == ResearchPhase.FAILED
        assert rejected.festival_id == "f2"
        assert _notes(rejected.errors) == [("orchestrator", RUN_IN_PROGRESS_MESSAGE)]
        assert orchestrator.get_state().festival_id == "f1"

        runner.release.set()
        state = await first

        assert state.festival_id == "f1"
        assert state.phase == ResearchPhase.COMPLETED

        again = await orchestrator.run_research("f3", FESTIVAL_NAME)
        assert again.festival_id == "f3"
