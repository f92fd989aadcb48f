"""Self-healing orchestrator for the festival research pipeline.

Given a festival name, discovers its website, organizing company, LinkedIn
presence, news coverage and calendar-listing presence, tolerating failures
of the remote task platform and the language model along the way.

ARCHITECTURE NOTE:
    The orchestrator follows the "Pipeline" pattern: it coordinates the
    injected services in a fixed phase sequence, passing data from one
    phase to the next through the frozen :class:`ResearchState`.

        NOT_STARTED → DISCOVERING_WEBSITE → EXTRACTING_COMPANY →
        SEARCHING_SOCIAL_COMPANY → SEARCHING_SOCIAL_EMPLOYEES →
        FETCHING_NEWS + VERIFYING_CALENDARS → VALIDATING_RESULTS →
        COMPLETED | FAILED

    Each phase follows the same pattern:
        1. Enter the phase (forward only) and publish the state
        2. Call the search gateway / validation service
        3. Apply the findings with model_copy(update={...}) and publish
        4. Record a warning when the phase found nothing

    A phase that raises a domain error is recorded and skipped.  Anything
    else aborts the run: the error is recorded and the state ends FAILED.
    ``run_research`` always returns the state, never raises.

    News and calendar verification are independent.  With
    ``parallel_execution`` both branches run concurrently, each computing
    its result locally; the orchestrator applies both results afterwards so
    the two branches never write the state.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote, urlsplit

import structlog
from pydantic import BaseModel, ConfigDict

from src.models.research import (
    PHASE_ORDER,
    CalendarResults,
    CalendarSource,
    CompanyPage,
    Connection,
    ConnectionResults,
    DiscoverySource,
    NewsArticle,
    NewsResults,
    OrganizingCompany,
    ResearchNote,
    ResearchPhase,
    ResearchState,
)
from src.models.validation import FindingsSummary
from src.pipeline.progress_tracker import ProgressCallback, ProgressTracker
from src.services.company_extractor import candidate_pages, extract_company
from src.services.employment_verifier import parse_profile_result, sort_connections_by_relevance
from src.services.resilient_task_client import ResilientTaskClient
from src.services.search_gateway import (
    DEFAULT_BROWSER_TASK_ID,
    DEFAULT_SEARCH_TASK_ID,
    SearchGateway,
    SearchResult,
)
from src.services.validation_service import AIValidationService
from src.utils.concurrency import throttled_gather
from src.utils.confidence import (
    calculate_calendar_confidence,
    calculate_connection_confidence,
    calculate_news_confidence,
    calculate_run_confidence,
)
from src.utils.errors import FestivalResearchError, PipelineError, ResearchError
from src.utils.logging import bind_research_context, clear_research_context, get_logger
from src.utils.quality_metrics import get_improvement_suggestions, quality_score_from_state

# Known social and calendar domains; never the festival's own homepage.
WEBSITE_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "linkedin.com",
    "youtube.com",
    "spotify.com",
    "festivalinfo",
    "partyflock",
    "eblive",
    "festileaks",
)

NEWS_EXCLUDE_PATTERNS: tuple[str, ...] = ("linkedin.com", "facebook.com", "instagram.com")

# (name, search URL prefix); the URL-quoted festival name is appended.
CALENDAR_SOURCES: tuple[tuple[str, str], ...] = (
    ("Festivalinfo", "https://www.festivalinfo.nl/zoek/?q="),
    ("Partyflock", "https://partyflock.nl/search?query="),
    ("EB Live", "https://www.eblive.nl/?s="),
    ("Festileaks", "https://www.festileaks.com/?s="),
    ("Follow the Beat", "https://www.followthebeat.nl/?s="),
)

COMPANY_PAGE_MARKER = "linkedin.com/company/"

# AI relevance floors per discovery pass.
COMPANY_PASS_MIN_CONFIDENCE = 0.4
FESTIVAL_PASS_MIN_CONFIDENCE = 0.3

# AI judged the company invalid: confidence never exceeds this.
INVALID_COMPANY_CONFIDENCE_CAP = 0.3

NEWS_SUMMARY_CHARS = 200

RUN_IN_PROGRESS_MESSAGE = "A research run is already in progress on this orchestrator"

_YEAR_RE = re.compile(r"\b(20\d{2})\b")
_DATE_RE = re.compile(r"\b(20\d{2}[-/]\d{1,2}[-/]\d{1,2}|\d{1,2}[-/]\d{1,2}[-/]20\d{2})\b")
_LINKEDIN_TITLE_SUFFIX_RE = re.compile(r"(?:\s*\|\s*LinkedIn)?(?::\s*Overview)?$", re.IGNORECASE)


class OrchestratorOptions(BaseModel):
    """Behaviour switches for :class:`SelfHealingOrchestrator`."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = 3
    enable_ai_validation: bool = True
    min_confidence_to_pass: float = 0.3
    parallel_execution: bool = True
    fallback_to_basic_search: bool = True
    max_connections: int = 15
    max_news_articles: int = 5
    search_task_id: str = DEFAULT_SEARCH_TASK_ID
    browser_task_id: str = DEFAULT_BROWSER_TASK_ID
    # Year treated as "current" for news recency and calendar editions;
    # today's year when unset.
    current_year: int | None = None

    @classmethod
    def from_config(cls, config: dict) -> OrchestratorOptions:
        """Build from the ``research`` section of the merged config."""
        section = config.get("research", {}) or {}
        fields = {k: v for k, v in section.items() if k in cls.model_fields}
        return cls(**fields)


class SelfHealingOrchestrator:
    """Runs one festival research at a time.

    The task client and validation service are injected and may be shared
    with other orchestrators; the research state is not.  Create one
    orchestrator per concurrent run.
    """

    def __init__(
        self,
        task_client: ResilientTaskClient,
        validation_service: AIValidationService,
        options: OrchestratorOptions | None = None,
        progress_tracker: ProgressTracker | None = None,
    ) -> None:
        self._options = options or OrchestratorOptions()
        self._gateway = SearchGateway(
            task_client,
            search_task_id=self._options.search_task_id,
            browser_task_id=self._options.browser_task_id,
        )
        self._validation = validation_service
        self._tracker = progress_tracker or ProgressTracker()
        self._state: ResearchState | None = None
        self._running = False
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a sync or async callback invoked with every new state."""
        self._tracker.register_listener(callback)

    def get_state(self) -> ResearchState | None:
        return self._state

    async def run_research(
        self,
        festival_id: str,
        festival_name: str,
        festival_url: str | None = None,
    ) -> ResearchState:
        """Run the full research pipeline for one festival.

        Returns
        -------
        ResearchState
            The final state, with ``phase`` COMPLETED or FAILED.  A call made
            while another run is in progress gets its own FAILED state and
            leaves the running one untouched.
        """
        if self._running:
            self._logger.warning("research_rejected", festival_id=festival_id, reason="run_in_progress")
            return ResearchState(
                festival_id=festival_id,
                festival_name=festival_name,
                festival_url=festival_url or None,
                phase=ResearchPhase.FAILED,
                errors=[ResearchNote(phase="orchestrator", message=RUN_IN_PROGRESS_MESSAGE)],
            )

        self._running = True
        bind_research_context(festival_id, festival_name)
        self._state = ResearchState(
            festival_id=festival_id,
            festival_name=festival_name,
            festival_url=festival_url or None,
        )
        self._logger.info("research_start", parallel=self._options.parallel_execution)

        try:
            await self._update_state(attempts=1)
            await self._run_pipeline()
            await self._update_state(phase=ResearchPhase.COMPLETED)
            self._logger.info(
                "research_complete",
                quality=self._state.quality_score.overall if self._state.quality_score else 0,
                confidence=round(self._state.overall_confidence, 3),
            )
        except Exception as exc:
            self._logger.exception("research_failed", error=str(exc))
            await self._update_state(
                phase=ResearchPhase.FAILED,
                errors=[*self._state.errors, ResearchNote(phase="orchestrator", message=str(exc))],
            )
        finally:
            self._running = False
            clear_research_context()

        return self._state

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run_pipeline(self) -> None:
        await self._run_phase(ResearchPhase.DISCOVERING_WEBSITE, self._discover_website)
        await self._run_phase(ResearchPhase.EXTRACTING_COMPANY, self._extract_company)
        await self._run_phase(ResearchPhase.SEARCHING_SOCIAL_COMPANY, self._search_company_page)
        await self._run_phase(ResearchPhase.SEARCHING_SOCIAL_EMPLOYEES, self._search_employees)

        if self._options.parallel_execution:
            await self._news_and_calendars_concurrently()
        else:
            await self._run_phase(ResearchPhase.FETCHING_NEWS, self._fetch_news)
            await self._run_phase(ResearchPhase.VERIFYING_CALENDARS, self._verify_calendars)

        await self._enter_phase(ResearchPhase.VALIDATING_RESULTS)
        await self._validate_results()

    async def _run_phase(self, phase: ResearchPhase, step: Callable[[], Awaitable[None]]) -> None:
        """Enter ``phase`` and run ``step``; domain errors are recorded, not raised."""
        await self._enter_phase(phase)
        try:
            await step()
        except PipelineError:
            raise
        except FestivalResearchError as exc:
            self._logger.warning("phase_failed", phase=phase.value, error=str(exc))
            await self._record_error(phase.value, str(exc))

    async def _news_and_calendars_concurrently(self) -> None:
        await self._enter_phase(ResearchPhase.FETCHING_NEWS)
        news_outcome, calendar_outcome = await throttled_gather(
            [self._collect_news(), self._collect_calendars()],
        )

        await self._apply_outcome(ResearchPhase.FETCHING_NEWS, news_outcome)
        await self._enter_phase(ResearchPhase.VERIFYING_CALENDARS)
        await self._apply_outcome(ResearchPhase.VERIFYING_CALENDARS, calendar_outcome)

    async def _apply_outcome(self, phase: ResearchPhase, outcome: Any) -> None:
        if isinstance(outcome, PipelineError) or (
            isinstance(outcome, BaseException) and not isinstance(outcome, FestivalResearchError)
        ):
            raise outcome
        if isinstance(outcome, FestivalResearchError):
            self._logger.warning("phase_failed", phase=phase.value, error=str(outcome))
            await self._record_error(phase.value, str(outcome))
            return

        field_name, results, warnings = outcome
        await self._update_state(**{field_name: results})
        for message in warnings:
            await self._record_warning(phase.value, message)

    # ------------------------------------------------------------------
    # Phase 1: website discovery
    # ------------------------------------------------------------------

    async def _discover_website(self) -> None:
        state = self._require_state()

        if state.festival_url:
            parts = urlsplit(state.festival_url)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ResearchError(message=f"Invalid festival URL: {state.festival_url}")
            self._logger.info("website_provided", url=state.festival_url)
            await self._update_state(discovered_homepage=state.festival_url)
            return

        results = await self._gateway.search(
            f'"{state.festival_name}" festival official website',
            results_per_page=5,
            max_retries=2,
        )
        if not results:
            await self._record_warning(
                ResearchPhase.DISCOVERING_WEBSITE.value,
                "Could not find festival website via search",
            )
            homepage = await self._fallback_website(state.festival_name)
        else:
            homepage = next((r.url for r in results if not _matches_any(r.url, WEBSITE_EXCLUDE_PATTERNS)), None)
            if homepage is None:
                await self._record_warning(
                    ResearchPhase.DISCOVERING_WEBSITE.value,
                    "Search results only contained social or calendar sites",
                )

        if homepage:
            self._logger.info("website_discovered", url=homepage)
            await self._update_state(discovered_homepage=homepage)

    async def _fallback_website(self, festival_name: str) -> str | None:
        if not self._options.fallback_to_basic_search:
            return None
        pages = await self._gateway.browse(f"{festival_name} festival official site", max_results=3, max_retries=1)
        if pages and pages[0].url:
            return pages[0].url
        return None

    # ------------------------------------------------------------------
    # Phase 2: organizing company
    # ------------------------------------------------------------------

    async def _extract_company(self) -> None:
        state = self._require_state()
        phase = ResearchPhase.EXTRACTING_COMPANY.value

        if not state.discovered_homepage:
            await self._record_warning(phase, "No website available for company extraction")
            return

        fetched: list[tuple[str, str]] = []
        for url in candidate_pages(state.discovered_homepage):
            page = await self._gateway.fetch_page(url, max_retries=1)
            if page is not None and page.text:
                fetched.append((url, page.text))

        extraction = extract_company(fetched)
        if extraction.best is None:
            await self._record_warning(phase, "No company information found on website")
            await self._update_state(organizing_company=OrganizingCompany())
            return

        best = extraction.best
        name = best.name
        confidence = extraction.confidence
        validation = None

        if self._ai_enabled():
            source_text = next((text for url, text in fetched if url == best.source_url), None)
            validation = await self._validation.validate_company_name(
                state.festival_name,
                best.name,
                best.source_url,
                source_text,
            )
            if validation.is_valid:
                confidence = max(confidence, validation.confidence)
                name = validation.normalized_name or best.name
            else:
                confidence = min(confidence, INVALID_COMPANY_CONFIDENCE_CAP)
                await self._record_warning(phase, f'AI flagged company "{best.name}" as potentially invalid')

        self._logger.info(
            "company_extracted",
            company=name,
            occurrences=best.count,
            registration_number=extraction.registration_number,
            confidence=round(confidence, 3),
        )
        await self._update_state(
            organizing_company=OrganizingCompany(
                name=name,
                confidence=confidence,
                registration_number=extraction.registration_number,
                source_url=best.source_url,
                validated=validation is not None,
                validation=validation,
            )
        )

    # ------------------------------------------------------------------
    # Phase 3: company LinkedIn page
    # ------------------------------------------------------------------

    async def _search_company_page(self) -> None:
        state = self._require_state()
        company_name = self._company_name()

        queries = []
        if company_name:
            queries.append(f'site:linkedin.com/company "{company_name}"')
        queries.append(f'site:linkedin.com/company "{state.festival_name}"')

        for query in queries:
            results = await self._gateway.search(query, results_per_page=5, max_retries=2)
            for result in results:
                if COMPANY_PAGE_MARKER not in result.url:
                    continue
                page_name = _LINKEDIN_TITLE_SUFFIX_RE.sub("", result.title).strip()
                self._logger.info("company_page_found", url=result.url)
                await self._update_state(
                    company_page=CompanyPage(
                        url=result.url,
                        name=page_name or company_name or state.festival_name,
                        description=result.snippet or None,
                        verified=True,
                    )
                )
                return

        await self._record_warning(ResearchPhase.SEARCHING_SOCIAL_COMPANY.value, "No company LinkedIn page found")

    # ------------------------------------------------------------------
    # Phase 4: people
    # ------------------------------------------------------------------

    async def _search_employees(self) -> None:
        state = self._require_state()
        company_name = self._company_name()
        festival_name = state.festival_name

        connections: list[Connection] = []
        seen_urls: set[str] = set()

        if company_name:
            employee_queries = [
                f'site:linkedin.com/in "works at {company_name}"',
                f'site:linkedin.com/in "at {company_name}" director OR CEO OR founder OR manager',
                f'site:linkedin.com/in "{company_name}" festival OR event director OR manager',
            ]
            for query in employee_queries:
                results = await self._gateway.search(query, results_per_page=10, max_retries=2)
                for result in self._unseen(results, seen_urls):
                    connection = parse_profile_result(
                        result.url,
                        result.title,
                        result.snippet,
                        company_name,
                        DiscoverySource.COMPANY_EMPLOYEE_SEARCH,
                    )
                    if connection is None or not connection.employment_verified:
                        continue
                    connection = await self._validate_person(connection, COMPANY_PASS_MIN_CONFIDENCE)
                    if connection is not None:
                        connections.append(connection)

        festival_queries = [
            f'site:linkedin.com/in "{festival_name}" organizer OR director OR founder OR producer',
            f'site:linkedin.com/in "{festival_name}" festival manager OR event manager',
        ]
        for query in festival_queries:
            results = await self._gateway.search(query, results_per_page=8, max_retries=2)
            for result in self._unseen(results, seen_urls):
                connection = parse_profile_result(
                    result.url,
                    result.title,
                    result.snippet,
                    company_name,
                    DiscoverySource.FESTIVAL_SEARCH,
                )
                if connection is None:
                    continue
                connection = await self._validate_person(connection, FESTIVAL_PASS_MIN_CONFIDENCE)
                if connection is not None:
                    connections.append(connection)

        ranked = sort_connections_by_relevance(connections)
        confidence = calculate_connection_confidence(ranked)
        top = ranked[: self._options.max_connections]

        self._logger.info(
            "connections_found",
            total=len(ranked),
            kept=len(top),
            verified=sum(1 for c in top if c.employment_verified),
        )
        await self._update_state(
            connection_results=ConnectionResults(
                connections=top,
                searched_with=f"Company: {company_name}" if company_name else f"Festival: {festival_name}",
                confidence=confidence,
            )
        )

        if not ranked:
            await self._record_warning(
                ResearchPhase.SEARCHING_SOCIAL_EMPLOYEES.value,
                "No relevant LinkedIn profiles found",
            )

    async def _validate_person(self, connection: Connection, min_confidence: float) -> Connection | None:
        """AI-score a connection; ``None`` when it falls below ``min_confidence``."""
        if not self._ai_enabled():
            return connection

        validation = await self._validation.validate_person(
            self._require_state().festival_name,
            connection.name,
            connection.title,
            None,
            connection.company,
        )
        if not (validation.is_relevant and validation.confidence >= min_confidence):
            return None
        return connection.model_copy(update={"validated": True, "validation": validation})

    @staticmethod
    def _unseen(results: list[SearchResult], seen_urls: set[str]) -> list[SearchResult]:
        fresh = []
        for result in results:
            if result.url in seen_urls:
                continue
            seen_urls.add(result.url)
            fresh.append(result)
        return fresh

    # ------------------------------------------------------------------
    # Phases 5 and 6: news and calendars
    # ------------------------------------------------------------------

    async def _fetch_news(self) -> None:
        await self._apply_outcome(ResearchPhase.FETCHING_NEWS, await self._collect_news())

    async def _verify_calendars(self) -> None:
        await self._apply_outcome(ResearchPhase.VERIFYING_CALENDARS, await self._collect_calendars())

    async def _collect_news(self) -> tuple[str, NewsResults, list[str]]:
        """News articles computed locally; the caller applies them."""
        festival_name = self._require_state().festival_name
        company_name = self._company_name()
        year = self._current_year()

        if company_name:
            query = f'("{festival_name}" OR "{company_name}") festival {year} news OR review OR organisator'
        else:
            query = f'"{festival_name}" festival {year} news OR review'

        results = await self._gateway.search(query, results_per_page=10, max_retries=2)
        items = [r for r in results if not _matches_any(r.url, NEWS_EXCLUDE_PATTERNS)]
        items = items[: self._options.max_news_articles]

        pages = await throttled_gather(
            [self._gateway.fetch_page(item.url, max_retries=1) for item in items],
            return_exceptions=False,
        )

        articles: list[NewsArticle] = []
        for item, page in zip(items, pages, strict=True):
            article = NewsArticle(title=item.title or "Untitled", url=item.url, source=_source_host(item.url))
            if page is not None and page.text:
                article = await self._describe_article(article, festival_name, page.text)
            articles.append(article)

        warnings = [] if articles else ["No news articles found"]
        self._logger.info("news_collected", articles=len(articles))
        return "news_results", NewsResults(articles=articles, confidence=calculate_news_confidence(len(articles))), warnings

    async def _describe_article(self, article: NewsArticle, festival_name: str, content: str) -> NewsArticle:
        date_match = _DATE_RE.search(content)
        update: dict[str, Any] = {"date": date_match.group(1) if date_match else None}

        if self._ai_enabled():
            validation = await self._validation.validate_content(festival_name, content, "news")
            update.update(validated=True, validation=validation, summary=validation.summary)
        else:
            update["summary"] = content[:NEWS_SUMMARY_CHARS].strip() + "..."

        return article.model_copy(update=update)

    async def _collect_calendars(self) -> tuple[str, CalendarResults, list[str]]:
        """Calendar presence computed locally; the caller applies it."""
        festival_name = self._require_state().festival_name
        current_year = self._current_year()

        search_urls = [f"{prefix}{quote(festival_name)}" for _, prefix in CALENDAR_SOURCES]
        pages = await throttled_gather(
            [self._gateway.fetch_page(url, max_retries=1) for url in search_urls],
            return_exceptions=False,
        )

        sources: list[CalendarSource] = []
        for (name, _), url, page in zip(CALENDAR_SOURCES, search_urls, pages, strict=True):
            content = page.text if page is not None else ""
            if not content or festival_name.lower() not in content.lower():
                sources.append(CalendarSource(name=name))
                continue

            years = [int(y) for y in _YEAR_RE.findall(content)]
            edition_year = max(years) if years else None
            sources.append(
                CalendarSource(
                    name=name,
                    found=True,
                    url=url,
                    edition_year=edition_year,
                    is_current=edition_year is not None and edition_year >= current_year,
                )
            )

        found = sum(1 for s in sources if s.found)
        warnings = [] if found else ["Festival not found on any calendar sites"]
        self._logger.info("calendars_verified", found=found)
        return (
            "calendar_results",
            CalendarResults(sources=sources, confidence=calculate_calendar_confidence(sources)),
            warnings,
        )

    # ------------------------------------------------------------------
    # Phase 7: validation
    # ------------------------------------------------------------------

    async def _validate_results(self) -> None:
        state = self._require_state()

        overall, level = calculate_run_confidence(state)
        quality = quality_score_from_state(state, self._current_year())
        judgment = await self._validation.generate_confidence_score(state.festival_name, _findings_summary(state))

        await self._update_state(
            overall_confidence=overall,
            confidence_level=level,
            quality_score=quality,
            improvement_suggestions=get_improvement_suggestions(quality),
            confidence_judgment=judgment,
        )

        state = self._require_state()
        if overall >= self._options.min_confidence_to_pass or state.attempts >= self._options.max_retries:
            return

        self._logger.warning("research_low_confidence", confidence=round(overall, 3))
        if not self._ai_enabled():
            return

        # Phases only move forward, so the suggestion is recorded, not re-run.
        strategy = await self._validation.suggest_retry_strategy(
            state.festival_name,
            _current_results(state),
            _failed_operations(state),
        )
        if strategy.should_retry:
            suggestion = strategy.strategies[0].suggestion if strategy.strategies else "default"
            self._logger.info("retry_suggested", suggestion=suggestion)
            await self._record_warning("orchestrator", f"AI suggested a retry (not re-run): {suggestion}")
            await self._update_state(attempts=state.attempts + 1)

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    async def _enter_phase(self, phase: ResearchPhase) -> None:
        current = self._require_state().phase
        if PHASE_ORDER.index(phase) < PHASE_ORDER.index(current):
            raise PipelineError(message=f"Invalid phase transition {current.value} -> {phase.value}")
        self._logger.info("phase_start", phase=phase.value)
        await self._update_state(phase=phase)

    async def _update_state(self, **updates: Any) -> None:
        updates["last_updated_at"] = datetime.now(tz=timezone.utc)  # noqa: UP017
        self._state = self._require_state().model_copy(update=updates)
        await self._tracker.publish(self._state)

    async def _record_error(self, phase: str, message: str) -> None:
        state = self._require_state()
        await self._update_state(errors=[*state.errors, ResearchNote(phase=phase, message=message)])

    async def _record_warning(self, phase: str, message: str) -> None:
        state = self._require_state()
        await self._update_state(warnings=[*state.warnings, ResearchNote(phase=phase, message=message)])

    def _require_state(self) -> ResearchState:
        if self._state is None:
            raise PipelineError(message="No research in progress")
        return self._state

    def _company_name(self) -> str | None:
        company = self._require_state().organizing_company
        return company.name if company else None

    def _ai_enabled(self) -> bool:
        return self._options.enable_ai_validation and self._validation.is_available()

    def _current_year(self) -> int:
        return self._options.current_year or datetime.now(tz=timezone.utc).year  # noqa: UP017


def _matches_any(url: str, patterns: tuple[str, ...]) -> bool:
    lowered = url.lower()
    return any(p in lowered for p in patterns)


def _source_host(url: str) -> str | None:
    host = urlsplit(url).hostname
    if not host:
        return None
    return host.removeprefix("www.")


def _findings_summary(state: ResearchState) -> FindingsSummary:
    return FindingsSummary(
        company_found=bool(state.organizing_company and state.organizing_company.name),
        linkedin_profiles_count=len(state.connections),
        news_articles_count=len(state.news_results.articles) if state.news_results else 0,
        calendar_sources_found=(
            sum(1 for s in state.calendar_results.sources if s.found) if state.calendar_results else 0
        ),
        has_website=bool(state.discovered_homepage),
    )


def _current_results(state: ResearchState) -> dict[str, Any]:
    def dump(model: BaseModel | None) -> dict[str, Any] | None:
        return model.model_dump(mode="json") if model is not None else None

    return {
        "company": dump(state.organizing_company),
        "linkedin": dump(state.connection_results),
        "news": dump(state.news_results),
        "calendar": dump(state.calendar_results),
    }


def _failed_operations(state: ResearchState) -> list[str]:
    """Distinct phases with errors or warnings, first occurrence first."""
    phases = [note.phase for note in [*state.errors, *state.warnings] if note.phase != "orchestrator"]
    return list(dict.fromkeys(phases))
