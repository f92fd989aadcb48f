"""Shared pytest fixtures for the festival research test suite."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import logging

import pytest
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.task_runner import SUCCEEDED, ITaskRunner, TaskRun
from src.services.search_gateway import DEFAULT_SEARCH_TASK_ID

# ---------------------------------------------------------------------------
# Task runners
# ---------------------------------------------------------------------------


class ScriptedTaskRunner(ITaskRunner):
    """Returns (or raises) queued outcomes in order; repeats the last one."""

    def __init__(self, outcomes: list[TaskRun | BaseException], available: bool = True) -> None:
        self._outcomes = list(outcomes)
        self._available = available
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def run_task(self, task_id: str, task_input: dict[str, Any]) -> TaskRun:
        self.calls.append((task_id, task_input))
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def get_provider_name(self) -> str:
        return "scripted"

    def is_available(self) -> bool:
        return self._available


class FakeWebRunner(ITaskRunner):
    """Serves canned search results and page contents.

    ``search_rules`` is an ordered list of ``(substring, organic_results)``;
    a search query gets the results of the first rule whose substring it
    contains.  ``pages`` maps a URL to its markdown text; any other browser
    query yields no records.
    """

    def __init__(
        self,
        search_rules: list[tuple[str, list[dict[str, str]]]] | None = None,
        pages: dict[str, str] | None = None,
        available: bool = True,
    ) -> None:
        self._search_rules = search_rules or []
        self._pages = pages or {}
        self._available = available
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def run_task(self, task_id: str, task_input: dict[str, Any]) -> TaskRun:
        self.calls.append((task_id, task_input))
        if task_id == DEFAULT_SEARCH_TASK_ID:
            records = [
                {"searchQuery": {"term": query}, "organicResults": self._search(query)}
                for query in task_input["queries"].split("\n")
            ]
            return TaskRun(status=SUCCEEDED, output_records=records)

        query = task_input["query"]
        if query in self._pages:
            return TaskRun(status=SUCCEEDED, output_records=[{"url": query, "markdown": self._pages[query]}])
        return TaskRun(status=SUCCEEDED, output_records=[])

    def _search(self, query: str) -> list[dict[str, str]]:
        for substring, results in self._search_rules:
            if substring in query:
                return results
        return []

    def searched_queries(self) -> list[str]:
        return [
            query
            for task_id, task_input in self.calls
            if task_id == DEFAULT_SEARCH_TASK_ID
            for query in task_input["queries"].split("\n")
        ]

    def get_provider_name(self) -> str:
        return "fake-web"

    def is_available(self) -> bool:
        return self._available


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------


class RoutedLLM(ILLMProvider):
    """Answers with ``handler(system_prompt, user_prompt)``; records calls."""

    def __init__(self, handler: Callable[[str, str], str], available: bool = True) -> None:
        self._handler = handler
        self._available = available
        self.calls: list[tuple[str, str]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> str:
        self.calls.append((system_prompt, user_prompt))
        return self._handler(system_prompt, user_prompt)

    def get_provider_name(self) -> str:
        return "routed"

    def is_available(self) -> bool:
        return self._available


class FakeClock:
    """Manually advanced stand-in for ``time.monotonic``."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Festival fixture data
# ---------------------------------------------------------------------------

FESTIVAL_NAME = "Zomerfeest"
HOMEPAGE = "https://www.zomerfeest.nl/"
COMPANY_PAGE_URL = "https://nl.linkedin.com/company/zomer-events"


def zomerfeest_search_rules() -> list[tuple[str, list[dict[str, str]]]]:
    return [
        (
            "official website",
            [
                {"url": "https://www.facebook.com/zomerfeest", "title": "Zomerfeest | Facebook"},
                {"url": HOMEPAGE, "title": "Zomerfeest 2026", "description": "Het zomerfestival"},
            ],
        ),
        (
            "site:linkedin.com/company",
            [
                {
                    "url": COMPANY_PAGE_URL,
                    "title": "Zomer Events | LinkedIn",
                    "description": "Zomer Events organiseert Zomerfeest.",
                },
            ],
        ),
        (
            'site:linkedin.com/in "works at Zomer Events"',
            [
                {
                    "url": "https://nl.linkedin.com/in/anna-jansen",
                    "title": "Anna Jansen - Director at Zomer Events | LinkedIn",
                    "description": "Director at Zomer Events. Organiser of Zomerfeest.",
                },
                {
                    "url": "https://nl.linkedin.com/in/pieter-de-vries",
                    "title": "Pieter de Vries - Marketing Manager - Zomer Events | LinkedIn",
                    "description": "Marketing manager at Zomer Events since 2019.",
                },
                {
                    "url": "https://nl.linkedin.com/in/sanne-smit",
                    "title": "Sanne Smit - Freelance Photographer | LinkedIn",
                    "description": "Shot photos for Zomer Events once.",
                },
            ],
        ),
        (
            'site:linkedin.com/in "Zomerfeest"',
            [
                {
                    "url": "https://nl.linkedin.com/in/anna-jansen",
                    "title": "Anna Jansen - Director at Zomer Events | LinkedIn",
                    "description": "Director at Zomer Events.",
                },
                {
                    "url": "https://nl.linkedin.com/in/kees-bakker",
                    "title": "Kees Bakker - Festival Producer | LinkedIn",
                    "description": "Producer of Zomerfeest.",
                },
            ],
        ),
        (
            "news OR review",
            [
                {"url": "https://www.linkedin.com/posts/zomerfeest-123", "title": "Zomerfeest post"},
                {"url": "https://www.nu.nl/zomerfeest-2026", "title": "Zomerfeest 2026 sells out"},
                {"url": "https://festivalnieuws.nl/zomerfeest-review", "title": ""},
            ],
        ),
    ]


def zomerfeest_pages() -> dict[str, str]:
    return {
        HOMEPAGE: "Welcome to Zomerfeest 2026! © 2026 Zomer Events B.V. All rights reserved.",
        "https://www.zomerfeest.nl/privacy": (
            "Privacy statement. Deze website wordt beheerd door Zomer Events B.V., "
            "KvK-nummer: 12345678."
        ),
        "https://www.nu.nl/zomerfeest-2026": (
            "Published 2026-03-14. Zomerfeest is sold out for the first time in its history."
        ),
        "https://www.festivalinfo.nl/zoek/?q=Zomerfeest": "Zomerfeest 2026 line-up. Earlier: Zomerfeest 2025.",
        "https://partyflock.nl/search?query=Zomerfeest": "Zomerfeest 2024 edition photos.",
    }


def judgment_handler(
    company: dict[str, Any] | None = None,
    irrelevant_people: tuple[str, ...] = (),
) -> Callable[[str, str], str]:
    """LLM handler answering every judgment kind with plausible JSON."""
    company_answer = company or {
        "isValid": True,
        "confidence": 0.9,
        "normalizedName": "Zomer Events",
        "companyType": "bv",
        "reasoning": "B.V. named in the privacy statement",
    }

    def handler(system_prompt: str, user_prompt: str) -> str:
        if "validating company information" in system_prompt:
            return json.dumps(company_answer)
        if "key people" in system_prompt:
            relevant = not any(name in user_prompt for name in irrelevant_people)
            return json.dumps(
                {
                    "isRelevant": relevant,
                    "confidence": 0.8 if relevant else 0.1,
                    "role": "organizer",
                    "isDecisionMaker": relevant,
                    "reasoning": "Title matches the organizer",
                }
            )
        if "analyzing content" in system_prompt:
            return (
                "```json\n"
                + json.dumps(
                    {
                        "isRelevant": True,
                        "confidence": 0.85,
                        "quality": "high",
                        "summary": "Zomerfeest sold out in record time.",
                        "keyFacts": ["sold out"],
                        "reasoning": "Article is about the festival",
                    }
                )
                + "\n```"
            )
        if "completeness and reliability" in system_prompt:
            return json.dumps({"score": 0.8, "level": "high", "reasoning": "Solid findings"})
        return json.dumps({"shouldRetry": False, "strategies": [], "alternativeApproaches": []})

    return handler


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_logging_config():
    """Undo logging configuration done inside a test (e.g. by the CLI).

    The CLI binds structlog and the root handler to the current stderr,
    which pytest closes at the end of the test.
    """
    saved_config = structlog.get_config()
    root_logger = logging.getLogger()
    saved_handlers = list(root_logger.handlers)
    saved_level = root_logger.level
    yield
    structlog.configure(**saved_config)
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Return a minimal merged configuration for testing."""
    return {
        "task_platform": {
            "circuit_breaker_threshold": 3,
            "circuit_breaker_cooldown_seconds": 60,
            "backoff_base_seconds": 1.0,
            "backoff_max_seconds": 30.0,
            "backoff_max_jitter_seconds": 0.5,
            "default_max_retries": 2,
            "call_timeout_seconds": 300,
            "wait_for_finish_seconds": 60,
            "configured": False,
        },
        "research": {
            "max_retries": 3,
            "enable_ai_validation": True,
            "min_confidence_to_pass": 0.3,
            "parallel_execution": True,
            "fallback_to_basic_search": True,
            "max_connections": 15,
        },
    }


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_web() -> FakeWebRunner:
    return FakeWebRunner(search_rules=zomerfeest_search_rules(), pages=zomerfeest_pages())
