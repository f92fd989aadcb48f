"""AI validation service - LLM judgments over research findings.

Five judgment kinds are supported, each with its own system prompt and a
fixed pydantic schema (src/models/validation.py):

- ``validate_company_name``  → :class:`CompanyValidation`
- ``validate_person``        → :class:`PersonValidation`
- ``validate_content``       → :class:`ContentValidation`
- ``generate_confidence_score`` → :class:`ConfidenceJudgment`
- ``suggest_retry_strategy`` → :class:`RetryStrategy`

The service never raises.  Without an LLM provider, when the provider call
fails, or when the answer is not valid JSON matching the schema, every
method returns a documented default judgment.  The confidence and retry
judgments fall back to pure heuristics so callers always get a usable
answer offline.
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from src.interfaces.llm_provider import ILLMProvider
from src.models.validation import (
    CompanyValidation,
    ConfidenceJudgment,
    ContentType,
    ContentValidation,
    FindingsSummary,
    PersonValidation,
    RetryStep,
    RetryStrategy,
)
from src.utils.confidence import confidence_to_level
from src.utils.logging import get_logger

_J = TypeVar("_J", bound=BaseModel)

# Matches a markdown code fence (```json ... ``` or ``` ... ```) around the
# model's JSON answer.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

UNAVAILABLE_REASONING = "AI validation unavailable"
HEURISTIC_REASONING = "Basic heuristic calculation (AI unavailable)"

# Presence weights for the non-AI confidence heuristic (sum to 1.0).
_HEURISTIC_WEIGHTS = {
    "company": 0.3,
    "profiles": 0.2,
    "news": 0.2,
    "calendar": 0.15,
    "website": 0.15,
}

_COMPANY_SYSTEM_PROMPT = """\
You are an expert at validating company information for Dutch festivals.
Your task is to validate if an extracted company name is legitimate and actually organizes the given festival.

Response format (JSON only):
{
  "isValid": boolean,
  "confidence": number (0-1),
  "normalizedName": string or null,
  "companyType": "bv" | "nv" | "stichting" | "vof" | "unknown" | null,
  "reasoning": string,
  "suggestedCorrections": string[] (optional)
}"""

_PERSON_SYSTEM_PROMPT = """\
You are an expert at identifying key people involved in festival organization.
Determine if a LinkedIn profile is relevant to the festival and likely to be a decision-maker.

Response format (JSON only):
{
  "isRelevant": boolean,
  "confidence": number (0-1),
  "role": string or null (e.g., "organizer", "marketing", "founder", "production"),
  "isDecisionMaker": boolean,
  "reasoning": string
}"""

_CONTENT_SYSTEM_PROMPT = """\
You are an expert at analyzing content about music festivals.
Evaluate if content is relevant, extract key information, and assess quality.

Response format (JSON only):
{
  "isRelevant": boolean,
  "confidence": number (0-1),
  "quality": "high" | "medium" | "low",
  "summary": string (2-3 sentences),
  "keyFacts": string[] (max 5 facts),
  "reasoning": string
}"""

_CONFIDENCE_SYSTEM_PROMPT = """\
You are evaluating the completeness and reliability of research about a festival.
Calculate a confidence score based on what information was found.

Response format (JSON only):
{
  "score": number (0-1),
  "level": "high" | "medium" | "low",
  "reasoning": string
}"""

_RETRY_SYSTEM_PROMPT = """\
You are a research strategy advisor for festival data collection.
Based on current results and failures, suggest retry strategies and alternatives.

Response format (JSON only):
{
  "shouldRetry": boolean,
  "strategies": [{"operation": string, "suggestion": string}],
  "alternativeApproaches": string[]
}"""


def heuristic_confidence(findings: FindingsSummary) -> ConfidenceJudgment:
    """Confidence from the presence or absence of each kind of finding."""
    score = 0.0
    if findings.company_found:
        score += _HEURISTIC_WEIGHTS["company"]
    if findings.linkedin_profiles_count > 0:
        score += _HEURISTIC_WEIGHTS["profiles"]
    if findings.news_articles_count > 0:
        score += _HEURISTIC_WEIGHTS["news"]
    if findings.calendar_sources_found > 0:
        score += _HEURISTIC_WEIGHTS["calendar"]
    if findings.has_website:
        score += _HEURISTIC_WEIGHTS["website"]
    score = min(1.0, score)

    return ConfidenceJudgment(
        score=score,
        level=confidence_to_level(score).value,
        reasoning=HEURISTIC_REASONING,
    )


def default_retry_strategy(failed_operations: list[str]) -> RetryStrategy:
    """Retry every failed operation unchanged."""
    return RetryStrategy(
        should_retry=bool(failed_operations),
        strategies=[
            RetryStep(operation=op, suggestion="Retry with default parameters")
            for op in failed_operations
        ],
    )


class AIValidationService:
    """Typed LLM judgments with deterministic fallbacks.

    Parameters
    ----------
    llm_provider:
        Backend used for completions, or ``None`` to run fully offline.
    temperature:
        Sampling temperature for every judgment.
    max_tokens:
        Response token cap for every judgment.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> None:
        self._llm = llm_provider
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    def is_available(self) -> bool:
        return self._llm is not None and self._llm.is_available()

    # ------------------------------------------------------------------
    # Judgments
    # ------------------------------------------------------------------

    async def validate_company_name(
        self,
        festival_name: str,
        extracted_company: str | None,
        source_url: str,
        source_content: str | None = None,
    ) -> CompanyValidation:
        """Judge whether ``extracted_company`` really organizes the festival."""
        default = CompanyValidation(is_valid=False, confidence=0.0, reasoning=UNAVAILABLE_REASONING)
        if not extracted_company:
            return default

        excerpt = f"Source Content (excerpt): {source_content[:1000]}" if source_content else ""
        user_prompt = (
            f"Festival: {festival_name}\n"
            f"Extracted Company: {extracted_company}\n"
            f"Source URL: {source_url}\n"
            f"{excerpt}\n\n"
            "Validate this company extraction. Consider:\n"
            "1. Does the company name make sense for organizing a festival?\n"
            "2. Does it follow Dutch company naming conventions (B.V., N.V., Stichting, etc.)?\n"
            "3. Is it likely to be the actual organizer vs. a sponsor or partner?\n"
            "4. What is your confidence level in this extraction?"
        )
        judgment = await self._judge("company", _COMPANY_SYSTEM_PROMPT, user_prompt, CompanyValidation)
        return judgment or default

    async def validate_person(
        self,
        festival_name: str,
        person_name: str,
        person_title: str | None,
        person_company: str | None,
        organizing_company: str | None,
    ) -> PersonValidation:
        """Judge a discovered profile's relevance and decision-making power."""
        default = PersonValidation(
            is_relevant=False,
            confidence=0.0,
            is_decision_maker=False,
            reasoning=UNAVAILABLE_REASONING,
        )

        company_line = f"Organizing Company: {organizing_company}\n" if organizing_company else ""
        user_prompt = (
            f"Festival: {festival_name}\n"
            f"{company_line}\n"
            "LinkedIn Profile:\n"
            f"- Name: {person_name}\n"
            f"- Title: {person_title or 'Unknown'}\n"
            f"- Company: {person_company or 'Unknown'}\n\n"
            "Evaluate if this person is:\n"
            "1. Actually connected to this festival/company\n"
            "2. In a position to make decisions about sponsorships, partnerships, bookings\n"
            "3. Relevant for business development purposes"
        )
        judgment = await self._judge("person", _PERSON_SYSTEM_PROMPT, user_prompt, PersonValidation)
        return judgment or default

    async def validate_content(
        self,
        festival_name: str,
        content: str,
        content_type: ContentType,
    ) -> ContentValidation:
        """Judge a fetched page's relevance and summarise it."""
        default = ContentValidation(
            is_relevant=False,
            confidence=0.0,
            quality="low",
            summary="",
            reasoning=UNAVAILABLE_REASONING,
        )
        if not content:
            return default

        user_prompt = (
            f"Festival: {festival_name}\n"
            f"Content Type: {content_type}\n"
            f"Content:\n{content[:3000]}\n\n"
            "Analyze this content for:\n"
            "1. Is it actually about the festival (not just mentioning it)?\n"
            "2. Is the information current and accurate?\n"
            "3. What are the key facts (dates, location, lineup, status)?\n"
            "4. Is this high-quality source content?"
        )
        judgment = await self._judge("content", _CONTENT_SYSTEM_PROMPT, user_prompt, ContentValidation)
        return judgment or default

    async def generate_confidence_score(
        self,
        festival_name: str,
        findings: FindingsSummary,
    ) -> ConfidenceJudgment:
        """Overall confidence in the findings; heuristic when AI is unusable."""
        user_prompt = (
            f"Festival: {festival_name}\n\n"
            "Research Results:\n"
            f"- Organizing company found: {findings.company_found}\n"
            f"- LinkedIn profiles found: {findings.linkedin_profiles_count}\n"
            f"- News articles found: {findings.news_articles_count}\n"
            f"- Calendar sources confirming: {findings.calendar_sources_found}\n"
            f"- Website available: {findings.has_website}\n\n"
            "Generate a confidence score considering:\n"
            "1. How complete is the research?\n"
            "2. Can we trust the festival is legitimate and active?\n"
            "3. Do we have enough information for business outreach?"
        )
        judgment = await self._judge("confidence", _CONFIDENCE_SYSTEM_PROMPT, user_prompt, ConfidenceJudgment)
        return judgment or heuristic_confidence(findings)

    async def suggest_retry_strategy(
        self,
        festival_name: str,
        current_results: dict[str, Any],
        failed_operations: list[str],
    ) -> RetryStrategy:
        """Advice on retrying ``failed_operations``; retry-all by default."""
        user_prompt = (
            f"Festival: {festival_name}\n\n"
            f"Current Results: {json.dumps(current_results, indent=2, default=str)}\n\n"
            f"Failed Operations: {', '.join(failed_operations)}\n\n"
            "Suggest:\n"
            "1. Should we retry failed operations? If so, how?\n"
            "2. What alternative approaches could yield better results?\n"
            "3. Are there different search terms or strategies to try?"
        )
        judgment = await self._judge("retry_strategy", _RETRY_SYSTEM_PROMPT, user_prompt, RetryStrategy)
        return judgment or default_retry_strategy(failed_operations)

    # ------------------------------------------------------------------
    # LLM call and response parsing
    # ------------------------------------------------------------------

    async def _judge(
        self,
        kind: str,
        system_prompt: str,
        user_prompt: str,
        schema: type[_J],
    ) -> _J | None:
        """Ask the model for one judgment; ``None`` when it is unusable."""
        if not self.is_available():
            return None

        try:
            response = await self._llm.complete(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            self._logger.warning("ai_judgment_call_failed", kind=kind, error=str(exc))
            return None

        return self._parse_judgment(kind, response, schema)

    def _parse_judgment(self, kind: str, response: str | None, schema: type[_J]) -> _J | None:
        if not response:
            return None

        text = response.strip()
        fence_match = _JSON_FENCE_RE.search(text)
        if fence_match:
            text = fence_match.group(1)

        try:
            return schema.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            self._logger.warning("ai_judgment_unparseable", kind=kind, error=str(exc))
            return None
