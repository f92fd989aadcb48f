"""Confidence scoring utilities for festival research findings.

Every research phase attaches a confidence (0.0--1.0) to what it found, and
the validation phase blends those into one run-level confidence.  This
module provides:

1. **calculate_confidence** -- Weighted average of multiple score signals.
   Used to combine the four per-phase confidences into the run confidence.
2. **confidence_to_level** -- Maps a numeric score to the three-band
   :class:`ConfidenceLevel` (high / medium / low) shown in reports.
3. **Per-phase formulas** -- company, connection, news and calendar
   confidences, each a pure function of counts the phase collected.
4. **calculate_run_confidence** -- The run-level confidence for a fully
   accumulated :class:`ResearchState`.

All functions are pure: the same inputs always give the same score.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.models.research import (
    CalendarSource,
    ConfidenceLevel,
    Connection,
    ConnectionRole,
    ResearchState,
)

# Weights of the four sub-confidences in the run confidence.  Connections
# carry the most weight: a verified decision-maker is the finding a sales
# team acts on.
RUN_CONFIDENCE_WEIGHTS: dict[str, float] = {
    "company": 0.25,
    "connections": 0.35,
    "news": 0.15,
    "calendar": 0.25,
}


def calculate_confidence(
    scores: list[float],
    weights: list[float] | None = None,
) -> float:
    """Compute a weighted average confidence score.

    Args:
        scores: Individual confidence scores, each in [0.0, 1.0].
        weights: Optional weights for each score. Defaults to equal weighting.

    Returns:
        Weighted average clamped to [0.0, 1.0].

    Raises:
        ValueError: If scores is empty or lengths of scores and weights differ.
    """
    if not scores:
        raise ValueError("scores must not be empty")

    if weights is None:
        weights = [1.0] * len(scores)

    if len(scores) != len(weights):
        raise ValueError("scores and weights must have the same length")

    total_weight = sum(weights)
    if total_weight == 0:
        return 0.0

    weighted_sum = sum(s * w for s, w in zip(scores, weights, strict=True))
    # Clamp to [0.0, 1.0] to guard against floating-point drift.
    return max(0.0, min(1.0, weighted_sum / total_weight))


def confidence_to_level(score: float) -> ConfidenceLevel:
    """Map a run confidence to its band: high >= 0.7, medium >= 0.4, else low."""
    if score >= 0.7:
        return ConfidenceLevel.HIGH
    if score >= 0.4:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def calculate_company_confidence(occurrences: int, has_registration_number: bool) -> float:
    """Heuristic confidence for an extracted company name.

    Grows with the number of pages/patterns that produced the same name,
    capped at 0.9; a registration number adds 0.2 (capped at 1.0).
    """
    if occurrences <= 0:
        return 0.0
    confidence = min(0.9, 0.3 + occurrences * 0.15)
    if has_registration_number:
        confidence = min(1.0, confidence + 0.2)
    return confidence


def calculate_connection_confidence(connections: Sequence[Connection]) -> float:
    """Search confidence for the ranked connection list."""
    if not connections:
        return 0.0
    verified = sum(1 for c in connections if c.employment_verified)
    decision_makers = sum(1 for c in connections if c.role is ConnectionRole.DECISION_MAKER)
    return min(0.95, 0.2 + verified * 0.15 + decision_makers * 0.1 + len(connections) * 0.05)


def calculate_news_confidence(article_count: int) -> float:
    if article_count <= 0:
        return 0.0
    return min(0.9, 0.3 + article_count * 0.12)


def calculate_calendar_confidence(sources: Sequence[CalendarSource]) -> float:
    found = sum(1 for s in sources if s.found)
    if found == 0:
        return 0.0
    current = sum(1 for s in sources if s.is_current)
    return min(0.9, 0.3 + found * 0.15 + current * 0.1)


def calculate_social_confidence(state: ResearchState) -> float:
    """Connections sub-confidence used by the run confidence.

    Blends 40% of the raw search confidence with fixed bonuses for a
    verified employee, a decision-maker and a company page, capped at 0.95.
    """
    connections = state.connections
    search_confidence = state.connection_results.confidence if state.connection_results else 0.0
    has_verified = any(c.employment_verified for c in connections)
    has_decision_maker = any(c.role is ConnectionRole.DECISION_MAKER for c in connections)

    return min(
        0.95,
        search_confidence * 0.4
        + (0.3 if has_verified else 0.0)
        + (0.2 if has_decision_maker else 0.0)
        + (0.15 if state.company_page is not None else 0.0),
    )


def calculate_run_confidence(state: ResearchState) -> tuple[float, ConfidenceLevel]:
    """Overall confidence (0--1) and its band for a fully accumulated state."""
    sub_scores = {
        "company": state.organizing_company.confidence if state.organizing_company else 0.0,
        "connections": calculate_social_confidence(state),
        "news": state.news_results.confidence if state.news_results else 0.0,
        "calendar": state.calendar_results.confidence if state.calendar_results else 0.0,
    }
    # Weights sum to 1.0, so the weighted average is the weighted sum.
    overall = calculate_confidence(
        [sub_scores[key] for key in RUN_CONFIDENCE_WEIGHTS],
        list(RUN_CONFIDENCE_WEIGHTS.values()),
    )
    return overall, confidence_to_level(overall)
