"""Organizing-company extraction from festival website text.

A pluggable, ordered table of :class:`ExtractionRule` objects is run over
each page's text.  Candidate rules capture a legal-entity name (``X B.V.``,
``Stichting X``, ``organised by X``, ``© 2024 X``); registration rules
capture an 8-digit KvK (Dutch chamber of commerce) number.  Candidates are
tallied case-insensitively across all pages and the most frequent one
wins.  Everything here is pure: no I/O, no logging.

Extend the table by passing ``rules=`` to :func:`extract_company`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

from src.utils.confidence import calculate_company_confidence

# Capitalised name of up to five words joined by single spaces.
_NAME = r"[A-Z0-9][\w&'\.\-]*(?:[ ][A-Z0-9&][\w&'\.\-]*){0,4}"

_SENTENCE_BREAK_RE = re.compile(r"\.\s")
_LEGAL_SUFFIX_RE = re.compile(r"\s+(?:B\.?V|N\.?V)\.?$", re.IGNORECASE)

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 80

# Candidate pages, relative to the site origin; only the first
# ``MAX_PAGES`` are fetched.
CANDIDATE_PATHS: tuple[str, ...] = ("", "/privacy", "/contact", "/about", "/over-ons")
MAX_PAGES = 3


class RuleKind(str, Enum):  # noqa: UP042
    CANDIDATE = "candidate"
    REGISTRATION = "registration"


@dataclass(frozen=True)
class ExtractionRule:
    """One pattern in the extraction table; group 1 is the extracted value."""

    name: str
    pattern: re.Pattern[str]
    kind: RuleKind = RuleKind.CANDIDATE


DEFAULT_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        "bv_suffix",
        re.compile(r"([A-Z][\w&'\-]*(?:[ ][A-Z0-9&][\w&'\-]*){0,4})\s+(?i:B\.?V\.?)(?![A-Za-z])"),
    ),
    ExtractionRule(
        "foundation",
        re.compile(rf"(?i:stichting|foundation)\s+({_NAME})"),
    ),
    ExtractionRule(
        "organised_by",
        re.compile(rf"(?i:organi[sz]ed|georganiseerd)\s+(?i:by|door)\s+({_NAME})"),
    ),
    ExtractionRule(
        "copyright",
        re.compile(rf"©\s*\d{{4}}\s+({_NAME})"),
    ),
    ExtractionRule(
        "kvk_number",
        re.compile(r"(?i:KvK)(?:[\s\-]*(?i:nummer|nr\.?|number))?[:\s]+(\d{8})"),
        RuleKind.REGISTRATION,
    ),
)


@dataclass
class CompanyCandidate:
    name: str
    source_url: str
    count: int = 1


@dataclass
class PageMatches:
    """Raw matches from one page of text."""

    names: list[str] = field(default_factory=list)
    registration_numbers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CompanyExtraction:
    """Outcome of :func:`extract_company` over all fetched pages."""

    best: CompanyCandidate | None
    registration_number: str | None
    candidates: tuple[CompanyCandidate, ...] = ()

    @property
    def confidence(self) -> float:
        if self.best is None:
            return 0.0
        return calculate_company_confidence(self.best.count, self.registration_number is not None)


def candidate_pages(website_url: str) -> list[str]:
    """The home page plus well-known legal pages on the same origin."""
    origin = _origin(website_url)
    pages = [website_url] + [f"{origin}{path}" for path in CANDIDATE_PATHS if path]
    return pages[:MAX_PAGES]


def clean_candidate(raw: str) -> str:
    """Cut at a sentence break and drop a trailing legal-form suffix."""
    name = _SENTENCE_BREAK_RE.split(raw, maxsplit=1)[0]
    name = _LEGAL_SUFFIX_RE.sub("", name.strip())
    return name.strip(" .,;:-")


def match_page(text: str, rules: Sequence[ExtractionRule] = DEFAULT_RULES) -> PageMatches:
    matches = PageMatches()
    for rule in rules:
        for match in rule.pattern.finditer(text):
            value = (match.group(1) or "").strip()
            if not value:
                continue
            if rule.kind is RuleKind.REGISTRATION:
                matches.registration_numbers.append(value)
                continue
            name = clean_candidate(value)
            if MIN_NAME_LENGTH < len(name) < MAX_NAME_LENGTH:
                matches.names.append(name)
    return matches


def extract_company(
    pages: Iterable[tuple[str, str]],
    rules: Sequence[ExtractionRule] = DEFAULT_RULES,
) -> CompanyExtraction:
    """Tally company-name candidates over ``(url, text)`` pages.

    The candidate seen most often wins; ties keep first-seen order.  The
    last registration number found on any page is reported.
    """
    tally: dict[str, CompanyCandidate] = {}
    registration_number: str | None = None

    for url, text in pages:
        matches = match_page(text, rules)
        if matches.registration_numbers:
            registration_number = matches.registration_numbers[-1]
        for name in matches.names:
            key = name.lower()
            if key in tally:
                tally[key].count += 1
            else:
                tally[key] = CompanyCandidate(name=name, source_url=url)

    ranked = sorted(tally.values(), key=lambda c: c.count, reverse=True)
    return CompanyExtraction(
        best=ranked[0] if ranked else None,
        registration_number=registration_number,
        candidates=tuple(ranked),
    )


def _origin(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url.rstrip("/")
    return f"{parts.scheme}://{parts.netloc}"
