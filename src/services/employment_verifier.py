"""Employment verification and role classification for discovered profiles.

A LinkedIn search result only says that a profile *mentions* a company.
:func:`verify_employment` grades how strongly the result's title and
snippet tie the person to the company, using an ordered pattern table in
which every pattern embeds the company name:

    works at X / employee at X / employed by X /
    X employee                                         explicit   1.0
    director at X / CEO at X / founder of X / owner of X explicit 0.95
    manager at X / head of ... at X                    explicit   0.9
    at X / bij X                                       title      0.7
    van X                                              title      0.6
    X (bare mention)                                   mention    0.4

The highest-weight match wins; a match of weight >= 0.7 counts as
verified employment.  :func:`determine_role` maps a job title to a coarse
seniority class used to rank connections.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from src.models.research import (
    Connection,
    ConnectionRole,
    DiscoverySource,
    EmploymentVerification,
    MatchType,
)

VERIFIED_THRESHOLD = 0.7
COMPANY_MENTION_WEIGHT = 0.4


@dataclass(frozen=True)
class EmploymentPattern:
    """One row of the verification table.

    ``template`` contains a ``{company}`` placeholder that is replaced by
    the escaped company-name pattern before compiling.
    """

    template: str
    match_type: MatchType
    weight: float
    label: str


EMPLOYMENT_PATTERNS: tuple[EmploymentPattern, ...] = (
    EmploymentPattern(r"\bworks\s+at\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 1.0, "works at"),
    EmploymentPattern(r"\bemployee\s+at\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 1.0, "employee at"),
    EmploymentPattern(r"\bemployed\s+by\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 1.0, "employed by"),
    EmploymentPattern(r"{company}\s+employee\b", MatchType.EXPLICIT_EMPLOYMENT, 1.0, "company employee"),
    EmploymentPattern(r"\bdirector\s+at\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 0.95, "director at"),
    EmploymentPattern(r"\bceo\s+at\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 0.95, "CEO at"),
    EmploymentPattern(r"\bfounder\s+of\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 0.95, "founder of"),
    EmploymentPattern(r"\bowner\s+of\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 0.95, "owner of"),
    EmploymentPattern(r"\bmanager\s+at\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 0.9, "manager at"),
    EmploymentPattern(r"\bhead\s+of\b[^|\n]{0,40}?\bat\s+{company}", MatchType.EXPLICIT_EMPLOYMENT, 0.9, "head of ... at"),
    EmploymentPattern(r"\bat\s+{company}", MatchType.TITLE_MATCH, 0.7, "at"),
    EmploymentPattern(r"\bbij\s+{company}", MatchType.TITLE_MATCH, 0.7, "bij"),
    EmploymentPattern(r"\bvan\s+{company}", MatchType.TITLE_MATCH, 0.6, "van"),
)

_DECISION_MAKER_RE = re.compile(
    r"\b(ceo|founder|co-founder|owner|eigenaar|directeur|director|managing director|"
    r"managing|general manager|oprichter|mede-oprichter|bestuurder)\b",
    re.IGNORECASE,
)
_MANAGER_RE = re.compile(
    r"\b(manager|head|lead|hoofd|coordinator|producer|programmer|chef)\b",
    re.IGNORECASE,
)
_TEAM_MEMBER_RE = re.compile(
    r"\b(festival|event|booking|marketing|production|operations|artist relations|"
    r"pr|communications)\b",
    re.IGNORECASE,
)

# "Name - Title | LinkedIn"; en and em dashes separate the parts too.
_PROFILE_NAME_RE = re.compile(r"^([^-–—|]+)")
_PROFILE_TITLE_RE = re.compile(r"[-–—|]\s*(.+?)(?:\s*[-–—|]|$)")
_LINKEDIN_SUFFIX_RE = re.compile(r"\s*\|\s*LinkedIn$", re.IGNORECASE)

PROFILE_URL_MARKER = "linkedin.com/in/"


def _company_pattern(company_name: str) -> str:
    """Escaped company name tolerant of whitespace runs, bounded by non-word chars."""
    words = company_name.split()
    return r"(?<!\w)" + r"\s+".join(re.escape(w) for w in words) + r"(?!\w)"


def verify_employment(profile_title: str, profile_snippet: str, company_name: str) -> EmploymentVerification:
    """Grade how strongly a search result ties a profile to ``company_name``."""
    company = company_name.strip()
    if not company:
        return EmploymentVerification(
            is_verified=False,
            confidence=0.0,
            match_type=MatchType.UNVERIFIED,
            evidence=["No company name to verify against"],
        )

    text = f"{profile_title} {profile_snippet}"
    company_re = _company_pattern(company)

    if not re.search(company_re, text, re.IGNORECASE):
        return EmploymentVerification(
            is_verified=False,
            confidence=0.0,
            match_type=MatchType.UNVERIFIED,
            evidence=["Company name not found in profile"],
        )

    evidence = [f'Company name "{company}" found in profile']
    best: EmploymentPattern | None = None
    for pattern in EMPLOYMENT_PATTERNS:
        match = re.search(pattern.template.replace("{company}", company_re), text, re.IGNORECASE)
        if match is None:
            continue
        evidence.append(f'Matched: "{match.group(0)}"')
        if best is None or pattern.weight > best.weight:
            best = pattern

    if best is None:
        return EmploymentVerification(
            is_verified=False,
            confidence=COMPANY_MENTION_WEIGHT,
            match_type=MatchType.COMPANY_MENTION,
            evidence=[*evidence, "Company mentioned but no clear employment indicator"],
        )

    return EmploymentVerification(
        is_verified=best.weight >= VERIFIED_THRESHOLD,
        confidence=best.weight,
        match_type=best.match_type,
        evidence=evidence,
    )


def determine_role(job_title: str | None) -> ConnectionRole:
    if not job_title:
        return ConnectionRole.UNKNOWN
    if _DECISION_MAKER_RE.search(job_title):
        return ConnectionRole.DECISION_MAKER
    if _MANAGER_RE.search(job_title):
        return ConnectionRole.MANAGER
    if _TEAM_MEMBER_RE.search(job_title):
        return ConnectionRole.TEAM_MEMBER
    return ConnectionRole.UNKNOWN


def parse_profile_result(
    url: str,
    title: str,
    snippet: str,
    company_name: str | None = None,
    discovered_via: DiscoverySource = DiscoverySource.GENERAL_SEARCH,
) -> Connection | None:
    """Build a :class:`Connection` from one LinkedIn profile search result.

    Returns ``None`` for non-profile URLs and titles without a name.  When
    ``company_name`` is given the connection is annotated with an
    employment verification.
    """
    if not url or PROFILE_URL_MARKER not in url:
        return None

    name_match = _PROFILE_NAME_RE.match(title or "")
    name = name_match.group(1).strip() if name_match else ""
    if not name:
        return None

    title_match = _PROFILE_TITLE_RE.search(title)
    job_title = _LINKEDIN_SUFFIX_RE.sub("", title_match.group(1).strip()) if title_match else None
    if job_title is not None and (not job_title or job_title.lower() == "linkedin"):
        job_title = None

    verification = verify_employment(title, snippet or "", company_name) if company_name else None

    return Connection(
        name=name,
        title=job_title,
        url=url,
        company=company_name,
        role=determine_role(job_title),
        employment_verified=verification.is_verified if verification else False,
        verification=verification,
        discovered_via=discovered_via,
    )


def sort_connections_by_relevance(connections: Iterable[Connection]) -> list[Connection]:
    """Verified first, then by role priority, then by verification confidence."""
    return sorted(
        connections,
        key=lambda c: (
            not c.employment_verified,
            c.role.priority,
            -(c.verification.confidence if c.verification else 0.0),
        ),
    )


def get_verified_connections(connections: Sequence[Connection]) -> list[Connection]:
    return [c for c in connections if c.employment_verified]


def group_connections_by_role(connections: Sequence[Connection]) -> dict[ConnectionRole, list[Connection]]:
    """Connections bucketed by role; every role key is present."""
    groups: dict[ConnectionRole, list[Connection]] = {role: [] for role in ConnectionRole}
    for connection in connections:
        groups[connection.role].append(connection)
    return groups
