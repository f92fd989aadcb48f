# =============================================================================
# src/cli/research.py - CLI Research Command
# =============================================================================
#
# Standalone CLI tool for researching one festival from the command line.
# Runs the full self-healing pipeline:
#
#   website -> organizing company -> LinkedIn company page -> people ->
#   news + calendars -> validation
#
# Typical usage:
#   python -m src.cli.research "Lowlands"
#   python -m src.cli.research "Lowlands" --url https://lowlands.nl --json
#   python -m src.cli.research "Lowlands" --sequential --no-ai -o out.json
#
# Progress lines and logs go to stderr; stdout carries only the report.
# =============================================================================

"""Standalone CLI for researching a festival.

Usage::

    python -m src.cli.research "Festival Name"
    python -m src.cli.research "Festival Name" --url https://example.nl --json

Prints a formatted report (or JSON with ``--json``) of the final research
state.  Exits 0 when the run completed, 1 when it failed and 2 when the
task platform token is missing.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path

from src.config.settings import Settings
from src.models.research import ResearchPhase, ResearchState
from src.utils.errors import ConfigurationError
from src.utils.quality_metrics import format_quality_score_for_display

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_text_output(state: ResearchState) -> str:
    """Format the research state as a human-readable text report.

    Sections are only included when the run produced data for them.
    """
    lines: list[str] = []
    sep = "=" * 60

    lines.append(sep)
    lines.append(f"  Festival Research — {state.festival_name}")
    lines.append(sep)
    lines.append(f"Status: {state.phase.value}  |  Attempts: {state.attempts}")
    lines.append(
        f"Confidence: {state.overall_confidence:.0%} ({state.confidence_level.value})"
    )
    lines.append("")

    if state.discovered_homepage:
        lines.append(f"Website:  {state.discovered_homepage}")

    company = state.organizing_company
    if company and company.name:
        kvk = f"  |  KvK {company.registration_number}" if company.registration_number else ""
        lines.append(f"Company:  {company.name} ({company.confidence:.0%}){kvk}")

    if state.company_page:
        lines.append(f"LinkedIn: {state.company_page.url}")
    lines.append("")

    if state.connections:
        lines.append("CONNECTIONS")
        lines.append("-" * 40)
        for connection in state.connections:
            mark = "✓" if connection.employment_verified else " "
            title = f" — {connection.title}" if connection.title else ""
            lines.append(f"  [{mark}] {connection.name}{title} ({connection.role.value})")
            lines.append(f"      {connection.url}")
        lines.append("")

    if state.news_results and state.news_results.articles:
        lines.append("NEWS")
        lines.append("-" * 40)
        for article in state.news_results.articles:
            date = f" [{article.date}]" if article.date else ""
            lines.append(f"  {article.title}{date}")
            lines.append(f"      {article.url}")
        lines.append("")

    if state.calendar_results:
        lines.append("CALENDARS")
        lines.append("-" * 40)
        for source in state.calendar_results.sources:
            if not source.found:
                lines.append(f"  {source.name}: not listed")
                continue
            year = f" ({source.edition_year})" if source.edition_year else ""
            current = " current" if source.is_current else ""
            lines.append(f"  {source.name}: listed{year}{current}")
        lines.append("")

    if state.quality_score:
        display = format_quality_score_for_display(state.quality_score)
        lines.append(f"QUALITY: {display.badge}")
        lines.append("-" * 40)
        for detail in display.details:
            lines.append(f"  {detail.label}: {detail.value}")
        for suggestion in display.suggestions:
            lines.append(f"  → {suggestion}")
        lines.append("")

    for note in state.errors:
        lines.append(f"  ✗ [{note.phase}] {note.message}")
    for note in state.warnings:
        lines.append(f"  ⚠ [{note.phase}] {note.message}")

    return "\n".join(lines)


def _format_json_output(state: ResearchState) -> str:
    return json.dumps(state.model_dump(mode="json"), indent=2, default=str)


def _print_progress(state: ResearchState) -> None:
    print(f"  … {state.phase.value}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace) -> int:
    """Run the research and write the report.

    Returns 0 when the run completed, 1 when it failed.

    Raises
    ------
    ConfigurationError
        If no task platform token is configured.
    """
    # Deferred import: src.main pulls in the provider SDKs.
    from src.main import run_research

    settings = Settings()
    if not settings.apify_api_token:
        raise ConfigurationError(message="APIFY_API_TOKEN is not set; the task platform is unreachable")

    overrides: dict = {}
    if args.sequential:
        overrides["parallel_execution"] = False
    if args.no_ai:
        overrides["enable_ai_validation"] = False

    print(f"Researching: {args.festival_name}", file=sys.stderr)
    start = time.monotonic()

    last_phase: list[ResearchPhase] = []

    def _on_progress(state: ResearchState) -> None:
        if not last_phase or last_phase[-1] is not state.phase:
            last_phase.append(state.phase)
            if not args.quiet:
                _print_progress(state)

    state = await run_research(
        args.festival_name,
        festival_url=args.url,
        festival_id=args.festival_id,
        custom_settings=settings,
        option_overrides=overrides,
        on_progress=_on_progress,
    )

    print(f"Done in {time.monotonic() - start:.1f}s", file=sys.stderr)

    text = _format_json_output(state) if args.json_output else _format_text_output(state)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Results written to: {args.output}", file=sys.stderr)
    else:
        print(text)

    return 0 if state.phase is ResearchPhase.COMPLETED else 1


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.research",
        description=(
            "Research a festival: website, organizing company, LinkedIn "
            "contacts, news coverage and calendar listings."
        ),
    )
    parser.add_argument("festival_name", type=str, help="Name of the festival.")
    parser.add_argument("--id", dest="festival_id", default=None, help="Identifier for this run.")
    parser.add_argument("--url", default=None, help="Known festival homepage; skips website discovery.")
    parser.add_argument("--json", action="store_true", dest="json_output", help="Output JSON.")
    parser.add_argument("--output", "-o", default=None, help="Write results to a file instead of stdout.")
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Run news and calendar verification one after the other.",
    )
    parser.add_argument("--no-ai", action="store_true", dest="no_ai", help="Disable AI validation.")
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings (auto-enabled with --json).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point; exits with the run's status code."""
    args = _build_parser().parse_args(argv)
    args.quiet = args.quiet or args.json_output

    # Configure before src.main is imported so cached loggers use stderr.
    from src.utils.logging import configure_logging

    configure_logging(log_level="WARNING" if args.quiet else "INFO", stream=sys.stderr)

    try:
        exit_code = asyncio.run(_run(args))
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 2
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
