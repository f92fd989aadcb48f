"""Festival research application wiring.

Builds the providers and services for a research run via dependency
injection and exposes :func:`run_research` for CLI or scripting usage.
Loads configuration from ``.env`` and ``config/config.yaml``.

Provider selection:
    task runner   ApifyTaskRunner (requires APIFY_API_TOKEN)
    LLM           Anthropic -> OpenAI -> none (AI validation falls back
                  to heuristic defaults)
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

import httpx
import structlog

from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.research import ResearchState
from src.pipeline.orchestrator import OrchestratorOptions, SelfHealingOrchestrator
from src.pipeline.progress_tracker import ProgressCallback, ProgressTracker
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.providers.task_runner.apify_provider import ApifyTaskRunner
from src.services.resilient_task_client import ResilientTaskClient, TaskClientConfig
from src.services.validation_service import AIValidationService
from src.utils.circuit_breaker import CircuitBreaker
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Client-side HTTP timeout; must exceed the server-side waitForFinish.
_HTTP_TIMEOUT_SECONDS = 90.0

# Shared by every task client this process builds.
_circuit_breaker: CircuitBreaker | None = None


def get_circuit_breaker(app_config: dict[str, Any]) -> CircuitBreaker:
    """Return the process-wide circuit breaker, creating it on first use.

    Threshold and cooldown come from the config passed on that first call.
    """
    global _circuit_breaker
    if _circuit_breaker is None:
        client_config = TaskClientConfig.from_config(app_config)
        _circuit_breaker = CircuitBreaker(
            threshold=client_config.circuit_breaker_threshold,
            cooldown_seconds=client_config.circuit_breaker_cooldown_seconds,
        )
    return _circuit_breaker


# ---------------------------------------------------------------------------
# LLM provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    """Select the first available LLM provider based on configured API keys.

    Priority order: Anthropic -> OpenAI.  Returns ``None`` when neither key
    is set.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return None


# ---------------------------------------------------------------------------
# DI assembly
# ---------------------------------------------------------------------------


def build_services(
    app_settings: Settings,
    app_config: dict[str, Any],
    http_client: httpx.AsyncClient,
    circuit_breaker: CircuitBreaker | None = None,
) -> dict[str, Any]:
    """Construct the shared task client and validation service.

    Both are safe to share between orchestrators.  The task client uses
    ``circuit_breaker`` when given, otherwise the process-wide breaker
    from :func:`get_circuit_breaker`.

    Returns
    -------
    dict
        ``task_client``, ``validation_service`` and ``settings``.
    """
    platform = app_config.get("task_platform", {}) or {}
    runner = ApifyTaskRunner(
        settings=app_settings,
        http_client=http_client,
        wait_for_finish_seconds=int(platform.get("wait_for_finish_seconds", 60)),
    )
    task_client = ResilientTaskClient(
        runner,
        config=TaskClientConfig.from_config(app_config),
        circuit_breaker=circuit_breaker or get_circuit_breaker(app_config),
    )

    llm = _build_llm_provider(app_settings)
    validation_service = AIValidationService(llm_provider=llm)

    _logger.info(
        "services_built",
        task_runner=runner.get_provider_name(),
        task_runner_configured=runner.is_available(),
        llm_provider=llm.get_provider_name() if llm else None,
    )
    return {
        "task_client": task_client,
        "validation_service": validation_service,
        "settings": app_settings,
    }


def build_orchestrator(
    services: dict[str, Any],
    options: OrchestratorOptions,
    progress_tracker: ProgressTracker | None = None,
) -> SelfHealingOrchestrator:
    return SelfHealingOrchestrator(
        task_client=services["task_client"],
        validation_service=services["validation_service"],
        options=options,
        progress_tracker=progress_tracker,
    )


async def run_research(
    festival_name: str,
    festival_url: str | None = None,
    festival_id: str | None = None,
    custom_settings: Settings | None = None,
    option_overrides: dict[str, Any] | None = None,
    on_progress: ProgressCallback | None = None,
) -> ResearchState:
    """Research one festival end to end (standalone / CLI usage).

    Parameters
    ----------
    festival_name:
        Name of the festival to research.
    festival_url:
        Known homepage; skips website discovery when given.
    festival_id:
        Caller's identifier for the run; a random UUID when omitted.
    custom_settings:
        Application settings.  Loaded from the environment if not provided.
    option_overrides:
        Values overriding the ``research`` config section, e.g.
        ``{"parallel_execution": False}``.
    on_progress:
        Optional callback receiving every state snapshot.

    Returns
    -------
    ResearchState
        Final state, ``phase`` COMPLETED or FAILED.
    """
    app_settings = custom_settings or Settings()
    app_config = load_config(app_settings.config_path, settings=app_settings)

    options = OrchestratorOptions.from_config(app_config)
    if option_overrides:
        options = options.model_copy(update=option_overrides)

    async with httpx.AsyncClient(timeout=_HTTP_TIMEOUT_SECONDS) as http_client:
        services = build_services(app_settings, app_config, http_client)
        orchestrator = build_orchestrator(services, options)
        if on_progress is not None:
            orchestrator.on_progress(on_progress)
        return await orchestrator.run_research(festival_id or str(uuid4()), festival_name, festival_url)
