"""Custom exception hierarchy for the festival research orchestrator.

All application exceptions inherit from :class:`FestivalResearchError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "apify", "anthropic", "openai") caused the failure.

The hierarchy is organized by layer:

    FestivalResearchError      (base -- catch-all for any research error)
    +-- TaskExecutionError       (remote task platform call failed)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- LLMError                 (any LLM API call failure)
    +-- ResearchError            (a research phase could not produce data)
    +-- PipelineError            (orchestration / phase transitions)
    +-- ConfigurationError       (startup / missing config)

Adapters raise these; the resilient task client classifies them into a
retry decision, the validation service absorbs them into default
judgments, and the orchestrator records them in the research state.
"""


class FestivalResearchError(Exception):
    """Base exception for all festival research errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    scanning, e.g. ``[apify] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Remote task platform errors
# ---------------------------------------------------------------------------

class TaskExecutionError(FestivalResearchError):
    """Raised by a task-runner adapter when a remote task cannot be run.

    ``status_code`` carries the HTTP status returned by the platform (if
    any) so the resilient client can classify the failure without parsing
    provider-specific payloads.
    """

    def __init__(
        self,
        message: str = "Remote task execution failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


class RateLimitError(FestivalResearchError):
    """Raised when an API rate limit is exceeded.

    Always classified as retryable by the resilient task client.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int:
        return 429


class LLMError(FestivalResearchError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Research / orchestration / configuration errors
# ---------------------------------------------------------------------------

class ResearchError(FestivalResearchError):
    """Raised when a research phase encounters a failure."""

    def __init__(
        self,
        message: str = "Research phase failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(FestivalResearchError):
    """Raised when orchestration fails (invalid state transition, etc.)."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(FestivalResearchError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
