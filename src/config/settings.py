"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources (priority order):
#
#   1. Environment variables: e.g. APIFY_API_TOKEN=apify_api_abc123
#   2. .env file: key=value lines in the project root .env
#
# Field ``apify_api_token`` maps to env var ``APIFY_API_TOKEN``.
# Defaults apply when neither source defines a value.  An empty credential
# means "not configured": the task client then refuses calls and the AI
# validation service falls back to its documented defaults.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Festival research settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Remote task platform ===
    apify_api_token: str = ""
    apify_base_url: str = "https://api.apify.com"

    # === LLM Providers ===
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, Groq...)
    openai_text_model: str = ""

    # === App Config ===
    config_path: str = "config/config.yaml"
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have non-empty API keys configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers
