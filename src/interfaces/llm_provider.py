"""Abstract base class for LLM service providers.

Defines the contract for the language-model backend that judges extracted
research facts.  Implementations wrap the Anthropic API (Claude) or an
OpenAI-compatible endpoint.  The validation service owns all prompt
building, JSON parsing and fallback logic; a provider only turns a pair of
prompts into raw text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the AI validation service."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The instruction message that sets the model's behaviour and the
            expected JSON response format.
        user_prompt:
            The prompt containing the facts to judge.
        temperature:
            Sampling temperature; judgments want near-deterministic output.
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        src.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider's credentials are configured.

        Implementations should not make a network call here.
        """
