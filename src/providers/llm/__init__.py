"""LLM provider adapters.

Two concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - AnthropicLLMProvider: Claude via the Messages API
    - OpenAILLMProvider:    gpt-4o-mini (also any OpenAI-compatible API)

main.py picks the first provider with a configured API key and injects it
into the AI validation service.
"""

from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
