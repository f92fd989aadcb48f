"""Public interface definitions for the external capabilities.

The research orchestrator consumes exactly two remote capabilities, each
reached only through the abstract base classes in this package.  Concrete
adapters implement them and are injected at construction time (see
``src/main.py``), so tests substitute fakes without any network access.

CONCRETE PROVIDER MAP:
    Interface       →  Concrete implementations (in src/providers/)
    ──────────────────────────────────────────────────────────────
    ITaskRunner     →  ApifyTaskRunner
    ILLMProvider    →  AnthropicLLMProvider, OpenAILLMProvider
"""

from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.task_runner import SUCCEEDED, ITaskRunner, TaskRun

__all__ = [
    "ILLMProvider",
    "ITaskRunner",
    "SUCCEEDED",
    "TaskRun",
]
