"""Remote task-platform adapters implementing ITaskRunner."""

from src.providers.task_runner.apify_provider import ApifyTaskRunner

__all__ = ["ApifyTaskRunner"]
