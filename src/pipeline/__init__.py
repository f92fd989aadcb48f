"""Pipeline orchestration components for festival research."""

from src.pipeline.orchestrator import OrchestratorOptions, SelfHealingOrchestrator
from src.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "OrchestratorOptions",
    "ProgressTracker",
    "SelfHealingOrchestrator",
]
