"""Orchestrator module.

Sequential pipeline execution with:
- Stage-by-stage agent runs that never abort on a single failure
- Plan/code phase split persisted between processes
- Progress tracking with listeners
"""

from .orchestrator import Orchestrator
from .progress import ProgressTracker, format_time
from .runner import DEFAULT_STAGES, PipelineRunner

__all__ = [
    "DEFAULT_STAGES",
    "Orchestrator",
    "PipelineRunner",
    "ProgressTracker",
    "format_time",
]
