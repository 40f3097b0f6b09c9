"""Schemas module for pipeline state and agent I/O.

Provides Pydantic models for:
- Plans and persisted plan state
- Agent feedback records and issues
- Pipeline progress snapshots
"""

from .feedback import SEVERITY_ICONS, AgentFeedback, Issue, IssueSeverity
from .plan_state import CODING_PHASE_AGENTS, AgentPhase, Plan, PlanState, PlanStep
from .progress import ProgressState, ProgressStatus

__all__ = [
    # Plan state
    "AgentPhase",
    "CODING_PHASE_AGENTS",
    "Plan",
    "PlanState",
    "PlanStep",
    # Feedback
    "AgentFeedback",
    "Issue",
    "IssueSeverity",
    "SEVERITY_ICONS",
    # Progress
    "ProgressState",
    "ProgressStatus",
]
