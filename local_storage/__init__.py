"""Local storage module.

File-backed persistence under the workspace's ``.verno`` directory:
plan state shared between the planning and coding phases, and the
per-agent feedback log.
"""

from local_storage.feedback_store import FeedbackService
from local_storage.plan_state_store import DEFAULT_APP_DIR, PlanStateStore

__all__ = ["DEFAULT_APP_DIR", "FeedbackService", "PlanStateStore"]
