"""Agent feedback schema.

One record per agent invocation. Records are never updated; a newer
record supersedes an older one.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class IssueSeverity(str, Enum):
    """Severity of an issue reported by an agent."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def icon(self) -> str:
        return SEVERITY_ICONS.get(self.value, "⚪")

    @property
    def is_blocking(self) -> bool:
        return self in (IssueSeverity.CRITICAL, IssueSeverity.HIGH)


SEVERITY_ICONS: dict[str, str] = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🟢",
}


class Issue(BaseModel):
    """A problem an agent ran into."""

    severity: IssueSeverity
    description: str
    context: str = ""


class AgentFeedback(BaseModel):
    """Structured self-report written by an agent after it runs."""

    agent_name: str = Field(..., alias="agentName")
    timestamp: int = Field(..., description="Creation time in epoch milliseconds")
    completed_tasks: list[str] = Field(default_factory=list, alias="completedTasks")
    remaining_work: list[str] = Field(default_factory=list, alias="remainingWork")
    issues_encountered: list[Issue] = Field(default_factory=list, alias="issuesEncountered")
    suggestions: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list, alias="nextSteps")

    class Config:
        populate_by_name = True

    @property
    def created(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000)

    def blocking_issues(self) -> list[Issue]:
        """Critical and high issues in the order they were recorded."""
        return [i for i in self.issues_encountered if i.severity.is_blocking]
