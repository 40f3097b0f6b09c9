"""Plan state schema.

Persisted document that carries a plan from the planning phase to the
coding phase, possibly across process restarts.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class AgentPhase(str, Enum):
    """Which half of a project lifecycle an agent belongs to."""

    PLAN = "plan"
    CODE = "code"
    UTILITY = "utility"


# Agent ids whose pending presence means coding work is still outstanding
CODING_PHASE_AGENTS: frozenset[str] = frozenset(
    {"developer", "codereview", "qa", "techwriter"}
)


class PlanStep(BaseModel):
    """A single stage of a plan."""

    agent_id: str = Field(..., alias="agentId", description="Registry id of the agent")
    description: str | None = Field(None, description="Task handed to the agent")
    agent_name: str | None = Field(None, alias="agentName")
    reason: str | None = Field(None, description="Why the planner chose this step")

    class Config:
        populate_by_name = True


class Plan(BaseModel):
    """Ordered list of plan steps."""

    steps: list[PlanStep] = Field(default_factory=list)
    summary: str | None = None
    include_code_generation: bool = Field(True, alias="includeCodeGeneration")

    class Config:
        populate_by_name = True

    @property
    def agent_ids(self) -> list[str]:
        return [step.agent_id for step in self.steps]

    @property
    def has_planning_steps(self) -> bool:
        return any(a not in CODING_PHASE_AGENTS for a in self.agent_ids)

    def get_step(self, agent_id: str) -> PlanStep | None:
        for step in self.steps:
            if step.agent_id == agent_id:
                return step
        return None

    @classmethod
    def from_agent_ids(cls, agent_ids: list[str], **kwargs) -> "Plan":
        """Build a plan with one bare step per agent id."""
        return cls(steps=[PlanStep(agent_id=a) for a in agent_ids], **kwargs)


class PlanState(BaseModel):
    """The live plan document for a workspace.

    Invariant: completed_steps and pending_steps never share an id, and
    together they cover every agent id in the plan.
    """

    plan: Plan
    agent_outputs: dict[str, str] = Field(default_factory=dict, alias="agentOutputs")
    completed_steps: list[str] = Field(default_factory=list, alias="completedSteps")
    pending_steps: list[str] = Field(default_factory=list, alias="pendingSteps")
    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")
    updated_at: datetime = Field(default_factory=datetime.now, alias="updatedAt")
    user_request: str = Field(..., alias="userRequest")
    conversation_id: str | None = Field(None, alias="conversationId")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "plan": {"steps": [{"agentId": "analyst"}, {"agentId": "developer"}]},
                "agentOutputs": {"analyst": "# Analysis ..."},
                "completedSteps": ["analyst"],
                "pendingSteps": ["developer"],
                "createdAt": "2026-01-04T14:30:52",
                "updatedAt": "2026-01-04T14:31:40",
                "userRequest": "Build a todo app",
            }
        }

    def mark_complete(self, agent_id: str, output: str) -> None:
        """Record a stage output and move it from pending to completed."""
        self.agent_outputs[agent_id] = output
        self.pending_steps = [s for s in self.pending_steps if s != agent_id]
        if agent_id not in self.completed_steps:
            self.completed_steps.append(agent_id)
        self.updated_at = datetime.now()

    def pending_coding_steps(self) -> list[str]:
        return [s for s in self.pending_steps if s in CODING_PHASE_AGENTS]

    def pending_planning_steps(self) -> list[str]:
        return [s for s in self.pending_steps if s not in CODING_PHASE_AGENTS]

    @property
    def is_complete(self) -> bool:
        return not self.pending_steps
