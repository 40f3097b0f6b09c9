"""Progress state schema for a running pipeline."""

from enum import Enum

from pydantic import BaseModel, Field


class ProgressStatus(str, Enum):
    """Pipeline progress status."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class ProgressState(BaseModel):
    """Snapshot of pipeline progress. Never persisted."""

    status: ProgressStatus = ProgressStatus.IDLE
    total_stages: int = 0
    completed_stages: int = 0
    current_stage: str | None = None
    current_agent: str | None = None
    percentage: int = Field(0, ge=0, le=100)
    error: str | None = None
