"""Base agent class and the context every agent receives."""

from __future__ import annotations

import copy
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from llm_backend.service import LLMService
from local_storage.feedback_store import FeedbackService
from schemas.feedback import AgentFeedback, Issue, IssueSeverity
from schemas.plan_state import AgentPhase
from tools.change_tracker import ChangeTracker
from tools.file_writer import FileWriter


class AgentError(RuntimeError):
    """Structural failure inside an agent (bad input, missing service)."""


@dataclass
class AgentContext:
    """Input for one agent invocation.

    Attributes:
        workspace_root: Directory all artifacts are written to. Empty means
            nothing is persisted.
        metadata: Request data. ``userRequest`` is required; the pipeline
            adds ``previousOutputs``. Other keys (``editMode``,
            ``conversationHistory``, ``mode``, ...) are free-form.
    """

    workspace_root: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def user_request(self) -> str:
        return str(self.metadata.get("userRequest") or "")

    @property
    def previous_outputs(self) -> dict[str, str]:
        return dict(self.metadata.get("previousOutputs") or {})

    @property
    def edit_mode(self) -> bool:
        return bool(self.metadata.get("editMode"))

    @property
    def has_workspace(self) -> bool:
        return bool(self.workspace_root)

    def get_output(self, agent_id: str, limit: int | None = None) -> str:
        """Output of an earlier stage, optionally truncated."""
        output = self.previous_outputs.get(agent_id, "")
        return output[:limit] if limit is not None else output

    def with_metadata(self, **updates: Any) -> AgentContext:
        """Shallow copy with ``updates`` merged into metadata."""
        metadata = copy.copy(self.metadata)
        metadata.update(updates)
        return AgentContext(workspace_root=self.workspace_root, metadata=metadata)


class Agent(ABC):
    """Abstract base class for pipeline agents.

    ``run`` is what the pipeline calls: it validates the context, applies
    ``pre_process``, calls ``execute`` and passes the result through
    ``post_process``. Subclasses implement ``execute`` and must turn
    expected failures (LLM errors, write errors) into feedback issues
    rather than raising.

    Example:
        class EchoAgent(Agent):
            id = "echo"

            def execute(self, context: AgentContext) -> str:
                return self._require_llm().generate_text(context.user_request)

        agent = EchoAgent(llm=LLMService(EchoBackend()))
        agent.run(AgentContext(metadata={"userRequest": "hi"}))
    """

    id: str = "agent"
    name: str = ""
    description: str = ""
    phase: AgentPhase = AgentPhase.UTILITY
    feedback_enabled: bool = True

    def __init__(
        self,
        llm: LLMService | None = None,
        change_tracker: ChangeTracker | None = None,
        app_dir: str = ".verno",
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize agent.

        Args:
            llm: LLM service for inference
            change_tracker: Shared audit trail of written files
            app_dir: Hidden directory for feedback records
            logger: Optional logger instance
        """
        self.llm = llm
        self.change_tracker = change_tracker if change_tracker is not None else ChangeTracker()
        self.app_dir = app_dir
        self.name = self.name or self.id
        self.logger = logger or logging.getLogger(f"agent.{self.id}")
        self._feedback: FeedbackService | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"

    @abstractmethod
    def execute(self, context: AgentContext) -> str:
        """Do the agent's work and return its text output."""
        ...

    def validate_input(self, context: AgentContext) -> bool:
        return bool(context.user_request.strip())

    def pre_process(self, context: AgentContext) -> AgentContext:
        return context

    def post_process(self, output: str, context: AgentContext) -> str:
        return output

    def run(self, context: AgentContext) -> str:
        """Validate, execute and post-process.

        Raises:
            AgentError: If the context fails validation.
        """
        if not self.validate_input(context):
            raise AgentError(f"Invalid input for {self.id}: userRequest is required")

        start = time.time()
        self.logger.info(
            "Starting %s (prev: %s)", self.id, list(context.previous_outputs.keys())
        )
        context = self.pre_process(context)
        output = self.post_process(self.execute(context) or "", context)
        self.logger.info("Completed %s in %.2fs (%d chars)", self.id, time.time() - start, len(output))
        return output

    def _require_llm(self) -> LLMService:
        if self.llm is None:
            raise AgentError(f"Agent {self.id} has no LLM service")
        return self.llm

    def _writer(self, context: AgentContext) -> FileWriter:
        return FileWriter(context.workspace_root)

    def _write_artifact(
        self,
        context: AgentContext,
        filename: str,
        content: str,
        issues: list[Issue],
        completed: list[str],
        severity: IssueSeverity = IssueSeverity.HIGH,
    ) -> bool:
        """Write a file to the workspace, recording the outcome.

        A failed write becomes an issue of ``severity``; nothing is raised.
        """
        result = self._writer(context).write_file(filename, content)
        if not result:
            self.logger.error("Failed to write %s: %s", filename, result.error)
            issues.append(
                Issue(
                    severity=severity,
                    description=f"Failed to write {filename}",
                    context=f"Error: {result.error}",
                )
            )
            return False

        self.change_tracker.record_change(result.output, content, result.metadata.get("operation", "write"))
        completed.append(f"Saved {filename}")
        return True

    def _feedback_service(self, context: AgentContext) -> FeedbackService | None:
        if not (self.feedback_enabled and context.has_workspace):
            return None
        # Constructed lazily and rebuilt when the workspace changes
        if self._feedback is None or self._feedback.workspace_root != Path(context.workspace_root):
            self._feedback = FeedbackService(context.workspace_root, app_dir=self.app_dir)
        return self._feedback

    def _record_feedback(
        self,
        context: AgentContext,
        completed_tasks: list[str],
        remaining_work: list[str],
        issues: list[Issue],
        suggestions: list[str],
        next_steps: list[str],
    ) -> AgentFeedback | None:
        service = self._feedback_service(context)
        if service is None:
            return None
        return service.create_feedback(
            self.id, completed_tasks, remaining_work, issues, suggestions, next_steps
        )
