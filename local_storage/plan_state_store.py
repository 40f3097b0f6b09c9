"""Plan state persistence between the planning and coding phases.

Layout under the workspace::

    .verno/plan-state/plan.json                      live state
    .verno/plan-state/history/plan-<timestamp>.json  backups

Backups are written before every ``save`` and before ``clear``. A backup
failure is logged and ignored; a failure writing the live file raises.
``mark_step_complete`` writes the live file directly without a backup so
that per-stage progress does not multiply history files.

Only one writer per workspace is supported. Nothing here locks the file.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from schemas.plan_state import CODING_PHASE_AGENTS, Plan, PlanState, PlanStep
from tools.base import ToolResult, ToolStatus

logger = logging.getLogger(__name__)

DEFAULT_APP_DIR = ".verno"


class PlanStateStore:
    """File-backed store for the workspace's single live PlanState.

    Example:
        >>> store = PlanStateStore(Path("/my/project"))
        >>> state = store.create_from_plan(
        ...     Plan.from_agent_ids(["analyst", "developer"]), "Build a todo app"
        ... )
        >>> store.save(state)
        >>> store.mark_step_complete("analyst", "# Analysis")
        >>> store.has_pending_coding_steps()
        True
    """

    def __init__(self, workspace_root: Path | str, app_dir: str = DEFAULT_APP_DIR):
        """Initialize the store.

        Args:
            workspace_root: Workspace the plan belongs to.
            app_dir: Name of the hidden application directory.
        """
        self.workspace_root = Path(workspace_root)
        self.state_dir = self.workspace_root / app_dir / "plan-state"
        self.state_path = self.state_dir / "plan.json"
        self.history_dir = self.state_dir / "history"
        self._last_backup_at: datetime | None = None

    def create_from_plan(
        self,
        plan: Plan,
        user_request: str,
        conversation_id: str | None = None,
    ) -> PlanState:
        """Build a fresh state with every plan step pending. Nothing is written."""
        now = datetime.now()
        return PlanState(
            plan=plan,
            pending_steps=list(dict.fromkeys(plan.agent_ids)),
            created_at=now,
            updated_at=now,
            user_request=user_request,
            conversation_id=conversation_id,
        )

    def save(self, state: PlanState) -> None:
        """Back up the current file, then write ``state`` as the live state.

        Raises:
            OSError: If the live file cannot be written.
        """
        backup = self.backup()
        if backup.status == ToolStatus.FAILURE:
            logger.warning("PLAN: backup failed, saving anyway: %s", backup.error)

        state.updated_at = datetime.now()
        self._write(state)
        logger.info(
            "PLAN: saved state (completed=%s, pending=%s)",
            state.completed_steps,
            state.pending_steps,
        )

    def load(self) -> PlanState | None:
        """Read the live state. Missing or unreadable files yield None."""
        if not self.state_path.exists():
            return None
        try:
            with open(self.state_path, encoding="utf-8") as f:
                data = json.load(f)
            return PlanState.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("PLAN: ignoring unreadable state %s: %s", self.state_path, e)
            return None

    def exists(self) -> bool:
        return self.state_path.exists()

    def mark_step_complete(self, agent_id: str, output: str) -> PlanState | None:
        """Store a stage output and move the stage to completed.

        Does nothing when no state exists. Writes directly, without a backup.
        """
        state = self.load()
        if state is None:
            return None
        state.mark_complete(agent_id, output)
        self._write(state)
        logger.info("PLAN: step %s complete, %d pending", agent_id, len(state.pending_steps))
        return state

    def has_pending_coding_steps(self) -> bool:
        state = self.load()
        if state is None:
            return False
        return any(step in CODING_PHASE_AGENTS for step in state.pending_steps)

    def get_pending_steps(self) -> list[PlanStep]:
        """Pending steps in plan order."""
        state = self.load()
        if state is None:
            return []
        return [s for s in state.plan.steps if s.agent_id in state.pending_steps]

    def get_agent_outputs(self) -> dict[str, str]:
        state = self.load()
        return dict(state.agent_outputs) if state else {}

    def clear(self) -> None:
        """Back up and delete the live state."""
        self.backup()
        if self.state_path.exists():
            self.state_path.unlink()
            logger.info("PLAN: cleared state %s", self.state_path)

    def backup(self) -> ToolResult:
        """Copy the live file into the history directory.

        Returns:
            ToolResult: success with the backup path, skipped when there is
            nothing to back up, failure when the copy could not be made.
        """
        if not self.state_path.exists():
            return ToolResult.skipped("no live state")

        try:
            data = self.state_path.read_text(encoding="utf-8")
            self.history_dir.mkdir(parents=True, exist_ok=True)
            backup_path = self.history_dir / f"plan-{self._backup_stamp()}.json"
            backup_path.write_text(data, encoding="utf-8")
        except OSError as e:
            logger.debug("PLAN: backup error: %s", e)
            return ToolResult.fail(str(e))

        return ToolResult.ok(str(backup_path))

    def list_backups(self) -> list[Path]:
        """Backup files, most recent first."""
        if not self.history_dir.exists():
            return []
        return sorted(self.history_dir.glob("plan-*.json"), reverse=True)

    def _backup_stamp(self) -> str:
        # Names must sort chronologically even when two backups land in the
        # same clock tick, so never reuse or go below the previous stamp.
        now = datetime.now(timezone.utc)
        if self._last_backup_at is not None and now <= self._last_backup_at:
            now = self._last_backup_at + timedelta(microseconds=1)
        while True:
            stamp = now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
            if not (self.history_dir / f"plan-{stamp}.json").exists():
                break
            now += timedelta(microseconds=1)
        self._last_backup_at = now
        return stamp

    def _write(self, state: PlanState) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        with open(self.state_path, "w", encoding="utf-8") as f:
            json.dump(state.model_dump(mode="json", by_alias=True), f, indent=2, default=str)
