"""Per-agent feedback records on disk.

Each record lives in ``.verno/feedback/<agent>/feedback-<epoch-ms>.json``.
Records are append-only; the latest record for an agent is the one with
the highest timestamp.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import time
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from schemas.feedback import SEVERITY_ICONS, AgentFeedback, Issue

logger = logging.getLogger(__name__)

_FEEDBACK_FILE_RE = re.compile(r"^feedback-(\d+)\.json$")


class FeedbackService:
    """Create, read and summarize agent feedback for one workspace."""

    def __init__(self, workspace_root: Path | str, app_dir: str = ".verno"):
        self.workspace_root = Path(workspace_root)
        self.feedback_dir = self.workspace_root / app_dir / "feedback"

    def create_feedback(
        self,
        agent_name: str,
        completed_tasks: list[str] | None = None,
        remaining_work: list[str] | None = None,
        issues: list[Issue] | None = None,
        suggestions: list[str] | None = None,
        next_steps: list[str] | None = None,
    ) -> AgentFeedback:
        """Build a record stamped with the current time and persist it.

        A failed write is logged; the record is still returned.
        """
        feedback = AgentFeedback(
            agent_name=agent_name,
            timestamp=self._next_timestamp(agent_name),
            completed_tasks=list(completed_tasks or []),
            remaining_work=list(remaining_work or []),
            issues_encountered=list(issues or []),
            suggestions=list(suggestions or []),
            next_steps=list(next_steps or []),
        )
        self.save_feedback(feedback)
        return feedback

    def save_feedback(self, feedback: AgentFeedback) -> None:
        path = self.feedback_dir / feedback.agent_name / f"feedback-{feedback.timestamp}.json"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(feedback.model_dump(mode="json", by_alias=True), f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error("FEEDBACK: failed to save feedback for %s: %s", feedback.agent_name, e)
            return
        logger.debug("FEEDBACK: saved %s", path)

    def get_latest_feedback(self, agent_name: str) -> AgentFeedback | None:
        for path in self._record_paths(agent_name):
            record = self._read(path)
            if record is not None:
                return record
        return None

    def get_all_feedback(self, agent_name: str) -> list[AgentFeedback]:
        """Every readable record for the agent, newest first."""
        records = (self._read(p) for p in self._record_paths(agent_name))
        return [r for r in records if r is not None]

    def list_agents(self) -> list[str]:
        if not self.feedback_dir.is_dir():
            return []
        return sorted(p.name for p in self.feedback_dir.iterdir() if p.is_dir())

    def get_all_agents_feedback(self) -> dict[str, list[AgentFeedback]]:
        result: dict[str, list[AgentFeedback]] = {}
        for agent_name in self.list_agents():
            records = self.get_all_feedback(agent_name)
            if records:
                result[agent_name] = records
        return result

    def get_critical_issues(self) -> list[Issue]:
        """Critical and high issues from each agent's latest record."""
        issues: list[Issue] = []
        for agent_name in self.list_agents():
            latest = self.get_latest_feedback(agent_name)
            if latest is not None:
                issues.extend(latest.blocking_issues())
        return issues

    def get_feedback_summary(self) -> str:
        """Render every agent's latest record as markdown."""
        lines = ["# Feedback Summary", ""]
        for agent_name in self.list_agents():
            latest = self.get_latest_feedback(agent_name)
            if latest is None:
                continue
            lines.extend(self._render(agent_name, latest))
        return "\n".join(lines) + "\n"

    def clear_agent_feedback(self, agent_name: str) -> None:
        shutil.rmtree(self.feedback_dir / agent_name, ignore_errors=True)

    def clear_all_feedback(self) -> None:
        shutil.rmtree(self.feedback_dir, ignore_errors=True)

    def _render(self, agent_name: str, feedback: AgentFeedback) -> list[str]:
        updated = datetime.fromtimestamp(feedback.timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
        lines = [f"## {agent_name}", f"Last Updated: {updated}", ""]

        lines.append("### Completed Tasks")
        lines.extend(f"- ✓ {task}" for task in feedback.completed_tasks)
        lines.append("")

        lines.append("### Remaining Work")
        lines.extend(f"- [ ] {work}" for work in feedback.remaining_work)
        lines.append("")

        if feedback.issues_encountered:
            lines.append("### Issues Encountered")
            for issue in feedback.issues_encountered:
                icon = SEVERITY_ICONS.get(issue.severity.value, "⚪")
                lines.append(f"- {icon} **{issue.severity.value.upper()}**: {issue.description}")
                lines.append(f"  Context: {issue.context}")
            lines.append("")

        if feedback.suggestions:
            lines.append("### Suggestions")
            lines.extend(f"- 💡 {s}" for s in feedback.suggestions)
            lines.append("")

        if feedback.next_steps:
            lines.append("### Next Steps")
            lines.extend(f"- ➡️ {s}" for s in feedback.next_steps)
            lines.append("")

        lines.extend(["---", ""])
        return lines

    def _record_paths(self, agent_name: str) -> list[Path]:
        """Record files sorted by embedded timestamp, newest first."""
        agent_dir = self.feedback_dir / agent_name
        if not agent_dir.is_dir():
            return []
        stamped = []
        for path in agent_dir.iterdir():
            match = _FEEDBACK_FILE_RE.match(path.name)
            if match:
                stamped.append((int(match.group(1)), path))
        stamped.sort(key=lambda item: item[0], reverse=True)
        return [path for _, path in stamped]

    def _read(self, path: Path) -> AgentFeedback | None:
        try:
            with open(path, encoding="utf-8") as f:
                return AgentFeedback.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("FEEDBACK: skipping unreadable record %s: %s", path, e)
            return None

    def _next_timestamp(self, agent_name: str) -> int:
        # Two records created in the same millisecond would share a file name
        stamp = int(time.time() * 1000)
        paths = self._record_paths(agent_name)
        if paths:
            newest = int(_FEEDBACK_FILE_RE.match(paths[0].name).group(1))
            stamp = max(stamp, newest + 1)
        return stamp
