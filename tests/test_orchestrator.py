"""Tests for the plan/code orchestrator."""

import json

import pytest

from agents import AgentContext, AgentError, PlanningAgent
from local_storage import FeedbackService, PlanStateStore
from orchestrator import Orchestrator
from schemas.feedback import Issue, IssueSeverity
from schemas.plan_state import Plan
from schemas.progress import ProgressStatus

PLANNING = ["analyst", "architect", "uxdesigner", "pm"]
CODING = ["developer", "codereview", "qa", "techwriter"]


def _ctx(workspace="", request="Build a todo app", **metadata) -> AgentContext:
    metadata["userRequest"] = request
    return AgentContext(str(workspace) if workspace else "", metadata)


def _ids(log) -> list[str]:
    return [agent_id for agent_id, _ in log]


@pytest.fixture
def pipeline(recording_registry):
    """Factory: (registry, log) with every plan and code agent recorded."""

    def factory(**outputs):
        return recording_registry(PLANNING + CODING, **outputs)

    return factory


class TestPlanPhase:
    """Tests for execute_plan."""

    def test_plan_then_code(self, workspace, pipeline):
        """Planning completes the non-coding stages; code completes the rest."""
        registry, log = pipeline()
        store = PlanStateStore(workspace)

        Orchestrator(registry).execute_plan(_ctx(workspace))

        state = store.load()
        assert _ids(log) == PLANNING
        assert store.has_pending_coding_steps()
        assert set(PLANNING) <= set(state.completed_steps)
        assert state.pending_steps == CODING

        Orchestrator(registry).execute_code(_ctx(workspace))

        state = store.load()
        assert _ids(log) == PLANNING + CODING
        assert state.pending_steps == []
        assert set(CODING) <= set(state.completed_steps)
        assert not store.has_pending_coding_steps()

    def test_plan_summary(self, workspace, pipeline):
        """The summary shows completed planning output and pending coding work."""
        registry, _ = pipeline()

        summary = Orchestrator(registry).execute_plan(_ctx(workspace))

        assert summary.startswith("## 📋 Project Plan\n\nDefault plan\n")
        assert "### analyst\n\nout-analyst" in summary
        assert "## ⏳ Pending (run CODE to execute)" in summary
        assert "- **developer**" in summary
        assert "### developer" not in summary
        assert "Incomplete planning stages" not in summary

    def test_failed_stage_retried_on_next_plan(self, workspace, pipeline):
        """A failed planning stage stays pending and is the only one re-run."""
        registry, log = pipeline(architect=[RuntimeError("boom")])

        summary = Orchestrator(registry).execute_plan(_ctx(workspace))

        assert "## ⚠️ Incomplete planning stages" in summary
        assert "- **architect**: Error: boom" in summary
        assert "architect" in PlanStateStore(workspace).load().pending_steps

        Orchestrator(registry).execute_plan(_ctx(workspace))

        assert _ids(log) == PLANNING + ["architect"]
        state = PlanStateStore(workspace).load()
        assert state.agent_outputs["architect"] == "out-architect"
        assert state.pending_steps == CODING

    def test_same_request_reuses_plan(self, workspace, pipeline):
        """Re-planning an unchanged request runs nothing new."""
        registry, log = pipeline()
        orchestrator = Orchestrator(registry)

        orchestrator.execute_plan(_ctx(workspace))
        orchestrator.execute_plan(_ctx(workspace))

        assert _ids(log) == PLANNING
        assert len(PlanStateStore(workspace).list_backups()) == 1

    def test_new_request_replaces_plan(self, workspace, pipeline):
        """A different request starts a fresh plan."""
        registry, log = pipeline()
        orchestrator = Orchestrator(registry)

        orchestrator.execute_plan(_ctx(workspace))
        orchestrator.execute_plan(_ctx(workspace, request="Build a chat app"))

        assert _ids(log) == PLANNING + PLANNING
        assert PlanStateStore(workspace).load().user_request == "Build a chat app"

    def test_planner_output_is_used(self, workspace, pipeline, scripted_llm):
        """The planning agent decides which stages run."""
        registry, log = pipeline()
        plan_json = json.dumps(
            {
                "summary": "Tiny todo app",
                "steps": [
                    {"agentId": "analyst", "task": "Gather needs"},
                    {"agentId": "developer", "task": "Write the app"},
                ],
            }
        )
        planner = PlanningAgent(llm=scripted_llm([plan_json]))
        orchestrator = Orchestrator(registry, planner=planner)

        summary = orchestrator.execute_plan(_ctx(workspace))

        assert "Tiny todo app" in summary
        assert "- **developer**: Write the app" in summary
        assert _ids(log) == ["analyst"]

        orchestrator.execute_code(_ctx(workspace))

        developer_ctx = log[-1][1]
        assert _ids(log) == ["analyst", "developer"]
        assert developer_ctx.user_request == "Write the app\n\nOriginal Request: Build a todo app"
        assert developer_ctx.previous_outputs["analyst"] == "out-analyst"

    def test_plan_after_cold_start_runs_planning(self, workspace, pipeline):
        """A code-only state from a cold start is not reused by plan."""
        registry, log = pipeline()
        orchestrator = Orchestrator(registry)
        orchestrator.execute_code(_ctx(workspace))

        orchestrator.execute_plan(_ctx(workspace))

        assert _ids(log) == CODING + PLANNING
        state = PlanStateStore(workspace).load()
        assert state.plan.summary == "Default plan"
        assert set(PLANNING) <= set(state.completed_steps)

    def test_without_workspace(self, pipeline):
        """Without a workspace the plan runs but nothing is persisted."""
        registry, log = pipeline()

        summary = Orchestrator(registry).execute_plan(_ctx())

        assert _ids(log) == PLANNING
        assert "## ⏳ Pending" in summary


class TestCodePhase:
    """Tests for execute_code."""

    def test_cold_start_runs_default_coding_stages(self, workspace, pipeline):
        """Without a saved plan the default coding stages run."""
        registry, log = pipeline()

        report = Orchestrator(registry).execute_code(_ctx(workspace))

        assert _ids(log) == CODING
        assert report.startswith("## ✅ Code Phase Complete")
        assert "### qa\n\nout-qa" in report
        state = PlanStateStore(workspace).load()
        assert state.plan.summary == "Default coding plan"
        assert state.pending_steps == []

    def test_nothing_pending_runs_edit_mode(self, workspace, pipeline):
        """With every step done, the developer runs alone in edit mode."""
        registry, log = pipeline()
        orchestrator = Orchestrator(registry)
        orchestrator.execute_code(_ctx(workspace))

        report = orchestrator.execute_code(_ctx(workspace, request="Add dark mode"))

        assert report.startswith("## 🔧 Edit Mode Complete")
        assert _ids(log) == CODING + ["developer"]
        edit_ctx = log[-1][1]
        assert edit_ctx.edit_mode is True
        assert edit_ctx.user_request == "Add dark mode"
        assert edit_ctx.previous_outputs["qa"] == "out-qa"

    def test_edit_mode_needs_developer(self, workspace, recording_registry):
        """Edit mode without a developer agent is an error."""
        registry, _ = recording_registry(["qa"])
        store = PlanStateStore(workspace)
        store.save(store.create_from_plan(Plan.from_agent_ids(["qa"]), "req"))
        store.mark_step_complete("qa", "tested")

        with pytest.raises(AgentError, match="Developer"):
            Orchestrator(registry).execute_code(_ctx(workspace))

    def test_failed_coding_stage_stays_pending(self, workspace, pipeline):
        """A failed coding stage is retried by the next code run."""
        registry, log = pipeline(qa=[RuntimeError("boom")])
        orchestrator = Orchestrator(registry)

        report = orchestrator.execute_code(_ctx(workspace))

        assert "### qa\n\nError: boom" in report
        assert PlanStateStore(workspace).load().pending_steps == ["qa"]

        report = orchestrator.execute_code(_ctx(workspace))

        assert report.startswith("## ✅ Code Phase Complete")
        assert _ids(log) == CODING + ["qa"]
        assert PlanStateStore(workspace).load().pending_steps == []

    def test_review_failure_retries_developer_once(self, workspace, pipeline):
        """A skeleton-code verdict re-runs developer and review before QA."""
        registry, log = pipeline(
            developer=["dev-1", "dev-2"],
            codereview=["FAIL — Skeleton code detected", "PASS"],
        )

        report = Orchestrator(registry).execute_code(_ctx(workspace))

        assert _ids(log) == ["developer", "codereview", "developer", "codereview", "qa", "techwriter"]
        retry_ctx = log[2][1]
        assert retry_ctx.edit_mode is True
        assert retry_ctx.metadata["reviewFeedback"] == "FAIL — Skeleton code detected"
        qa_ctx = log[4][1]
        assert qa_ctx.previous_outputs["developer"] == "dev-2"
        assert qa_ctx.previous_outputs["codereview"] == "PASS"
        assert "### developer\n\ndev-2" in report
        assert PlanStateStore(workspace).load().agent_outputs["developer"] == "dev-2"

    def test_review_retry_is_one_progress_session(self, workspace, pipeline):
        """Head, retry and tail segments report against one running total."""
        registry, _ = pipeline(
            developer=["dev-1", "dev-2"],
            codereview=["FAIL — Skeleton code detected", "PASS"],
        )
        orchestrator = Orchestrator(registry)
        snapshots = []
        orchestrator.runner.progress.subscribe(snapshots.append)

        orchestrator.execute_code(_ctx(workspace))

        completed = [s.completed_stages for s in snapshots]
        assert completed == sorted(completed)
        assert [s.total_stages for s in snapshots if s.status == ProgressStatus.IDLE] == [4]
        final = snapshots[-1]
        assert final.status == ProgressStatus.COMPLETED
        assert (final.completed_stages, final.total_stages) == (6, 6)

    def test_review_retry_disabled(self, workspace, pipeline):
        """With review_retry off the failing review is left as is."""
        registry, log = pipeline(
            developer=["dev-1", "dev-2"],
            codereview=["FAIL — Skeleton code detected", "PASS"],
        )

        Orchestrator(registry, review_retry=False).execute_code(_ctx(workspace))

        assert _ids(log) == CODING
        assert log[2][1].previous_outputs["developer"] == "dev-1"

    def test_passing_review_is_not_retried(self, workspace, pipeline):
        """Only a skeleton verdict triggers a retry."""
        registry, log = pipeline(codereview=["NEEDS FIXES — Critical issues found"])

        Orchestrator(registry).execute_code(_ctx(workspace))

        assert _ids(log) == CODING

    def test_clear_state_on_complete(self, workspace, pipeline):
        """Completed plans can be cleared, keeping a backup."""
        registry, _ = pipeline()
        store = PlanStateStore(workspace)

        Orchestrator(registry, clear_state_on_complete=True).execute_code(_ctx(workspace))

        assert not store.exists()
        assert store.list_backups()

    def test_state_kept_by_default(self, workspace, pipeline):
        """Completed plans stay on disk unless clearing is enabled."""
        registry, _ = pipeline()

        Orchestrator(registry).execute_code(_ctx(workspace))

        assert PlanStateStore(workspace).exists()

    def test_critical_feedback_appended(self, workspace, pipeline):
        """Critical issues add the feedback summary to the report."""
        registry, _ = pipeline()
        FeedbackService(workspace).create_feedback(
            "qa", issues=[Issue(severity=IssueSeverity.CRITICAL, description="Tests fail")]
        )

        report = Orchestrator(registry).execute_code(_ctx(workspace))

        assert "\n---\n\n# Feedback Summary" in report
        assert "Tests fail" in report

    def test_no_feedback_section_without_issues(self, workspace, pipeline):
        """Reports without critical issues have no feedback section."""
        registry, _ = pipeline()
        FeedbackService(workspace).create_feedback("qa", completed_tasks=["ok"])

        report = Orchestrator(registry).execute_code(_ctx(workspace))

        assert "# Feedback Summary" not in report

    def test_without_workspace(self, pipeline):
        """The code phase runs without persistence when there is no workspace."""
        registry, log = pipeline()

        report = Orchestrator(registry).execute_code(_ctx())

        assert _ids(log) == CODING
        assert report.startswith("## ✅ Code Phase Complete")


class TestDispatch:
    """Tests for running the orchestrator as an agent."""

    def test_mode_plan(self, workspace, pipeline):
        """mode=plan runs the plan phase."""
        registry, log = pipeline()

        output = Orchestrator(registry).run(_ctx(workspace, mode="plan"))

        assert output.startswith("## 📋 Project Plan")
        assert _ids(log) == PLANNING

    def test_other_modes_run_code(self, workspace, pipeline):
        """Anything but mode=plan runs the code phase."""
        registry, log = pipeline()

        output = Orchestrator(registry).run(_ctx(workspace, mode="code"))

        assert output.startswith("## ✅ Code Phase Complete")
        assert _ids(log) == CODING

    @pytest.mark.parametrize("method", ["execute_plan", "execute_code"])
    def test_empty_request(self, workspace, pipeline, method):
        """Both phases reject a blank request."""
        registry, log = pipeline()

        with pytest.raises(AgentError):
            getattr(Orchestrator(registry), method)(_ctx(workspace, request=""))
        assert log == []

    def test_not_a_feedback_writer(self, workspace, pipeline):
        """The orchestrator itself leaves no feedback record."""
        registry, _ = pipeline()

        Orchestrator(registry).execute_code(_ctx(workspace))

        assert "orchestrator" not in FeedbackService(workspace).list_agents()
