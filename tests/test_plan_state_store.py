"""Tests for plan state persistence."""

import json

import pytest

from local_storage import PlanStateStore
from schemas.plan_state import Plan, PlanState, PlanStep
from tools.base import ToolStatus


@pytest.fixture
def store(workspace):
    return PlanStateStore(workspace)


def _plan(*agent_ids: str) -> Plan:
    return Plan.from_agent_ids(list(agent_ids))


class TestCreateFromPlan:
    """Tests for building fresh plan state."""

    def test_all_steps_pending(self, store):
        """A new state has every step pending and nothing completed."""
        state = store.create_from_plan(_plan("analyst", "developer"), "req")

        assert state.pending_steps == ["analyst", "developer"]
        assert state.completed_steps == []
        assert state.agent_outputs == {}
        assert state.user_request == "req"

    def test_nothing_written(self, store):
        """Creating a state does not touch the disk."""
        store.create_from_plan(_plan("analyst"), "req")
        assert not store.exists()

    def test_mark_step_complete_moves_step(self, store):
        """Completing a step moves it from pending to completed."""
        store.save(store.create_from_plan(_plan("developer", "analyst"), "req"))

        state = store.mark_step_complete("analyst", "out")

        assert state.pending_steps == ["developer"]
        assert state.completed_steps == ["analyst"]
        assert state.agent_outputs == {"analyst": "out"}
        assert store.load().completed_steps == ["analyst"]


class TestSaveAndLoad:
    """Tests for save/load round trips."""

    def test_load_missing_returns_none(self, store):
        """No file means no state."""
        assert store.load() is None

    def test_round_trip(self, store):
        """A saved state loads back with identical content."""
        plan = Plan(
            steps=[PlanStep(agent_id="analyst", description="Gather needs", agent_name="Analyst")],
            summary="A small plan",
        )
        state = store.create_from_plan(plan, "Build a todo app", conversation_id="c-1")
        state.mark_complete("analyst", "# Analysis")
        store.save(state)

        loaded = store.load()

        assert loaded.plan == plan
        assert loaded.agent_outputs == {"analyst": "# Analysis"}
        assert loaded.completed_steps == ["analyst"]
        assert loaded.conversation_id == "c-1"

    def test_file_uses_camel_case_keys(self, store):
        """The on-disk document uses the camelCase field names."""
        store.save(store.create_from_plan(_plan("analyst"), "req"))
        data = json.loads(store.state_path.read_text(encoding="utf-8"))

        assert {"plan", "agentOutputs", "completedSteps", "pendingSteps", "userRequest"} <= set(data)
        assert data["plan"]["steps"][0]["agentId"] == "analyst"

    def test_corrupt_file_returns_none(self, store):
        """Invalid JSON is treated as absent."""
        store.state_dir.mkdir(parents=True)
        store.state_path.write_text("{not json", encoding="utf-8")

        assert store.load() is None

    def test_schema_mismatch_returns_none(self, store):
        """Valid JSON that is not a plan state is treated as absent."""
        store.state_dir.mkdir(parents=True)
        store.state_path.write_text('{"plan": 3}', encoding="utf-8")

        assert store.load() is None

    def test_live_write_failure_raises(self, store):
        """A failure writing the live file propagates."""
        store.workspace_root.joinpath(".verno").mkdir()
        store.state_dir.write_text("a file where a directory should be", encoding="utf-8")

        with pytest.raises(OSError):
            store.save(store.create_from_plan(_plan("analyst"), "req"))

    def test_backup_failure_does_not_block_save(self, store):
        """A failed backup is logged and the save still happens."""
        store.save(store.create_from_plan(_plan("analyst"), "first"))
        store.history_dir.write_text("a file where a directory should be", encoding="utf-8")

        store.save(store.create_from_plan(_plan("analyst"), "second"))

        assert store.load().user_request == "second"
        assert store.backup().status == ToolStatus.FAILURE


class TestBackups:
    """Tests for backup history."""

    def test_backup_without_state_is_skipped(self, store):
        """There is nothing to back up before the first save."""
        assert store.backup().status == ToolStatus.SKIPPED
        assert store.list_backups() == []

    def test_n_saves_leave_n_minus_one_backups(self, store):
        """Every save after the first backs up the previous state."""
        for i in range(1, 5):
            store.save(store.create_from_plan(_plan("analyst"), f"req-{i}"))

        backups = store.list_backups()
        assert len(backups) == 3

        replayed = [
            PlanState.model_validate_json(path.read_text(encoding="utf-8")).user_request
            for path in sorted(backups)
        ]
        assert replayed == ["req-1", "req-2", "req-3"]
        assert store.load().user_request == "req-4"

    def test_list_backups_newest_first(self, store):
        """list_backups returns the most recent backup first."""
        for i in range(3):
            store.save(store.create_from_plan(_plan("analyst"), f"req-{i}"))

        backups = store.list_backups()
        assert backups == sorted(backups, reverse=True)

    def test_mark_step_complete_writes_no_backup(self, store):
        """Per-step progress updates skip the backup."""
        store.save(store.create_from_plan(_plan("analyst", "developer"), "req"))
        store.mark_step_complete("analyst", "a")
        store.mark_step_complete("developer", "d")

        assert store.list_backups() == []


class TestQueries:
    """Tests for the read-only helpers and clear."""

    def test_mark_step_complete_without_state(self, store):
        """Completing a step with no state is a no-op."""
        assert store.mark_step_complete("analyst", "out") is None
        assert not store.exists()

    def test_has_pending_coding_steps(self, store):
        """Only pending coding agents count as outstanding coding work."""
        assert store.has_pending_coding_steps() is False

        store.save(store.create_from_plan(_plan("analyst", "architect"), "req"))
        assert store.has_pending_coding_steps() is False

        store.save(store.create_from_plan(_plan("analyst", "qa"), "req"))
        assert store.has_pending_coding_steps() is True

        store.mark_step_complete("qa", "tested")
        assert store.has_pending_coding_steps() is False

    def test_get_pending_steps_in_plan_order(self, store):
        """Pending steps come back as PlanStep objects in plan order."""
        store.save(store.create_from_plan(_plan("analyst", "developer", "qa"), "req"))
        store.mark_step_complete("developer", "code")

        assert [s.agent_id for s in store.get_pending_steps()] == ["analyst", "qa"]

    def test_get_agent_outputs(self, store):
        """Outputs are returned as a copy."""
        assert store.get_agent_outputs() == {}

        store.save(store.create_from_plan(_plan("analyst"), "req"))
        store.mark_step_complete("analyst", "notes")
        assert store.get_agent_outputs() == {"analyst": "notes"}

    def test_clear_backs_up_and_deletes(self, store):
        """clear removes the live file and keeps a backup."""
        store.save(store.create_from_plan(_plan("analyst"), "req"))

        store.clear()

        assert store.load() is None
        assert not store.exists()
        assert len(store.list_backups()) == 1

    def test_clear_without_state(self, store):
        """Clearing an empty workspace does nothing."""
        store.clear()
        assert store.list_backups() == []

    def test_custom_app_dir(self, workspace):
        """The hidden directory name is configurable."""
        store = PlanStateStore(workspace, app_dir=".custom")
        store.save(store.create_from_plan(_plan("analyst"), "req"))

        assert (workspace / ".custom" / "plan-state" / "plan.json").exists()
