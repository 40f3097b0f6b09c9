"""Tests for the sequential pipeline runner."""

from agents import AgentContext
from orchestrator import DEFAULT_STAGES, PipelineRunner, ProgressTracker
from schemas.progress import ProgressStatus


def _ctx(workspace="", **metadata) -> AgentContext:
    metadata.setdefault("userRequest", "Build a todo app")
    return AgentContext(str(workspace) if workspace else "", metadata)


class TestRunPipeline:
    """Tests for PipelineRunner.run_pipeline."""

    def test_simple_agents_end_to_end(self, default_registry):
        """Four simple stages each return their own prompt's response."""
        runner = PipelineRunner(default_registry)

        outputs = runner.run_pipeline(_ctx(), ["brainstorm", "model", "decide", "act"])

        assert list(outputs) == ["brainstorm", "model", "decide", "act"]
        assert "Generate initial ideas for" in outputs["brainstorm"]
        assert "Create a model for" in outputs["model"]
        assert "Make a decision for" in outputs["decide"]
        assert "Execute action for" in outputs["act"]

    def test_missing_agent(self, recording_registry):
        """An unregistered stage is reported in its output and skipped."""
        registry, log = recording_registry(["a", "b"])

        outputs = PipelineRunner(registry).run_pipeline(_ctx(), ["a", "ghost", "b"])

        assert outputs == {"a": "out-a", "ghost": "Agent ghost missing", "b": "out-b"}
        assert [agent_id for agent_id, _ in log] == ["a", "b"]

    def test_stages_run_in_order_with_earlier_outputs(self, recording_registry):
        """Each stage sees exactly the outputs of the stages before it."""
        registry, log = recording_registry(["a", "b", "c"])

        PipelineRunner(registry).run_pipeline(_ctx(), ["c", "a", "b"])

        assert [agent_id for agent_id, _ in log] == ["c", "a", "b"]
        assert [ctx.previous_outputs for _, ctx in log] == [
            {},
            {"c": "out-c"},
            {"c": "out-c", "a": "out-a"},
        ]

    def test_failing_stage_does_not_stop_the_run(self, recording_registry):
        """A raising agent yields an Error: output and later stages still run."""
        registry, log = recording_registry(["a", "b", "c"], b=[RuntimeError("boom")])

        outputs = PipelineRunner(registry).run_pipeline(_ctx(), ["a", "b", "c"])

        assert outputs == {"a": "out-a", "b": "Error: boom", "c": "out-c"}
        assert log[-1][1].previous_outputs["b"] == "Error: boom"

    def test_invalid_context_becomes_stage_error(self, recording_registry):
        """Validation errors are stage failures, not run failures."""
        registry, _ = recording_registry(["a"])

        outputs = PipelineRunner(registry).run_pipeline(AgentContext("", {}), ["a"])

        assert outputs["a"].startswith("Error: Invalid input for a")

    def test_default_stages(self, recording_registry):
        """No stage list, or an empty one, runs the default order."""
        registry, log = recording_registry(DEFAULT_STAGES)
        runner = PipelineRunner(registry)

        assert list(runner.run_pipeline(_ctx())) == DEFAULT_STAGES
        assert list(runner.run_pipeline(_ctx(), [])) == DEFAULT_STAGES
        assert len(log) == 2 * len(DEFAULT_STAGES)

    def test_configured_default_stages(self, recording_registry):
        """The default order can be configured."""
        registry, _ = recording_registry(["x", "y"])

        outputs = PipelineRunner(registry, default_stages=["y", "x"]).run_pipeline(_ctx())

        assert list(outputs) == ["y", "x"]

    def test_context_is_not_mutated(self, recording_registry):
        """The caller's context keeps its metadata."""
        registry, _ = recording_registry(["a"])
        ctx = _ctx()

        PipelineRunner(registry).run_pipeline(ctx, ["a"])

        assert "previousOutputs" not in ctx.metadata

    def test_seed_outputs_visible_but_not_returned(self, recording_registry):
        """Seed outputs are passed forward without being part of the result."""
        registry, log = recording_registry(["qa"])

        outputs = PipelineRunner(registry).run_pipeline(
            _ctx(), ["qa"], seed_outputs={"developer": "code"}
        )

        assert outputs == {"qa": "out-qa"}
        assert log[0][1].previous_outputs == {"developer": "code"}

    def test_stage_metadata(self, recording_registry):
        """Per-stage metadata only reaches its own stage."""
        registry, log = recording_registry(["a", "b"])

        PipelineRunner(registry).run_pipeline(
            _ctx(), ["a", "b"], stage_metadata={"b": {"userRequest": "Task for b"}}
        )

        assert log[0][1].user_request == "Build a todo app"
        assert log[1][1].user_request == "Task for b"

    def test_stage_callback(self, recording_registry):
        """The callback reports each executed stage and whether it succeeded."""
        registry, _ = recording_registry(["a", "b"], a=[RuntimeError("nope")])
        calls = []

        PipelineRunner(registry).run_pipeline(
            _ctx(),
            ["a", "ghost", "b"],
            on_stage_complete=lambda stage, output, ok: calls.append((stage, output, ok)),
        )

        assert calls == [("a", "Error: nope", False), ("b", "out-b", True)]

    def test_cancellation(self, recording_registry):
        """A cancelled run stops before the next stage."""
        registry, log = recording_registry(["a", "b", "c"])
        tracker = ProgressTracker()
        runner = PipelineRunner(
            registry, progress=tracker, cancellation_check=lambda: len(log) >= 1
        )

        outputs = runner.run_pipeline(_ctx(), ["a", "b", "c"])

        assert outputs == {"a": "out-a"}
        assert tracker.state.status == ProgressStatus.ERROR
        assert tracker.state.error == "Cancelled by user"

    def test_progress_reporting(self, recording_registry):
        """Progress counts successful stages and completes at the end."""
        registry, _ = recording_registry(["a", "b"], b=[RuntimeError("x")])
        tracker = ProgressTracker()

        PipelineRunner(registry, progress=tracker).run_pipeline(_ctx(), ["a", "b"])

        state = tracker.state
        assert state.total_stages == 2
        assert state.completed_stages == 1
        assert state.status == ProgressStatus.COMPLETED

    def test_caller_managed_progress(self, recording_registry):
        """Segments run without managing progress add to the caller's session."""
        registry, _ = recording_registry(["a", "b", "c"])
        tracker = ProgressTracker()
        runner = PipelineRunner(registry, progress=tracker)
        tracker.start(3)

        runner.run_pipeline(_ctx(), ["a"], manage_progress=False)
        runner.run_pipeline(_ctx(), ["b", "c"], manage_progress=False)

        state = tracker.state
        assert (state.completed_stages, state.total_stages) == (3, 3)
        assert state.status == ProgressStatus.RUNNING


class TestDebugDump:
    """Tests for the raw per-stage output dump."""

    def test_outputs_dumped(self, workspace, recording_registry):
        """Successful stage outputs are written to <app_dir>llm/."""
        registry, _ = recording_registry(["a", "b"], b=[RuntimeError("x")])

        PipelineRunner(registry).run_pipeline(_ctx(workspace), ["a", "b"])

        dump = workspace / ".vernollm"
        assert (dump / "a.txt").read_text(encoding="utf-8") == "out-a"
        assert not (dump / "b.txt").exists()

    def test_dump_disabled(self, workspace, recording_registry):
        """debug_dump=False writes nothing."""
        registry, _ = recording_registry(["a"])

        PipelineRunner(registry, debug_dump=False).run_pipeline(_ctx(workspace), ["a"])

        assert list(workspace.iterdir()) == []

    def test_dump_failure_is_ignored(self, workspace, recording_registry):
        """A dump that cannot be written does not fail the stage."""
        registry, _ = recording_registry(["a"])
        (workspace / ".vernollm").write_text("not a directory", encoding="utf-8")

        outputs = PipelineRunner(registry).run_pipeline(_ctx(workspace), ["a"])

        assert outputs == {"a": "out-a"}
