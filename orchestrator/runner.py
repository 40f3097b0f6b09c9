"""Pipeline runner: executes agent stages strictly in sequence."""

import logging
from pathlib import Path
from typing import Any, Callable

from rich.console import Console

from agents.base import AgentContext
from agents.registry import AgentRegistry

from .progress import ProgressTracker

logger = logging.getLogger(__name__)

DEFAULT_STAGES = [
    "analyst",
    "architect",
    "uxdesigner",
    "developer",
    "pm",
    "qa",
    "techwriter",
    "quickflowdev",
]

# Called after every stage with (stage_id, output, succeeded)
StageCallback = Callable[[str, str, bool], None]


class PipelineRunner:
    """Runs one agent per stage, feeding every earlier output forward.

    A stage that fails never stops the run: its output becomes
    ``"Error: <message>"`` and the next stage starts. A stage whose agent
    is not registered gets ``"Agent <id> missing"``.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        progress: ProgressTracker | None = None,
        app_dir: str = ".verno",
        debug_dump: bool = True,
        default_stages: list[str] | None = None,
        cancellation_check: Callable[[], bool] | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize pipeline runner.

        Args:
            registry: Agents available to the pipeline
            progress: Progress tracker to report to
            app_dir: Hidden app directory; raw outputs go to ``<app_dir>llm/``
            debug_dump: Persist each successful stage output for debugging
            default_stages: Stage order used when a run names no stages
            cancellation_check: Callback that returns True if the run should stop
            console: Rich console for output
        """
        self.registry = registry
        self.progress = progress or ProgressTracker()
        self.app_dir = app_dir
        self.debug_dump = debug_dump
        self.default_stages = list(default_stages or DEFAULT_STAGES)
        self.cancellation_check = cancellation_check
        self.console = console

    def resolve_stages(self, stage_ids: list[str] | None) -> list[str]:
        return list(stage_ids) if stage_ids else list(self.default_stages)

    def run_pipeline(
        self,
        context: AgentContext,
        stage_ids: list[str] | None = None,
        seed_outputs: dict[str, str] | None = None,
        on_stage_complete: StageCallback | None = None,
        stage_metadata: dict[str, dict[str, Any]] | None = None,
        manage_progress: bool = True,
    ) -> dict[str, str]:
        """Execute the stages and return every stage's output.

        Args:
            context: Base context; each stage gets a copy with
                ``previousOutputs`` set to the outputs gathered so far.
            stage_ids: Stages to run. Empty or None means the default order.
            seed_outputs: Outputs from an earlier run that later stages
                should see. They are not part of the returned map.
            on_stage_complete: Called after each stage that ran.
            stage_metadata: Extra metadata merged into one stage's context,
                keyed by stage id.
            manage_progress: Start and complete the progress tracker. Callers
                running several segments as one session pass False and
                drive start/complete themselves.

        Returns:
            Mapping of stage id to output, in execution order.
        """
        stages = self.resolve_stages(stage_ids)
        seed = dict(seed_outputs or {})
        outputs: dict[str, str] = {}

        if manage_progress:
            self.progress.start(len(stages))
        logger.info("PIPELINE: Running %d stages: %s", len(stages), stages)

        for stage in stages:
            if self.is_cancelled():
                logger.info("PIPELINE: Cancelled by user before stage %s", stage)
                self._print("[yellow]Pipeline cancelled[/yellow]")
                self.progress.error("Cancelled by user")
                return outputs

            agent = self.registry.get(stage)
            if agent is None:
                logger.warning("PIPELINE: Agent for stage %s not found", stage)
                outputs[stage] = f"Agent {stage} missing"
                continue

            self.progress.start_stage(stage, agent.name or stage)
            logger.info(f"PIPELINE: Starting stage {stage}")
            self._print(f"[cyan]▶ {agent.name or stage}[/cyan]")

            # Each stage sees a snapshot, so later writes cannot leak backwards
            stage_context = context.with_metadata(
                **(stage_metadata or {}).get(stage, {}),
                previousOutputs={**seed, **outputs},
            )
            try:
                outputs[stage] = agent.run(stage_context) or ""
            except Exception as e:
                logger.exception(f"PIPELINE: Stage {stage} failed")
                outputs[stage] = f"Error: {e}"
                self.progress.error(f"Stage {stage} failed: {e}")
                self._print(f"[red]✗ {stage}: {e}[/red]")
                self._notify(on_stage_complete, stage, outputs[stage], False)
                continue

            self.progress.complete_stage()
            logger.info(f"PIPELINE: Stage {stage} completed ({len(outputs[stage])} chars)")
            self._print(f"[green]✓ {stage}[/green]")
            self._dump_output(context, stage, outputs[stage])
            self._notify(on_stage_complete, stage, outputs[stage], True)

        if manage_progress:
            self.progress.complete()
        return outputs

    def is_cancelled(self) -> bool:
        return bool(self.cancellation_check and self.cancellation_check())

    def dump_dir(self, workspace_root: str) -> Path:
        return Path(workspace_root) / f"{self.app_dir}llm"

    def _dump_output(self, context: AgentContext, stage: str, output: str) -> None:
        if not (self.debug_dump and context.has_workspace):
            return
        try:
            out_dir = self.dump_dir(context.workspace_root)
            out_dir.mkdir(parents=True, exist_ok=True)
            (out_dir / f"{stage}.txt").write_text(output, encoding="utf-8")
        except OSError as e:
            logger.warning("PIPELINE: Failed to persist raw output for %s: %s", stage, e)

    def _notify(self, callback: StageCallback | None, stage: str, output: str, ok: bool) -> None:
        if callback is not None:
            callback(stage, output, ok)

    def _print(self, message: str) -> None:
        if self.console is not None:
            self.console.print(message)
