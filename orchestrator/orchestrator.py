"""Plan/code phase orchestration.

A request is split in two phases:

- PLAN runs the non-coding stages (analysis, architecture, UX, product)
  and persists a PlanState in which the coding stages are still pending.
- CODE resumes from that state, possibly in a new process, and runs the
  pending coding stages (developer, code review, QA, tech writer).

The phase a workspace is in is never stored explicitly. It is read off
the live PlanState: no file means no plan, pending coding steps mean the
code phase is outstanding, nothing pending means everything ran.
"""

from __future__ import annotations

from datetime import datetime

from agents.base import Agent, AgentContext, AgentError
from agents.code_review_agent import is_skeleton_failure
from agents.planning_agent import DEFAULT_CODE_AGENTS, PlanningAgent, default_plan
from agents.registry import AgentRegistry
from local_storage.feedback_store import FeedbackService
from local_storage.plan_state_store import DEFAULT_APP_DIR, PlanStateStore
from schemas.plan_state import CODING_PHASE_AGENTS, Plan, PlanState

from .runner import PipelineRunner, StageCallback

MAX_REVIEW_FEEDBACK_CHARS = 2000


class Orchestrator(Agent):
    """Top-level entry point: ``execute_plan`` and ``execute_code``.

    Registered as an agent it dispatches on ``metadata.mode``: ``"plan"``
    runs the plan phase, anything else the code phase.

    Only one orchestrator may work on a workspace at a time; the plan
    state file is not locked.
    """

    id = "orchestrator"
    name = "Orchestrator"
    description = "Splits a request into plan and code phases and drives the pipeline"
    feedback_enabled = False

    def __init__(
        self,
        registry: AgentRegistry,
        runner: PipelineRunner | None = None,
        planner: PlanningAgent | None = None,
        review_retry: bool = True,
        clear_state_on_complete: bool = False,
        app_dir: str = DEFAULT_APP_DIR,
        **kwargs,
    ) -> None:
        super().__init__(app_dir=app_dir, **kwargs)
        self.registry = registry
        self.runner = runner or PipelineRunner(registry, app_dir=app_dir)
        self.planner = planner
        self.review_retry = review_retry
        self.clear_state_on_complete = clear_state_on_complete

    def execute(self, context: AgentContext) -> str:
        if context.metadata.get("mode") == "plan":
            return self.execute_plan(context)
        return self.execute_code(context)

    def store_for(self, context: AgentContext) -> PlanStateStore | None:
        """Plan state store of the context's workspace, None without one."""
        if not context.has_workspace:
            return None
        return PlanStateStore(context.workspace_root, app_dir=self.app_dir)

    # ------------------------------------------------------------------
    # PLAN phase
    # ------------------------------------------------------------------

    def execute_plan(self, context: AgentContext) -> str:
        """Run the non-coding stages and persist the plan for the code phase."""
        self._check(context)
        self.logger.info("PLAN: starting plan phase")
        store = self.store_for(context)

        state = store.load() if store else None
        # A code-only state (cold start) never ran the planning stages
        if (
            state is not None
            and state.user_request == context.user_request
            and state.plan.has_planning_steps
        ):
            self.logger.info("PLAN: reusing existing plan (request unchanged)")
        else:
            state = self._new_state(self._make_plan(context), context)

        planning = state.pending_planning_steps()
        if planning:
            self.runner.run_pipeline(
                context,
                planning,
                seed_outputs=state.agent_outputs,
                on_stage_complete=lambda stage, output, ok: self._record_plan_stage(
                    state, stage, output, ok
                ),
            )
            incomplete = state.pending_planning_steps()
            if incomplete:
                self.logger.warning("PLAN: stages did not complete: %s", incomplete)
        else:
            self.logger.info("PLAN: no planning stages pending")

        if store is not None:
            store.save(state)
            self.logger.info("PLAN: plan state persisted to %s", store.state_path)
        return self.render_plan_summary(state)

    def _make_plan(self, context: AgentContext) -> Plan:
        if self.planner is not None:
            return self.planner.generate_plan(context)
        return default_plan()

    def _new_state(self, plan: Plan, context: AgentContext) -> PlanState:
        now = datetime.now()
        return PlanState(
            plan=plan,
            pending_steps=list(dict.fromkeys(plan.agent_ids)),
            created_at=now,
            updated_at=now,
            user_request=context.user_request,
            conversation_id=context.metadata.get("conversationId"),
        )

    @staticmethod
    def _record_plan_stage(state: PlanState, stage: str, output: str, ok: bool) -> None:
        if ok:
            state.mark_complete(stage, output)
        else:
            # Failed stages stay pending so the next plan run retries them
            state.agent_outputs[stage] = output

    @staticmethod
    def render_plan_summary(state: PlanState) -> str:
        plan = state.plan
        lines = ["## 📋 Project Plan", "", plan.summary or state.user_request, ""]
        for step in plan.steps:
            if step.agent_id in CODING_PHASE_AGENTS or step.agent_id not in state.completed_steps:
                continue
            lines += [f"### {step.agent_name or step.agent_id}", "", state.agent_outputs.get(step.agent_id, ""), ""]

        failed = state.pending_planning_steps()
        if failed:
            lines += ["## ⚠️ Incomplete planning stages", ""]
            lines += [f"- **{agent_id}**: {state.agent_outputs.get(agent_id, 'not run')}" for agent_id in failed]
            lines.append("")

        pending = [s for s in plan.steps if s.agent_id in state.pending_coding_steps()]
        if pending:
            lines += ["## ⏳ Pending (run CODE to execute)", ""]
            for step in pending:
                label = step.agent_name or step.agent_id
                lines.append(f"- **{label}**: {step.description}" if step.description else f"- **{label}**")
        return "\n".join(lines).rstrip() + "\n"

    # ------------------------------------------------------------------
    # CODE phase
    # ------------------------------------------------------------------

    def execute_code(self, context: AgentContext) -> str:
        """Run pending coding stages, or edit existing code when none are left."""
        self._check(context)
        self.logger.info("PLAN: starting code phase")
        store = self.store_for(context)
        state = store.load() if store else None

        if state is None:
            self.logger.info("PLAN: no plan state, running default coding stages")
            state = self._new_state(
                Plan.from_agent_ids(DEFAULT_CODE_AGENTS, summary="Default coding plan"),
                context,
            )
            if store is not None:
                store.save(state)
            outputs = self._run_coding_stages(context, state, store)
            title = "## ✅ Code Phase Complete"
        elif state.pending_coding_steps():
            self.logger.info("PLAN: resuming pending coding stages %s", state.pending_coding_steps())
            outputs = self._run_coding_stages(context, state, store)
            title = "## ✅ Code Phase Complete"
        else:
            self.logger.info("PLAN: nothing pending, running developer in edit mode")
            outputs = self._run_edit(context, state, store)
            title = "## 🔧 Edit Mode Complete"

        if store is not None and self.clear_state_on_complete and state.is_complete:
            store.clear()
        return self._render_code_report(title, outputs, context)

    def _run_coding_stages(
        self,
        context: AgentContext,
        state: PlanState,
        store: PlanStateStore | None,
    ) -> dict[str, str]:
        pending = state.pending_coding_steps()
        ordered = [s for s in state.plan.steps if s.agent_id in pending]
        stage_metadata = {
            step.agent_id: {
                "userRequest": f"{step.description}\n\nOriginal Request: {state.user_request}"
            }
            for step in ordered
            if step.description
        }
        stage_ids = [s.agent_id for s in ordered]

        # Review runs right after the developer so a retry happens before QA
        if self.review_retry and "codereview" in stage_ids:
            split = stage_ids.index("codereview") + 1
            head, tail = stage_ids[:split], stage_ids[split:]
        else:
            head, tail = stage_ids, []

        # One progress session spans the head, retry and tail segments
        progress = self.runner.progress
        progress.start(len(stage_ids))
        callback = self._stage_recorder(state, store)
        outputs = self.runner.run_pipeline(
            context,
            head,
            seed_outputs=state.agent_outputs,
            on_stage_complete=callback,
            stage_metadata=stage_metadata,
            manage_progress=False,
        )
        if self.review_retry and is_skeleton_failure(outputs.get("codereview", "")):
            retry = self._retry_developer(
                context, state, outputs["codereview"], callback, stage_metadata
            )
            outputs.update(retry)
        if tail:
            outputs.update(
                self.runner.run_pipeline(
                    context,
                    tail,
                    seed_outputs={**state.agent_outputs, **outputs},
                    on_stage_complete=callback,
                    stage_metadata=stage_metadata,
                    manage_progress=False,
                )
            )
        if not self.runner.is_cancelled():
            progress.complete()
        return outputs

    def _retry_developer(
        self,
        context: AgentContext,
        state: PlanState,
        review: str,
        callback: StageCallback,
        stage_metadata: dict,
    ) -> dict[str, str]:
        if "developer" not in self.registry:
            return {}
        self.logger.warning("PLAN: review found skeleton code, retrying developer once")
        retry_context = context.with_metadata(
            editMode=True,
            reviewFeedback=review[:MAX_REVIEW_FEEDBACK_CHARS],
        )
        retry_stages = ["developer", "codereview"]
        self.runner.progress.add_stages(len(retry_stages))
        return self.runner.run_pipeline(
            retry_context,
            retry_stages,
            seed_outputs=state.agent_outputs,
            on_stage_complete=callback,
            stage_metadata=stage_metadata,
            manage_progress=False,
        )

    def _run_edit(
        self,
        context: AgentContext,
        state: PlanState,
        store: PlanStateStore | None,
    ) -> dict[str, str]:
        if "developer" not in self.registry:
            raise AgentError("Developer agent is not registered")
        return self.runner.run_pipeline(
            context.with_metadata(editMode=True),
            ["developer"],
            seed_outputs=state.agent_outputs,
            on_stage_complete=self._stage_recorder(state, store),
        )

    def _stage_recorder(self, state: PlanState, store: PlanStateStore | None) -> StageCallback:
        def record(stage: str, output: str, ok: bool) -> None:
            if not ok:
                return
            state.mark_complete(stage, output)
            if store is not None:
                store.mark_step_complete(stage, output)

        return record

    def _render_code_report(self, title: str, outputs: dict[str, str], context: AgentContext) -> str:
        sections = [title]
        for stage, output in outputs.items():
            sections.append(f"### {stage}\n\n{output}")
        report = "\n\n".join(sections) + "\n"

        if context.has_workspace:
            feedback = FeedbackService(context.workspace_root, app_dir=self.app_dir)
            if feedback.get_critical_issues():
                report += "\n---\n\n" + feedback.get_feedback_summary()
        return report

    def _check(self, context: AgentContext) -> None:
        if not self.validate_input(context):
            raise AgentError("Invalid context provided to orchestrator: userRequest is required")
