"""Planning agent: turns a user request into an ordered agent plan."""

from __future__ import annotations

import json
import re
from typing import Any

from schemas.plan_state import CODING_PHASE_AGENTS, AgentPhase, Plan, PlanStep

from .base import AgentContext, Agent

DEFAULT_PLAN_AGENTS = ["analyst", "architect", "uxdesigner", "pm"]
DEFAULT_CODE_AGENTS = ["developer", "codereview", "qa", "techwriter"]

PLANNABLE_AGENTS: dict[str, str] = {
    "analyst": "Business analysis: requirements, constraints, success factors",
    "architect": "System architecture: modules, tech stack, data flow",
    "uxdesigner": "UX design: user flows, layout, key UI elements",
    "pm": "Product requirements document and prioritization",
    "developer": "Writes the code files",
    "codereview": "Reviews generated code for stubs and defects",
    "qa": "Test strategy and test cases",
    "techwriter": "User and API documentation",
}

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n([\s\S]*?)```")


def default_plan(include_code: bool = True) -> Plan:
    """The fixed plan used when no planner output is available."""
    agent_ids = DEFAULT_PLAN_AGENTS + (DEFAULT_CODE_AGENTS if include_code else [])
    return Plan.from_agent_ids(
        agent_ids,
        summary="Default plan",
        include_code_generation=include_code,
    )


def _extract_json(text: str) -> Any:
    candidates = [m.group(1) for m in _JSON_FENCE_RE.finditer(text)]
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def parse_plan(text: str) -> Plan | None:
    """Parse planner output into a Plan.

    Unknown and repeated agent ids are dropped. Returns None when no usable
    step remains.
    """
    data = _extract_json(text or "")
    if not isinstance(data, dict) or not isinstance(data.get("steps"), list):
        return None

    steps: list[PlanStep] = []
    seen: set[str] = set()
    for raw in data["steps"]:
        if not isinstance(raw, dict):
            continue
        agent_id = str(raw.get("agentId") or raw.get("agent_id") or "").strip().lower()
        if agent_id not in PLANNABLE_AGENTS or agent_id in seen:
            continue
        seen.add(agent_id)
        steps.append(
            PlanStep(
                agent_id=agent_id,
                agent_name=raw.get("agentName"),
                description=raw.get("task") or raw.get("description"),
                reason=raw.get("reason"),
            )
        )
    if not steps:
        return None

    include_code = bool(data.get("includeCodeGeneration", True))
    if not include_code:
        steps = [s for s in steps if s.agent_id not in CODING_PHASE_AGENTS]
    elif not any(s.agent_id in CODING_PHASE_AGENTS for s in steps):
        steps.extend(PlanStep(agent_id=a) for a in DEFAULT_CODE_AGENTS)

    # Planning stages always precede coding stages
    steps.sort(key=lambda s: s.agent_id in CODING_PHASE_AGENTS)
    return Plan(steps=steps, summary=data.get("summary"), include_code_generation=include_code)


class PlanningAgent(Agent):
    """Asks the LLM which agents a request needs, in which order."""

    id = "planning"
    name = "Planner"
    description = "Chooses the agents and order for a request"
    phase = AgentPhase.PLAN
    feedback_enabled = False

    def build_prompt(self, context: AgentContext) -> str:
        agents = "\n".join(f"- {agent_id}: {desc}" for agent_id, desc in PLANNABLE_AGENTS.items())
        return f"""You are a technical project planner. Decide which specialist agents are needed for this request and in which order.

User Request: {context.user_request}

Available agents:
{agents}

Respond with JSON only:
{{"summary": "...", "includeCodeGeneration": true, "steps": [{{"step": 1, "agentId": "analyst", "agentName": "...", "task": "...", "reason": "..."}}]}}

Planning agents (analyst, architect, uxdesigner, pm) come before coding agents (developer, codereview, qa, techwriter). Only include agents the request needs."""

    def generate_plan(self, context: AgentContext) -> Plan:
        """Ask the LLM for a plan, falling back to the default plan."""
        try:
            text = self._require_llm().generate_text(self.build_prompt(context))
        except Exception as e:
            self.logger.warning("PLAN: plan generation failed, using default plan: %s", e)
            return default_plan()

        plan = parse_plan(text)
        if plan is None:
            self.logger.warning("PLAN: could not parse plan, using default plan")
            return default_plan()
        self.logger.info("PLAN: generated plan %s", plan.agent_ids)
        return plan

    def execute(self, context: AgentContext) -> str:
        plan = self.generate_plan(context)
        return json.dumps(plan.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2)
