"""Document-producing role agents.

The analyst, architect, UX designer, product manager, QA engineer,
technical writer and quick-flow developer differ only in their prompt,
the artifact they write and the feedback they leave. Each is a RoleSpec
row in ROLE_SPECS, executed by the one RoleAgent class.

The brainstorm/model/decide/act agents are single prompt templates run by
SimpleAgent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from schemas.feedback import Issue, IssueSeverity
from schemas.plan_state import AgentPhase

from .base import Agent, AgentContext

PromptBuilder = Callable[[AgentContext, int], str]


def _section(title: str, text: str) -> str:
    return f"{title}:\n{text}\n\n" if text else ""


def analyst_prompt(ctx: AgentContext, limit: int) -> str:
    return f"""You are Mary, a senior business analyst.
User Request: {ctx.user_request}

Provide a CONCISE, HIGH-SIGNAL business analysis in markdown.
Focus on:
- Core Features & Requirements (Must-haves)
- Technical Constraints
- Critical Success Factors

Do not provide generic market research, obvious definitions, or filler.
Get straight to the point. Bullet points are preferred."""


def architect_prompt(ctx: AgentContext, limit: int) -> str:
    return f"""You are Winston, a senior system architect.
User Request: {ctx.user_request}

CONTEXT:
{ctx.get_output("analyst", limit)}

Provide a CONCISE, HIGH-LEVEL architecture design in markdown.
Focus on:
- System Modules & Responsibilities
- Tech Stack Recommendation (Why?)
- Data Flow (Briefly)

Do not explain generic concepts. Avoid large ASCII art.
Keep it technical and dense."""


def uxdesigner_prompt(ctx: AgentContext, limit: int) -> str:
    share = limit // 2
    return f"""You are Sally, a senior UX designer.
User Request: {ctx.user_request}

{_section("ANALYSIS", ctx.get_output("analyst", share))}{_section("ARCHITECTURE", ctx.get_output("architect", share))}Provide a CONCISE UX design in markdown.
Focus on:
- 1-2 Key User Flows (Step-by-step)
- Layout Structure (Header, Sidebar, Content)
- Critical UI Elements

Do not write persona biographies. Keep it practical and actionable for developers."""


def pm_prompt(ctx: AgentContext, limit: int) -> str:
    share = limit // 3
    context = (
        _section("ANALYSIS", ctx.get_output("analyst", share))
        + _section("ARCHITECTURE", ctx.get_output("architect", share))
        + _section("UX DESIGN", ctx.get_output("uxdesigner", share))
    )
    return f"""You are John, a product manager with years of experience launching products.

User Request: {ctx.user_request}

{context}Provide product planning with:
- User needs analysis
- Product requirements document (PRD)
- Feature prioritization
- Success metrics

Format output as markdown."""


def qa_prompt(ctx: AgentContext, limit: int) -> str:
    return f"""You are Oliver, a senior QA engineer specializing in test strategy and quality assurance.

User Request: {ctx.user_request}

CONTEXT FROM DEVELOPER:
{ctx.get_output("developer", limit)}

Provide comprehensive quality assurance including:
- Test strategy and approach
- Unit test cases
- Integration test scenarios
- End-to-end test plans
- Performance and security test considerations
- Test data requirements

Format output as markdown with test cases."""


def techwriter_prompt(ctx: AgentContext, limit: int) -> str:
    share = limit // 2
    return f"""You are Paige, a technical writer specializing in API documentation and user guides.

User Request: {ctx.user_request}

{_section("ARCHITECTURE", ctx.get_output("architect", share))}{_section("IMPLEMENTATION", ctx.get_output("developer", share))}Provide documentation with:
- Setup and usage instructions
- API reference and examples
- Architecture overview
- Troubleshooting guide

Format as markdown with code examples."""


def quickflowdev_prompt(ctx: AgentContext, limit: int) -> str:
    return f"""You are Barry, a full-stack developer who moves fast on MVP development.

User Request: {ctx.user_request}

Provide a complete solution with:
- Quick requirement analysis
- System design sketch
- Working code implementation
- Basic tests
- Setup instructions

Optimize for speed and pragmatism over perfection."""


@dataclass(frozen=True)
class RoleSpec:
    """Configuration of one document-producing agent."""

    id: str
    name: str
    description: str
    artifact: str
    phase: AgentPhase
    build_prompt: PromptBuilder
    completed_task: str
    remaining_work: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()
    next_steps: tuple[str, ...] = ()


ROLE_SPECS: dict[str, RoleSpec] = {
    spec.id: spec
    for spec in (
        RoleSpec(
            id="analyst",
            name="Business Analyst",
            description="Requirements, constraints and success factors",
            artifact="ANALYSIS.md",
            phase=AgentPhase.PLAN,
            build_prompt=analyst_prompt,
            completed_task="Completed business analysis",
            remaining_work=("Architecture review", "Requirement validation"),
            suggestions=("Validate must-haves with stakeholders",),
            next_steps=("Proceed to architecture phase",),
        ),
        RoleSpec(
            id="architect",
            name="System Architect",
            description="Technical design, architecture decisions, system scalability",
            artifact="ARCHITECTURE.md",
            phase=AgentPhase.PLAN,
            build_prompt=architect_prompt,
            completed_task="Completed system architecture design",
            remaining_work=("UX design review", "Security audit"),
            suggestions=("Add a caching layer if read load grows",),
            next_steps=("Proceed to UX design", "Review with security team"),
        ),
        RoleSpec(
            id="uxdesigner",
            name="UX Designer",
            description="User flows, layout and key UI elements",
            artifact="UX_DESIGN.md",
            phase=AgentPhase.PLAN,
            build_prompt=uxdesigner_prompt,
            completed_task="Completed UX design",
            remaining_work=("Usability review",),
            suggestions=("Prototype the primary flow before building",),
            next_steps=("Proceed to product requirements",),
        ),
        RoleSpec(
            id="pm",
            name="Product Manager",
            description="Product requirements, prioritization and success metrics",
            artifact="PRD.md",
            phase=AgentPhase.PLAN,
            build_prompt=pm_prompt,
            completed_task="Completed product requirements document",
            remaining_work=("Stakeholder sign-off",),
            suggestions=("Define measurable launch criteria",),
            next_steps=("Run the code phase",),
        ),
        RoleSpec(
            id="qa",
            name="QA Engineer",
            description="Test strategy, test cases and quality assurance",
            artifact="QA_PLAN.md",
            phase=AgentPhase.CODE,
            build_prompt=qa_prompt,
            completed_task="Completed QA test plan",
            remaining_work=("Execute test cases", "Set up CI pipeline"),
            suggestions=("Add automated regression tests", "Track test coverage"),
            next_steps=("Execute tests", "Report results to team"),
        ),
        RoleSpec(
            id="techwriter",
            name="Technical Writer",
            description="API documentation, user guides and architecture overview",
            artifact="DOCUMENTATION.md",
            phase=AgentPhase.CODE,
            build_prompt=techwriter_prompt,
            completed_task="Completed technical documentation",
            remaining_work=("Documentation review",),
            suggestions=("Keep examples in sync with the code",),
            next_steps=("Publish documentation",),
        ),
        RoleSpec(
            id="quickflowdev",
            name="Quick Flow Developer",
            description="Fast end-to-end MVP specification",
            artifact="QUICKFLOW_SPEC.md",
            phase=AgentPhase.PLAN,
            build_prompt=quickflowdev_prompt,
            completed_task="Completed quick-flow specification",
            remaining_work=("Harden MVP for production",),
            next_steps=("Iterate on the MVP",),
        ),
    )
}


class RoleAgent(Agent):
    """Runs one RoleSpec: prompt, generate, write the artifact, leave feedback."""

    def __init__(self, spec: RoleSpec, max_context_chars: int = 8000, **kwargs) -> None:
        self.spec = spec
        self.id = spec.id
        self.name = spec.name
        self.description = spec.description
        self.phase = spec.phase
        self.max_context_chars = max_context_chars
        super().__init__(**kwargs)

    def execute(self, context: AgentContext) -> str:
        llm = self._require_llm()
        completed: list[str] = []
        issues: list[Issue] = []

        prompt = self.spec.build_prompt(context, self.max_context_chars)
        try:
            output = llm.generate_text(prompt)
            completed.append(self.spec.completed_task)
        except Exception as e:
            self.logger.error("%s generation failed: %s", self.id, e)
            output = ""
            issues.append(
                Issue(
                    severity=IssueSeverity.CRITICAL,
                    description=f"{self.spec.name} generation failed",
                    context=f"Error: {e}",
                )
            )

        if context.has_workspace and output:
            self._write_artifact(context, self.spec.artifact, output, issues, completed)

        self._record_feedback(
            context,
            completed,
            list(self.spec.remaining_work),
            issues,
            list(self.spec.suggestions),
            list(self.spec.next_steps),
        )
        return output


SIMPLE_PROMPTS: dict[str, tuple[str, str]] = {
    "brainstorm": ("Brainstorm", "Generate initial ideas for: {request}"),
    "model": ("Model", "Create a model for: {request}"),
    "decide": ("Decide", "Make a decision for: {request}"),
    "act": ("Act", "Execute action for: {request}"),
}


class SimpleAgent(Agent):
    """One prompt template, no artifact, no feedback. LLM errors propagate."""

    feedback_enabled = False

    def __init__(self, agent_id: str, template: str, name: str | None = None, **kwargs) -> None:
        self.id = agent_id
        self.name = name or agent_id
        self.template = template
        super().__init__(**kwargs)

    def execute(self, context: AgentContext) -> str:
        return self._require_llm().generate_text(self.template.format(request=context.user_request))


def build_simple_agents(**kwargs) -> list[SimpleAgent]:
    return [
        SimpleAgent(agent_id, template, name=name, **kwargs)
        for agent_id, (name, template) in SIMPLE_PROMPTS.items()
    ]
