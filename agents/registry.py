"""Agent registry: id to agent lookup."""

import logging

from llm_backend.service import LLMService
from tools.change_tracker import ChangeTracker
from tools.workspace_checks import WorkspaceChecker

from .base import Agent

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Name to agent lookup table.

    Registering an id twice replaces the earlier agent.
    """

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}

    def register(self, agent_id: str, agent: Agent) -> None:
        if agent_id in self._agents:
            logger.debug("Replacing agent %s", agent_id)
        self._agents[agent_id] = agent

    def unregister(self, agent_id: str) -> bool:
        return self._agents.pop(agent_id, None) is not None

    def get(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def exists(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def list(self) -> list[str]:
        return list(self._agents)

    def get_all(self) -> dict[str, Agent]:
        return dict(self._agents)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)


def build_default_registry(
    llm: LLMService | None,
    change_tracker: ChangeTracker | None = None,
    app_dir: str = ".verno",
    max_context_chars: int = 8000,
    scan_max_files: int = 15,
    scan_max_file_chars: int = 3000,
    workspace_checks: bool = True,
) -> AgentRegistry:
    """Register every built-in agent, sharing one LLM service and change tracker."""
    from .code_review_agent import CodeReviewAgent
    from .developer_agent import DeveloperAgent
    from .planning_agent import PlanningAgent
    from .roles import ROLE_SPECS, RoleAgent, build_simple_agents

    shared = {
        "llm": llm,
        "change_tracker": change_tracker if change_tracker is not None else ChangeTracker(),
        "app_dir": app_dir,
    }
    agents: list[Agent] = [
        RoleAgent(spec, max_context_chars=max_context_chars, **shared)
        for spec in ROLE_SPECS.values()
    ]
    agents.append(
        DeveloperAgent(
            max_context_chars=max_context_chars,
            scan_max_files=scan_max_files,
            scan_max_file_chars=scan_max_file_chars,
            **shared,
        )
    )
    agents.append(
        CodeReviewAgent(checker=WorkspaceChecker() if workspace_checks else None, **shared)
    )
    agents.append(PlanningAgent(**shared))
    agents.extend(build_simple_agents(**shared))

    registry = AgentRegistry()
    for agent in agents:
        registry.register(agent.id, agent)
    logger.info("Registered agents: %s", registry.list())
    return registry
