"""Shared pytest fixtures for verno tests."""

from pathlib import Path
from typing import Callable

import pytest

from agents import Agent, AgentContext, AgentRegistry, build_default_registry
from llm_backend import EchoBackend, LLMService, ScriptedBackend


class RecordingAgent(Agent):
    """Agent that records every context it receives.

    ``outputs`` are returned in order; an Exception in the list is raised
    instead. Once exhausted the agent returns ``"out-<id>"``.
    """

    def __init__(self, agent_id: str, log: list, outputs: list | None = None, **kwargs) -> None:
        self.id = agent_id
        self.log = log
        self.outputs = list(outputs or [])
        super().__init__(**kwargs)

    def execute(self, context: AgentContext) -> str:
        self.log.append((self.id, context))
        if self.outputs:
            result = self.outputs.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return f"out-{self.id}"


def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def echo_backend() -> EchoBackend:
    return EchoBackend()


@pytest.fixture
def echo_llm(echo_backend: EchoBackend) -> LLMService:
    """LLM service answering "response for: <prompt>"."""
    return LLMService(echo_backend, sleep=no_sleep)


@pytest.fixture
def scripted_llm() -> Callable[..., LLMService]:
    """Factory for an LLM service over a ScriptedBackend, with no retry delay."""

    def factory(responses) -> LLMService:
        return LLMService(ScriptedBackend(responses), sleep=no_sleep)

    return factory


@pytest.fixture
def default_registry(echo_llm: LLMService) -> AgentRegistry:
    return build_default_registry(echo_llm)


@pytest.fixture
def recording_registry() -> Callable[..., tuple[AgentRegistry, list]]:
    """Factory building a registry of RecordingAgents sharing one call log.

    Usage: registry, log = recording_registry(["a", "b"], b=["x", RuntimeError()])
    """

    def factory(agent_ids: list[str], **outputs: list) -> tuple[AgentRegistry, list]:
        log: list = []
        registry = AgentRegistry()
        for agent_id in agent_ids:
            registry.register(agent_id, RecordingAgent(agent_id, log, outputs.get(agent_id)))
        return registry, log

    return factory
