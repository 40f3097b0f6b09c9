"""Tests for the agent registry."""

from agents import AgentContext, AgentRegistry, SimpleAgent, build_default_registry
from tools.change_tracker import ChangeTracker


def _agent(agent_id: str) -> SimpleAgent:
    return SimpleAgent(agent_id, "Do {request}")


class TestAgentRegistry:
    """Tests for AgentRegistry lookup."""

    def test_register_and_get(self):
        """A registered agent is returned by id."""
        registry = AgentRegistry()
        agent = _agent("brainstorm")
        registry.register("brainstorm", agent)

        assert registry.get("brainstorm") is agent
        assert registry.exists("brainstorm")
        assert "brainstorm" in registry
        assert len(registry) == 1

    def test_get_unknown_returns_none(self):
        """Unknown ids yield None rather than raising."""
        assert AgentRegistry().get("ghost") is None

    def test_last_write_wins(self):
        """Registering an id twice keeps the second agent."""
        registry = AgentRegistry()
        first, second = _agent("act"), _agent("act")
        registry.register("act", first)
        registry.register("act", second)

        assert registry.get("act") is second
        assert registry.list() == ["act"]

    def test_unregister(self):
        """Unregister reports whether anything was removed."""
        registry = AgentRegistry()
        registry.register("model", _agent("model"))

        assert registry.unregister("model") is True
        assert registry.unregister("model") is False
        assert registry.get("model") is None

    def test_get_all_is_a_copy(self):
        """Mutating get_all() does not change the registry."""
        registry = AgentRegistry()
        registry.register("decide", _agent("decide"))
        registry.get_all().clear()

        assert registry.exists("decide")


class TestDefaultRegistry:
    """Tests for build_default_registry."""

    def test_registers_every_builtin_agent(self, echo_llm):
        """All built-in agents except the orchestrator are registered."""
        registry = build_default_registry(echo_llm)

        assert set(registry.list()) == {
            "analyst",
            "architect",
            "uxdesigner",
            "developer",
            "pm",
            "qa",
            "techwriter",
            "quickflowdev",
            "codereview",
            "brainstorm",
            "model",
            "decide",
            "act",
            "planning",
        }
        assert "orchestrator" not in registry

    def test_agents_share_services(self, echo_llm):
        """Every agent gets the same LLM service and change tracker."""
        registry = build_default_registry(echo_llm, app_dir=".custom")
        agents = registry.get_all().values()

        assert all(agent.llm is echo_llm for agent in agents)
        assert len({id(agent.change_tracker) for agent in agents}) == 1
        assert all(agent.app_dir == ".custom" for agent in agents)

    def test_caller_tracker_records_agent_writes(self, workspace, echo_llm):
        """An empty tracker passed in is the one agents record into."""
        tracker = ChangeTracker()
        registry = build_default_registry(echo_llm, change_tracker=tracker)
        analyst = registry.get("analyst")

        analyst.run(AgentContext(str(workspace), {"userRequest": "Build a todo app"}))

        assert analyst.change_tracker is tracker
        assert len(tracker) == 1
        assert all(agent.change_tracker is tracker for agent in registry.get_all().values())

    def test_agent_ids_match_registration(self, default_registry):
        """Each agent is registered under its own id."""
        for agent_id, agent in default_registry.get_all().items():
            assert agent.id == agent_id
