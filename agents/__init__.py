"""Agents module.

Provides the agents a pipeline stage can run:
- RoleAgent: document-producing roles (analyst, architect, uxdesigner,
  pm, qa, techwriter, quickflowdev) configured by ROLE_SPECS
- DeveloperAgent: generates and writes source files
- CodeReviewAgent: flags skeleton code and reviews generated files
- PlanningAgent: chooses which agents a request needs
- SimpleAgent: single-prompt agents (brainstorm, model, decide, act)
"""

from .base import Agent, AgentContext, AgentError
from .code_review_agent import (
    CodeReviewAgent,
    detect_short_files,
    detect_skeleton_code,
    is_skeleton_failure,
)
from .developer_agent import DeveloperAgent
from .planning_agent import (
    DEFAULT_CODE_AGENTS,
    DEFAULT_PLAN_AGENTS,
    PlanningAgent,
    default_plan,
    parse_plan,
)
from .registry import AgentRegistry, build_default_registry
from .roles import ROLE_SPECS, RoleAgent, RoleSpec, SimpleAgent, build_simple_agents

__all__ = [
    # Base
    "Agent",
    "AgentContext",
    "AgentError",
    "AgentRegistry",
    "build_default_registry",
    # Agents
    "CodeReviewAgent",
    "DeveloperAgent",
    "PlanningAgent",
    "RoleAgent",
    "RoleSpec",
    "ROLE_SPECS",
    "SimpleAgent",
    "build_simple_agents",
    # Planning helpers
    "DEFAULT_CODE_AGENTS",
    "DEFAULT_PLAN_AGENTS",
    "default_plan",
    "parse_plan",
    # Review helpers
    "detect_short_files",
    "detect_skeleton_code",
    "is_skeleton_failure",
]
