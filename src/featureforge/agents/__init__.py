"""
Pipeline agents.

One agent per stage, each a BaseAgent subclass. ``build_agents`` wires the
full registry the orchestrator dispatches over.
"""

from featureforge.agents.analyzer import AnalyzerAgent
from featureforge.agents.base import (
    AgentDependencies,
    BaseAgent,
    parse_json_response,
)
from featureforge.agents.deliverer import DelivererAgent
from featureforge.agents.executor import ExecutorAgent
from featureforge.agents.planner import PlannerAgent
from featureforge.agents.refiner import RefinerAgent
from featureforge.agents.reviewer import ReviewerAgent
from featureforge.agents.task_creator import TaskCreatorAgent
from featureforge.agents.tester import TesterAgent
from featureforge.domain.models import AgentName

AGENT_CLASSES: tuple[type[BaseAgent], ...] = (
    AnalyzerAgent,
    PlannerAgent,
    TaskCreatorAgent,
    ExecutorAgent,
    TesterAgent,
    ReviewerAgent,
    RefinerAgent,
    DelivererAgent,
)


def build_agents(deps: AgentDependencies) -> dict[AgentName, BaseAgent]:
    """Instantiate every agent against shared dependencies, keyed by name."""
    return {cls.name: cls(deps) for cls in AGENT_CLASSES}


__all__ = [
    "AGENT_CLASSES",
    "AgentDependencies",
    "AnalyzerAgent",
    "BaseAgent",
    "DelivererAgent",
    "ExecutorAgent",
    "PlannerAgent",
    "RefinerAgent",
    "ReviewerAgent",
    "TaskCreatorAgent",
    "TesterAgent",
    "build_agents",
    "parse_json_response",
]
