"""
Stage table and routing for the agent pipeline.

This module is the single source of truth for the order of stages, where
each stage writes its artifact, and which agent runs next. Routing is a pure
function of the agent identity and its own output.
"""

from dataclasses import dataclass
from typing import Any

from featureforge.domain.models import AgentName

APPROVE = "approve"
APPROVED = "approved"


@dataclass(frozen=True)
class StageSpec:
    """Static description of one pipeline stage."""

    number: int
    agent: AgentName
    directory: str
    filename: str
    description: str

    def path_for(self, feature_id: str) -> str:
        return f"{feature_id}/{self.directory}/{self.filename}"


STAGES: tuple[StageSpec, ...] = (
    StageSpec(1, AgentName.ANALYZER, "01-analysis", "feature-analysis.json",
              "Analyze the feature request into requirements and impact"),
    StageSpec(2, AgentName.PLANNER, "02-planning", "execution-plan.json",
              "Design the architecture and phased plan"),
    StageSpec(3, AgentName.TASK_CREATOR, "03-tasks", "tasks.json",
              "Decompose the plan into ordered tasks"),
    StageSpec(4, AgentName.EXECUTOR, "04-execution", "execution-report.json",
              "Apply code changes and run unit tests"),
    StageSpec(5, AgentName.TESTER, "05-testing", "test-results.json",
              "Run end-to-end tests and collect coverage"),
    StageSpec(6, AgentName.REVIEWER, "06-review", "review-report.json",
              "Review quality, security, patterns and docs"),
    StageSpec(7, AgentName.REFINER, "07-refinement", "refinement-plan.json",
              "Plan fixes for failed tests or rejected reviews"),
    StageSpec(8, AgentName.DELIVERER, "08-delivery", "delivery-package.json",
              "Prepare the branch, docs and pull request"),
)

_STAGES_BY_AGENT = {stage.agent: stage for stage in STAGES}


def stage_for(agent: AgentName) -> StageSpec:
    return _STAGES_BY_AGENT[agent]


def artifact_path(feature_id: str, agent: AgentName) -> str:
    """Deterministic artifact path for ``(feature_id, agent)``."""
    return stage_for(agent).path_for(feature_id)


def _field(output: Any, name: str) -> Any:
    if isinstance(output, dict):
        return output.get(name)
    return getattr(output, name, None)


def next_agent(agent: AgentName, output: Any) -> AgentName | None:
    """
    Decide which agent runs after ``agent`` produced ``output``.

    Args:
        agent: The agent that produced the output
        output: Its output model (or the equivalent dict)

    Returns:
        The next agent, or None when the pipeline is finished
    """
    match agent:
        case AgentName.ANALYZER:
            return AgentName.PLANNER
        case AgentName.PLANNER:
            return AgentName.TASK_CREATOR
        case AgentName.TASK_CREATOR:
            return AgentName.EXECUTOR
        case AgentName.EXECUTOR:
            return AgentName.TESTER
        case AgentName.TESTER:
            if _field(output, "recommendation") == APPROVE:
                return AgentName.REVIEWER
            return AgentName.REFINER
        case AgentName.REVIEWER:
            if _field(output, "verdict") == APPROVED:
                return AgentName.DELIVERER
            return AgentName.REFINER
        case AgentName.REFINER:
            return AgentName.EXECUTOR
        case AgentName.DELIVERER:
            return None
