"""Workflow execution trace models."""

from dataclasses import dataclass
from enum import Enum


class WorkflowEventType(str, Enum):
    """Types of workflow execution events."""

    WORKFLOW_STARTED = "WORKFLOW_STARTED"
    AGENT_COMPLETED = "AGENT_COMPLETED"
    AGENT_FAILED = "AGENT_FAILED"
    WORKFLOW_COMPLETED = "WORKFLOW_COMPLETED"
    WORKFLOW_FAILED = "WORKFLOW_FAILED"


@dataclass(frozen=True)
class WorkflowEvent:
    """Single workflow state transition.

    Agent events carry the agent, iteration and artifact path of one
    invocation; workflow events carry only the summary.
    """

    event_id: str
    event_type: WorkflowEventType
    feature_id: str
    agent: str | None = None
    iteration: int | None = None
    artifact_path: str | None = None
    next_agent: str | None = None
    duration_ms: int | None = None
    summary: str = ""
    created_at: str = ""  # ISO 8601

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "feature_id": self.feature_id,
            "agent": self.agent,
            "iteration": self.iteration,
            "artifact_path": self.artifact_path,
            "next_agent": self.next_agent,
            "duration_ms": self.duration_ms,
            "summary": self.summary,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowEvent":
        return cls(
            event_id=data["event_id"],
            event_type=WorkflowEventType(data["event_type"]),
            feature_id=data["feature_id"],
            agent=data.get("agent"),
            iteration=data.get("iteration"),
            artifact_path=data.get("artifact_path"),
            next_agent=data.get("next_agent"),
            duration_ms=data.get("duration_ms"),
            summary=data.get("summary", ""),
            created_at=data.get("created_at", ""),
        )
