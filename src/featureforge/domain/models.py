"""
Domain models for the feature delivery pipeline.

Requests, contexts and results are immutable (frozen dataclasses) so an agent
cannot mutate what the orchestrator handed it. WorkflowState is the one
mutable record; only the orchestrator writes to it.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from featureforge.domain.exceptions import InputValidationError, WorkflowCancelled

OutputT = TypeVar("OutputT")


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMERATIONS
# =============================================================================


class Priority(str, Enum):
    """Feature request priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AgentName(str, Enum):
    """Closed set of pipeline agent identities."""

    ANALYZER = "AnalyzerAgent"
    PLANNER = "PlannerAgent"
    TASK_CREATOR = "TaskCreatorAgent"
    EXECUTOR = "ExecutorAgent"
    TESTER = "TesterAgent"
    REVIEWER = "ReviewerAgent"
    REFINER = "RefinerAgent"
    DELIVERER = "DelivererAgent"


class WorkflowStatus(str, Enum):
    """Workflow lifecycle status."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TriggerType(str, Enum):
    """Why a refinement cycle was entered."""

    TEST_FAILURE = "test-failure"
    REVIEW_REJECTION = "review-rejection"


# =============================================================================
# FEATURE REQUEST
# =============================================================================


MIN_DESCRIPTION_LENGTH = 10


@dataclass(frozen=True)
class FeatureRequest:
    """Immutable input to the first stage."""

    title: str
    description: str
    priority: Priority | str
    requested_by: str = "api-user"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeatureRequest":
        """Build a request from a JSON-style mapping (camelCase or snake_case keys)."""
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or "",
            priority=data.get("priority") or "",
            requested_by=data.get("requested_by")
            or data.get("requestedBy")
            or "api-user",
        )

    def to_dict(self) -> dict[str, Any]:
        priority = self.priority
        return {
            "title": self.title,
            "description": self.description,
            "priority": priority.value if isinstance(priority, Priority) else priority,
            "requested_by": self.requested_by,
        }


def validate_feature_request(request: FeatureRequest) -> Priority:
    """
    Check a feature request before any workflow state exists.

    Args:
        request: The request to validate

    Returns:
        The parsed priority

    Raises:
        InputValidationError: Naming the first invalid field
    """
    if not isinstance(request.title, str) or not request.title.strip():
        raise InputValidationError("Feature title is required", field="title")

    if (
        not isinstance(request.description, str)
        or len(request.description.strip()) < MIN_DESCRIPTION_LENGTH
    ):
        raise InputValidationError(
            f"Feature description must be at least {MIN_DESCRIPTION_LENGTH} characters",
            field="description",
        )

    try:
        return Priority(request.priority)
    except ValueError as err:
        allowed = ", ".join(p.value for p in Priority)
        raise InputValidationError(
            f"Priority must be one of: {allowed}", field="priority"
        ) from err


# =============================================================================
# CANCELLATION
# =============================================================================


class CancellationToken:
    """Cooperative cancellation flag carried through AgentContext."""

    def __init__(self) -> None:
        self._cancelled = False
        self._reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        self._cancelled = True
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise WorkflowCancelled(f"Workflow cancelled: {self._reason}")


# =============================================================================
# AGENT CONTEXT AND RESULT
# =============================================================================


@dataclass(frozen=True)
class ContextMetadata:
    """Request-level metadata shared by every stage."""

    started_at: datetime
    requested_by: str
    priority: Priority


@dataclass(frozen=True)
class AgentContext:
    """Context passed to every agent invocation."""

    feature_id: str
    iteration: int
    metadata: ContextMetadata
    previous_artifacts: dict[AgentName, str] = field(default_factory=dict)
    cancellation: CancellationToken = field(
        default_factory=CancellationToken, compare=False, repr=False
    )

    def artifact_path_for(self, agent: AgentName) -> str | None:
        return self.previous_artifacts.get(agent)


@dataclass(frozen=True)
class ExecutionMetadata:
    """Timing recorded for one agent invocation."""

    duration_ms: int
    timestamp: str
    iteration: int


@dataclass(frozen=True)
class AgentResult(Generic[OutputT]):
    """Outcome of one agent invocation."""

    success: bool
    agent: AgentName
    metadata: ExecutionMetadata
    output: OutputT | None = None
    error: str | None = None
    error_kind: str | None = None
    next_agent: AgentName | None = None
    artifact_path: str = ""


# =============================================================================
# WORKFLOW STATE
# =============================================================================


@dataclass(frozen=True)
class StageOutcome:
    """Single entry in a workflow's ordered history."""

    agent: AgentName
    iteration: int
    success: bool
    duration_ms: int
    timestamp: str
    artifact_path: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["agent"] = self.agent.value
        return data


@dataclass
class WorkflowState:
    """Mutable per-feature workflow record, owned by the orchestrator."""

    id: str
    feature_id: str
    title: str
    priority: Priority
    requested_by: str
    current_agent: AgentName | None = AgentName.ANALYZER
    status: WorkflowStatus = WorkflowStatus.RUNNING
    iteration: int = 1
    max_iterations: int = 5
    history: list[StageOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None
    artifacts: dict[AgentName, str] = field(default_factory=dict)
    error: str | None = None
    version: int = 0

    @property
    def is_running(self) -> bool:
        return self.status == WorkflowStatus.RUNNING

    @property
    def duration_seconds(self) -> int | None:
        if self.completed_at is None:
            return None
        return round((self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "feature_id": self.feature_id,
            "title": self.title,
            "priority": self.priority.value,
            "requested_by": self.requested_by,
            "current_agent": self.current_agent.value if self.current_agent else None,
            "status": self.status.value,
            "iteration": self.iteration,
            "max_iterations": self.max_iterations,
            "history": [h.to_dict() for h in self.history],
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration": self.duration_seconds,
            "artifacts": {k.value: v for k, v in self.artifacts.items()},
            "error": self.error,
        }


# =============================================================================
# COMMAND RUNNER RESULT
# =============================================================================


TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True)
class CommandResult:
    """Structured outcome of one shell command."""

    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """stdout followed by stderr, as test runners split their summaries."""
        return self.stdout + self.stderr
