"""
Domain interfaces (Ports) for the feature delivery pipeline.

These abstract base classes define the contracts that adapters must satisfy.
They have no external dependencies. Agents and the orchestrator depend only
on these ports, never on a concrete adapter.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from featureforge.domain.models import (
        AgentName,
        CommandResult,
        WorkflowState,
        WorkflowStatus,
    )
    from featureforge.domain.workflow_event import WorkflowEvent, WorkflowEventType


class ArtifactStoreInterface(ABC):
    """
    Port for stage artifact persistence.

    Paths are relative to the store root, e.g.
    ``FEAT-2026-000001/02-planning/execution-plan.json``. Writing to an
    existing path supersedes the previous payload.
    """

    @abstractmethod
    async def save(
        self,
        path: str,
        data: Any,
        agent: "AgentName | None" = None,
        iteration: int | None = None,
    ) -> str:
        """
        Persist a JSON-serializable payload.

        Args:
            path: Relative artifact path
            data: JSON-serializable payload
            agent: Agent that produced the artifact, recorded in the write log
            iteration: Workflow iteration, recorded in the write log

        Returns:
            The normalized relative path

        Raises:
            ValueError: If the path is absolute or escapes the store root
        """
        pass

    @abstractmethod
    async def load(self, path: str) -> Any:
        """
        Load a payload.

        Raises:
            KeyError: If no artifact exists at the path
            ValueError: If the path is absolute or escapes the store root
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def list_feature_artifacts(self, feature_id: str) -> list[str]:
        """Return every artifact path stored for a feature, sorted."""
        pass

    @abstractmethod
    async def delete_feature_artifacts(self, feature_id: str) -> int:
        """Remove all artifacts of a feature and return how many were removed."""
        pass


class CompletionServiceInterface(ABC):
    """
    Port for language-model text completion.

    Implementations connect to an OpenAI-compatible endpoint or return
    scripted responses in tests.
    """

    @abstractmethod
    async def complete(self, prompt: str, system_prompt: str | None = None) -> str:
        """
        Complete a prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt describing the agent role

        Returns:
            Raw completion text

        Raises:
            ExternalServiceError: If the service is unreachable or returns nothing
        """
        pass


class CommandRunnerInterface(ABC):
    """Port for running shell commands."""

    @abstractmethod
    async def run(
        self,
        command: str,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> "CommandResult":
        """
        Run a command and capture its output.

        A non-zero exit status is reported in the result, not raised. A
        timeout kills the process and yields ``timed_out=True``.

        Raises:
            ExternalServiceError: If the command could not be started
        """
        pass


class WorkflowRepositoryInterface(ABC):
    """
    Port for workflow state storage with compare-and-set updates.

    Each stored state carries a ``version``. Updates succeed only when the
    caller's version matches the stored one.
    """

    @abstractmethod
    async def create(self, state: "WorkflowState") -> "WorkflowState":
        """
        Store a new workflow.

        Raises:
            ConcurrentUpdateError: If a workflow with the same id already exists
        """
        pass

    @abstractmethod
    async def get(self, feature_id: str) -> "WorkflowState":
        """
        Return a snapshot of the stored state.

        Raises:
            UnknownWorkflow: If the id is not registered
        """
        pass

    @abstractmethod
    async def exists(self, feature_id: str) -> bool:
        pass

    @abstractmethod
    async def compare_and_set(self, state: "WorkflowState") -> "WorkflowState":
        """
        Replace the stored state if its version equals ``state.version``.

        Returns:
            The stored snapshot with the bumped version

        Raises:
            UnknownWorkflow: If the id is not registered
            ConcurrentUpdateError: If the stored version differs
        """
        pass

    @abstractmethod
    async def list(
        self, status: "WorkflowStatus | None" = None
    ) -> list["WorkflowState"]:
        pass


class WorkflowEventStoreInterface(ABC):
    """Port for workflow execution trace persistence."""

    @abstractmethod
    def store_event(self, event: "WorkflowEvent") -> str:
        """Append an event and return its id."""
        pass

    @abstractmethod
    def get_events(
        self,
        feature_id: str,
        event_type: "WorkflowEventType | None" = None,
    ) -> list["WorkflowEvent"]:
        """Return events for a feature in the order they were stored."""
        pass
