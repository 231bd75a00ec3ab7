"""Workflow event emission service."""

import uuid

from featureforge.domain.interfaces import WorkflowEventStoreInterface
from featureforge.domain.models import AgentName, utc_now
from featureforge.domain.workflow_event import WorkflowEvent, WorkflowEventType

SUMMARY_LIMIT = 500


def _agent_value(agent: AgentName | None) -> str | None:
    return agent.value if agent else None


class WorkflowEventEmitter:
    """Records the lifecycle of one feature workflow as events.

    The orchestrator creates one emitter per feature and calls the method
    matching each transition. IDs, timestamps and summary truncation are
    handled here so call sites pass only what they know.
    """

    def __init__(
        self, event_store: WorkflowEventStoreInterface, feature_id: str
    ) -> None:
        self._store = event_store
        self._feature_id = feature_id

    def _emit(self, event_type: WorkflowEventType, **fields) -> str:
        summary = fields.pop("summary", "")
        event = WorkflowEvent(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            feature_id=self._feature_id,
            summary=summary[:SUMMARY_LIMIT],
            created_at=utc_now().isoformat(),
            **fields,
        )
        return self._store.store_event(event)

    def workflow_started(self, title: str) -> None:
        """Workflow registered; the Analyzer is always first."""
        self._emit(
            WorkflowEventType.WORKFLOW_STARTED,
            agent=AgentName.ANALYZER.value,
            iteration=1,
            summary=title,
        )

    def agent_completed(
        self,
        agent: AgentName,
        iteration: int,
        artifact_path: str,
        next_agent: AgentName | None,
        duration_ms: int,
    ) -> None:
        self._emit(
            WorkflowEventType.AGENT_COMPLETED,
            agent=agent.value,
            iteration=iteration,
            artifact_path=artifact_path,
            next_agent=_agent_value(next_agent),
            duration_ms=duration_ms,
        )

    def agent_failed(
        self, agent: AgentName, iteration: int, error: str, duration_ms: int
    ) -> None:
        self._emit(
            WorkflowEventType.AGENT_FAILED,
            agent=agent.value,
            iteration=iteration,
            duration_ms=duration_ms,
            summary=error,
        )

    def workflow_completed(self, iteration: int, duration_ms: int) -> None:
        """Deliverer finished; no agent is attached."""
        self._emit(
            WorkflowEventType.WORKFLOW_COMPLETED,
            iteration=iteration,
            duration_ms=duration_ms,
        )

    def workflow_failed(
        self, agent: AgentName | None, iteration: int, error: str
    ) -> None:
        self._emit(
            WorkflowEventType.WORKFLOW_FAILED,
            agent=_agent_value(agent),
            iteration=iteration,
            summary=error,
        )
