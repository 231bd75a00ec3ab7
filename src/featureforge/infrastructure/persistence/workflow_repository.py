"""
In-memory workflow repository with compare-and-set updates.

Stores deep copies so callers never share a mutable WorkflowState with the
repository. Every successful write bumps ``version``.
"""

import asyncio
import copy

from featureforge.domain.exceptions import ConcurrentUpdateError, UnknownWorkflow
from featureforge.domain.interfaces import WorkflowRepositoryInterface
from featureforge.domain.models import WorkflowState, WorkflowStatus


class InMemoryWorkflowRepository(WorkflowRepositoryInterface):
    """Key-value workflow store keyed by feature id."""

    def __init__(self) -> None:
        self._states: dict[str, WorkflowState] = {}
        self._lock = asyncio.Lock()

    async def create(self, state: WorkflowState) -> WorkflowState:
        async with self._lock:
            if state.feature_id in self._states:
                existing = self._states[state.feature_id]
                raise ConcurrentUpdateError(
                    state.feature_id, expected=0, actual=existing.version
                )
            stored = copy.deepcopy(state)
            stored.version = 1
            self._states[state.feature_id] = stored
            return copy.deepcopy(stored)

    async def get(self, feature_id: str) -> WorkflowState:
        if feature_id not in self._states:
            raise UnknownWorkflow(feature_id)
        return copy.deepcopy(self._states[feature_id])

    async def exists(self, feature_id: str) -> bool:
        return feature_id in self._states

    async def compare_and_set(self, state: WorkflowState) -> WorkflowState:
        async with self._lock:
            current = self._states.get(state.feature_id)
            if current is None:
                raise UnknownWorkflow(state.feature_id)
            if current.version != state.version:
                raise ConcurrentUpdateError(
                    state.feature_id, expected=state.version, actual=current.version
                )
            stored = copy.deepcopy(state)
            stored.version = current.version + 1
            self._states[state.feature_id] = stored
            return copy.deepcopy(stored)

    async def list(self, status: WorkflowStatus | None = None) -> list[WorkflowState]:
        return [
            copy.deepcopy(s)
            for s in self._states.values()
            if status is None or s.status == status
        ]
