"""
Persistence adapters for artifacts, workflow state and the event trace.
"""

from featureforge.infrastructure.persistence.filesystem import FilesystemArtifactStore
from featureforge.infrastructure.persistence.memory import InMemoryArtifactStore
from featureforge.infrastructure.persistence.workflow_events import (
    FilesystemWorkflowEventStore,
    InMemoryWorkflowEventStore,
)
from featureforge.infrastructure.persistence.workflow_repository import (
    InMemoryWorkflowRepository,
)

__all__ = [
    "InMemoryArtifactStore",
    "FilesystemArtifactStore",
    "InMemoryWorkflowRepository",
    "InMemoryWorkflowEventStore",
    "FilesystemWorkflowEventStore",
]
