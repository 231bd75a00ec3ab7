"""
Infrastructure layer for featureforge.

Contains adapters for external concerns (persistence, LLMs, shell commands).
"""

from featureforge.infrastructure.commands import (
    FakeCommandRunner,
    SubprocessCommandRunner,
)
from featureforge.infrastructure.llm import (
    MockCompletionService,
    OpenAICompletionService,
)
from featureforge.infrastructure.persistence import (
    FilesystemArtifactStore,
    FilesystemWorkflowEventStore,
    InMemoryArtifactStore,
    InMemoryWorkflowEventStore,
    InMemoryWorkflowRepository,
)

__all__ = [
    # Persistence
    "InMemoryArtifactStore",
    "FilesystemArtifactStore",
    "InMemoryWorkflowRepository",
    "InMemoryWorkflowEventStore",
    "FilesystemWorkflowEventStore",
    # LLM
    "OpenAICompletionService",
    "MockCompletionService",
    # Commands
    "SubprocessCommandRunner",
    "FakeCommandRunner",
]
