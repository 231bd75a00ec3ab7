"""
In-memory implementation of the artifact store.

Useful for testing and ephemeral workflows.
"""

import copy
import json
from typing import Any

from featureforge.domain.interfaces import ArtifactStoreInterface
from featureforge.domain.models import AgentName
from featureforge.infrastructure.persistence.paths import (
    feature_of,
    normalize_artifact_path,
)


class InMemoryArtifactStore(ArtifactStoreInterface):
    """Simple in-memory store for testing."""

    def __init__(self) -> None:
        self._artifacts: dict[str, Any] = {}
        self.writes: list[tuple[str, AgentName | None, int | None]] = []

    async def save(
        self,
        path: str,
        data: Any,
        agent: AgentName | None = None,
        iteration: int | None = None,
    ) -> str:
        rel = normalize_artifact_path(path)
        # Round-trip through JSON so non-serializable payloads fail here too
        self._artifacts[rel] = json.loads(json.dumps(data))
        self.writes.append((rel, agent, iteration))
        return rel

    async def load(self, path: str) -> Any:
        rel = normalize_artifact_path(path)
        if rel not in self._artifacts:
            raise KeyError(f"Artifact not found: {rel}")
        return copy.deepcopy(self._artifacts[rel])

    async def exists(self, path: str) -> bool:
        return normalize_artifact_path(path) in self._artifacts

    async def list_feature_artifacts(self, feature_id: str) -> list[str]:
        return sorted(p for p in self._artifacts if feature_of(p) == feature_id)

    async def delete_feature_artifacts(self, feature_id: str) -> int:
        paths = await self.list_feature_artifacts(feature_id)
        for path in paths:
            del self._artifacts[path]
        return len(paths)
