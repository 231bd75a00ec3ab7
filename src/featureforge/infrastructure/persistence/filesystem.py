"""
Filesystem implementation of the artifact store.

Artifacts are pretty-printed JSON files under ``{base_dir}/{feature_id}/``.
Each feature directory also holds an ``index.json`` write log recording every
save, so superseded payloads remain traceable even though the file itself is
overwritten.
"""

import asyncio
import json
import logging
import shutil
from pathlib import Path
from typing import Any

from featureforge.domain.interfaces import ArtifactStoreInterface
from featureforge.domain.models import AgentName, utc_now
from featureforge.infrastructure.persistence.paths import (
    INDEX_FILENAME,
    feature_of,
    normalize_artifact_path,
)

logger = logging.getLogger(__name__)


class FilesystemArtifactStore(ArtifactStoreInterface):
    """
    Persistent artifact store rooted at ``base_dir``.

    Blocking file I/O runs in a worker thread so the event loop is never
    stalled. Every file is written to a temporary sibling and renamed into
    place.
    """

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _resolve(self, path: str) -> tuple[str, Path]:
        rel = normalize_artifact_path(path)
        return rel, self._base_dir / rel

    @staticmethod
    def _write_json_atomic(target: Path, data: Any) -> None:
        """Atomically write JSON using write-to-temp + rename."""
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_suffix(target.suffix + ".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        temp_path.replace(target)  # Atomic on POSIX

    def _index_path(self, feature_id: str) -> Path:
        return self._base_dir / feature_id / INDEX_FILENAME

    def _load_index(self, feature_id: str) -> dict[str, Any]:
        index_path = self._index_path(feature_id)
        if index_path.exists():
            with open(index_path, encoding="utf-8") as f:
                result: dict[str, Any] = json.load(f)
                return result
        return {"version": "1.0", "feature_id": feature_id, "writes": []}

    def _save_sync(
        self,
        path: str,
        data: Any,
        agent: AgentName | None,
        iteration: int | None,
    ) -> str:
        rel, target = self._resolve(path)
        feature_id = feature_of(rel)

        # 1. Write payload
        self._write_json_atomic(target, data)

        # 2. Append to the feature's write log
        index = self._load_index(feature_id)
        index["writes"].append(
            {
                "path": rel,
                "agent": agent.value if agent else None,
                "iteration": iteration,
                "written_at": utc_now().isoformat(),
            }
        )
        self._write_json_atomic(self._index_path(feature_id), index)

        logger.debug("Artifact saved: %s", rel)
        return rel

    def _load_sync(self, path: str) -> Any:
        rel, target = self._resolve(path)
        if not target.is_file():
            raise KeyError(f"Artifact not found: {rel}")
        with open(target, encoding="utf-8") as f:
            return json.load(f)

    def _list_sync(self, feature_id: str) -> list[str]:
        feature_dir = self._base_dir / normalize_artifact_path(feature_id)
        if not feature_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self._base_dir).as_posix()
            for p in feature_dir.rglob("*.json")
            if p.is_file() and p != feature_dir / INDEX_FILENAME
        )

    def _delete_sync(self, feature_id: str) -> int:
        removed = len(self._list_sync(feature_id))
        feature_dir = self._base_dir / normalize_artifact_path(feature_id)
        if feature_dir.is_dir():
            shutil.rmtree(feature_dir)
            logger.info("Removed %d artifacts for %s", removed, feature_id)
        return removed

    async def save(
        self,
        path: str,
        data: Any,
        agent: AgentName | None = None,
        iteration: int | None = None,
    ) -> str:
        return await asyncio.to_thread(self._save_sync, path, data, agent, iteration)

    async def load(self, path: str) -> Any:
        return await asyncio.to_thread(self._load_sync, path)

    async def exists(self, path: str) -> bool:
        _, target = self._resolve(path)
        return await asyncio.to_thread(target.is_file)

    async def list_feature_artifacts(self, feature_id: str) -> list[str]:
        return await asyncio.to_thread(self._list_sync, feature_id)

    async def delete_feature_artifacts(self, feature_id: str) -> int:
        return await asyncio.to_thread(self._delete_sync, feature_id)

    async def get_write_log(self, feature_id: str) -> list[dict[str, Any]]:
        """Return every recorded save for a feature, oldest first."""
        index = await asyncio.to_thread(self._load_index, feature_id)
        writes: list[dict[str, Any]] = index["writes"]
        return writes
