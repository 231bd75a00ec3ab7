"""Workflow event store implementations."""

import json
import threading
from collections import defaultdict
from pathlib import Path

from featureforge.domain.interfaces import WorkflowEventStoreInterface
from featureforge.domain.workflow_event import WorkflowEvent, WorkflowEventType


def _of_type(
    events: list[WorkflowEvent], event_type: WorkflowEventType | None
) -> list[WorkflowEvent]:
    if event_type is None:
        return list(events)
    return [e for e in events if e.event_type == event_type]


class InMemoryWorkflowEventStore(WorkflowEventStoreInterface):
    """Keeps events per feature in process memory. Used by tests."""

    def __init__(self) -> None:
        self._by_feature: dict[str, list[WorkflowEvent]] = defaultdict(list)

    def store_event(self, event: WorkflowEvent) -> str:
        self._by_feature[event.feature_id].append(event)
        return event.event_id

    def get_events(
        self,
        feature_id: str,
        event_type: WorkflowEventType | None = None,
    ) -> list[WorkflowEvent]:
        return _of_type(self._by_feature.get(feature_id, []), event_type)


class FilesystemWorkflowEventStore(WorkflowEventStoreInterface):
    """Append-only JSONL trace under ``<base>/events/<feature_id>.jsonl``.

    Appends are serialized with a lock since agents of different
    workflows may finish concurrently.
    """

    def __init__(self, base_path: str | Path) -> None:
        self.events_dir = Path(base_path) / "events"
        self.events_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _trace_file(self, feature_id: str) -> Path:
        return self.events_dir / f"{feature_id}.jsonl"

    def store_event(self, event: WorkflowEvent) -> str:
        line = json.dumps(event.to_dict())
        with self._lock:
            with self._trace_file(event.feature_id).open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        return event.event_id

    def get_events(
        self,
        feature_id: str,
        event_type: WorkflowEventType | None = None,
    ) -> list[WorkflowEvent]:
        trace = self._trace_file(feature_id)
        if not trace.exists():
            return []
        events = [
            WorkflowEvent.from_dict(json.loads(line))
            for line in trace.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        return _of_type(events, event_type)
