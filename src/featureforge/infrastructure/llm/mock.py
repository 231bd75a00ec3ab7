"""
Mock completion service for testing without an LLM.

Returns predefined responses, either in one global sequence or in
per-role queues keyed by the agent role named in the system prompt.
"""

import json
from collections import deque
from typing import Any

from featureforge.domain.exceptions import ExternalServiceError
from featureforge.domain.interfaces import CompletionServiceInterface


def _as_text(response: Any) -> str:
    if isinstance(response, str):
        return response
    return json.dumps(response)


class MockCompletionService(CompletionServiceInterface):
    """Returns predefined responses for testing."""

    def __init__(
        self,
        responses: list[Any] | None = None,
        by_role: dict[str, list[Any]] | None = None,
    ):
        """
        Args:
            responses: Responses returned in sequence when no role matches.
                Strings are returned as-is; other values are JSON-encoded.
            by_role: Per-role queues. A role matches when the system prompt
                contains ``"{role} agent"`` (case-insensitive). The last
                response of a role queue is reused once the queue drains.
        """
        self._responses: deque[str] = deque(_as_text(r) for r in responses or [])
        self._by_role: dict[str, deque[str]] = {
            role.lower(): deque(_as_text(r) for r in queue)
            for role, queue in (by_role or {}).items()
        }
        self.calls: list[tuple[str, str | None]] = []

    def _match_role(self, system_prompt: str | None) -> str | None:
        if not system_prompt:
            return None
        lowered = system_prompt.lower()
        for role in self._by_role:
            if f"{role} agent" in lowered:
                return role
        return None

    async def complete(self, prompt: str, system_prompt: str | None = None) -> str:
        """Return the next predefined response."""
        self.calls.append((prompt, system_prompt))

        role = self._match_role(system_prompt)
        if role is not None:
            queue = self._by_role[role]
            if len(queue) > 1:
                return queue.popleft()
            if queue:
                return queue[0]

        if not self._responses:
            raise ExternalServiceError("MockCompletionService exhausted responses")
        return self._responses.popleft()

    @property
    def call_count(self) -> int:
        """Number of times complete() has been called."""
        return len(self.calls)
