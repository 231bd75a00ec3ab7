"""
Fake command runner for deterministic tests.

Commands are matched by prefix against registered results; the longest
matching prefix wins. A prefix may map to a list of results, returned in
order, with the last one reused once the list drains.
"""

from collections import deque

from featureforge.domain.interfaces import CommandRunnerInterface
from featureforge.domain.models import CommandResult

ScriptedResult = CommandResult | list[CommandResult]


class FakeCommandRunner(CommandRunnerInterface):
    """Returns scripted CommandResults and records every call."""

    def __init__(
        self,
        results: dict[str, ScriptedResult] | None = None,
        default: CommandResult | None = None,
    ):
        """
        Args:
            results: Mapping of command prefix to a result or a result sequence
            default: Result for commands matching no prefix (exit 0, empty output)
        """
        self._results: dict[str, deque[CommandResult]] = {}
        for prefix, result in (results or {}).items():
            self.set(prefix, result)
        self._default = default or CommandResult(stdout="", stderr="", exit_code=0)
        self.calls: list[tuple[str, str | None, float | None]] = []

    def set(self, prefix: str, result: ScriptedResult) -> None:
        """Register or replace the result(s) for a command prefix."""
        queue = result if isinstance(result, list) else [result]
        self._results[prefix] = deque(queue)

    async def run(
        self,
        command: str,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        self.calls.append((command, cwd, timeout))
        matches = [p for p in self._results if command.startswith(p)]
        if not matches:
            return self._default
        queue = self._results[max(matches, key=len)]
        if len(queue) > 1:
            return queue.popleft()
        return queue[0] if queue else self._default

    def commands_run(self) -> list[str]:
        return [c for c, _, _ in self.calls]
