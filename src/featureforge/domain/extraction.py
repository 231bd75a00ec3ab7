"""
Text extraction helpers for model responses and command output.

Pure functions with no I/O. Agents use them to pull JSON out of completions
and to read test-runner summaries.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)

_PASSED_PATTERN = re.compile(r"(\d+)\s+passed")
_FAILED_PATTERN = re.compile(r"(\d+)\s+failed")
_SKIPPED_PATTERN = re.compile(r"(\d+)\s+skipped")

_E2E_FILE_PATTERN = re.compile(r"(test/e2e/[\w./-]+?\.e2e-spec\.ts)")
_INSERTIONS_PATTERN = re.compile(r"(\d+) insertions?")
_DELETIONS_PATTERN = re.compile(r"(\d+) deletions?")


def strip_code_fences(text: str) -> str:
    """
    Return the body of the first fenced block, or the trimmed text if none.

    Args:
        text: Raw completion text

    Returns:
        Text with markdown code fences removed
    """
    match = _FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


@dataclass(frozen=True)
class TestCounts:
    """Counts parsed from a test runner summary."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped


def _first_int(pattern: re.Pattern[str], text: str) -> int:
    match = pattern.search(text)
    return int(match.group(1)) if match else 0


def parse_test_counts(output: str) -> TestCounts:
    """Parse ``N passed``, ``N failed`` and ``N skipped`` from runner output."""
    return TestCounts(
        passed=_first_int(_PASSED_PATTERN, output),
        failed=_first_int(_FAILED_PATTERN, output),
        skipped=_first_int(_SKIPPED_PATTERN, output),
    )


def extract_test_files(output: str) -> list[str]:
    """Return the distinct e2e spec files mentioned in runner output, in order."""
    seen: dict[str, None] = {}
    for match in _E2E_FILE_PATTERN.finditer(output):
        seen.setdefault(match.group(1), None)
    return list(seen)


def parse_diff_stat(output: str) -> tuple[int, int]:
    """Return ``(insertions, deletions)`` from ``git diff --stat`` output."""
    return _first_int(_INSERTIONS_PATTERN, output), _first_int(
        _DELETIONS_PATTERN, output
    )
