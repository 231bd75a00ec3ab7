"""Tester agent: runs end-to-end tests, classifies failures and reads coverage."""

import asyncio
import json
from pathlib import Path
from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import (
    ExternalServiceError,
    InputValidationError,
    OutputValidationError,
)
from featureforge.domain.extraction import extract_test_files, parse_test_counts
from featureforge.domain.identifiers import generate_stage_id
from featureforge.domain.models import AgentContext, AgentName
from featureforge.schemas.responses import FailureAnalysisResponse
from featureforge.schemas.stages import (
    Coverage,
    E2ETests,
    ExecutionReport,
    TestFailure,
    TestResults,
    TestSummary,
)

COVERAGE_SUMMARY = Path("coverage") / "coverage-summary.json"
BLOCKING_SEVERITIES = ("critical", "high")

_PROMPT = """The end-to-end test run reported {failed} failing test(s).

Test output (truncated):
{output}

Classify every failure. Return JSON with these keys:
- failures: [{{"testFile": str, "testName": str, "error": str, "stackTrace": str|null, "severity": "critical|high|medium|low"}}]
- rootCauses: [str]
- suggestedFixes: [str]"""

_MAX_OUTPUT_CHARS = 5000


class TesterAgent(BaseAgent[ExecutionReport, TestResults]):
    name = AgentName.TESTER
    role = "Tester"
    role_prompt = (
        "You read end-to-end test output and classify each failure by "
        "severity with its likely cause."
    )

    def coerce_input(self, input_data: Any) -> ExecutionReport:
        return self._coerce_model(input_data, ExecutionReport)

    def validate_input(self, input_data: ExecutionReport) -> None:
        if not input_data.execution_id:
            raise InputValidationError("Execution report is missing execution_id", field="execution_id")

    async def process(self, input_data: ExecutionReport, context: AgentContext) -> TestResults:
        commands = self.config.commands
        cwd = str(self._deps.project_root)

        result = await self._deps.commands.run(
            commands.e2e_tests, cwd=cwd, timeout=commands.e2e_timeout
        )
        output = result.output
        counts = parse_test_counts(output)
        passed, failed, skipped = counts.passed, counts.failed, counts.skipped
        if not result.ok and failed == 0:
            failed, skipped = 1, 0

        failures: list[TestFailure] = []
        if failed > 0:
            failures = await self._analyze_failures(output, failed, context)

        coverage = await self._collect_coverage(cwd)

        blocking = any(f.severity in BLOCKING_SEVERITIES for f in failures)
        recommendation = "approve" if failed == 0 and not blocking else "refine"

        self._logger.info(
            "[%s] E2E: %d passed, %d failed, %d skipped. Recommendation: %s",
            context.feature_id,
            passed,
            failed,
            skipped,
            recommendation,
        )

        return TestResults(
            test_results_id=generate_stage_id("TEST", context.feature_id),
            feature_id=context.feature_id,
            execution_id=input_data.execution_id,
            timestamp=self._timestamp(),
            tester=self._stamp(context),
            summary=TestSummary(
                total_tests=passed + failed + skipped,
                passed=passed,
                failed=failed,
                skipped=skipped,
                duration_ms=result.duration_ms,
            ),
            e2e_tests=E2ETests(
                passed=passed,
                failed=failed,
                skipped=skipped,
                test_files=extract_test_files(output),
            ),
            failures=failures,
            coverage=coverage,
            recommendation=recommendation,
        )

    def validate_output(self, output: TestResults) -> None:
        if output.summary.total_tests < 1:
            raise OutputValidationError(
                "Test run must report at least one test", field="summary.total_tests"
            )

    # ------------------------------------------------------------------

    async def _analyze_failures(
        self, output: str, failed: int, context: AgentContext
    ) -> list[TestFailure]:
        prompt = _PROMPT.format(failed=failed, output=output[-_MAX_OUTPUT_CHARS:])
        try:
            response = await self._complete_json(prompt, FailureAnalysisResponse)
        except ExternalServiceError as e:
            self._logger.warning(
                "[%s] Failure analysis unavailable: %s", context.feature_id, e
            )
            response = None

        if response is None or not response.failures:
            return [
                TestFailure(
                    test_file="unknown",
                    test_name="E2E Test Failure",
                    error=output[-500:] or "E2E tests failed",
                    severity="high",
                )
            ]
        return response.failures

    async def _collect_coverage(self, cwd: str) -> Coverage:
        commands = self.config.commands
        try:
            await self._deps.commands.run(
                commands.coverage, cwd=cwd, timeout=commands.unit_timeout
            )
            summary = await asyncio.to_thread(
                (self._deps.project_root / COVERAGE_SUMMARY).read_text
            )
            total = json.loads(summary)["total"]
            return Coverage(
                statements=total["statements"]["pct"],
                branches=total["branches"]["pct"],
                functions=total["functions"]["pct"],
                lines=total["lines"]["pct"],
            )
        except (ExternalServiceError, OSError, ValueError, KeyError, TypeError) as e:
            self._logger.debug("Coverage unavailable: %s", e)
            return Coverage()
