"""Tests for the Reviewer agent and its scoring rules."""

from pathlib import Path

import pytest
from support import FEATURE_ID, REJECTING_REVIEW_RESPONSE, SERVICE_FILE

from featureforge.agents import ReviewerAgent
from featureforge.agents.reviewer import (
    check_patterns,
    code_quality_score,
    decide_verdict,
    overall_score,
    security_score,
)
from featureforge.domain.models import AgentName, CommandResult
from featureforge.domain.routing import artifact_path
from featureforge.infrastructure.llm import MockCompletionService
from featureforge.schemas.stages import ReviewIssue, SecurityVulnerability

DOCUMENTED = "/**\n * Streams orders as CSV.\n */\nexport class ExportService {}\n"
UNDOCUMENTED = "export class ExportService {}\n"


def issue(kind: str, category: str = "structure") -> ReviewIssue:
    return ReviewIssue(type=kind, category=category, description=f"{kind} finding")


def vulnerability(severity: str) -> SecurityVulnerability:
    return SecurityVulnerability(severity=severity, description=f"{severity} finding")


# =============================================================================
# Scoring rules
# =============================================================================


class TestScoring:
    """Tests for the pure scoring functions."""

    def test_code_quality_deductions(self):
        """Errors cost 10, warnings 5, files with lint errors 3."""
        lint = [{"filePath": "a.ts", "errorCount": 2}, {"filePath": "b.ts", "errorCount": 0}]
        score = code_quality_score([issue("error"), issue("warning"), issue("info")], lint)
        assert score == 100 - 10 - 5 - 3

    def test_code_quality_ignores_malformed_lint_entries(self):
        """Lint entries without an integer errorCount count as clean."""
        assert code_quality_score([], ["oops", {"errorCount": "2"}]) == 100

    def test_code_quality_floor(self):
        """Scores never go below zero."""
        assert code_quality_score([issue("error")] * 20, []) == 0

    def test_security_deductions(self):
        """critical 40, high 20, medium 10, low free."""
        vulns = [vulnerability(s) for s in ("critical", "high", "medium", "low")]
        assert security_score(vulns) == 30

    def test_overall_is_weighted(self):
        """Weights are 0.4 / 0.3 / 0.2 / 0.1, rounded."""
        assert overall_score(100, 100, 100, 100) == 100
        assert overall_score(80, 70, 90, 50) == 76

    @pytest.mark.parametrize(
        "score,issues,vulns,expected",
        [
            (95, [], [], "approved"),
            (80, [], [], "approved"),
            (79, [], [], "needs-changes"),
            (60, [], [], "needs-changes"),
            (59, [], [], "rejected"),
            (95, [issue("error")], [], "rejected"),
            (95, [], [vulnerability("high")], "rejected"),
            (95, [], [vulnerability("critical")], "rejected"),
            (95, [issue("warning")], [vulnerability("medium")], "approved"),
        ],
    )
    def test_verdict(self, score, issues, vulns, expected):
        """Blocking findings reject regardless of score; otherwise thresholds decide."""
        assert decide_verdict(score, issues, vulns) == expected


class TestCheckPatterns:
    """Tests for directory-structure checks."""

    def test_service_outside_services_dir(self):
        """Services must live under /services/."""
        violations = check_patterns(["src/orders/export.service.ts"])
        assert len(violations) == 1
        assert violations[0].pattern == "File Structure"
        assert violations[0].expected_pattern == "src/module/services/*.service.ts"

    def test_controller_outside_controllers_dir(self):
        """Controllers must live under /controllers/."""
        assert len(check_patterns(["src/orders/orders.controller.ts"])) == 1

    def test_conforming_files(self):
        """Files in the right directories and other files pass."""
        assert check_patterns([SERVICE_FILE, "src/orders/controllers/orders.controller.ts", "README.md"]) == []


# =============================================================================
# Agent
# =============================================================================


async def store_execution(artifact_store, make_context, execution_artifact):
    """Store an execution report and return a context pointing at it."""
    path = artifact_path(FEATURE_ID, AgentName.EXECUTOR)
    await artifact_store.save(path, execution_artifact)
    return make_context(previous={AgentName.EXECUTOR: path})


def write_service(project_root: Path, content: str, relative: str = SERVICE_FILE) -> None:
    target = project_root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)


class TestReviewerAgent:
    """Tests for ReviewerAgent.execute."""

    @pytest.mark.asyncio
    async def test_clean_code_is_approved(
        self, deps, artifact_store, make_context, execution_artifact, test_results_artifact, project_root
    ):
        """Documented, conforming, issue-free code scores 100."""
        context = await store_execution(artifact_store, make_context, execution_artifact)
        write_service(project_root, DOCUMENTED)

        result = await ReviewerAgent(deps).execute(test_results_artifact, context)

        assert result.success
        assert result.next_agent == AgentName.DELIVERER
        report = result.output
        assert report.verdict == "approved"
        assert report.overall_score == 100
        assert report.test_results_id == "TEST-000123-000001"
        assert report.code_quality.strengths == ["Small, focused service"]
        assert report.recommendations == []

    @pytest.mark.asyncio
    async def test_modified_files_reach_prompts(
        self, deps, artifact_store, make_context, execution_artifact, test_results_artifact, project_root
    ):
        """Both review prompts include the modified file contents."""
        context = await store_execution(artifact_store, make_context, execution_artifact)
        write_service(project_root, DOCUMENTED)

        await ReviewerAgent(deps).execute(test_results_artifact, context)

        code_prompt, security_prompt = (call[0] for call in deps.completion.calls)
        assert f"### {SERVICE_FILE}" in code_prompt
        assert "Streams orders as CSV" in security_prompt

    @pytest.mark.asyncio
    async def test_error_issue_rejects(
        self, deps, artifact_store, make_context, execution_artifact, test_results_artifact, project_root
    ):
        """An error-level issue rejects the review and routes to the Refiner."""
        context = await store_execution(artifact_store, make_context, execution_artifact)
        write_service(project_root, DOCUMENTED)
        deps.completion = MockCompletionService(by_role={"reviewer": [REJECTING_REVIEW_RESPONSE]})

        result = await ReviewerAgent(deps).execute(test_results_artifact, context)

        assert result.success
        assert result.output.verdict == "rejected"
        assert result.next_agent == AgentName.REFINER
        assert result.output.code_quality.score == 90
        assert "Refactor complex functions to improve maintainability" in result.output.recommendations

    @pytest.mark.asyncio
    async def test_critical_vulnerability_rejects(
        self, deps, artifact_store, make_context, execution_artifact, test_results_artifact, project_root
    ):
        """A critical vulnerability rejects even with a good score."""
        context = await store_execution(artifact_store, make_context, execution_artifact)
        write_service(project_root, DOCUMENTED)
        response = {
            "issues": [],
            "vulnerabilities": [
                {"file": SERVICE_FILE, "severity": "critical", "type": "sql-injection",
                 "description": "Raw SQL built from query string"}
            ],
        }
        deps.completion = MockCompletionService(by_role={"reviewer": [response]})

        result = await ReviewerAgent(deps).execute(test_results_artifact, context)

        assert result.output.verdict == "rejected"
        assert result.output.security.score == 60
        assert "Fix the identified security vulnerabilities" in result.output.recommendations

    @pytest.mark.asyncio
    async def test_missing_documentation(
        self, deps, artifact_store, make_context, execution_artifact, test_results_artifact, project_root
    ):
        """Services without JSDoc lose documentation points."""
        context = await store_execution(artifact_store, make_context, execution_artifact)
        write_service(project_root, UNDOCUMENTED)

        result = await ReviewerAgent(deps).execute(test_results_artifact, context)

        docs = result.output.documentation
        assert docs.missing == [f"{SERVICE_FILE}: missing JSDoc documentation"]
        assert docs.score == 90
        assert result.output.overall_score == 99

    @pytest.mark.asyncio
    async def test_pattern_violation(
        self, deps, artifact_store, make_context, execution_artifact, test_results_artifact, project_root
    ):
        """Misplaced services are reported as pattern violations."""
        misplaced = "src/orders/export.service.ts"
        execution_artifact["results"][0]["filesModified"] = [misplaced]
        context = await store_execution(artifact_store, make_context, execution_artifact)
        write_service(project_root, DOCUMENTED, misplaced)

        result = await ReviewerAgent(deps).execute(test_results_artifact, context)

        assert result.output.patterns.score == 90
        assert result.output.patterns.violations[0].file == misplaced
        assert "Follow the project directory structure" in result.output.recommendations

    @pytest.mark.asyncio
    async def test_lint_errors_lower_quality(
        self, deps, commands, artifact_store, make_context, execution_artifact, test_results_artifact, project_root
    ):
        """eslint JSON output is parsed even when lint exits non-zero."""
        context = await store_execution(artifact_store, make_context, execution_artifact)
        write_service(project_root, DOCUMENTED)
        commands.set(
            "npm run lint",
            CommandResult(stdout='[{"filePath": "x.ts", "errorCount": 1}]', stderr="", exit_code=1),
        )

        result = await ReviewerAgent(deps).execute(test_results_artifact, context)

        assert result.output.code_quality.score == 97

    @pytest.mark.asyncio
    async def test_without_execution_report(self, deps, make_context, test_results_artifact):
        """A review with no modified files still completes."""
        result = await ReviewerAgent(deps).execute(test_results_artifact, make_context())

        assert result.success
        assert "(no readable files)" in deps.completion.calls[0][0]

    @pytest.mark.asyncio
    async def test_completion_failure_fails_stage(
        self, deps, artifact_store, make_context, execution_artifact, test_results_artifact
    ):
        """Review completions that never parse fail the stage."""
        context = await store_execution(artifact_store, make_context, execution_artifact)
        deps.completion = MockCompletionService(by_role={"reviewer": ["not json"]})

        result = await ReviewerAgent(deps).execute(test_results_artifact, context)

        assert not result.success
        assert result.error_kind == "ResponseParseError"
