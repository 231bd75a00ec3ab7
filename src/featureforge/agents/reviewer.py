"""
Reviewer agent: scores code quality, security, patterns and documentation.

Scores start at 100 and lose points per finding, floored at 0:

    quality   = 100 - 10*errors - 5*warnings - 3*lint files with errors
    security  = 100 - 40*critical - 20*high - 10*medium
    patterns  = 100 - 10*violations
    docs      = 100 - 10*missing

The overall score is the weighted mean 0.4/0.3/0.2/0.1, rounded.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import InputValidationError, OutputValidationError
from featureforge.domain.identifiers import generate_stage_id
from featureforge.domain.models import AgentContext, AgentName
from featureforge.schemas.responses import CodeReviewResponse, SecurityReviewResponse
from featureforge.schemas.stages import (
    CodeQualitySection,
    DocumentationSection,
    ExecutionReport,
    PatternsSection,
    PatternViolation,
    ReviewIssue,
    ReviewReport,
    SecuritySection,
    SecurityVulnerability,
    TestResults,
)

MAX_REVIEW_FILES = 10
MAX_FILE_CHARS = 2000
MAX_LINT_ENTRIES = 10

APPROVAL_THRESHOLD = 80
REJECTION_THRESHOLD = 60

_CODE_PROMPT = """Review the following modified files for code quality.

{files}

Lint results (first entries):
{lint}

Look for complexity, duplication, naming, structure and performance problems.
Return JSON with these keys:
- issues: [{{"file": str, "line": int|null, "type": "error|warning|info", "category": "complexity|duplication|naming|structure|performance", "description": str, "suggestion": str}}]
- strengths: [str]"""

_SECURITY_PROMPT = """Audit the following modified files for security problems.

{files}

Check for injection, unsanitized output, weak authentication or authorization,
weak or hardcoded secrets, vulnerable dependencies, permissive CORS and
missing input validation. Return JSON with this key:
- vulnerabilities: [{{"file": str, "line": int|null, "severity": "critical|high|medium|low", "type": "sql-injection|xss|auth|crypto|deps|other", "description": str, "remediation": str}}]"""


@dataclass(frozen=True)
class _DirectoryRule:
    suffix: str
    directory: str
    description: str
    expected: str


DIRECTORY_RULES = (
    _DirectoryRule(
        ".service.ts", "/services/",
        "Services must live in a /services/ directory",
        "src/module/services/*.service.ts",
    ),
    _DirectoryRule(
        ".controller.ts", "/controllers/",
        "Controllers must live in a /controllers/ directory",
        "src/module/controllers/*.controller.ts",
    ),
)

DOCUMENTED_SUFFIXES = (".service.ts", ".controller.ts")


def check_patterns(files: list[str]) -> list[PatternViolation]:
    """Flag files whose suffix requires a directory they are not in."""
    violations = []
    for path in files:
        for rule in DIRECTORY_RULES:
            if path.endswith(rule.suffix) and rule.directory not in path:
                violations.append(
                    PatternViolation(
                        file=path,
                        pattern="File Structure",
                        description=rule.description,
                        expected_pattern=rule.expected,
                    )
                )
    return violations


def code_quality_score(issues: list[ReviewIssue], lint: list[dict[str, Any]]) -> int:
    errors = sum(1 for i in issues if i.type == "error")
    warnings = sum(1 for i in issues if i.type == "warning")
    lint_files = sum(1 for entry in lint if _lint_errors(entry) > 0)
    return max(0, 100 - errors * 10 - warnings * 5 - lint_files * 3)


def security_score(vulnerabilities: list[SecurityVulnerability]) -> int:
    weights = {"critical": 40, "high": 20, "medium": 10}
    return max(0, 100 - sum(weights.get(v.severity, 0) for v in vulnerabilities))


def overall_score(quality: int, security: int, patterns: int, docs: int) -> int:
    return round(quality * 0.4 + security * 0.3 + patterns * 0.2 + docs * 0.1)


def decide_verdict(
    score: int,
    issues: list[ReviewIssue],
    vulnerabilities: list[SecurityVulnerability],
) -> str:
    """Rejected on any blocking finding or a low score, else by threshold."""
    blocking_security = any(v.severity in ("critical", "high") for v in vulnerabilities)
    has_errors = any(i.type == "error" for i in issues)
    if blocking_security or has_errors or score < REJECTION_THRESHOLD:
        return "rejected"
    if score < APPROVAL_THRESHOLD:
        return "needs-changes"
    return "approved"


def _lint_errors(entry: Any) -> int:
    if not isinstance(entry, dict):
        return 0
    count = entry.get("errorCount", 0)
    return count if isinstance(count, int) else 0


class ReviewerAgent(BaseAgent[TestResults, ReviewReport]):
    name = AgentName.REVIEWER
    role = "Reviewer"
    role_prompt = (
        "You are a senior code reviewer focused on quality, security and "
        "maintainability. Be specific and constructive."
    )

    def coerce_input(self, input_data: Any) -> TestResults:
        return self._coerce_model(input_data, TestResults)

    def validate_input(self, input_data: TestResults) -> None:
        if not input_data.test_results_id:
            raise InputValidationError(
                "Test results are missing test_results_id", field="test_results_id"
            )

    async def process(self, input_data: TestResults, context: AgentContext) -> ReviewReport:
        modified = await self._modified_files(context)
        lint = await self._run_lint()
        contents = await self._read_files(modified)
        rendered = self._render_files(contents)

        code = await self._complete_json(
            _CODE_PROMPT.format(
                files=rendered,
                lint=json.dumps(lint[:MAX_LINT_ENTRIES], indent=2),
            ),
            CodeReviewResponse,
        )
        security = await self._complete_json(
            _SECURITY_PROMPT.format(files=rendered), SecurityReviewResponse
        )

        violations = check_patterns(modified)
        missing_docs = await self._check_documentation(modified)

        quality = code_quality_score(code.issues, lint)
        sec = security_score(security.vulnerabilities)
        patterns = max(0, 100 - len(violations) * 10)
        docs = max(0, 100 - len(missing_docs) * 10)
        score = overall_score(quality, sec, patterns, docs)
        verdict = decide_verdict(score, code.issues, security.vulnerabilities)

        self._logger.info(
            "[%s] Review score %d (quality %d, security %d, patterns %d, docs %d): %s",
            context.feature_id, score, quality, sec, patterns, docs, verdict,
        )

        return ReviewReport(
            review_id=generate_stage_id("REV", context.feature_id),
            feature_id=context.feature_id,
            test_results_id=input_data.test_results_id,
            timestamp=self._timestamp(),
            reviewer=self._stamp(context),
            overall_score=score,
            verdict=verdict,
            code_quality=CodeQualitySection(
                score=quality, issues=code.issues, strengths=code.strengths
            ),
            security=SecuritySection(score=sec, vulnerabilities=security.vulnerabilities),
            patterns=PatternsSection(score=patterns, violations=violations),
            documentation=DocumentationSection(score=docs, missing=missing_docs),
            recommendations=self._recommendations(
                code.issues, security.vulnerabilities, violations
            ),
        )

    def validate_output(self, output: ReviewReport) -> None:
        if not 0 <= output.overall_score <= 100:
            raise OutputValidationError(
                f"Overall score out of range: {output.overall_score}",
                field="overall_score",
            )

    # ------------------------------------------------------------------

    async def _modified_files(self, context: AgentContext) -> list[str]:
        stored = await self.load_previous_artifact(AgentName.EXECUTOR, context)
        if stored is None:
            return []
        return ExecutionReport.model_validate(stored).modified_files

    async def _run_lint(self) -> list[Any]:
        commands = self.config.commands
        result = await self._deps.commands.run(
            commands.lint,
            cwd=str(self._deps.project_root),
            timeout=commands.lint_timeout,
        )
        # eslint exits non-zero when it finds problems; stdout still holds the report
        try:
            parsed = json.loads(result.stdout)
        except ValueError:
            self._logger.debug("Lint output is not JSON, ignoring")
            return []
        return parsed if isinstance(parsed, list) else []

    async def _read_files(self, files: list[str]) -> list[tuple[str, str]]:
        root = self._deps.project_root
        contents = []
        for path in files[:MAX_REVIEW_FILES]:
            try:
                text = await asyncio.to_thread((root / path).read_text)
            except OSError as e:
                self._logger.warning("Cannot read %s: %s", path, e)
                continue
            contents.append((path, text))
        return contents

    @staticmethod
    def _render_files(contents: list[tuple[str, str]]) -> str:
        if not contents:
            return "(no readable files)"
        return "\n\n".join(
            f"### {path}\n```\n{text[:MAX_FILE_CHARS]}\n```" for path, text in contents
        )

    async def _check_documentation(self, files: list[str]) -> list[str]:
        root = self._deps.project_root
        missing = []
        for path in files:
            if not path.endswith(DOCUMENTED_SUFFIXES):
                continue
            try:
                text = await asyncio.to_thread((root / path).read_text)
            except OSError:
                continue
            if "/**" not in text and "* @" not in text:
                missing.append(f"{path}: missing JSDoc documentation")
        return missing

    @staticmethod
    def _recommendations(
        issues: list[ReviewIssue],
        vulnerabilities: list[SecurityVulnerability],
        violations: list[PatternViolation],
    ) -> list[str]:
        recommendations = []
        if vulnerabilities:
            recommendations.append("Fix the identified security vulnerabilities")
        if any(i.category == "complexity" for i in issues):
            recommendations.append("Refactor complex functions to improve maintainability")
        if violations:
            recommendations.append("Follow the project directory structure")
        return recommendations
