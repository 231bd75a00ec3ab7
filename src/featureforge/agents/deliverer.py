"""
Deliverer agent: packages an approved feature for merge.

Collects every earlier artifact, reads git statistics, makes sure the
feature branch exists, writes ``docs/features/{feature_id}.md`` and prepares
the pull request text. The pull request itself is not opened.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import (
    ExternalServiceError,
    InputValidationError,
    OutputValidationError,
)
from featureforge.domain.extraction import parse_diff_stat
from featureforge.domain.identifiers import generate_stage_id
from featureforge.domain.models import AgentContext, AgentName
from featureforge.domain.routing import APPROVED
from featureforge.schemas.stages import (
    CodeDeliverable,
    CommitInfo,
    Deliverables,
    DeliveryPackage,
    DeliverySummary,
    DocumentationDeliverable,
    PullRequest,
    ReviewReport,
    TestDeliverable,
)

FALLBACK_BRANCH = "main"
DOCS_DIR = "docs/features"
TEST_SUFFIXES = (".spec.ts", "-spec.ts")

NEXT_STEPS = (
    "1. Review the pull request manually",
    "2. Run the tests in a staging environment",
    "3. Validate the acceptance criteria",
    "4. Merge into the main branch",
    "5. Deploy to production",
    "6. Monitor logs and metrics",
    "7. Notify stakeholders",
)


@dataclass
class GitStats:
    files: list[str] = field(default_factory=list)
    lines_added: int = 0
    lines_removed: int = 0
    commits: list[CommitInfo] = field(default_factory=list)

    @property
    def tests_added(self) -> int:
        # matches both unit (.spec.ts) and e2e (.e2e-spec.ts) files
        return sum(1 for f in self.files if f.endswith(TEST_SUFFIXES))


def _get(data: dict[str, Any] | None, *keys: str, default: Any = None) -> Any:
    """Walk nested artifact keys, returning ``default`` on any gap."""
    current: Any = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
    return default if current is None else current


def _bullets(lines: list[str], empty: str = "N/A") -> str:
    return "\n".join(lines) if lines else empty


class DelivererAgent(BaseAgent[ReviewReport, DeliveryPackage]):
    name = AgentName.DELIVERER
    role = "Deliverer"
    role_prompt = "You prepare approved features for merge and deployment."

    def coerce_input(self, input_data: Any) -> ReviewReport:
        return self._coerce_model(input_data, ReviewReport)

    def validate_input(self, input_data: ReviewReport) -> None:
        if not input_data.review_id:
            raise InputValidationError("Review report is missing review_id", field="review_id")
        if input_data.verdict != APPROVED:
            raise InputValidationError(
                f"Review was not approved (verdict: {input_data.verdict}); cannot deliver",
                field="verdict",
            )

    async def process(self, input_data: ReviewReport, context: AgentContext) -> DeliveryPackage:
        info = await self._collect_artifacts(context)
        stats = await self._git_stats()
        branch = await self._ensure_branch(context.feature_id)
        doc_files = await self._write_documentation(info, input_data, context)

        analysis = info[AgentName.ANALYZER]
        tests = info[AgentName.TESTER]
        execution = info[AgentName.EXECUTOR]
        title = _get(analysis, "feature", "title", default=context.feature_id)

        self._logger.info("[%s] Pull request prepared: %s", context.feature_id, title)

        return DeliveryPackage(
            delivery_id=generate_stage_id("DEL", context.feature_id),
            feature_id=context.feature_id,
            review_id=input_data.review_id,
            timestamp=self._timestamp(),
            deliverer=self._stamp(context),
            summary=DeliverySummary(
                total_files=len(stats.files),
                lines_added=stats.lines_added,
                lines_removed=stats.lines_removed,
                tests_added=stats.tests_added,
            ),
            deliverables=Deliverables(
                code=CodeDeliverable(files=stats.files, commits=stats.commits),
                tests=TestDeliverable(
                    unit=_get(execution, "unitTests", "passed", default=0),
                    e2e=_get(tests, "e2eTests", "passed", default=0),
                    coverage=_get(tests, "coverage", "lines", default=0),
                ),
                documentation=DocumentationDeliverable(
                    files=doc_files, updated=bool(doc_files)
                ),
            ),
            pull_request=PullRequest(
                branch=branch,
                title=f"feat: {title}",
                description=self._pr_description(info, input_data, stats),
            ),
            deployment_notes=self._deployment_notes(info),
            next_steps=list(NEXT_STEPS),
            status="ready-for-merge",
        )

    def validate_output(self, output: DeliveryPackage) -> None:
        if not output.pull_request.branch:
            raise OutputValidationError("Delivery has no branch", field="pull_request.branch")
        if output.summary.total_files < 1:
            raise OutputValidationError(
                "Delivery must include at least one changed file", field="summary.total_files"
            )

    # ------------------------------------------------------------------

    async def _collect_artifacts(
        self, context: AgentContext
    ) -> dict[AgentName, dict[str, Any] | None]:
        agents = (
            AgentName.ANALYZER,
            AgentName.PLANNER,
            AgentName.TASK_CREATOR,
            AgentName.EXECUTOR,
            AgentName.TESTER,
            AgentName.REVIEWER,
        )
        return {agent: await self.load_previous_artifact(agent, context) for agent in agents}

    async def _git(self, command: str) -> str | None:
        """Run a git command in the project root; None when it fails."""
        try:
            result = await self._deps.commands.run(
                command,
                cwd=str(self._deps.project_root),
                timeout=self.config.commands.default_timeout,
            )
        except ExternalServiceError as e:
            self._logger.warning("git unavailable: %s", e)
            return None
        if not result.ok:
            self._logger.debug("'%s' exited with %d", command, result.exit_code)
            return None
        return result.stdout

    async def _git_stats(self) -> GitStats:
        names = await self._git("git diff --name-only HEAD")
        if names is None:
            return GitStats()

        stats = GitStats(files=[line.strip() for line in names.splitlines() if line.strip()])
        stat_output = await self._git("git diff --stat HEAD")
        if stat_output:
            stats.lines_added, stats.lines_removed = parse_diff_stat(stat_output)

        log = await self._git("git log --oneline -10")
        for line in (log or "").splitlines():
            if not line.strip():
                continue
            sha, _, message = line.strip().partition(" ")
            stats.commits.append(CommitInfo(sha=sha, message=message))
        return stats

    async def _ensure_branch(self, feature_id: str) -> str:
        branch = f"feature/{feature_id.lower()}"
        if await self._git(f"git rev-parse --verify {branch}") is not None:
            self._logger.info("Branch %s already exists", branch)
            return branch
        if await self._git(f"git checkout -b {branch}") is not None:
            self._logger.info("Created branch %s", branch)
            return branch
        self._logger.warning("Could not create %s, falling back to %s", branch, FALLBACK_BRANCH)
        return FALLBACK_BRANCH

    async def _write_documentation(
        self,
        info: dict[AgentName, dict[str, Any] | None],
        review: ReviewReport,
        context: AgentContext,
    ) -> list[str]:
        relative = f"{DOCS_DIR}/{context.feature_id}.md"
        target = self._deps.project_root / relative
        content = self._feature_document(info, review, context)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            self._logger.error("Cannot write documentation %s: %s", target, e)
            return []
        return [relative]

    @staticmethod
    def _feature_document(
        info: dict[AgentName, dict[str, Any] | None],
        review: ReviewReport,
        context: AgentContext,
    ) -> str:
        analysis = info[AgentName.ANALYZER]
        plan = info[AgentName.PLANNER]
        tasks = info[AgentName.TASK_CREATOR]
        execution = info[AgentName.EXECUTOR]
        tests = info[AgentName.TESTER]

        functional = [
            f"- {r.get('id')}: {r.get('description')}"
            for r in _get(analysis, "requirements", "functional", default=[])
        ]
        non_functional = [
            f"- {r.get('id')} ({r.get('type')}): {r.get('description')}"
            for r in _get(analysis, "requirements", "nonFunctional", default=[])
        ]
        components = [
            f"- {c.get('name')} ({c.get('type')}) - {c.get('action')}"
            for c in _get(plan, "architecture", "components", default=[])
        ]
        phases = [
            f"### {p.get('name')}\n- Estimate: {p.get('estimatedHours', 0)}h\n"
            f"- Components: {', '.join(p.get('components', []))}"
            for p in _get(plan, "phases", default=[])
        ]
        risks = [
            f"- **{r.get('severity')}**: {r.get('description')}\n  - Mitigation: {r.get('mitigation')}"
            for r in _get(analysis, "risks", default=[])
        ]
        dependencies = [
            f"- {d.get('name')} ({d.get('type')}) - {d.get('action')}"
            for d in _get(analysis, "dependencies", default=[])
        ]

        return f"""# Feature: {_get(analysis, "feature", "title", default=context.feature_id)}

## Description
{_get(analysis, "feature", "description", default="N/A")}

## Category
{_get(analysis, "feature", "category", default="N/A")}

## Priority
{_get(analysis, "feature", "priority", default="N/A")}

## Functional Requirements
{_bullets(functional)}

## Non-Functional Requirements
{_bullets(non_functional)}

## Architecture
- **Approach**: {_get(plan, "architecture", "approach", default="N/A")}
- **Patterns**: {", ".join(_get(plan, "architecture", "patterns", default=[])) or "N/A"}

### Components
{_bullets(components)}

## Implementation Phases
{_bullets(phases)}

## Executed Tasks
- Total tasks: {_get(tasks, "summary", "totalTasks", default=0)}
- Completed: {_get(execution, "summary", "completed", default=0)}
- Failed: {_get(execution, "summary", "failed", default=0)}

## Tests
- **Unit tests**: {_get(execution, "unitTests", "passed", default=0)} passed
- **E2E tests**: {_get(tests, "e2eTests", "passed", default=0)} passed
- **Coverage**: {_get(tests, "coverage", "lines", default=0)}%

## Code Review
- **Overall score**: {review.overall_score}/100
- **Verdict**: {review.verdict}
- **Code quality**: {review.code_quality.score}/100
- **Security**: {review.security.score}/100

## Risks
{_bullets(risks, "No risks identified")}

## Dependencies
{_bullets(dependencies, "No dependencies")}

---
*Generated on {date.today().isoformat()}*
"""

    @staticmethod
    def _pr_description(
        info: dict[AgentName, dict[str, Any] | None],
        review: ReviewReport,
        stats: GitStats,
    ) -> str:
        analysis = info[AgentName.ANALYZER]
        plan = info[AgentName.PLANNER]
        tests = info[AgentName.TESTER]
        execution = info[AgentName.EXECUTOR]
        components = [
            f"- {c.get('name')}" for c in _get(plan, "architecture", "components", default=[])
        ]

        return f"""## Description
{_get(analysis, "feature", "description", default="N/A")}

## Changes
- **Files changed**: {len(stats.files)}
- **Lines added**: {stats.lines_added}
- **Lines removed**: {stats.lines_removed}
- **Tests added**: {stats.tests_added}

## Affected Components
{_bullets(components)}

## Tests
- Unit tests: {_get(execution, "unitTests", "passed", default=0)} passed
- E2E tests: {_get(tests, "e2eTests", "passed", default=0)} passed
- Coverage: {_get(tests, "coverage", "lines", default=0)}%

## Code Review
- Score: {review.overall_score}/100
- Verdict: {review.verdict}

---
*Feature ID*: {review.feature_id}
"""

    @staticmethod
    def _deployment_notes(info: dict[AgentName, dict[str, Any] | None]) -> list[str]:
        analysis = info[AgentName.ANALYZER]
        task_list = _get(info[AgentName.TASK_CREATOR], "tasks", default=[])
        details = [t.get("technicalDetails") or {} for t in task_list]

        notes = []
        if _get(analysis, "impact", "databases", default=[]):
            notes.append("Run database migrations: npm run migration:run")
        if any(d.get("packages") for d in details):
            notes.append("Install new dependencies: npm install")
        if any(d.get("envVars") for d in details):
            notes.append("Configure the new environment variables in .env")
        services = _get(analysis, "impact", "externalServices", default=[])
        if services:
            notes.append(f"Configure integration with: {', '.join(services)}")
        if not notes:
            notes.append("No deployment action required")
        return notes
