"""Pydantic models for stage inputs and artifacts.

Artifacts are serialized with camelCase keys (``model_dump(by_alias=True)``)
and accept either camelCase or snake_case keys on the way back in.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from featureforge.domain.models import AgentName, TriggerType

Severity = Literal["critical", "high", "medium", "low"]


class StageModel(BaseModel):
    """Base for every artifact model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_artifact(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class AgentStamp(StageModel):
    """Which agent version produced an artifact, and when."""

    agent_version: str = "1.0.0"
    date: str = Field(description="ISO date (YYYY-MM-DD)")
    iteration: int | None = None


# =============================================================================
# 01 ANALYSIS
# =============================================================================


class FeatureSummary(StageModel):
    title: str
    description: str
    category: str
    priority: str
    business_value: str = "To be defined"


class FunctionalRequirement(StageModel):
    id: str = Field(description="Requirement id, e.g. FR-001")
    description: str
    priority: str = Field(default="must-have", description="must-have | should-have | could-have")


class NonFunctionalRequirement(StageModel):
    id: str = Field(description="Requirement id, e.g. NFR-001")
    type: str = Field(default="performance", description="performance | security | scalability | usability")
    description: str


class Requirements(StageModel):
    functional: list[FunctionalRequirement] = Field(default_factory=list)
    non_functional: list[NonFunctionalRequirement] = Field(default_factory=list)


class Impact(StageModel):
    modules: list[str] = Field(default_factory=list)
    databases: list[str] = Field(default_factory=list)
    external_services: list[str] = Field(default_factory=list)
    estimated_complexity: str = "medium"


class Dependency(StageModel):
    type: str = Field(description="feature | service | library | configuration")
    name: str
    action: str = "required"


class Risk(StageModel):
    description: str
    severity: str = "medium"
    mitigation: str = ""


class FeatureAnalysis(StageModel):
    """Analyzer output."""

    feature_id: str
    timestamp: str
    analyzer: AgentStamp
    feature: FeatureSummary
    requirements: Requirements
    impact: Impact | None = None
    dependencies: list[Dependency] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    next_agent: AgentName | None = None


# =============================================================================
# 02 PLANNING
# =============================================================================


class Component(StageModel):
    name: str
    type: str = Field(description="backend-service | frontend-component | database-table | api-endpoint | worker")
    action: str = Field(default="create", description="create | modify | delete")
    technology: str = ""


class Architecture(StageModel):
    approach: str = "modular"
    patterns: list[str] = Field(default_factory=list)
    components: list[Component] = Field(default_factory=list)


class Phase(StageModel):
    phase_id: str
    name: str
    order: int = 0
    estimated_hours: float = 0
    components: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)


class AcceptanceCriterion(StageModel):
    id: str
    description: str
    type: str = "functional"
    testable: bool = True


class ExecutionPlan(StageModel):
    """Planner output."""

    plan_id: str
    feature_id: str
    timestamp: str
    planner: AgentStamp
    architecture: Architecture
    phases: list[Phase] = Field(default_factory=list)
    acceptance_criteria: list[AcceptanceCriterion] = Field(default_factory=list)
    estimated_total_hours: float = 0
    next_agent: AgentName | None = None


# =============================================================================
# 03 TASKS
# =============================================================================


class TechnicalDetails(StageModel):
    packages: list[str] = Field(default_factory=list)
    env_vars: list[str] = Field(default_factory=list)
    migrations: str | None = None


class Task(StageModel):
    task_id: str
    phase_id: str = ""
    title: str
    description: str = ""
    category: str = Field(default="backend", description="backend | frontend | database | testing | documentation | infrastructure")
    priority: str = "medium"
    estimated_hours: float = 0
    dependencies: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    dod: list[str] = Field(default_factory=list, description="Definition of done")
    technical_details: TechnicalDetails = Field(default_factory=TechnicalDetails)


class TaskSummary(StageModel):
    total_tasks: int
    by_category: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)


class TaskSet(StageModel):
    """TaskCreator output."""

    task_set_id: str
    feature_id: str
    plan_id: str
    timestamp: str
    creator: AgentStamp
    summary: TaskSummary
    tasks: list[Task] = Field(default_factory=list)
    execution_order: list[str] = Field(default_factory=list)
    next_agent: AgentName | None = None


# =============================================================================
# 04 EXECUTION
# =============================================================================


class RefinementContext(StageModel):
    is_refinement: bool = False
    previous_execution_id: str | None = None
    actions_applied: list[str] = Field(default_factory=list)


class ExecutionSummary(StageModel):
    total_tasks: int
    completed: int
    failed: int
    skipped: int


class TaskExecutionResult(StageModel):
    task_id: str
    status: Literal["completed", "failed", "skipped"]
    duration_ms: int = 0
    files_modified: list[str] = Field(default_factory=list)
    commands_run: list[str] = Field(default_factory=list)
    lines_added: int = 0
    lines_removed: int = 0
    error: str | None = None


class TestTally(StageModel):
    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0


class ExecutionReport(StageModel):
    """Executor output."""

    execution_id: str
    feature_id: str
    task_set_id: str
    timestamp: str
    executor: AgentStamp
    refinement_context: RefinementContext = Field(default_factory=RefinementContext)
    summary: ExecutionSummary
    results: list[TaskExecutionResult] = Field(default_factory=list)
    unit_tests: TestTally = Field(default_factory=TestTally)
    warnings: list[str] = Field(default_factory=list)
    next_agent: AgentName | None = None

    @property
    def modified_files(self) -> list[str]:
        """Distinct files touched across all task results, in order."""
        seen: dict[str, None] = {}
        for result in self.results:
            for path in result.files_modified:
                seen.setdefault(path, None)
        return list(seen)


# =============================================================================
# 05 TESTING
# =============================================================================


class TestFailure(StageModel):
    __test__ = False

    test_file: str = "unknown"
    test_name: str
    error: str
    stack_trace: str | None = None
    severity: Severity = "high"


class TestSummary(StageModel):
    __test__ = False

    total_tests: int
    passed: int
    failed: int
    skipped: int
    duration_ms: int = 0


class E2ETests(StageModel):
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    test_files: list[str] = Field(default_factory=list)


class Coverage(StageModel):
    statements: float = 0
    branches: float = 0
    functions: float = 0
    lines: float = 0


class TestResults(StageModel):
    """Tester output."""

    __test__ = False

    test_results_id: str
    feature_id: str
    execution_id: str
    timestamp: str
    tester: AgentStamp
    summary: TestSummary
    e2e_tests: E2ETests
    failures: list[TestFailure] = Field(default_factory=list)
    coverage: Coverage = Field(default_factory=Coverage)
    recommendation: Literal["approve", "refine"]
    next_agent: AgentName | None = None


# =============================================================================
# 06 REVIEW
# =============================================================================


class ReviewIssue(StageModel):
    file: str = ""
    line: int | None = None
    type: Literal["error", "warning", "info"] = "warning"
    category: str = Field(default="structure", description="complexity | duplication | naming | structure | performance")
    description: str
    suggestion: str | None = None


class SecurityVulnerability(StageModel):
    file: str = ""
    line: int | None = None
    severity: Severity = "medium"
    type: str = Field(default="other", description="sql-injection | xss | auth | crypto | deps | other")
    description: str
    remediation: str = ""


class PatternViolation(StageModel):
    file: str
    pattern: str
    description: str
    expected_pattern: str


class CodeQualitySection(StageModel):
    score: int
    issues: list[ReviewIssue] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


class SecuritySection(StageModel):
    score: int
    vulnerabilities: list[SecurityVulnerability] = Field(default_factory=list)


class PatternsSection(StageModel):
    score: int
    violations: list[PatternViolation] = Field(default_factory=list)


class DocumentationSection(StageModel):
    score: int
    missing: list[str] = Field(default_factory=list)


class ReviewReport(StageModel):
    """Reviewer output."""

    review_id: str
    feature_id: str
    test_results_id: str
    timestamp: str
    reviewer: AgentStamp
    overall_score: int
    verdict: Literal["approved", "rejected", "needs-changes"]
    code_quality: CodeQualitySection
    security: SecuritySection
    patterns: PatternsSection
    documentation: DocumentationSection
    recommendations: list[str] = Field(default_factory=list)
    next_agent: AgentName | None = None


# =============================================================================
# 07 REFINEMENT
# =============================================================================


class TriggerSource(StageModel):
    type: TriggerType
    source_id: str
    artifact_path: str | None = None


class RefinerInput(StageModel):
    """Input the orchestrator builds when routing into the Refiner."""

    feature_id: str
    trigger_source: TriggerSource
    source_report: dict[str, Any] | None = None


class RootCauseAnalysis(StageModel):
    root_causes: list[str] = Field(default_factory=list)
    impacted_areas: list[str] = Field(default_factory=list)
    risk_level: Severity = "medium"


class RefinementAction(StageModel):
    action_id: str
    type: str = Field(default="fix-bug", description="fix-bug | refactor | add-test | improve-security | update-doc")
    priority: Severity = "medium"
    description: str
    target_files: list[str] = Field(default_factory=list)
    specific_changes: list[str] = Field(default_factory=list)
    acceptance_criteria: list[str] = Field(default_factory=list)
    estimated_minutes: int = 30


class RefinementSource(StageModel):
    type: TriggerType
    trigger_id: str
    artifact_path: str | None = None


class EstimatedEffort(StageModel):
    hours: int
    complexity: Literal["low", "medium", "high"]


class RefinementPlan(StageModel):
    """Refiner output."""

    refinement_id: str
    feature_id: str
    iteration: int
    timestamp: str
    refiner: AgentStamp
    source: RefinementSource
    analysis: RootCauseAnalysis
    actions: list[RefinementAction] = Field(default_factory=list)
    estimated_effort: EstimatedEffort
    priority: Severity
    next_agent: AgentName | None = None


# =============================================================================
# 08 DELIVERY
# =============================================================================


class CommitInfo(StageModel):
    sha: str
    message: str


class CodeDeliverable(StageModel):
    files: list[str] = Field(default_factory=list)
    commits: list[CommitInfo] = Field(default_factory=list)


class TestDeliverable(StageModel):
    __test__ = False

    unit: int = 0
    e2e: int = 0
    coverage: float = 0


class DocumentationDeliverable(StageModel):
    files: list[str] = Field(default_factory=list)
    updated: bool = False


class Deliverables(StageModel):
    code: CodeDeliverable
    tests: TestDeliverable
    documentation: DocumentationDeliverable


class DeliverySummary(StageModel):
    total_files: int
    lines_added: int
    lines_removed: int
    tests_added: int


class PullRequest(StageModel):
    branch: str
    title: str
    description: str
    url: str | None = None


class DeliveryPackage(StageModel):
    """Deliverer output."""

    delivery_id: str
    feature_id: str
    review_id: str
    timestamp: str
    deliverer: AgentStamp
    summary: DeliverySummary
    deliverables: Deliverables
    pull_request: PullRequest
    deployment_notes: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    status: Literal["ready-for-merge", "delivered"] = "ready-for-merge"
    next_agent: AgentName | None = None
