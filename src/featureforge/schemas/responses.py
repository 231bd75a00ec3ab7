"""Pydantic models for the structured completions each stage requests.

Every completion is parsed as JSON and validated against one of these
models before an agent uses it. Fields the model may omit carry defaults;
fields it must provide do not.
"""

from typing import Literal

from pydantic import Field

from featureforge.schemas.stages import (
    AcceptanceCriterion,
    Component,
    Dependency,
    FunctionalRequirement,
    NonFunctionalRequirement,
    Phase,
    ReviewIssue,
    Risk,
    SecurityVulnerability,
    Severity,
    StageModel,
    Task,
    TestFailure,
)


class AnalysisResponse(StageModel):
    """Analyzer completion."""

    category: str | None = Field(default=None, description="enhancement | new-feature | bug-fix | refactoring")
    business_value: str | None = None
    functional_requirements: list[FunctionalRequirement] = Field(default_factory=list)
    non_functional_requirements: list[NonFunctionalRequirement] = Field(default_factory=list)
    modules_affected: list[str] = Field(default_factory=list)
    databases_affected: list[str] = Field(default_factory=list)
    external_services: list[str] = Field(default_factory=list)
    complexity: str = "medium"
    dependencies: list[Dependency] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)


class PlanResponse(StageModel):
    """Planner completion."""

    approach: str = "modular"
    patterns: list[str] = Field(default_factory=list)
    components: list[Component] = Field(default_factory=list)
    phases: list[Phase] = Field(default_factory=list)
    acceptance_criteria: list[AcceptanceCriterion] = Field(default_factory=list)


class TaskBreakdownResponse(StageModel):
    """TaskCreator completion."""

    tasks: list[Task] = Field(default_factory=list)
    execution_order: list[str] | None = None


class FileChange(StageModel):
    path: str = Field(description="Path relative to the project root")
    action: Literal["create", "modify", "delete"] = "modify"
    content: str = ""


class ChangeStats(StageModel):
    lines_added: int = 0
    lines_removed: int = 0


class TaskExecutionResponse(StageModel):
    """Executor completion for a single task."""

    files: list[FileChange] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    stats: ChangeStats = Field(default_factory=ChangeStats)
    summary: str = ""


class FailureAnalysisResponse(StageModel):
    """Tester completion classifying failed tests."""

    failures: list[TestFailure] = Field(default_factory=list)
    root_causes: list[str] = Field(default_factory=list)
    suggested_fixes: list[str] = Field(default_factory=list)


class CodeReviewResponse(StageModel):
    """Reviewer code-quality completion."""

    issues: list[ReviewIssue] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


class SecurityReviewResponse(StageModel):
    """Reviewer security completion."""

    vulnerabilities: list[SecurityVulnerability] = Field(default_factory=list)


class RootCauseResponse(StageModel):
    """Refiner analysis completion."""

    root_causes: list[str] = Field(default_factory=list)
    impacted_areas: list[str] = Field(default_factory=list)
    risk_level: Severity = "medium"


class ProposedAction(StageModel):
    type: str = "fix-bug"
    priority: Severity = "medium"
    description: str
    target_files: list[str] = Field(default_factory=list)
    specific_changes: list[str] = Field(default_factory=list)
    acceptance_criteria: list[str] = Field(default_factory=list)
    estimated_minutes: int = 30


class RefinementActionsResponse(StageModel):
    """Refiner actions completion."""

    actions: list[ProposedAction] = Field(default_factory=list)
