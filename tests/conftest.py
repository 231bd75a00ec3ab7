"""Shared pytest fixtures for featureforge tests."""

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from support import (
    E2E_FILE,
    FEATURE_ID,
    SERVICE_FILE,
    STAMP,
    happy_path_commands,
    happy_path_responses,
)

from featureforge.agents import AgentDependencies
from featureforge.application import WorkflowOrchestrator
from featureforge.bootstrap import build_orchestrator
from featureforge.config import LLMConfig, PipelineConfig
from featureforge.domain.models import (
    AgentContext,
    AgentName,
    CancellationToken,
    ContextMetadata,
    Priority,
)
from featureforge.infrastructure.commands import FakeCommandRunner
from featureforge.infrastructure.llm import MockCompletionService
from featureforge.infrastructure.persistence import (
    InMemoryArtifactStore,
    InMemoryWorkflowEventStore,
    InMemoryWorkflowRepository,
)


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create an empty target project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, project_root: Path) -> PipelineConfig:
    """Create a pipeline config rooted in tmp_path with no retry backoff."""
    return PipelineConfig(
        artifacts_dir=str(tmp_path / "artifacts"),
        project_root=str(project_root),
        max_iterations=3,
        llm=LLMConfig(parse_retries=1, retry_backoff=0),
    )


@pytest.fixture
def artifact_store() -> InMemoryArtifactStore:
    """Create an in-memory artifact store."""
    return InMemoryArtifactStore()


@pytest.fixture
def event_store() -> InMemoryWorkflowEventStore:
    """Create an in-memory event store."""
    return InMemoryWorkflowEventStore()


@pytest.fixture
def completion() -> MockCompletionService:
    """Create a mock completion service answering every role."""
    return MockCompletionService(by_role=happy_path_responses())


@pytest.fixture
def commands() -> FakeCommandRunner:
    """Create a fake command runner for a passing project."""
    return FakeCommandRunner(happy_path_commands())


@pytest.fixture
def deps(
    artifact_store: InMemoryArtifactStore,
    completion: MockCompletionService,
    commands: FakeCommandRunner,
    config: PipelineConfig,
    event_store: InMemoryWorkflowEventStore,
) -> AgentDependencies:
    """Wire agent dependencies from the default fixtures."""
    return AgentDependencies(
        artifact_store=artifact_store,
        completion=completion,
        commands=commands,
        config=config,
        event_store=event_store,
    )


@pytest.fixture
def make_orchestrator(
    artifact_store: InMemoryArtifactStore,
    completion: MockCompletionService,
    commands: FakeCommandRunner,
    config: PipelineConfig,
    event_store: InMemoryWorkflowEventStore,
) -> Callable[..., WorkflowOrchestrator]:
    """Factory building an orchestrator; keyword arguments replace fixtures."""

    def factory(**overrides: Any) -> WorkflowOrchestrator:
        return build_orchestrator(
            overrides.get("config", config),
            completion=overrides.get("completion", completion),
            commands=overrides.get("commands", commands),
            artifact_store=overrides.get("artifact_store", artifact_store),
            event_store=overrides.get("event_store", event_store),
            repository=overrides.get("repository", InMemoryWorkflowRepository()),
        )

    return factory


@pytest.fixture
def make_context() -> Callable[..., AgentContext]:
    """Factory building an AgentContext for FEATURE_ID."""

    def factory(
        previous: dict[AgentName, str] | None = None,
        iteration: int = 1,
        feature_id: str = FEATURE_ID,
        cancellation: CancellationToken | None = None,
    ) -> AgentContext:
        return AgentContext(
            feature_id=feature_id,
            iteration=iteration,
            metadata=ContextMetadata(
                started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
                requested_by="tests",
                priority=Priority.HIGH,
            ),
            previous_artifacts=previous or {},
            cancellation=cancellation or CancellationToken(),
        )

    return factory


# =============================================================================
# Sample stage artifacts (camelCase, as persisted)
# =============================================================================


@pytest.fixture
def analysis_artifact() -> dict[str, Any]:
    """Create a minimal Analyzer artifact."""
    return {
        "featureId": FEATURE_ID,
        "timestamp": "2026-01-01T00:00:00+00:00",
        "analyzer": STAMP,
        "feature": {
            "title": "Add CSV export",
            "description": "Export the orders table as CSV from the admin page",
            "category": "new-feature",
            "priority": "high",
        },
        "requirements": {
            "functional": [{"id": "FR-001", "description": "Export the orders table as CSV"}],
            "nonFunctional": [],
        },
        "impact": {"modules": ["orders"], "databases": ["orders"], "externalServices": []},
        "risks": [{"description": "Large exports", "severity": "medium", "mitigation": "Stream"}],
    }


@pytest.fixture
def plan_artifact() -> dict[str, Any]:
    """Create a minimal Planner artifact."""
    return {
        "planId": "PLAN-000123-000001",
        "featureId": FEATURE_ID,
        "timestamp": "2026-01-01T00:00:00+00:00",
        "planner": STAMP,
        "architecture": {
            "approach": "modular",
            "components": [{"name": "ExportService", "type": "backend-service"}],
        },
        "phases": [{"phaseId": "PHASE-1", "name": "Backend export", "estimatedHours": 3}],
    }


@pytest.fixture
def task_set_artifact() -> dict[str, Any]:
    """Create a TaskCreator artifact with one task."""
    return {
        "taskSetId": "TASKS-000123-000001",
        "featureId": FEATURE_ID,
        "planId": "PLAN-000123-000001",
        "timestamp": "2026-01-01T00:00:00+00:00",
        "creator": STAMP,
        "summary": {"totalTasks": 1, "byCategory": {"backend": 1}, "byPriority": {"high": 1}},
        "tasks": [
            {"taskId": "TASK-001", "phaseId": "PHASE-1", "title": "Create the export service",
             "files": [SERVICE_FILE], "dod": ["Service streams CSV rows"],
             "technicalDetails": {"packages": ["csv-stringify"], "envVars": ["EXPORT_LIMIT"]}}
        ],
        "executionOrder": ["TASK-001"],
    }


@pytest.fixture
def execution_artifact() -> dict[str, Any]:
    """Create an Executor artifact that modified the export service."""
    return {
        "executionId": "EXEC-000123-000001",
        "featureId": FEATURE_ID,
        "taskSetId": "TASKS-000123-000001",
        "timestamp": "2026-01-01T00:00:00+00:00",
        "executor": STAMP,
        "summary": {"totalTasks": 1, "completed": 1, "failed": 0, "skipped": 0},
        "results": [
            {"taskId": "TASK-001", "status": "completed", "filesModified": [SERVICE_FILE]}
        ],
        "unitTests": {"passed": 12, "failed": 0, "skipped": 0},
    }


@pytest.fixture
def test_results_artifact() -> dict[str, Any]:
    """Create an approving Tester artifact."""
    return {
        "testResultsId": "TEST-000123-000001",
        "featureId": FEATURE_ID,
        "executionId": "EXEC-000123-000001",
        "timestamp": "2026-01-01T00:00:00+00:00",
        "tester": STAMP,
        "summary": {"totalTests": 4, "passed": 4, "failed": 0, "skipped": 0},
        "e2eTests": {"passed": 4, "failed": 0, "skipped": 0, "testFiles": [E2E_FILE]},
        "coverage": {"statements": 88, "branches": 75, "functions": 90, "lines": 87.5},
        "recommendation": "approve",
    }


@pytest.fixture
def review_artifact() -> dict[str, Any]:
    """Create an approved Reviewer artifact."""
    return {
        "reviewId": "REV-000123-000001",
        "featureId": FEATURE_ID,
        "testResultsId": "TEST-000123-000001",
        "timestamp": "2026-01-01T00:00:00+00:00",
        "reviewer": STAMP,
        "overallScore": 92,
        "verdict": "approved",
        "codeQuality": {"score": 90},
        "security": {"score": 100},
        "patterns": {"score": 100},
        "documentation": {"score": 70},
    }


@pytest.fixture
def refinement_artifact() -> dict[str, Any]:
    """Create a Refiner artifact with one fix action."""
    return {
        "refinementId": "REF-000123-000001",
        "featureId": FEATURE_ID,
        "iteration": 1,
        "timestamp": "2026-01-01T00:00:00+00:00",
        "refiner": STAMP,
        "source": {"type": "test-failure", "triggerId": "TEST-000123-000001"},
        "analysis": {"rootCauses": ["Export route is not registered"], "riskLevel": "medium"},
        "actions": [
            {"actionId": "ACT-001", "type": "fix-bug", "priority": "high",
             "description": "Register the export route", "targetFiles": [SERVICE_FILE],
             "specificChanges": ["Add GET /orders/export"],
             "acceptanceCriteria": ["The export e2e test passes"], "estimatedMinutes": 45}
        ],
        "estimatedEffort": {"hours": 1, "complexity": "low"},
        "priority": "high",
    }
