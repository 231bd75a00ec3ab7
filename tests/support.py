"""Canned completions, command output and identifiers shared by the tests."""

import copy
from typing import Any

from featureforge.domain.models import CommandResult

FEATURE_ID = "FEAT-2026-000123"
SERVICE_FILE = "src/orders/services/export.service.ts"
E2E_FILE = "test/e2e/orders.e2e-spec.ts"
STAMP = {"agentVersion": "1.0.0", "date": "2026-01-01"}

# =============================================================================
# Canned completions, one per agent role
# =============================================================================

ANALYSIS_RESPONSE = {
    "category": "new-feature",
    "businessValue": "Accounting can reconcile orders without database access",
    "functionalRequirements": [
        {"id": "FR-001", "description": "Export the orders table as CSV", "priority": "must-have"},
        {"id": "FR-002", "description": "Filter the export by date range", "priority": "should-have"},
    ],
    "nonFunctionalRequirements": [
        {"id": "NFR-001", "type": "performance", "description": "Export 10k rows in under 5s"},
    ],
    "modulesAffected": ["orders"],
    "databasesAffected": [],
    "externalServices": [],
    "complexity": "medium",
    "dependencies": [{"type": "library", "name": "csv-stringify", "action": "install"}],
    "risks": [
        {"description": "Large exports may time out", "severity": "medium", "mitigation": "Stream rows"}
    ],
}

PLAN_RESPONSE = {
    "approach": "modular",
    "patterns": ["service-layer"],
    "components": [
        {"name": "ExportService", "type": "backend-service", "action": "create", "technology": "NestJS"}
    ],
    "phases": [
        {"phaseId": "PHASE-1", "name": "Backend export", "order": 1, "estimatedHours": 3,
         "components": ["ExportService"]},
        {"phaseId": "PHASE-2", "name": "End-to-end tests", "order": 2, "estimatedHours": 1.5,
         "components": ["ExportService"], "dependencies": ["PHASE-1"]},
    ],
    "acceptanceCriteria": [
        {"id": "AC-001", "description": "GET /orders/export returns text/csv"}
    ],
}

TASKS_RESPONSE = {
    "tasks": [
        {"taskId": "TASK-001", "phaseId": "PHASE-1", "title": "Create the export service",
         "category": "backend", "priority": "high", "estimatedHours": 2,
         "files": [SERVICE_FILE], "dod": ["Service streams CSV rows"],
         "technicalDetails": {"packages": ["csv-stringify"]}},
        {"taskId": "TASK-002", "phaseId": "PHASE-2", "title": "Cover the export endpoint",
         "category": "testing", "priority": "medium", "estimatedHours": 1,
         "dependencies": ["TASK-001"], "files": [E2E_FILE], "dod": ["Test passes"]},
    ],
    "executionOrder": ["TASK-001", "TASK-002"],
}

EXECUTION_RESPONSE = {
    "files": [
        {"path": SERVICE_FILE, "action": "create",
         "content": "/**\n * Streams orders as CSV.\n */\nexport class ExportService {}\n"}
    ],
    "commands": [],
    "stats": {"linesAdded": 4, "linesRemoved": 0},
    "summary": "Added ExportService",
}

FAILURE_ANALYSIS_RESPONSE = {
    "failures": [
        {"testFile": E2E_FILE, "testName": "exports orders as CSV",
         "error": "Expected 200, received 404", "severity": "high"}
    ],
    "rootCauses": ["Export route is not registered"],
    "suggestedFixes": ["Register GET /orders/export"],
}

# The reviewer asks for code quality, then security, under one system prompt;
# each response carries the keys of both schemas.
APPROVING_REVIEW_RESPONSE = {
    "issues": [
        {"file": SERVICE_FILE, "type": "info", "category": "naming",
         "description": "Consider OrdersCsvExporter"}
    ],
    "strengths": ["Small, focused service"],
    "vulnerabilities": [],
}

REJECTING_REVIEW_RESPONSE = {
    "issues": [
        {"file": SERVICE_FILE, "line": 3, "type": "error", "category": "complexity",
         "description": "Unhandled promise rejection while streaming"}
    ],
    "strengths": [],
    "vulnerabilities": [],
}

# Likewise the refiner asks for root causes, then actions.
REFINEMENT_RESPONSE = {
    "rootCauses": ["Export route is not registered"],
    "impactedAreas": ["src/orders"],
    "riskLevel": "medium",
    "actions": [
        {"type": "fix-bug", "priority": "high", "description": "Register the export route",
         "targetFiles": ["src/orders/controllers/orders.controller.ts"],
         "specificChanges": ["Add GET /orders/export"],
         "acceptanceCriteria": ["The export e2e test passes"], "estimatedMinutes": 45}
    ],
}


def happy_path_responses() -> dict[str, list[Any]]:
    """Per-role completion queues that take a feature straight to delivery."""
    return copy.deepcopy(
        {
            "analyzer": [ANALYSIS_RESPONSE],
            "planner": [PLAN_RESPONSE],
            "task creator": [TASKS_RESPONSE],
            "executor": [EXECUTION_RESPONSE],
            "tester": [FAILURE_ANALYSIS_RESPONSE],
            "reviewer": [APPROVING_REVIEW_RESPONSE],
            "refiner": [REFINEMENT_RESPONSE],
        }
    )


# =============================================================================
# Scripted command output
# =============================================================================

E2E_PASSING = CommandResult(
    stdout=f"PASS {E2E_FILE}\nTests:       4 passed, 4 total\n",
    stderr="",
    exit_code=0,
    duration_ms=1200,
)

E2E_FAILING = CommandResult(
    stdout=f"FAIL {E2E_FILE}\nTests:       1 failed, 3 passed, 4 total\n",
    stderr="",
    exit_code=1,
    duration_ms=1300,
)


def happy_path_commands() -> dict[str, CommandResult | list[CommandResult]]:
    """Command results for a clean project with a git history."""
    return {
        "npm run test:e2e": E2E_PASSING,
        "npm run test:cov -- --passWithNoTests": CommandResult(
            stdout="Tests:       12 passed, 12 total\n", stderr="", exit_code=0
        ),
        "npm run lint": CommandResult(stdout="[]", stderr="", exit_code=0),
        "git diff --name-only HEAD": CommandResult(
            stdout=f"{SERVICE_FILE}\n{E2E_FILE}\n", stderr="", exit_code=0
        ),
        "git diff --stat HEAD": CommandResult(
            stdout=" 2 files changed, 58 insertions(+), 3 deletions(-)\n",
            stderr="",
            exit_code=0,
        ),
        "git log --oneline -10": CommandResult(
            stdout="a1b2c3d feat: add order export service\n9f8e7d6 test: cover order export\n",
            stderr="",
            exit_code=0,
        ),
    }

