"""Tests for the Executor agent."""

import re
from dataclasses import replace
from pathlib import Path

import pytest
from support import EXECUTION_RESPONSE, FEATURE_ID, SERVICE_FILE

from featureforge.agents import ExecutorAgent
from featureforge.domain.models import AgentName, CommandResult
from featureforge.domain.routing import artifact_path
from featureforge.infrastructure.llm import MockCompletionService

UNIT_TESTS = "npm run test:cov -- --passWithNoTests"


def executor_responses(deps, *responses) -> None:
    deps.completion = MockCompletionService(by_role={"executor": list(responses)})


class TestExecutorAgent:
    """Tests for ExecutorAgent with a task set."""

    @pytest.mark.asyncio
    async def test_applies_changes_and_runs_unit_tests(
        self, deps, make_context, task_set_artifact, project_root: Path
    ):
        """Files are written under the project root and unit tests counted."""
        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert result.success
        assert result.next_agent == AgentName.TESTER
        report = result.output
        assert re.fullmatch(r"EXEC-000123-\d{6}", report.execution_id)
        assert report.task_set_id == "TASKS-000123-000001"
        assert report.summary.completed == 1
        assert report.results[0].files_modified == [SERVICE_FILE]
        assert report.results[0].lines_added == 4
        assert report.unit_tests.passed == 12
        assert report.warnings == []
        assert report.refinement_context.is_refinement is False
        assert (project_root / SERVICE_FILE).read_text().startswith("/**")

    @pytest.mark.asyncio
    async def test_unit_tests_run_in_project_root(
        self, deps, commands, make_context, task_set_artifact, project_root: Path
    ):
        """Unit tests run with the project root as cwd and the unit timeout."""
        await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert (UNIT_TESTS, str(project_root.resolve()), 120.0) in commands.calls

    @pytest.mark.asyncio
    async def test_delete_action_removes_file(
        self, deps, make_context, task_set_artifact, project_root: Path
    ):
        """A delete change unlinks the file."""
        stale = project_root / "src" / "legacy.ts"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")
        executor_responses(deps, {"files": [{"path": "src/legacy.ts", "action": "delete"}]})

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert result.success
        assert not stale.exists()

    @pytest.mark.asyncio
    async def test_path_outside_project_fails_task(
        self, deps, make_context, task_set_artifact, tmp_path: Path
    ):
        """Paths escaping the project root are refused and fail the task."""
        executor_responses(
            deps, {"files": [{"path": "../escaped.ts", "action": "create", "content": "x"}]}
        )

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert not result.success
        assert result.error_kind == "OutputValidationError"
        assert not (tmp_path / "escaped.ts").exists()

    @pytest.mark.asyncio
    async def test_failed_task_is_reported(
        self, deps, make_context, task_set_artifact
    ):
        """One failing task does not stop the others."""
        task_set_artifact["tasks"].append(
            {"taskId": "TASK-002", "phaseId": "PHASE-1", "title": "Second task"}
        )
        task_set_artifact["executionOrder"] = ["TASK-001", "TASK-002"]
        executor_responses(deps, "not json", "still not json", EXECUTION_RESPONSE)

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        report = result.output
        assert result.success
        assert [r.status for r in report.results] == ["failed", "completed"]
        assert report.summary.failed == 1
        assert report.warnings[0].startswith("Task TASK-001 failed")

    @pytest.mark.asyncio
    async def test_unknown_task_in_order_is_skipped(self, deps, make_context, task_set_artifact):
        """Order entries without a task are skipped."""
        task_set_artifact["executionOrder"] = ["TASK-404", "TASK-001"]

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert [r.status for r in result.output.results] == ["skipped", "completed"]
        assert result.output.summary.skipped == 1

    @pytest.mark.asyncio
    async def test_unit_test_failure_without_counts(
        self, deps, commands, make_context, task_set_artifact
    ):
        """A failing unit run with no parsable summary counts one failure."""
        commands.set(UNIT_TESTS, CommandResult(stdout="", stderr="jest: not found", exit_code=127))

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert result.output.unit_tests.failed == 1
        assert "Unit tests reported 1 failure(s)" in result.output.warnings

    @pytest.mark.asyncio
    async def test_task_commands_skipped_by_default(
        self, deps, commands, make_context, task_set_artifact
    ):
        """Model-proposed commands are not run unless enabled."""
        executor_responses(deps, {**EXECUTION_RESPONSE, "commands": ["npm run build"]})

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert "npm run build" not in commands.commands_run()
        assert result.output.results[0].commands_run == []

    @pytest.mark.asyncio
    async def test_task_commands_run_when_enabled(
        self, deps, commands, make_context, task_set_artifact
    ):
        """With execute_task_commands the commands run and are recorded."""
        deps.config = replace(deps.config, execute_task_commands=True)
        executor_responses(deps, {**EXECUTION_RESPONSE, "commands": ["npm run build"]})

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert "npm run build" in commands.commands_run()
        assert result.output.results[0].commands_run == ["npm run build"]

    @pytest.mark.asyncio
    async def test_failing_task_command_fails_task(
        self, deps, commands, make_context, task_set_artifact
    ):
        """A non-zero task command marks the task failed."""
        deps.config = replace(deps.config, execute_task_commands=True)
        commands.set("npm run build", CommandResult(stdout="", stderr="tsc error", exit_code=2))
        executor_responses(deps, {**EXECUTION_RESPONSE, "commands": ["npm run build"]})

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        # The only task failed, so nothing completed
        assert not result.success
        assert result.error_kind == "OutputValidationError"

    @pytest.mark.asyncio
    async def test_empty_task_set_rejected(self, deps, make_context, task_set_artifact):
        """A task set without tasks is invalid input."""
        task_set_artifact["tasks"] = []

        result = await ExecutorAgent(deps).execute(task_set_artifact, make_context())

        assert result.error_kind == "InputValidationError"


class TestExecutorRefinement:
    """Tests for ExecutorAgent entered from the Refiner."""

    @pytest.mark.asyncio
    async def test_actions_become_tasks(
        self,
        deps,
        artifact_store,
        make_context,
        task_set_artifact,
        execution_artifact,
        refinement_artifact,
    ):
        """Each refinement action is executed as a focused task."""
        tasks_path = artifact_path(FEATURE_ID, AgentName.TASK_CREATOR)
        exec_path = artifact_path(FEATURE_ID, AgentName.EXECUTOR)
        await artifact_store.save(tasks_path, task_set_artifact)
        await artifact_store.save(exec_path, execution_artifact)
        context = make_context(
            previous={AgentName.TASK_CREATOR: tasks_path, AgentName.EXECUTOR: exec_path},
            iteration=2,
        )

        result = await ExecutorAgent(deps).execute(refinement_artifact, context)

        assert result.success
        report = result.output
        assert report.task_set_id == "TASKS-000123-000001"
        assert [r.task_id for r in report.results] == ["ACT-001"]
        assert report.refinement_context.is_refinement is True
        assert report.refinement_context.previous_execution_id == "EXEC-000123-000001"
        assert report.refinement_context.actions_applied == ["ACT-001"]
        assert report.executor.iteration == 2

    @pytest.mark.asyncio
    async def test_action_details_reach_prompt(
        self, deps, artifact_store, make_context, task_set_artifact, refinement_artifact
    ):
        """Action description, target files and criteria are in the prompt."""
        tasks_path = artifact_path(FEATURE_ID, AgentName.TASK_CREATOR)
        await artifact_store.save(tasks_path, task_set_artifact)
        context = make_context(previous={AgentName.TASK_CREATOR: tasks_path})

        await ExecutorAgent(deps).execute(refinement_artifact, context)

        prompt = deps.completion.calls[0][0]
        assert "ACT-001 - Register the export route" in prompt
        assert SERVICE_FILE in prompt
        assert "- The export e2e test passes" in prompt

    @pytest.mark.asyncio
    async def test_requires_original_task_set(self, deps, make_context, refinement_artifact):
        """Refinement without a TaskCreator artifact is invalid input."""
        result = await ExecutorAgent(deps).execute(refinement_artifact, make_context())

        assert not result.success
        assert result.error_kind == "InputValidationError"

    @pytest.mark.asyncio
    async def test_plan_without_actions_rejected(self, deps, make_context, refinement_artifact):
        """A refinement plan with no actions is invalid input."""
        refinement_artifact["actions"] = []

        result = await ExecutorAgent(deps).execute(refinement_artifact, make_context())

        assert result.error_kind == "InputValidationError"
