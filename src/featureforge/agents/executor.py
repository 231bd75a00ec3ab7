"""
Executor agent: applies code changes task by task and runs the unit tests.

The Executor is entered from the TaskCreator with a TaskSet, or from the
Refiner with a RefinementPlan. In the second case each refinement action
becomes a focused task and the original task set is loaded from its
artifact.
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import (
    InputValidationError,
    OutputValidationError,
    PipelineError,
)
from featureforge.domain.extraction import parse_test_counts
from featureforge.domain.identifiers import generate_stage_id
from featureforge.domain.models import AgentContext, AgentName
from featureforge.schemas.responses import FileChange, TaskExecutionResponse
from featureforge.schemas.stages import (
    ExecutionReport,
    ExecutionSummary,
    RefinementContext,
    RefinementPlan,
    Task,
    TaskExecutionResult,
    TaskSet,
    TestTally,
)

_PROMPT = """Implement this development task in the target project.

Task: {task_id} - {title}
Category: {category}
Description: {description}
Files: {files}
Definition of done:
{dod}
Technical details: {technical}

Return JSON with these keys:
- files: [{{"path": str (relative to the project root), "action": "create|modify|delete", "content": str (full file content)}}]
- commands: [str] shell commands to run afterwards, if any
- stats: {{"linesAdded": int, "linesRemoved": int}}
- summary: str"""

ExecutorInput = TaskSet | RefinementPlan


class PathEscapeError(PipelineError):
    """A model-proposed file path resolves outside the project root."""


class ExecutorAgent(BaseAgent[ExecutorInput, ExecutionReport]):
    name = AgentName.EXECUTOR
    role = "Executor"
    role_prompt = (
        "You write production code for one task at a time and report every "
        "file you create, modify or delete."
    )

    def coerce_input(self, input_data: Any) -> ExecutorInput:
        if isinstance(input_data, (TaskSet, RefinementPlan)):
            return input_data
        if isinstance(input_data, dict) and (
            "refinementId" in input_data or "refinement_id" in input_data
        ):
            return self._coerce_model(input_data, RefinementPlan)
        return self._coerce_model(input_data, TaskSet)

    def validate_input(self, input_data: ExecutorInput) -> None:
        if isinstance(input_data, RefinementPlan):
            if not input_data.actions:
                raise InputValidationError("Refinement plan has no actions", field="actions")
            return
        if not input_data.tasks:
            raise InputValidationError("Task set has no tasks", field="tasks")

    async def process(
        self, input_data: ExecutorInput, context: AgentContext
    ) -> ExecutionReport:
        if isinstance(input_data, RefinementPlan):
            task_set, refinement = await self._refinement_tasks(input_data, context)
        else:
            task_set, refinement = input_data, RefinementContext()

        tasks_by_id = {t.task_id: t for t in task_set.tasks}
        results: list[TaskExecutionResult] = []

        for task_id in task_set.execution_order:
            context.cancellation.raise_if_cancelled()
            task = tasks_by_id.get(task_id)
            if task is None:
                self._logger.warning("[%s] Task %s not found, skipping", context.feature_id, task_id)
                results.append(TaskExecutionResult(task_id=task_id, status="skipped"))
                continue
            results.append(await self._execute_task(task, context))

        unit_tests = await self._run_unit_tests()
        completed = sum(1 for r in results if r.status == "completed")
        failed = sum(1 for r in results if r.status == "failed")
        skipped = sum(1 for r in results if r.status == "skipped")

        warnings = [f"Task {r.task_id} failed: {r.error}" for r in results if r.status == "failed"]
        if unit_tests.failed:
            warnings.append(f"Unit tests reported {unit_tests.failed} failure(s)")

        return ExecutionReport(
            execution_id=generate_stage_id("EXEC", context.feature_id),
            feature_id=context.feature_id,
            task_set_id=task_set.task_set_id,
            timestamp=self._timestamp(),
            executor=self._stamp(context),
            refinement_context=refinement,
            summary=ExecutionSummary(
                total_tasks=len(results),
                completed=completed,
                failed=failed,
                skipped=skipped,
            ),
            results=results,
            unit_tests=unit_tests,
            warnings=warnings,
        )

    def validate_output(self, output: ExecutionReport) -> None:
        if output.summary.completed < 1:
            raise OutputValidationError(
                "Execution must complete at least one task", field="summary.completed"
            )

    # ------------------------------------------------------------------

    async def _refinement_tasks(
        self, plan: RefinementPlan, context: AgentContext
    ) -> tuple[TaskSet, RefinementContext]:
        stored = await self.load_previous_artifact(AgentName.TASK_CREATOR, context)
        if stored is None:
            raise InputValidationError(
                "Refinement requires the task set of an earlier TaskCreator run",
                field="previous_artifacts",
            )
        original = TaskSet.model_validate(stored)

        previous = await self.load_previous_artifact(AgentName.EXECUTOR, context)
        previous_execution_id = previous.get("executionId") if previous else None

        tasks = [
            Task(
                task_id=action.action_id,
                phase_id="REFINEMENT",
                title=action.description[:80],
                description="\n".join([action.description, *action.specific_changes]),
                category="testing" if action.type == "add-test" else "backend",
                priority=action.priority,
                estimated_hours=round(action.estimated_minutes / 60, 2),
                files=action.target_files,
                dod=action.acceptance_criteria,
            )
            for action in plan.actions
        ]
        task_set = original.model_copy(
            update={"tasks": tasks, "execution_order": [t.task_id for t in tasks]}
        )
        refinement = RefinementContext(
            is_refinement=True,
            previous_execution_id=previous_execution_id,
            actions_applied=[a.action_id for a in plan.actions],
        )
        self._logger.info(
            "[%s] Applying %d refinement action(s) from %s",
            context.feature_id,
            len(tasks),
            plan.refinement_id,
        )
        return task_set, refinement

    async def _execute_task(self, task: Task, context: AgentContext) -> TaskExecutionResult:
        started = time.monotonic()
        self._logger.info("[%s] Executing %s: %s", context.feature_id, task.task_id, task.title)

        try:
            prompt = _PROMPT.format(
                task_id=task.task_id,
                title=task.title,
                category=task.category,
                description=task.description,
                files=", ".join(task.files) or "(to be decided)",
                dod="\n".join(f"- {d}" for d in task.dod),
                technical=json.dumps(task.technical_details.to_artifact()),
            )
            response = await self._complete_json(prompt, TaskExecutionResponse)

            files_modified = []
            for change in response.files:
                files_modified.append(await self._apply_change(change))

            commands_run = []
            if self.config.execute_task_commands:
                for command in response.commands:
                    result = await self._deps.commands.run(
                        command,
                        cwd=str(self._deps.project_root),
                        timeout=self.config.commands.default_timeout,
                    )
                    commands_run.append(command)
                    if not result.ok:
                        raise PipelineError(
                            f"Command '{command}' exited with {result.exit_code}"
                        )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._logger.warning("[%s] Task %s failed: %s", context.feature_id, task.task_id, e)
            return TaskExecutionResult(
                task_id=task.task_id,
                status="failed",
                duration_ms=self._elapsed_ms(started),
                error=str(e),
            )

        return TaskExecutionResult(
            task_id=task.task_id,
            status="completed",
            duration_ms=self._elapsed_ms(started),
            files_modified=files_modified,
            commands_run=commands_run,
            lines_added=response.stats.lines_added,
            lines_removed=response.stats.lines_removed,
        )

    def _resolve(self, relative: str) -> Path:
        root = self._deps.project_root
        target = (root / relative).resolve()
        if not target.is_relative_to(root):
            raise PathEscapeError(f"Refusing to write outside the project root: {relative}")
        return target

    async def _apply_change(self, change: FileChange) -> str:
        target = self._resolve(change.path)

        def write() -> None:
            if change.action == "delete":
                target.unlink(missing_ok=True)
                return
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(change.content)

        await asyncio.to_thread(write)
        return change.path

    async def _run_unit_tests(self) -> TestTally:
        commands = self.config.commands
        result = await self._deps.commands.run(
            commands.unit_tests,
            cwd=str(self._deps.project_root),
            timeout=commands.unit_timeout,
        )
        counts = parse_test_counts(result.output)
        failed = counts.failed
        if not result.ok and failed == 0:
            failed = 1
        return TestTally(passed=counts.passed, failed=failed, skipped=counts.skipped)
