"""TaskCreator agent: decomposes a plan into ordered, atomic tasks."""

import json
from collections import Counter
from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import InputValidationError, OutputValidationError
from featureforge.domain.identifiers import generate_stage_id
from featureforge.domain.models import AgentContext, AgentName
from featureforge.schemas.responses import TaskBreakdownResponse
from featureforge.schemas.stages import ExecutionPlan, Task, TaskSet, TaskSummary

_PROMPT = """Break this execution plan into atomic development tasks.

Plan: {plan_id}
Architecture approach: {approach}
Components:
{components}
Phases:
{phases}
Acceptance criteria:
{criteria}

Each task should take at most a few hours. Return JSON with these keys:
- tasks: [{{"taskId": "TASK-001", "phaseId": str, "title": str, "description": str,
  "category": "backend|frontend|database|testing|documentation|infrastructure",
  "priority": "low|medium|high|critical", "estimatedHours": number,
  "dependencies": [taskId], "files": [str], "dod": [str],
  "technicalDetails": {{"packages": [str], "envVars": [str], "migrations": str|null}}}}]
- executionOrder: [taskId] respecting dependencies"""


def default_execution_order(tasks: list[Task]) -> list[str]:
    """Order tasks by phase, then by task id."""
    return [t.task_id for t in sorted(tasks, key=lambda t: (t.phase_id, t.task_id))]


def summarize_tasks(tasks: list[Task]) -> TaskSummary:
    return TaskSummary(
        total_tasks=len(tasks),
        by_category=dict(Counter(t.category for t in tasks)),
        by_priority=dict(Counter(t.priority for t in tasks)),
    )


class TaskCreatorAgent(BaseAgent[ExecutionPlan, TaskSet]):
    name = AgentName.TASK_CREATOR
    role = "Task Creator"
    role_prompt = (
        "You split implementation phases into small tasks with files, "
        "dependencies and a definition of done."
    )

    def coerce_input(self, input_data: Any) -> ExecutionPlan:
        return self._coerce_model(input_data, ExecutionPlan)

    def validate_input(self, input_data: ExecutionPlan) -> None:
        if not input_data.plan_id:
            raise InputValidationError("Plan is missing plan_id", field="plan_id")
        if not input_data.phases:
            raise InputValidationError("Plan has no phases", field="phases")

    async def process(self, input_data: ExecutionPlan, context: AgentContext) -> TaskSet:
        prompt = _PROMPT.format(
            plan_id=input_data.plan_id,
            approach=input_data.architecture.approach,
            components=json.dumps(
                [c.to_artifact() for c in input_data.architecture.components], indent=2
            ),
            phases=json.dumps([p.to_artifact() for p in input_data.phases], indent=2),
            criteria=json.dumps(
                [c.to_artifact() for c in input_data.acceptance_criteria], indent=2
            ),
        )
        response = await self._complete_json(prompt, TaskBreakdownResponse)
        tasks = response.tasks

        known = {t.task_id for t in tasks}
        order = [tid for tid in response.execution_order or [] if tid in known]
        if not order:
            order = default_execution_order(tasks)

        return TaskSet(
            task_set_id=generate_stage_id("TASKS", context.feature_id),
            feature_id=context.feature_id,
            plan_id=input_data.plan_id,
            timestamp=self._timestamp(),
            creator=self._stamp(context),
            summary=summarize_tasks(tasks),
            tasks=tasks,
            execution_order=order,
        )

    def validate_output(self, output: TaskSet) -> None:
        if not output.tasks:
            raise OutputValidationError("Task set must contain at least one task", field="tasks")
        if not output.execution_order:
            raise OutputValidationError(
                "Task set must define an execution order", field="execution_order"
            )
