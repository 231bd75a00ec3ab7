"""Planner agent: designs the architecture and phased execution plan."""

import json
from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import InputValidationError, OutputValidationError
from featureforge.domain.identifiers import generate_stage_id
from featureforge.domain.models import AgentContext, AgentName
from featureforge.schemas.responses import PlanResponse
from featureforge.schemas.stages import Architecture, ExecutionPlan, FeatureAnalysis

_PROMPT = """Design an implementation plan for this analyzed feature.

Feature: {title}
Category: {category}
Functional requirements:
{functional}
Non-functional requirements:
{non_functional}
Affected modules: {modules}
Databases: {databases}

Return JSON with these keys:
- approach: short name of the architectural approach
- patterns: [str]
- components: [{{"name": str, "type": "backend-service|frontend-component|database-table|api-endpoint|worker", "action": "create|modify|delete", "technology": str}}]
- phases: [{{"phaseId": "PHASE-1", "name": str, "order": int, "estimatedHours": number, "components": [str], "dependencies": [str]}}]
- acceptanceCriteria: [{{"id": "AC-001", "description": str, "type": "functional|performance|security", "testable": bool}}]"""


class PlannerAgent(BaseAgent[FeatureAnalysis, ExecutionPlan]):
    name = AgentName.PLANNER
    role = "Planner"
    role_prompt = (
        "You turn analyzed requirements into an architecture, ordered "
        "implementation phases and testable acceptance criteria."
    )

    def coerce_input(self, input_data: Any) -> FeatureAnalysis:
        return self._coerce_model(input_data, FeatureAnalysis)

    def validate_input(self, input_data: FeatureAnalysis) -> None:
        if not input_data.feature_id:
            raise InputValidationError("Analysis is missing feature_id", field="feature_id")
        if not input_data.requirements.functional:
            raise InputValidationError(
                "Analysis has no functional requirements",
                field="requirements.functional",
            )

    async def process(
        self, input_data: FeatureAnalysis, context: AgentContext
    ) -> ExecutionPlan:
        impact = input_data.impact
        prompt = _PROMPT.format(
            title=input_data.feature.title,
            category=input_data.feature.category,
            functional=json.dumps(
                [r.to_artifact() for r in input_data.requirements.functional], indent=2
            ),
            non_functional=json.dumps(
                [r.to_artifact() for r in input_data.requirements.non_functional], indent=2
            ),
            modules=", ".join(impact.modules) if impact else "",
            databases=", ".join(impact.databases) if impact else "",
        )
        response = await self._complete_json(prompt, PlanResponse)

        return ExecutionPlan(
            plan_id=generate_stage_id("PLAN", context.feature_id),
            feature_id=context.feature_id,
            timestamp=self._timestamp(),
            planner=self._stamp(context),
            architecture=Architecture(
                approach=response.approach or "modular",
                patterns=response.patterns,
                components=response.components,
            ),
            phases=response.phases,
            acceptance_criteria=response.acceptance_criteria,
            estimated_total_hours=sum(p.estimated_hours for p in response.phases),
        )

    def validate_output(self, output: ExecutionPlan) -> None:
        if not output.phases:
            raise OutputValidationError("Plan must contain at least one phase", field="phases")
