"""Refiner agent: plans corrective actions for failed tests or rejected reviews."""

import json
import math
from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import InputValidationError, OutputValidationError
from featureforge.domain.identifiers import generate_stage_id
from featureforge.domain.models import AgentContext, AgentName, TriggerType
from featureforge.schemas.responses import RefinementActionsResponse, RootCauseResponse
from featureforge.schemas.stages import (
    EstimatedEffort,
    RefinementAction,
    RefinementPlan,
    RefinementSource,
    RefinerInput,
    RootCauseAnalysis,
)

_TEST_FAILURE_PROMPT = """Analyze these end-to-end test failures and identify their root causes.

Failed tests:
{failures}

Summary: {total} test(s), {failed} failed.

Identify real root causes rather than symptoms, and the code areas that must change.
Return JSON with these keys:
- rootCauses: [str]
- impactedAreas: [str]
- riskLevel: "low|medium|high|critical"
"""

_REVIEW_PROMPT = """Analyze the problems found in this code review.

Quality issues:
{issues}

Security vulnerabilities:
{vulnerabilities}

Pattern violations:
{violations}

Overall score: {score}/100

Return JSON with these keys:
- rootCauses: [str]
- impactedAreas: [str]
- riskLevel: "low|medium|high|critical"
"""

_ACTIONS_PROMPT = """Create concrete refinement actions for these root causes.

Trigger: {trigger}
Root causes:
{root_causes}
Impacted areas:
{impacted_areas}

Every action needs verifiable acceptance criteria. Return JSON with this key:
- actions: [{{"type": "fix-bug|refactor|add-test|improve-security|update-doc", "priority": "critical|high|medium|low",
  "description": str, "targetFiles": [str], "specificChanges": [str], "acceptanceCriteria": [str], "estimatedMinutes": int}}]"""

_SOURCE_AGENT = {
    TriggerType.TEST_FAILURE: AgentName.TESTER,
    TriggerType.REVIEW_REJECTION: AgentName.REVIEWER,
}


def determine_complexity(actions: list[RefinementAction], risk_level: str) -> str:
    critical = sum(1 for a in actions if a.priority == "critical")
    minutes = sum(a.estimated_minutes for a in actions)
    if critical > 2 or minutes > 180 or risk_level == "critical":
        return "high"
    if critical > 0 or minutes > 60 or risk_level == "high":
        return "medium"
    return "low"


def determine_priority(actions: list[RefinementAction], risk_level: str) -> str:
    if any(a.priority == "critical" for a in actions) or risk_level == "critical":
        return "critical"
    if any(a.priority == "high" for a in actions) or risk_level == "high":
        return "high"
    if risk_level == "medium":
        return "medium"
    return "low"


class RefinerAgent(BaseAgent[RefinerInput, RefinementPlan]):
    name = AgentName.REFINER
    role = "Refiner"
    role_prompt = (
        "You find the root causes of test failures and review rejections and "
        "plan precise corrective actions."
    )

    def coerce_input(self, input_data: Any) -> RefinerInput:
        return self._coerce_model(input_data, RefinerInput)

    def validate_input(self, input_data: RefinerInput) -> None:
        if not input_data.feature_id:
            raise InputValidationError("Refiner input is missing feature_id", field="feature_id")
        if not input_data.trigger_source.source_id:
            raise InputValidationError(
                "Trigger source is missing source_id", field="trigger_source.source_id"
            )

    async def process(self, input_data: RefinerInput, context: AgentContext) -> RefinementPlan:
        trigger = input_data.trigger_source
        problem = await self._load_problem(input_data, context)

        analysis = await self._complete_json(
            self._analysis_prompt(trigger.type, problem), RootCauseResponse
        )
        proposed = await self._complete_json(
            _ACTIONS_PROMPT.format(
                trigger=trigger.type.value,
                root_causes=json.dumps(analysis.root_causes, indent=2),
                impacted_areas=json.dumps(analysis.impacted_areas, indent=2),
            ),
            RefinementActionsResponse,
        )

        actions = [
            RefinementAction(
                action_id=f"ACT-{index:03d}",
                type=action.type,
                priority=action.priority,
                description=action.description,
                target_files=action.target_files,
                specific_changes=action.specific_changes,
                acceptance_criteria=action.acceptance_criteria,
                estimated_minutes=action.estimated_minutes or 30,
            )
            for index, action in enumerate(proposed.actions, start=1)
        ]
        total_minutes = sum(a.estimated_minutes for a in actions)

        return RefinementPlan(
            refinement_id=generate_stage_id("REF", context.feature_id),
            feature_id=input_data.feature_id,
            iteration=context.iteration,
            timestamp=self._timestamp(),
            refiner=self._stamp(context),
            source=RefinementSource(
                type=trigger.type,
                trigger_id=trigger.source_id,
                artifact_path=trigger.artifact_path,
            ),
            analysis=RootCauseAnalysis(
                root_causes=analysis.root_causes,
                impacted_areas=analysis.impacted_areas,
                risk_level=analysis.risk_level,
            ),
            actions=actions,
            estimated_effort=EstimatedEffort(
                hours=math.ceil(total_minutes / 60),
                complexity=determine_complexity(actions, analysis.risk_level),
            ),
            priority=determine_priority(actions, analysis.risk_level),
        )

    def validate_output(self, output: RefinementPlan) -> None:
        if not output.analysis.root_causes:
            raise OutputValidationError(
                "Refinement plan must name at least one root cause",
                field="analysis.root_causes",
            )
        if not output.actions:
            raise OutputValidationError(
                "Refinement plan must contain at least one action", field="actions"
            )
        for action in output.actions:
            if not action.acceptance_criteria:
                raise OutputValidationError(
                    f"Action {action.action_id} has no acceptance criteria",
                    field="actions.acceptance_criteria",
                )

    # ------------------------------------------------------------------

    async def _load_problem(
        self, input_data: RefinerInput, context: AgentContext
    ) -> dict[str, Any]:
        if input_data.source_report:
            return input_data.source_report

        path = input_data.trigger_source.artifact_path
        if path:
            try:
                data: dict[str, Any] = await self._deps.artifact_store.load(path)
                return data
            except KeyError:
                self._logger.warning("[%s] Source artifact %s missing", context.feature_id, path)

        stored = await self.load_previous_artifact(
            _SOURCE_AGENT[input_data.trigger_source.type], context
        )
        return stored or {}

    @staticmethod
    def _analysis_prompt(trigger: TriggerType, problem: dict[str, Any]) -> str:
        if trigger == TriggerType.TEST_FAILURE:
            summary = problem.get("summary") or {}
            return _TEST_FAILURE_PROMPT.format(
                failures=json.dumps(problem.get("failures", []), indent=2),
                total=summary.get("totalTests", 0),
                failed=summary.get("failed", 0),
            )
        return _REVIEW_PROMPT.format(
            issues=json.dumps((problem.get("codeQuality") or {}).get("issues", []), indent=2),
            vulnerabilities=json.dumps(
                (problem.get("security") or {}).get("vulnerabilities", []), indent=2
            ),
            violations=json.dumps((problem.get("patterns") or {}).get("violations", []), indent=2),
            score=problem.get("overallScore", 0),
        )
