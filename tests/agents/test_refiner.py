"""Tests for the Refiner agent."""

import re

import pytest
from support import FEATURE_ID, REFINEMENT_RESPONSE

from featureforge.agents import RefinerAgent
from featureforge.agents.refiner import determine_complexity, determine_priority
from featureforge.domain.models import AgentName, TriggerType
from featureforge.domain.routing import artifact_path
from featureforge.infrastructure.llm import MockCompletionService
from featureforge.schemas.stages import RefinementAction


def action(priority: str = "medium", minutes: int = 30) -> RefinementAction:
    return RefinementAction(
        action_id="ACT-001",
        priority=priority,
        description="fix it",
        acceptance_criteria=["fixed"],
        estimated_minutes=minutes,
    )


def refiner_input(test_results_artifact, **trigger) -> dict:
    return {
        "featureId": FEATURE_ID,
        "triggerSource": {
            "type": "test-failure",
            "sourceId": test_results_artifact["testResultsId"],
            **trigger,
        },
    }


# =============================================================================
# Complexity and priority
# =============================================================================


class TestDetermineComplexity:
    """Tests for determine_complexity."""

    def test_small_plan_is_low(self):
        """Few minutes and low risk is low complexity."""
        assert determine_complexity([action()], "low") == "low"

    def test_over_an_hour_is_medium(self):
        """More than 60 minutes is medium."""
        assert determine_complexity([action(minutes=40), action(minutes=30)], "low") == "medium"

    def test_any_critical_action_is_medium(self):
        """One critical action raises complexity to medium."""
        assert determine_complexity([action("critical")], "low") == "medium"

    def test_high_risk_is_medium(self):
        """High risk alone is medium."""
        assert determine_complexity([action()], "high") == "medium"

    def test_many_critical_actions_is_high(self):
        """More than two critical actions is high."""
        assert determine_complexity([action("critical")] * 3, "low") == "high"

    def test_over_three_hours_is_high(self):
        """More than 180 minutes is high."""
        assert determine_complexity([action(minutes=181)], "low") == "high"

    def test_critical_risk_is_high(self):
        """Critical risk is high complexity."""
        assert determine_complexity([action()], "critical") == "high"


class TestDeterminePriority:
    """Tests for determine_priority."""

    @pytest.mark.parametrize(
        "priorities,risk,expected",
        [
            (["low"], "critical", "critical"),
            (["critical", "low"], "low", "critical"),
            (["high"], "low", "high"),
            (["low"], "high", "high"),
            (["low"], "medium", "medium"),
            (["medium"], "low", "low"),
        ],
    )
    def test_priority(self, priorities, risk, expected):
        """The highest of action priority and risk level wins, down to medium risk."""
        actions = [action(p) for p in priorities]
        assert determine_priority(actions, risk) == expected


# =============================================================================
# Agent
# =============================================================================


class TestRefinerAgent:
    """Tests for RefinerAgent.execute."""

    @pytest.mark.asyncio
    async def test_plans_actions_from_source_report(
        self, deps, make_context, test_results_artifact
    ):
        """The plan numbers actions and carries effort, priority and source."""
        data = {**refiner_input(test_results_artifact), "sourceReport": test_results_artifact}

        result = await RefinerAgent(deps).execute(data, make_context(iteration=2))

        assert result.success
        assert result.next_agent == AgentName.EXECUTOR
        plan = result.output
        assert re.fullmatch(r"REF-000123-\d{6}", plan.refinement_id)
        assert plan.iteration == 2
        assert plan.source.type == TriggerType.TEST_FAILURE
        assert plan.source.trigger_id == "TEST-000123-000001"
        assert plan.analysis.root_causes == ["Export route is not registered"]
        assert [a.action_id for a in plan.actions] == ["ACT-001"]
        assert plan.actions[0].estimated_minutes == 45
        assert plan.estimated_effort.hours == 1
        assert plan.estimated_effort.complexity == "low"
        assert plan.priority == "high"

    @pytest.mark.asyncio
    async def test_test_failure_prompt(self, deps, make_context, test_results_artifact):
        """Test failures are analyzed with the failure list and counts."""
        test_results_artifact["failures"] = [{"testName": "exports orders as CSV"}]
        test_results_artifact["summary"]["totalTests"] = 4
        test_results_artifact["summary"]["failed"] = 1
        data = {**refiner_input(test_results_artifact), "sourceReport": test_results_artifact}

        await RefinerAgent(deps).execute(data, make_context())

        analysis_prompt, actions_prompt = (call[0] for call in deps.completion.calls)
        assert "exports orders as CSV" in analysis_prompt
        assert "Summary: 4 test(s), 1 failed." in analysis_prompt
        assert "Trigger: test-failure" in actions_prompt
        assert "Export route is not registered" in actions_prompt

    @pytest.mark.asyncio
    async def test_review_rejection_prompt(self, deps, make_context, review_artifact):
        """Review rejections are analyzed with issues and score."""
        review_artifact["codeQuality"]["issues"] = [
            {"type": "error", "category": "complexity", "description": "Deeply nested loop"}
        ]
        data = {
            "featureId": FEATURE_ID,
            "triggerSource": {"type": "review-rejection", "sourceId": review_artifact["reviewId"]},
            "sourceReport": review_artifact,
        }

        result = await RefinerAgent(deps).execute(data, make_context())

        prompt = deps.completion.calls[0][0]
        assert "Deeply nested loop" in prompt
        assert "Overall score: 92/100" in prompt
        assert result.output.source.type == TriggerType.REVIEW_REJECTION

    @pytest.mark.asyncio
    async def test_loads_report_from_artifact_path(
        self, deps, artifact_store, make_context, test_results_artifact
    ):
        """Without an inline report the trigger's artifact path is read."""
        test_results_artifact["failures"] = [{"testName": "stored failure"}]
        path = artifact_path(FEATURE_ID, AgentName.TESTER)
        await artifact_store.save(path, test_results_artifact)

        result = await RefinerAgent(deps).execute(
            refiner_input(test_results_artifact, artifactPath=path), make_context()
        )

        assert result.output.source.artifact_path == path
        assert "stored failure" in deps.completion.calls[0][0]

    @pytest.mark.asyncio
    async def test_falls_back_to_previous_source_artifact(
        self, deps, artifact_store, make_context, test_results_artifact
    ):
        """A missing artifact path falls back to the source agent's last artifact."""
        test_results_artifact["failures"] = [{"testName": "previous failure"}]
        path = artifact_path(FEATURE_ID, AgentName.TESTER)
        await artifact_store.save(path, test_results_artifact)
        context = make_context(previous={AgentName.TESTER: path})

        result = await RefinerAgent(deps).execute(
            refiner_input(test_results_artifact, artifactPath="gone/tester.json"), context
        )

        assert result.success
        assert "previous failure" in deps.completion.calls[0][0]

    @pytest.mark.asyncio
    async def test_no_root_causes_fails(self, deps, make_context, test_results_artifact):
        """A plan without root causes fails output validation."""
        deps.completion = MockCompletionService(
            by_role={"refiner": [{**REFINEMENT_RESPONSE, "rootCauses": []}]}
        )

        result = await RefinerAgent(deps).execute(
            refiner_input(test_results_artifact), make_context()
        )

        assert not result.success
        assert result.error_kind == "OutputValidationError"

    @pytest.mark.asyncio
    async def test_action_without_criteria_fails(self, deps, make_context, test_results_artifact):
        """Every action needs acceptance criteria."""
        unverifiable = {**REFINEMENT_RESPONSE["actions"][0], "acceptanceCriteria": []}
        deps.completion = MockCompletionService(
            by_role={"refiner": [{**REFINEMENT_RESPONSE, "actions": [unverifiable]}]}
        )

        result = await RefinerAgent(deps).execute(
            refiner_input(test_results_artifact), make_context()
        )

        assert result.error_kind == "OutputValidationError"
        assert "ACT-001" in result.error

    @pytest.mark.asyncio
    async def test_missing_source_id_rejected(self, deps, make_context):
        """A trigger without a source id is invalid input."""
        data = {"featureId": FEATURE_ID, "triggerSource": {"type": "test-failure", "sourceId": ""}}

        result = await RefinerAgent(deps).execute(data, make_context())

        assert result.error_kind == "InputValidationError"
        assert deps.completion.call_count == 0
