"""Analyzer agent: turns a feature request into requirements and impact."""

from typing import Any

from featureforge.agents.base import BaseAgent
from featureforge.domain.exceptions import InputValidationError, OutputValidationError
from featureforge.domain.models import (
    AgentContext,
    AgentName,
    FeatureRequest,
    Priority,
    validate_feature_request,
)
from featureforge.schemas.responses import AnalysisResponse
from featureforge.schemas.stages import (
    FeatureAnalysis,
    FeatureSummary,
    Impact,
    Requirements,
)

CATEGORIES = ("enhancement", "new-feature", "bug-fix", "refactoring")

_PROMPT = """Analyze this feature request and extract its requirements.

Feature ID: {feature_id}
Title: {title}
Description: {description}
Priority: {priority}

Return JSON with these keys:
- category: one of {categories}
- businessValue: one sentence
- functionalRequirements: [{{"id": "FR-001", "description": str, "priority": "must-have|should-have|could-have"}}]
- nonFunctionalRequirements: [{{"id": "NFR-001", "type": "performance|security|scalability|usability", "description": str}}]
- modulesAffected: [str]
- databasesAffected: [str]
- externalServices: [str]
- complexity: "low|medium|high"
- dependencies: [{{"type": "feature|service|library|configuration", "name": str, "action": str}}]
- risks: [{{"description": str, "severity": "low|medium|high", "mitigation": str}}]"""


def categorize(title: str, description: str) -> str:
    """Keyword fallback used when the model gives no category."""
    title = title.lower()
    description = description.lower()

    if "fix" in title or "fix" in description or "bug" in description:
        return "bug-fix"
    if "refactor" in title or "refactor" in description or "improve" in description:
        return "refactoring"
    if any(word in title for word in ("add", "create", "new")) or "add new" in description:
        return "new-feature"
    if any(word in title for word in ("update", "enhance", "extend")):
        return "enhancement"
    return "enhancement"


class AnalyzerAgent(BaseAgent[FeatureRequest, FeatureAnalysis]):
    name = AgentName.ANALYZER
    role = "Analyzer"
    role_prompt = (
        "You read feature requests and extract functional and non-functional "
        "requirements, affected modules, dependencies and risks."
    )

    def coerce_input(self, input_data: Any) -> FeatureRequest:
        if isinstance(input_data, FeatureRequest):
            return input_data
        if isinstance(input_data, dict):
            return FeatureRequest.from_dict(input_data)
        raise InputValidationError(
            f"AnalyzerAgent expects a FeatureRequest, got {type(input_data).__name__}"
        )

    def validate_input(self, input_data: FeatureRequest) -> None:
        validate_feature_request(input_data)

    async def process(
        self, input_data: FeatureRequest, context: AgentContext
    ) -> FeatureAnalysis:
        priority = Priority(input_data.priority)
        prompt = _PROMPT.format(
            feature_id=context.feature_id,
            title=input_data.title,
            description=input_data.description,
            priority=priority.value,
            categories=", ".join(CATEGORIES),
        )
        response = await self._complete_json(prompt, AnalysisResponse)

        category = response.category
        if category not in CATEGORIES:
            category = categorize(input_data.title, input_data.description)

        self._logger.debug(
            "[%s] Analysis: %d functional requirement(s), category %s",
            context.feature_id,
            len(response.functional_requirements),
            category,
        )

        return FeatureAnalysis(
            feature_id=context.feature_id,
            timestamp=self._timestamp(),
            analyzer=self._stamp(context),
            feature=FeatureSummary(
                title=input_data.title,
                description=input_data.description,
                category=category,
                priority=priority.value,
                business_value=response.business_value or "To be defined",
            ),
            requirements=Requirements(
                functional=response.functional_requirements,
                non_functional=response.non_functional_requirements,
            ),
            impact=Impact(
                modules=response.modules_affected,
                databases=response.databases_affected,
                external_services=response.external_services,
                estimated_complexity=response.complexity,
            ),
            dependencies=response.dependencies,
            risks=response.risks,
        )

    def validate_output(self, output: FeatureAnalysis) -> None:
        if not output.requirements.functional:
            raise OutputValidationError(
                "Analysis must contain at least one functional requirement",
                field="requirements.functional",
            )
        if output.impact is None:
            raise OutputValidationError("Analysis must contain an impact section", field="impact")

