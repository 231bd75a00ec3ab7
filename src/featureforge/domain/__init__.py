"""
Domain layer for the feature delivery pipeline.

Contains models, routing and ports with no external dependencies.
"""

from featureforge.domain.exceptions import (
    ConcurrentUpdateError,
    ConfigurationError,
    ExternalServiceError,
    InputValidationError,
    IterationLimitExceeded,
    OutputValidationError,
    PipelineError,
    ResponseParseError,
    ResponseSchemaError,
    UnknownAgent,
    UnknownWorkflow,
    ValidationError,
    WorkflowCancelled,
)
from featureforge.domain.interfaces import (
    ArtifactStoreInterface,
    CommandRunnerInterface,
    CompletionServiceInterface,
    WorkflowEventStoreInterface,
    WorkflowRepositoryInterface,
)
from featureforge.domain.models import (
    AgentContext,
    AgentName,
    AgentResult,
    CancellationToken,
    CommandResult,
    ContextMetadata,
    ExecutionMetadata,
    FeatureRequest,
    Priority,
    StageOutcome,
    TriggerType,
    WorkflowState,
    WorkflowStatus,
)
from featureforge.domain.routing import STAGES, StageSpec, artifact_path, next_agent
from featureforge.domain.workflow_event import WorkflowEvent, WorkflowEventType

__all__ = [
    # Models
    "AgentContext",
    "AgentName",
    "AgentResult",
    "CancellationToken",
    "CommandResult",
    "ContextMetadata",
    "ExecutionMetadata",
    "FeatureRequest",
    "Priority",
    "StageOutcome",
    "TriggerType",
    "WorkflowState",
    "WorkflowStatus",
    "WorkflowEvent",
    "WorkflowEventType",
    # Routing
    "STAGES",
    "StageSpec",
    "artifact_path",
    "next_agent",
    # Interfaces
    "ArtifactStoreInterface",
    "CommandRunnerInterface",
    "CompletionServiceInterface",
    "WorkflowEventStoreInterface",
    "WorkflowRepositoryInterface",
    # Exceptions
    "PipelineError",
    "ConfigurationError",
    "ValidationError",
    "InputValidationError",
    "OutputValidationError",
    "ExternalServiceError",
    "ResponseParseError",
    "ResponseSchemaError",
    "IterationLimitExceeded",
    "UnknownWorkflow",
    "UnknownAgent",
    "WorkflowCancelled",
    "ConcurrentUpdateError",
]
