"""
featureforge: a multi-agent feature delivery pipeline.

A feature request flows through eight agents (analysis, planning, task
breakdown, execution, testing, review, refinement, delivery). Each agent
persists one JSON artifact and names the next agent; failed tests and
rejected reviews loop back through a bounded refinement cycle.

Example:
    from featureforge import PipelineConfig, build_orchestrator

    orchestrator = build_orchestrator(PipelineConfig(project_root="../my-app"))
    state = await orchestrator.run_workflow({
        "title": "Add CSV export",
        "description": "Export the orders table as CSV from the admin page",
        "priority": "high",
    })
"""

__version__ = "0.1.0"

# Agents
from featureforge.agents import AgentDependencies, BaseAgent, build_agents

# Application layer (orchestration)
from featureforge.application import WorkflowEventEmitter, WorkflowOrchestrator
from featureforge.bootstrap import build_orchestrator
from featureforge.config import CommandsConfig, LLMConfig, PipelineConfig, load_config

# Domain exceptions
from featureforge.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    InputValidationError,
    IterationLimitExceeded,
    OutputValidationError,
    PipelineError,
    UnknownAgent,
    UnknownWorkflow,
    WorkflowCancelled,
)

# Domain models
from featureforge.domain.models import (
    AgentContext,
    AgentName,
    AgentResult,
    FeatureRequest,
    Priority,
    WorkflowState,
    WorkflowStatus,
)

__all__ = [
    "__version__",
    # Domain models
    "AgentContext",
    "AgentName",
    "AgentResult",
    "FeatureRequest",
    "Priority",
    "WorkflowState",
    "WorkflowStatus",
    # Exceptions
    "ConfigurationError",
    "ExternalServiceError",
    "InputValidationError",
    "IterationLimitExceeded",
    "OutputValidationError",
    "PipelineError",
    "UnknownAgent",
    "UnknownWorkflow",
    "WorkflowCancelled",
    # Config
    "CommandsConfig",
    "LLMConfig",
    "PipelineConfig",
    "load_config",
    # Agents and orchestration
    "AgentDependencies",
    "BaseAgent",
    "WorkflowEventEmitter",
    "WorkflowOrchestrator",
    "build_agents",
    "build_orchestrator",
]
