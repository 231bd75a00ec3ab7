"""
Domain exceptions for the feature delivery pipeline.

Agent-level errors (validation, external services) are converted into failed
AgentResults at the agent boundary. Orchestrator-level errors (iteration
limit, registry misses, cancellation) fail the whole workflow.
"""


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ConfigurationError(PipelineError):
    """Raised when configuration files or environment values are invalid."""


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(PipelineError):
    """A stage input or output violated its contract."""

    def __init__(self, message: str, field: str | None = None):
        """
        Args:
            message: Human-readable error message
            field: Name of the offending field, when one can be named
        """
        super().__init__(message)
        self.field = field


class InputValidationError(ValidationError):
    """Malformed or missing fields in an agent's input. Raised before any side effect."""


class OutputValidationError(ValidationError):
    """A stage produced output missing a required invariant."""


# =============================================================================
# EXTERNAL SERVICES
# =============================================================================


class ExternalServiceError(PipelineError):
    """The completion service or the command runner failed."""


class ResponseParseError(ExternalServiceError):
    """The completion service returned text that is not valid JSON."""

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        self.raw_response = raw_response


class ResponseSchemaError(ExternalServiceError):
    """The completion service returned JSON that does not match the stage schema."""

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        self.raw_response = raw_response


# =============================================================================
# ORCHESTRATION
# =============================================================================


class IterationLimitExceeded(PipelineError):
    """
    Raised when a workflow would run more refinement passes than allowed.

    This is a hard failure: the workflow transitions to failed rather than
    silently capping the counter.
    """

    def __init__(self, feature_id: str, iteration: int, max_iterations: int):
        super().__init__(
            f"Max iterations ({max_iterations}) exceeded for {feature_id} "
            f"(iteration {iteration})"
        )
        self.feature_id = feature_id
        self.iteration = iteration
        self.max_iterations = max_iterations


class UnknownWorkflow(PipelineError, KeyError):
    """No workflow is registered under the given feature id."""

    def __init__(self, feature_id: str):
        super().__init__(f"Workflow {feature_id} not found")
        self.feature_id = feature_id

    def __str__(self) -> str:
        return str(self.args[0])


class UnknownAgent(PipelineError, KeyError):
    """No agent is registered under the given name."""

    def __init__(self, agent: str):
        super().__init__(f"Agent {agent} not found in registry")
        self.agent = agent

    def __str__(self) -> str:
        return str(self.args[0])


class WorkflowCancelled(PipelineError):
    """The workflow was cancelled while in flight."""


class StageTimeout(PipelineError):
    """A stage did not finish within the configured ``stage_timeout``."""

    def __init__(self, agent: str, timeout: float):
        super().__init__(f"{agent} did not finish within {timeout}s")
        self.agent = agent
        self.timeout = timeout


class ConcurrentUpdateError(PipelineError):
    """A compare-and-set update lost against a concurrent writer."""

    def __init__(self, feature_id: str, expected: int, actual: int):
        super().__init__(
            f"Concurrent update on {feature_id}: expected version {expected}, found {actual}"
        )
        self.feature_id = feature_id
        self.expected = expected
        self.actual = actual
