"""
BaseAgent: the contract every pipeline stage implements.

``execute`` runs a fixed template:

    1. coerce_input / validate_input  (InputValidationError, no side effects)
    2. process                        (stage-specific async transform)
    3. validate_output                (OutputValidationError)
    4. persist the artifact           (exactly one write)
    5. emit one event                 (AGENT_COMPLETED or AGENT_FAILED)

Any exception from steps 1-4 becomes a failure AgentResult. The contract
never retries a stage; only the explicit Tester/Reviewer -> Refiner branch
re-enters execution. Cancellation propagates to the caller.
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from featureforge.application.workflow_event_emitter import WorkflowEventEmitter
from featureforge.config import PipelineConfig
from featureforge.domain import routing
from featureforge.domain.exceptions import (
    ExternalServiceError,
    InputValidationError,
    ResponseParseError,
    ResponseSchemaError,
    WorkflowCancelled,
)
from featureforge.domain.extraction import strip_code_fences
from featureforge.domain.interfaces import (
    ArtifactStoreInterface,
    CommandRunnerInterface,
    CompletionServiceInterface,
    WorkflowEventStoreInterface,
)
from featureforge.domain.models import (
    AgentContext,
    AgentName,
    AgentResult,
    ExecutionMetadata,
    utc_now,
)
from featureforge.schemas.stages import AgentStamp, StageModel

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT", bound=StageModel)
ModelT = TypeVar("ModelT", bound=BaseModel)

AGENT_VERSION = "1.0.0"


@dataclass
class AgentDependencies:
    """Collaborators shared by every agent."""

    artifact_store: ArtifactStoreInterface
    completion: CompletionServiceInterface
    commands: CommandRunnerInterface
    config: PipelineConfig = field(default_factory=PipelineConfig)
    event_store: WorkflowEventStoreInterface | None = None

    @property
    def project_root(self) -> Path:
        return Path(self.config.project_root).resolve()


def parse_json_response(raw: str, schema: type[ModelT]) -> ModelT:
    """
    Parse a completion as JSON and validate it against a schema.

    Args:
        raw: Raw completion text, optionally wrapped in markdown fences
        schema: Pydantic model the JSON must satisfy

    Returns:
        The validated model

    Raises:
        ResponseParseError: If the text is not valid JSON
        ResponseSchemaError: If the JSON does not match the schema
    """
    cleaned = strip_code_fences(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseParseError(
            f"Completion is not valid JSON: {e}", raw_response=raw[:500]
        ) from e

    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise ResponseSchemaError(
            f"Completion does not match {schema.__name__}: {e.error_count()} error(s)",
            raw_response=raw[:500],
        ) from e


def input_error_from_pydantic(
    error: PydanticValidationError, model_name: str
) -> InputValidationError:
    """Convert a pydantic error into an InputValidationError naming the first field."""
    first = error.errors()[0]
    field_name = ".".join(str(p) for p in first["loc"]) or None
    return InputValidationError(
        f"Invalid {model_name}: {field_name}: {first['msg']}", field=field_name
    )


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """
    Template for one pipeline stage.

    Subclasses set ``name`` and ``role`` and implement ``coerce_input``,
    ``validate_input``, ``process`` and ``validate_output``.
    """

    name: ClassVar[AgentName]
    role: ClassVar[str]
    role_prompt: ClassVar[str] = ""

    def __init__(self, deps: AgentDependencies):
        """
        Args:
            deps: Shared collaborators (stores, completion, commands, config)
        """
        self._deps = deps
        self._logger = logging.getLogger(type(self).__module__)

    # ------------------------------------------------------------------
    # Template
    # ------------------------------------------------------------------

    async def execute(self, input_data: Any, context: AgentContext) -> AgentResult:
        """
        Run the stage end to end.

        Args:
            input_data: Stage input (model instance or equivalent dict)
            context: Immutable invocation context

        Returns:
            AgentResult describing success or failure. Never raises for
            stage errors.

        Raises:
            asyncio.CancelledError: If the invocation task is cancelled
            WorkflowCancelled: If the context's cancellation token is set
        """
        started = time.monotonic()
        feature_id = context.feature_id
        self._logger.info(
            "[%s] Starting %s (iteration %d)", feature_id, self.name.value, context.iteration
        )

        try:
            context.cancellation.raise_if_cancelled()

            # 1. Validate input
            parsed = self.coerce_input(input_data)
            self.validate_input(parsed)

            # 2. Process
            output = await self.process(parsed, context)
            next_agent = self.get_next_agent(output, context)
            output.next_agent = next_agent

            # 3. Validate output
            self.validate_output(output)

            # 4. Persist artifact
            artifact_path = await self._deps.artifact_store.save(
                routing.artifact_path(feature_id, self.name),
                output.to_artifact(),
                agent=self.name,
                iteration=context.iteration,
            )
        except WorkflowCancelled:
            raise
        except Exception as e:
            duration_ms = self._elapsed_ms(started)
            self._logger.error("[%s] %s failed: %s", feature_id, self.name.value, e)
            self._emitter(feature_id).agent_failed(
                self.name, context.iteration, str(e), duration_ms
            )
            return AgentResult(
                success=False,
                agent=self.name,
                error=str(e),
                error_kind=type(e).__name__,
                next_agent=None,
                artifact_path="",
                metadata=self._metadata(duration_ms, context),
            )

        duration_ms = self._elapsed_ms(started)
        self._logger.info(
            "[%s] %s finished in %dms. Next: %s",
            feature_id,
            self.name.value,
            duration_ms,
            next_agent.value if next_agent else "END",
        )
        self._emitter(feature_id).agent_completed(
            self.name, context.iteration, artifact_path, next_agent, duration_ms
        )
        return AgentResult(
            success=True,
            agent=self.name,
            output=output,
            next_agent=next_agent,
            artifact_path=artifact_path,
            metadata=self._metadata(duration_ms, context),
        )

    # ------------------------------------------------------------------
    # Stage hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def coerce_input(self, input_data: Any) -> InputT:
        """Turn raw input into the stage's input type. Raises InputValidationError."""
        pass

    @abstractmethod
    def validate_input(self, input_data: InputT) -> None:
        """Check input invariants. Raises InputValidationError."""
        pass

    @abstractmethod
    async def process(self, input_data: InputT, context: AgentContext) -> OutputT:
        """Stage-specific transform of input and context into an output model."""
        pass

    @abstractmethod
    def validate_output(self, output: OutputT) -> None:
        """Check output invariants. Raises OutputValidationError."""
        pass

    def get_next_agent(self, output: OutputT, context: AgentContext) -> AgentName | None:
        """Pure routing decision over this agent's own output."""
        return routing.next_agent(self.name, output)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    @property
    def config(self) -> PipelineConfig:
        return self._deps.config

    @property
    def system_prompt(self) -> str:
        return (
            f"You are the {self.role} agent of an automated feature delivery pipeline.\n"
            f"{self.role_prompt}\n"
            "Respond with a single JSON object and nothing else."
        )

    def _coerce_model(self, input_data: Any, model: type[ModelT]) -> ModelT:
        if isinstance(input_data, model):
            return input_data
        if isinstance(input_data, BaseModel):
            input_data = input_data.model_dump(by_alias=True)
        if not isinstance(input_data, dict):
            raise InputValidationError(
                f"{self.name.value} expects a {model.__name__}, got {type(input_data).__name__}"
            )
        try:
            return model.model_validate(input_data)
        except PydanticValidationError as e:
            raise input_error_from_pydantic(e, model.__name__) from e

    async def _complete_json(self, prompt: str, schema: type[ModelT]) -> ModelT:
        """
        Request a structured completion with bounded retry.

        Transport, parse and schema errors are retried up to
        ``llm.parse_retries`` times, sleeping ``retry_backoff * 2**attempt``
        seconds between attempts.

        Raises:
            ExternalServiceError: When every attempt failed
        """
        llm = self.config.llm
        attempts = max(llm.parse_retries, 0) + 1
        attempt = 0

        while True:
            try:
                raw = await self._deps.completion.complete(prompt, self.system_prompt)
                return parse_json_response(raw, schema)
            except ExternalServiceError as e:
                attempt += 1
                if attempt >= attempts:
                    raise
                delay = llm.retry_backoff * (2 ** (attempt - 1))
                self._logger.warning(
                    "%s completion attempt %d/%d failed: %s. Retrying in %.1fs",
                    self.name.value,
                    attempt,
                    attempts,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)

    async def load_previous_artifact(
        self, agent: AgentName, context: AgentContext
    ) -> dict[str, Any] | None:
        """Load an earlier stage's artifact, or None if that stage has not run."""
        path = context.artifact_path_for(agent)
        if not path:
            return None
        try:
            data: dict[str, Any] = await self._deps.artifact_store.load(path)
            return data
        except KeyError:
            self._logger.warning(
                "[%s] Artifact of %s missing at %s", context.feature_id, agent.value, path
            )
            return None

    def _stamp(self, context: AgentContext | None = None) -> AgentStamp:
        return AgentStamp(
            agent_version=AGENT_VERSION,
            date=date.today().isoformat(),
            iteration=context.iteration if context else None,
        )

    @staticmethod
    def _timestamp() -> str:
        return utc_now().isoformat()

    def _emitter(self, feature_id: str) -> "_Emitter":
        if self._deps.event_store is None:
            return _NullEmitter()
        return WorkflowEventEmitter(self._deps.event_store, feature_id)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    @staticmethod
    def _metadata(duration_ms: int, context: AgentContext) -> ExecutionMetadata:
        return ExecutionMetadata(
            duration_ms=duration_ms,
            timestamp=utc_now().isoformat(),
            iteration=context.iteration,
        )


class _NullEmitter:
    """Stands in for the emitter when no event store is wired."""

    def agent_completed(self, *args: Any) -> None:
        pass

    def agent_failed(self, *args: Any) -> None:
        pass


_Emitter = WorkflowEventEmitter | _NullEmitter
