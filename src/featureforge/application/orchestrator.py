"""
WorkflowOrchestrator: drives one feature through the agent pipeline.

Each workflow runs as its own asyncio task. Inside a task, stages run
strictly in sequence: the orchestrator invokes the current agent, records
the outcome, follows the agent's ``next_agent`` and repeats until the
Deliverer finishes or something fails.

The refinement cycle (Tester/Reviewer -> Refiner -> Executor) is bounded:
the iteration counter goes up by one on every Refiner -> Executor
transition and the workflow fails once it would exceed ``max_iterations``.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from featureforge.application.workflow_event_emitter import WorkflowEventEmitter
from featureforge.config import PipelineConfig
from featureforge.domain.exceptions import (
    IterationLimitExceeded,
    PipelineError,
    StageTimeout,
    UnknownAgent,
    UnknownWorkflow,
)
from featureforge.domain.identifiers import generate_feature_id
from featureforge.domain.interfaces import (
    WorkflowEventStoreInterface,
    WorkflowRepositoryInterface,
)
from featureforge.domain.models import (
    AgentContext,
    AgentName,
    AgentResult,
    CancellationToken,
    ContextMetadata,
    ExecutionMetadata,
    FeatureRequest,
    StageOutcome,
    TriggerType,
    WorkflowState,
    WorkflowStatus,
    utc_now,
    validate_feature_request,
)
from featureforge.domain.workflow_event import WorkflowEvent
from featureforge.schemas.stages import RefinerInput, TriggerSource

if TYPE_CHECKING:
    from featureforge.agents.base import BaseAgent

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 10

_TRIGGERS = {
    AgentName.TESTER: (TriggerType.TEST_FAILURE, "test_results_id"),
    AgentName.REVIEWER: (TriggerType.REVIEW_REJECTION, "review_id"),
}


class WorkflowOrchestrator:
    """
    Registers workflows and runs them in the background.

    The orchestrator is the only writer of WorkflowState. All writes go
    through ``compare_and_set`` on the repository.
    """

    def __init__(
        self,
        agents: dict[AgentName, "BaseAgent"],
        repository: WorkflowRepositoryInterface | None = None,
        event_store: WorkflowEventStoreInterface | None = None,
        config: PipelineConfig | None = None,
    ):
        """
        Args:
            agents: Registry of agent instances keyed by name
            repository: Workflow state store (creates InMemory if None)
            event_store: Event trace store (creates InMemory if None)
            config: Pipeline configuration (defaults if None)
        """
        # Lazy import to keep the application layer free of adapters
        if repository is None:
            from featureforge.infrastructure.persistence import InMemoryWorkflowRepository

            repository = InMemoryWorkflowRepository()
        if event_store is None:
            from featureforge.infrastructure.persistence import InMemoryWorkflowEventStore

            event_store = InMemoryWorkflowEventStore()

        self._agents = dict(agents)
        self._repository = repository
        self._event_store = event_store
        self._config = config or PipelineConfig()
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._tokens: dict[str, CancellationToken] = {}

    @property
    def agent_names(self) -> list[AgentName]:
        return list(self._agents)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start_workflow(self, request: FeatureRequest | dict[str, Any]) -> str:
        """
        Validate a request, register its workflow and start it in the background.

        Args:
            request: Feature request (or its JSON-style dict)

        Returns:
            The new feature id

        Raises:
            InputValidationError: If the request is invalid. Nothing is
                created in that case.
        """
        if isinstance(request, dict):
            request = FeatureRequest.from_dict(request)
        priority = validate_feature_request(request)

        feature_id = await self._allocate_feature_id()
        state = WorkflowState(
            id=feature_id,
            feature_id=feature_id,
            title=request.title,
            priority=priority,
            requested_by=request.requested_by,
            max_iterations=self._config.max_iterations,
        )
        await self._repository.create(state)
        self._emitter(feature_id).workflow_started(request.title)
        logger.info("[%s] Workflow started: %s", feature_id, request.title)

        token = CancellationToken()
        self._tokens[feature_id] = token
        self._tasks[feature_id] = asyncio.create_task(
            self._run(feature_id, request, token), name=f"workflow-{feature_id}"
        )
        return feature_id

    async def run_workflow(self, request: FeatureRequest | dict[str, Any]) -> WorkflowState:
        """Start a workflow and wait for its terminal state."""
        feature_id = await self.start_workflow(request)
        return await self.wait_for_workflow(feature_id)

    async def get_workflow_status(self, feature_id: str) -> WorkflowState:
        """
        Snapshot of a workflow's state.

        Raises:
            UnknownWorkflow: If no workflow has this id
        """
        return await self._repository.get(feature_id)

    async def list_active_workflows(self) -> list[WorkflowState]:
        return await self._repository.list(status=WorkflowStatus.RUNNING)

    async def get_events(self, feature_id: str) -> list[WorkflowEvent]:
        """
        Event trace of a workflow, oldest first.

        Raises:
            UnknownWorkflow: If no workflow has this id
        """
        if not await self._repository.exists(feature_id):
            raise UnknownWorkflow(feature_id)
        return self._event_store.get_events(feature_id)

    async def wait_for_workflow(self, feature_id: str) -> WorkflowState:
        """Wait until the workflow's background task ends and return its state."""
        task = self._tasks.get(feature_id)
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return await self.get_workflow_status(feature_id)

    async def cancel_workflow(self, feature_id: str, reason: str = "cancelled") -> WorkflowState:
        """
        Cancel a running workflow. It ends as failed with a cancellation error.

        Raises:
            UnknownWorkflow: If no workflow has this id
        """
        state = await self.get_workflow_status(feature_id)
        task = self._tasks.get(feature_id)
        if not state.is_running or task is None or task.done():
            return state

        self._tokens[feature_id].cancel(reason)
        task.cancel()
        return await self.wait_for_workflow(feature_id)

    async def shutdown(self) -> None:
        """Cancel every workflow still running."""
        for feature_id, task in list(self._tasks.items()):
            if not task.done():
                await self.cancel_workflow(feature_id, reason="shutdown")

    # ------------------------------------------------------------------
    # Dispatch loop
    # ------------------------------------------------------------------

    async def _run(
        self, feature_id: str, request: FeatureRequest, token: CancellationToken
    ) -> None:
        try:
            await self._dispatch(feature_id, request, token)
        except asyncio.CancelledError:
            await self._fail(feature_id, f"Workflow cancelled: {token.reason}")
            raise
        except PipelineError as e:
            await self._fail(feature_id, str(e))
        except Exception as e:
            logger.exception("[%s] Unexpected orchestrator error", feature_id)
            await self._fail(feature_id, f"{type(e).__name__}: {e}")

    async def _dispatch(
        self, feature_id: str, request: FeatureRequest, token: CancellationToken
    ) -> None:
        state = await self._repository.get(feature_id)
        metadata = ContextMetadata(
            started_at=state.started_at,
            requested_by=state.requested_by,
            priority=state.priority,
        )
        current = AgentName.ANALYZER
        input_data: Any = request

        while True:
            if state.iteration > state.max_iterations:
                raise IterationLimitExceeded(feature_id, state.iteration, state.max_iterations)

            agent = self._agents.get(current)
            if agent is None:
                raise UnknownAgent(current.value)

            context = AgentContext(
                feature_id=feature_id,
                iteration=state.iteration,
                metadata=metadata,
                previous_artifacts=dict(state.artifacts),
                cancellation=token,
            )
            result = await self._invoke(agent, input_data, context)
            state = await self._record(state, result)

            if not result.success:
                await self._fail(feature_id, result.error or "Agent failed", agent=current)
                return
            if not result.artifact_path:
                await self._fail(feature_id, f"{current.value} produced no artifact", agent=current)
                return

            destination = result.next_agent
            if destination is None:
                if current != AgentName.DELIVERER:
                    await self._fail(
                        feature_id, f"{current.value} ended the pipeline before delivery", agent=current
                    )
                    return
                await self._complete(state)
                return

            if current == AgentName.REFINER and destination == AgentName.EXECUTOR:
                next_iteration = state.iteration + 1
                if next_iteration > state.max_iterations:
                    raise IterationLimitExceeded(feature_id, next_iteration, state.max_iterations)
                state.iteration = next_iteration
                logger.info(
                    "[%s] Refinement cycle %d/%d",
                    feature_id, next_iteration, state.max_iterations,
                )

            input_data = self._next_input(current, destination, result, feature_id)
            state.current_agent = destination
            state = await self._repository.compare_and_set(state)
            current = destination

    async def _invoke(
        self, agent: "BaseAgent", input_data: Any, context: AgentContext
    ) -> AgentResult:
        timeout = self._config.stage_timeout
        if timeout is None:
            return await agent.execute(input_data, context)
        started = time.monotonic()
        try:
            return await asyncio.wait_for(agent.execute(input_data, context), timeout)
        except asyncio.TimeoutError:
            # The cancelled agent never reports, so the failure is recorded here
            return self._timed_out(agent.name, timeout, context, started)

    def _timed_out(
        self,
        agent: AgentName,
        timeout: float,
        context: AgentContext,
        started: float,
    ) -> AgentResult:
        error = StageTimeout(agent.value, timeout)
        duration_ms = int((time.monotonic() - started) * 1000)
        self._emitter(context.feature_id).agent_failed(
            agent, context.iteration, str(error), duration_ms
        )
        logger.warning("[%s] %s", context.feature_id, error)
        return AgentResult(
            success=False,
            agent=agent,
            metadata=ExecutionMetadata(
                duration_ms=duration_ms,
                timestamp=utc_now().isoformat(),
                iteration=context.iteration,
            ),
            error=str(error),
            error_kind=type(error).__name__,
        )

    @staticmethod
    def _next_input(
        source: AgentName,
        destination: AgentName,
        result: AgentResult,
        feature_id: str,
    ) -> Any:
        if destination != AgentName.REFINER:
            return result.output

        if source not in _TRIGGERS:
            raise PipelineError(f"{source.value} cannot route into refinement")
        trigger, id_field = _TRIGGERS[source]
        output = result.output
        return RefinerInput(
            feature_id=feature_id,
            trigger_source=TriggerSource(
                type=trigger,
                source_id=getattr(output, id_field),
                artifact_path=result.artifact_path,
            ),
            source_report=output.to_artifact(),
        )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def _record(self, state: WorkflowState, result: AgentResult) -> WorkflowState:
        state.history.append(
            StageOutcome(
                agent=result.agent,
                iteration=result.metadata.iteration,
                success=result.success,
                duration_ms=result.metadata.duration_ms,
                timestamp=result.metadata.timestamp,
                artifact_path=result.artifact_path,
                error=result.error,
            )
        )
        if result.success and result.artifact_path:
            state.artifacts[result.agent] = result.artifact_path
        return await self._repository.compare_and_set(state)

    async def _complete(self, state: WorkflowState) -> None:
        state.status = WorkflowStatus.COMPLETED
        state.completed_at = utc_now()
        state.current_agent = None
        state = await self._repository.compare_and_set(state)

        duration_ms = int((state.completed_at - state.started_at).total_seconds() * 1000)
        self._emitter(state.feature_id).workflow_completed(state.iteration, duration_ms)
        logger.info(
            "[%s] Workflow completed in %ss after %d iteration(s)",
            state.feature_id, state.duration_seconds, state.iteration,
        )

    async def _fail(
        self, feature_id: str, error: str, agent: AgentName | None = None
    ) -> None:
        state = await self._repository.get(feature_id)
        if not state.is_running:
            return
        failed_agent = agent or state.current_agent
        state.status = WorkflowStatus.FAILED
        state.error = error
        state.completed_at = utc_now()
        await self._repository.compare_and_set(state)

        self._emitter(feature_id).workflow_failed(failed_agent, state.iteration, error)
        logger.error("[%s] Workflow failed at %s: %s", feature_id,
                     failed_agent.value if failed_agent else "start", error)

    async def _allocate_feature_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            feature_id = generate_feature_id()
            if not await self._repository.exists(feature_id):
                return feature_id
        raise PipelineError(f"Could not allocate a unique feature id after {MAX_ID_ATTEMPTS} attempts")

    def _emitter(self, feature_id: str) -> WorkflowEventEmitter:
        return WorkflowEventEmitter(self._event_store, feature_id)
