"""Wiring of the production object graph from a PipelineConfig."""

from pathlib import Path

from featureforge.agents import AgentDependencies, build_agents
from featureforge.application import WorkflowOrchestrator
from featureforge.config import PipelineConfig
from featureforge.domain.interfaces import (
    ArtifactStoreInterface,
    CommandRunnerInterface,
    CompletionServiceInterface,
    WorkflowEventStoreInterface,
    WorkflowRepositoryInterface,
)
from featureforge.infrastructure import (
    FilesystemArtifactStore,
    FilesystemWorkflowEventStore,
    InMemoryWorkflowRepository,
    OpenAICompletionService,
    SubprocessCommandRunner,
)


def build_orchestrator(
    config: PipelineConfig,
    *,
    completion: CompletionServiceInterface | None = None,
    commands: CommandRunnerInterface | None = None,
    artifact_store: ArtifactStoreInterface | None = None,
    event_store: WorkflowEventStoreInterface | None = None,
    repository: WorkflowRepositoryInterface | None = None,
) -> WorkflowOrchestrator:
    """
    Build an orchestrator with every agent registered.

    Any collaborator left as None gets its production adapter: artifacts and
    events on disk under ``artifacts_dir``, completions through the
    OpenAI-compatible client, commands through subprocesses.
    """
    artifacts_dir = Path(config.artifacts_dir)
    if artifact_store is None:
        artifact_store = FilesystemArtifactStore(artifacts_dir)
    if event_store is None:
        event_store = FilesystemWorkflowEventStore(artifacts_dir)
    if completion is None:
        completion = OpenAICompletionService(config.llm)
    if commands is None:
        commands = SubprocessCommandRunner(
            default_cwd=config.project_root,
            default_timeout=config.commands.default_timeout,
        )

    deps = AgentDependencies(
        artifact_store=artifact_store,
        completion=completion,
        commands=commands,
        config=config,
        event_store=event_store,
    )
    return WorkflowOrchestrator(
        agents=build_agents(deps),
        repository=repository or InMemoryWorkflowRepository(),
        event_store=event_store,
        config=config,
    )
