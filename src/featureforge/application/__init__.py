"""
Application layer: workflow orchestration and event emission.
"""

from featureforge.application.orchestrator import WorkflowOrchestrator
from featureforge.application.workflow_event_emitter import WorkflowEventEmitter

__all__ = [
    "WorkflowEventEmitter",
    "WorkflowOrchestrator",
]
