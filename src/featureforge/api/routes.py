"""HTTP routes under ``/framework``."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from featureforge.application import WorkflowOrchestrator
from featureforge.domain.models import AgentName, FeatureRequest, utc_now

router = APIRouter(prefix="/framework")


class StartWorkflowBody(BaseModel):
    """Request body of ``POST /framework/workflow/start``."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    description: str = ""
    priority: str = ""
    requested_by: str | None = Field(default=None, alias="requestedBy")


def _orchestrator(request: Request) -> WorkflowOrchestrator:
    orchestrator: WorkflowOrchestrator = request.app.state.orchestrator
    return orchestrator


@router.post("/workflow/start", status_code=202)
async def start_workflow(body: StartWorkflowBody, request: Request) -> dict[str, Any]:
    """Validate a feature request and start its workflow in the background."""
    feature_id = await _orchestrator(request).start_workflow(
        FeatureRequest(
            title=body.title,
            description=body.description,
            priority=body.priority,
            requested_by=body.requested_by or "api-user",
        )
    )
    return {
        "success": True,
        "featureId": feature_id,
        "message": "Workflow started",
        "status": "running",
    }


@router.get("/workflow/{feature_id}/status")
async def workflow_status(feature_id: str, request: Request) -> dict[str, Any]:
    state = await _orchestrator(request).get_workflow_status(feature_id)
    return state.to_dict()


@router.get("/workflow/{feature_id}/events")
async def workflow_events(feature_id: str, request: Request) -> list[dict[str, Any]]:
    events = await _orchestrator(request).get_events(feature_id)
    return [e.to_dict() for e in events]


@router.get("/workflows/active")
async def active_workflows(request: Request) -> JSONResponse:
    states = await _orchestrator(request).list_active_workflows()
    return JSONResponse([s.to_dict() for s in states])


@router.get("/health")
async def health() -> dict[str, Any]:
    """Static liveness payload."""
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "agents": [agent.value for agent in AgentName],
    }
