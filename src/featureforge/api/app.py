"""FastAPI app factory for the workflow HTTP interface."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from featureforge.application import WorkflowOrchestrator
from featureforge.domain.exceptions import InputValidationError, UnknownWorkflow


def create_app(orchestrator: WorkflowOrchestrator) -> FastAPI:
    """
    Create the FastAPI application around an orchestrator.

    Running workflows are cancelled when the app shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await orchestrator.shutdown()

    app = FastAPI(title="featureforge", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    @app.exception_handler(InputValidationError)
    async def invalid_input(request: Request, exc: InputValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": str(exc), "field": exc.field},
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Invalid request body",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(UnknownWorkflow)
    async def unknown_workflow(request: Request, exc: UnknownWorkflow) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": f"Workflow {exc.feature_id} not found"},
        )

    from featureforge.api.routes import router

    app.include_router(router)
    return app
