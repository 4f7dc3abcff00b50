"""
FastAPI application for the delivery workflow.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .db.base import init_database
from .log_config import configure_logging
from .notifications.routes import router as notifications_router
from .workflow.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    StoreUnavailableError,
    WorkflowError,
    WorkItemNotFoundError,
)
from .workflow.routes import router as work_items_router

logger = structlog.get_logger()

settings = get_settings()

# Workflow error -> HTTP status
ERROR_STATUS_CODES = {
    WorkItemNotFoundError: 404,
    ForbiddenError: 403,
    InvalidInputError: 400,
    ConflictError: 409,
    StoreUnavailableError: 503,
}


def status_code_for(error: WorkflowError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_cls):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("Starting delivery workflow service", environment=settings.environment)

    try:
        init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error("Failed to start application", error=str(e))
        raise

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    description="Delivery and approval workflow for modules, user stories and tasks",
    version=importlib.metadata.version("delivery-workflow"),
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning("workflow_error", code=exc.code, path=request.url.path)
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


app.include_router(work_items_router)
app.include_router(notifications_router)


# Health and Info Endpoints
@app.get("/healthz", tags=["system"])
def healthz() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/version", tags=["system"])
def version() -> dict[str, str]:
    """Return the version of the application."""
    return {"version": importlib.metadata.version("delivery-workflow")}
