"""
FastAPI application for taskdesk.

This is the HTTP API that the browser app and other clients talk to.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskdesk.api import tasks as task_routes
from taskdesk.api import users as user_routes
from taskdesk.auth.guard import AuthorizationGuard
from taskdesk.auth.verifier import JWTIdentityVerifier, RevocationRegistry
from taskdesk.config import Settings, get_settings
from taskdesk.core.errors import Internal, TaskdeskError
from taskdesk.integrations.sentry import capture_exception, init_sentry
from taskdesk.seed import load_seed_file
from taskdesk.services.base import describe_errors
from taskdesk.services.tasks import TaskDirectory
from taskdesk.services.users import UserDirectory
from taskdesk.storage import create_local_storage

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings = get_settings()
    configure_logging(settings)

    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")

    # Storage
    storage = create_local_storage()
    revocations = RevocationRegistry(storage.cache)

    # Services
    users = UserDirectory(storage.metadata, revocations)
    app.state.storage = storage
    app.state.users = users
    app.state.tasks = TaskDirectory(storage.metadata, users)
    app.state.guard = AuthorizationGuard(
        JWTIdentityVerifier(settings, revocations),
        users,
        timeout=settings.identity_timeout_seconds,
    )

    if settings.seed_file:
        await load_seed_file(settings.seed_file, storage.metadata, users)

    logger.info(f"taskdesk API starting in {settings.environment} mode")

    yield

    logger.info("taskdesk API shutting down")


# =============================================================================
# App Setup
# =============================================================================


app = FastAPI(
    title="taskdesk API",
    description="Task tracking with role-based access control",
    version="0.1.0",
    lifespan=lifespan,
)


# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(user_routes.router)
app.include_router(task_routes.router)


# =============================================================================
# Error Rendering
# =============================================================================


@app.exception_handler(TaskdeskError)
async def handle_taskdesk_error(request: Request, exc: TaskdeskError):
    if isinstance(exc, Internal):
        capture_exception(exc, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "message": describe_errors(exc.errors()),
            "reason": "invalid-input",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail), "reason": "http"},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    capture_exception(exc, path=request.url.path)
    error = Internal("Internal server error", error=str(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# =============================================================================
# Health Check
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "taskdesk-api"}
