"""FastAPI application entry point for QuadFlow.

Routers for flows, participants and the registry. Domain errors are mapped
to HTTP status codes once, here, and returned as
``{"error": kind, "detail": message, "context": {...}}``.
"""

import logging

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from quadflow.api.flows import router as flows_router
from quadflow.api.participants import router as participants_router
from quadflow.api.registry import router as registry_router
from quadflow.config.settings import get_settings
from quadflow.errors import (
    AuditStorageError,
    DuplicateCircleError,
    DuplicateParticipantError,
    DuplicateRoleError,
    InsufficientAuthorityError,
    InvalidTransitionError,
    QuadFlowError,
    ReviewRequiredError,
    RosterConfigError,
    UnknownCircleError,
    UnknownFlowError,
    UnknownParticipantError,
    UnknownRoleError,
    UnknownStageError,
)

APP_VERSION = "0.1.0"

settings = get_settings()

_LOG_NAME_TO_LEVEL: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# --- Structured logging ---
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if settings.ENVIRONMENT == "dev"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        _LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value],
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)
logging.basicConfig(level=_LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value])

logger: structlog.stdlib.BoundLogger = structlog.get_logger()

# --- FastAPI app ---
app = FastAPI(
    title="QuadFlow API",
    description="QUAD workflow tracking with role- and adoption-gated transitions.",
    version=APP_VERSION,
)

# --- CORS middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ENVIRONMENT == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error mapping ---

_ERROR_STATUS: dict[type[QuadFlowError], int] = {
    UnknownFlowError: 404,
    UnknownRoleError: 404,
    UnknownCircleError: 404,
    UnknownParticipantError: 404,
    UnknownStageError: 422,
    DuplicateRoleError: 409,
    DuplicateCircleError: 409,
    DuplicateParticipantError: 409,
    InvalidTransitionError: 409,
    InsufficientAuthorityError: 403,
    ReviewRequiredError: 403,
    RosterConfigError: 500,
    AuditStorageError: 503,
}


def status_for(exc: QuadFlowError) -> int:
    for klass in type(exc).__mro__:
        if klass in _ERROR_STATUS:
            return _ERROR_STATUS[klass]
    return 400


@app.exception_handler(QuadFlowError)
async def quadflow_error_handler(request: Request, exc: QuadFlowError) -> JSONResponse:
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.warning
    log(
        "request_rejected",
        path=request.url.path,
        error=exc.kind,
        status=status,
        **exc.context,
    )
    return JSONResponse(
        status_code=status,
        content={"error": exc.kind, "detail": str(exc), "context": exc.context},
    )


# --- Routers ---
app.include_router(flows_router)
app.include_router(participants_router)
app.include_router(registry_router)


# --- Infrastructure Endpoints (global) ---


@app.get("/health")
async def health_check() -> dict:
    """Liveness probe with component health checks.

    Returns 200 always (degraded status if components are down).
    """
    checks: dict[str, bool] = {"api": True}

    # Database connectivity check
    try:
        from quadflow.db.session import async_session_factory
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception:
        checks["database"] = False

    all_ok = all(checks.values())

    return {
        "status": "ok" if all_ok else "degraded",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT.value,
        "checks": checks,
    }


@app.get("/api/version")
async def get_version() -> dict[str, str]:
    """Return application name, version, and environment."""
    return {
        "name": "QuadFlow",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT.value,
    }
