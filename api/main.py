"""
api/main.py -- FastAPI application entry point for VaultSync.

Run with:  python main.py
           uvicorn api.main:app --reload

Middleware stack:
  1. CORSMiddleware  -- adds CORS headers for allowed browser origins
  2. log_requests    -- one access-log line per request with latency

Lifespan builds the token lifecycle objects once per process and tears them
down symmetrically:
  UserStore -> TokenSigner -> RevocationStore -> TokenService -> CleanupScheduler

The revocation set is owned by this wiring, not a module global: the request
gate (via app.state.token_service) and the scheduler share one instance.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.account import router as account_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.sync import router as sync_router
from auth.revocation import RevocationStore
from auth.scheduler import CleanupScheduler
from auth.service import TokenService
from auth.store import UserStore
from auth.tokens import TokenSigner
from core.config import Settings, get_settings

VERSION = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("vaultsync.api")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_token_service(settings: Settings, user_store: UserStore) -> TokenService:
    """Assemble signer, revocation set and identity directory into one service."""
    signer = TokenSigner(settings.secret_key, ttl_seconds=settings.token_expire_seconds)
    revocations = RevocationStore(expiry_of=signer.expiry_of)
    return TokenService(signer, revocations, directory=user_store)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The scheduler is started last because it needs the service,
    and stopped first so no sweep runs against a closed store.
    """
    settings = get_settings()
    logger.info("VaultSync API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.token_service = build_token_service(settings, app.state.user_store)
    app.state.cleanup = CleanupScheduler(app.state.token_service, interval_seconds=settings.cleanup_interval)
    app.state.cleanup.start()

    yield

    await app.state.cleanup.stop()
    app.state.user_store.close()
    logger.info("VaultSync API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="VaultSync API",
    description="Account, token and encrypted-vault synchronization backend.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(account_router, prefix="/api/v1", tags=["Account"])
app.include_router(sync_router, prefix="/api/v1", tags=["Sync"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with structured error when the request body fails validation.

    Covers missing fields, unknown fields, malformed emails and non-JSON bodies.
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all HTTP exceptions (FastAPI and Starlette routing).

    Route handlers raise HTTPException with a dict detail; use it directly as
    the error field. Headers (e.g. WWW-Authenticate on 401) are preserved.
    """
    if isinstance(exc.detail, dict):
        content = {"error": exc.detail}
    else:
        content = ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))
        ).model_dump()
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors (SigningError, DB failures).

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
