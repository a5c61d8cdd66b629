"""
api/main.py -- FastAPI application entry point for AFMS.

Exposes the personnel and equipment records over HTTP behind a role-gated
bearer-token scheme. Two roles exist: admin (read + write) and user (read).

Run with:      python main.py serve
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- limiter state; per-route limits run in the @limiter.limit wrappers

Lifespan opens both stores at startup and refuses to serve if the data store
cannot be reached. Shutdown closes them symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.logistics import router as logistics_router
from api.routes.v1.personnel import router as personnel_router
from api.routes.v1.reports import router as reports_router
from api.routes.v1.users import router as users_router
from auth.store import UserStore
from core.config import Settings, get_settings
from core.errors import AppError, StoreUnavailableError
from records.store import RecordStore

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("afms.api")


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


def open_stores(settings: Settings) -> tuple[UserStore, RecordStore]:
    """Open both stores against settings.database_url and check connectivity.

    Raises StoreUnavailableError if the database cannot be reached, after
    logging the failure. Any store already opened is closed first.
    """
    user_store: UserStore | None = None
    record_store: RecordStore | None = None
    try:
        user_store = UserStore(db_url=settings.database_url, pool_size=settings.db_pool_size)
        record_store = RecordStore(db_url=settings.database_url, pool_size=settings.db_pool_size)
        user_store.ping()
        record_store.ping()
    except Exception as exc:
        for store in (user_store, record_store):
            if store is not None:
                store.close()
        logger.critical("Data store unavailable at startup: %s", exc)
        if isinstance(exc, StoreUnavailableError):
            raise
        raise StoreUnavailableError("Data store unavailable") from exc
    return user_store, record_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. A store that cannot be reached aborts startup -- the server
    never accepts requests it could only answer with 500.
    """
    logger.info("AFMS API starting up")
    settings = get_settings()
    app.state.user_store, app.state.record_store = open_stores(settings)
    logger.info(
        "Stores initialized (dialect=%s, admins=%d)",
        app.state.record_store.engine.dialect.name,
        app.state.user_store.count_by_role("admin"),
    )

    yield

    app.state.record_store.close()
    app.state.user_store.close()
    logger.info("AFMS API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

_settings = get_settings()

app = FastAPI(
    title="AFMS API",
    description="Armed Forces Management System: serving and retired personnel, equipment and its specializations.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the existing stack, so the LAST one added is the
# outermost. Register innermost first: SlowAPI -> CORS -> TrustedHost.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. The identity, when the auth gate set one, is logged by username
# so access can be attributed without logging tokens.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    identity = getattr(request.state, "identity", None)
    logger.info(
        "%s %s %d %.1fms %s %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
        identity.username if identity is not None else "-",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(personnel_router, prefix="/api/v1", tags=["Personnel"])
app.include_router(logistics_router, prefix="/api/v1", tags=["Logistics"])
app.include_router(reports_router, prefix="/api/v1", tags=["Reports"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {"error", "code"} envelope so API clients can
# parse errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a typed error. 5xx errors are logged; the message is already generic."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    response = JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    Kept synchronous: SlowAPIMiddleware calls it without awaiting.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content={"error": "Too many requests", "code": "rate_limited"},
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


def _describe_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body, path or query fails validation.

    The first failing field is reported; one message is enough for a client
    to fix its request and keeps the envelope flat.
    """
    errors = exc.errors()
    message = _describe_validation_error(errors[0]) if errors else "Request validation failed"
    return JSONResponse(status_code=400, content={"error": message, "code": "validation_error"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return the standard envelope for framework-raised HTTP errors (404 route, 405 method...)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": f"http_{exc.status_code}"},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred.", "code": "internal_error"},
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable regardless of router
# registration state. Public and not rate limited.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and data store reachability."""
    components = {"app": "ok"}
    try:
        request.app.state.record_store.ping()
        components["database"] = "ok"
    except StoreUnavailableError:
        components["database"] = "error"
    return HealthResponse(
        status="healthy" if components["database"] == "ok" else "degraded",
        version=API_VERSION,
        components=components,
    )
