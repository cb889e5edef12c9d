"""
api/main.py -- FastAPI application factory for UserAuth.

create_app(settings) builds the app around an explicitly passed Settings
object. Nothing in the request path reads configuration from module globals:
the lifespan constructs the store, hasher, token service and session manager
from `settings` and hangs them on app.state, where routes and the
authorization guard pick them up.

Run with:  uvicorn asgi:app --reload
           python main.py

Middleware stack (outermost to innermost):
  1. log_requests    -- method, path, status and latency for every request
  2. CORSMiddleware  -- adds CORS headers for the configured origins

Lifespan handles startup (store + services) and shutdown (dispose engine)
symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.user import router as user_router
from auth.errors import UserAuthError
from auth.passwords import PasswordHasher
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings

__version__ = "0.1.0"

logger = logging.getLogger("userauth.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build application-level resources from app.state.settings.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The store comes first because the session manager needs it.
    """
    settings: Settings = app.state.settings
    logger.info("UserAuth API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.tokens = TokenService(settings)
    app.state.sessions = SessionManager(
        app.state.user_store,
        PasswordHasher(settings.bcrypt_rounds),
        app.state.tokens,
    )
    logger.info(
        "Auth initialized (bcrypt_rounds=%d, access_ttl=%ds, refresh_ttl=%ds, guard_profile_upload=%s)",
        settings.bcrypt_rounds,
        settings.access_token_expire_seconds,
        settings.refresh_token_expire_seconds,
        settings.guard_profile_upload,
    )

    yield

    app.state.user_store.close()
    logger.info("UserAuth API shutdown complete")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


async def user_auth_error_handler(request: Request, exc: UserAuthError) -> JSONResponse:
    """Render a domain error with the status code its class carries."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s (%s)", exc.code, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail),
        ).model_dump(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when the request body has the wrong shape."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for HTTP exceptions (404, 405, ...).

    Registered for starlette.exceptions.HTTPException, the base class: routing
    404s and 405s raise it directly, and fastapi.HTTPException subclasses it.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

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
# Request logging middleware
# ---------------------------------------------------------------------------


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
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings) -> FastAPI:
    """Assemble the FastAPI app for the given settings.

    Logging is configured here so the level follows settings.log_level.
    basicConfig is a no-op when the root logger already has handlers
    (uvicorn, pytest), which is the behavior we want.
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app = FastAPI(
        title="UserAuth API",
        description="Account registration, password login and JWT session lifecycle.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(UserAuthError, user_auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(user_router, tags=["User"])

    @app.get("/", include_in_schema=False)
    def landing() -> PlainTextResponse:
        """Fixed welcome response with status 234."""
        return PlainTextResponse("Welcome", status_code=234)

    @app.get("/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness, version and database reachability. No auth, no rate limit."""
        db_ok = request.app.state.user_store.ping()
        return HealthResponse(
            version=__version__,
            components={"app": "ok", "database": "ok" if db_ok else "error"},
        )

    return app
