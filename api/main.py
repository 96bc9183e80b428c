"""
api/main.py -- FastAPI application entry point for Upholstr.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- one log line per request with latency

Lifespan builds everything that lives for the whole process: the immutable
TokenContext (signing secret + TTL), the auth and marketplace stores, and the
CredentialService that ties them together. Shutdown disposes both engines.

Error envelope: every non-2xx response body is {"error": "<message>"}.
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
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.conversations import router as conversations_router
from api.routes.v1.products import router as products_router
from auth.credentials import CredentialService
from auth.errors import AuthError, InvalidCredentials, InvalidToken, StoreUnavailable
from auth.store import UserStore
from auth.tokens import TokenContext
from core.config import get_settings
from marketplace.store import MarketplaceStore

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("upholstr.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build process-wide state on startup and tear it down on shutdown.

    The signing secret is copied into TokenContext exactly once here. Nothing
    reloads or mutates it while the process runs.
    """
    logger.info("Upholstr API starting up")
    app.state.token_context = TokenContext.from_settings(_settings)
    app.state.user_store = UserStore(_settings.database_url)
    app.state.marketplace = MarketplaceStore(_settings.marketplace_database_url)
    app.state.credentials = CredentialService(
        app.state.user_store,
        app.state.token_context,
        bcrypt_rounds=_settings.bcrypt_rounds,
    )
    logger.info(
        "Auth initialized (session_ttl=%ds, bcrypt_rounds=%d)",
        _settings.session_ttl_seconds,
        _settings.bcrypt_rounds,
    )

    yield

    app.state.marketplace.close()
    app.state.user_store.close()
    logger.info("Upholstr API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Upholstr API",
    description="Accounts, products and conversations for the Upholstr reupholstery marketplace.",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
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

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(products_router, prefix="/api", tags=["Products"])
app.include_router(conversations_router, prefix="/api", tags=["Conversations"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can parse
# errors uniformly.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the credential core's error taxonomy onto HTTP.

    StoreUnavailable is logged in full and answered with a generic 500 so
    connection strings and driver messages never reach the client.
    """
    if isinstance(exc, StoreUnavailable):
        logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return _error(500, "Internal server error")
    headers = None
    if isinstance(exc, (InvalidToken, InvalidCredentials)):
        headers = {"WWW-Authenticate": "Bearer"}
    return _error(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with the first validation problem as the error message."""
    return _error(400, _first_validation_message(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors. The traceback goes to the log only."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


def _first_validation_message(errors: list[dict]) -> str:
    if not errors:
        return "Invalid request"
    err = errors[0]
    if err.get("type") == "value_error":
        original = (err.get("ctx") or {}).get("error")
        if original:
            return str(original)
    loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
    msg = err.get("msg", "Invalid request")
    return f"{loc}: {msg}" if loc else msg


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness and whether each database answers."""
    components = {
        "app": "ok",
        "database": "ok" if request.app.state.user_store.ping() else "error",
        "marketplace": "ok" if request.app.state.marketplace.ping() else "error",
    }
    return HealthResponse(
        status="healthy" if all(v == "ok" for v in components.values()) else "degraded",
        version=API_VERSION,
        components=components,
    )
