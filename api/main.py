"""
api/main.py -- FastAPI application entry point for Biblio.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- CORS headers for the browser client; credentials
                           allowed so the refresh cookie travels
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  3. log_requests       -- one log line per request with latency

Session handling is not a middleware class: auth.dependencies.authenticate_jwt
is registered as an app-wide dependency, so it runs for every routed request
and its InvalidTokenError goes through the exception handlers below like any
other error.

Lifespan opens the user and collection stores on startup and disposes of
them on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.collections import router as collections_router
from api.routes.users import router as users_router
from auth.dependencies import authenticate_jwt
from auth.store import UserStore
from core.config import get_settings
from core.errors import BiblioError
from library.store import CollectionStore

API_VERSION = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.DEBUG if _settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("biblio.api")


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores on startup and dispose of their engines on shutdown."""
    logger.info("Biblio API starting up (environment=%s)", _settings.environment)
    app.state.user_store = UserStore(_settings.database_url)
    app.state.collection_store = CollectionStore(_settings.database_url)
    logger.info("Stores initialized")

    yield

    app.state.collection_store.close()
    app.state.user_store.close()
    logger.info("Biblio API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Biblio API",
    description="Book collections and reading forums.",
    version=API_VERSION,
    lifespan=lifespan,
    dependencies=[Depends(authenticate_jwt)],
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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

app.include_router(auth_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])
app.include_router(collections_router, tags=["Collections"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the same {"error": {"message", "status"}} envelope so
# clients can parse errors without choosing a schema per status code.
# ---------------------------------------------------------------------------


def _error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(message=message, status=status)).model_dump(),
    )


@app.exception_handler(BiblioError)
async def biblio_error_handler(request: Request, exc: BiblioError) -> JSONResponse:
    """Map the domain error taxonomy onto HTTP.

    5xx-class domain errors get a generic message; their detail goes to the
    log only.
    """
    if exc.status >= 500:
        if not _settings.is_test:
            logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
        return _error_response(exc.status, "Internal Server Error")
    return _error_response(exc.status, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "Too many requests.")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or malformed input is a BadRequest (400)."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return _error_response(400, "; ".join(messages) or "Bad Request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes (404), wrong methods (405) and any explicit HTTPException."""
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The traceback is logged server-side (outside the test environment) and
    never included in the response body.
    """
    if not _settings.is_test:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal Server Error")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"], response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Liveness plus a trivial database round trip. No auth required."""
    try:
        request.app.state.user_store.ping()
        database = "ok"
    except Exception:
        logger.exception("Health check: database unreachable")
        database = "error"
    return HealthResponse(version=API_VERSION, database=database)
