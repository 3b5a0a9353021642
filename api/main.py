"""
api/main.py -- FastAPI application entry point for ipguard.

Exposes the DNSBL reputation check over HTTP behind the in-process admission
controller.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for configured browser origins
  2. log_requests    -- one log line per request with latency

Lifespan handles startup (admission controller + sweep task, DNS resolver)
and shutdown (cancel sweep task) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import client_id
from api.models import ErrorResponse, HealthResponse
from api.routes.blacklist import router as blacklist_router
from core.blacklist import make_resolver
from core.config import get_settings
from core.models import DEFAULT_BLACKLISTS
from core.ratelimit import AdmissionController

__version__ = "0.1.0"

settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ipguard.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the process-wide admission controller and DNS resolver.

    The controller's sweep task is started here and cancelled on shutdown so
    no timer outlives the app (important for TestClient runs).
    """
    settings = get_settings()
    logger.info("ipguard API starting up")
    app.state.admission = AdmissionController(window=settings.rate_limit_window_seconds)
    app.state.admission.start()
    app.state.blacklists = DEFAULT_BLACKLISTS
    app.state.resolver = make_resolver(settings.dns_nameservers, timeout=settings.dns_timeout_seconds)
    logger.info(
        "Admission controller started (window=%ds); %d DNSBL(s) configured",
        settings.rate_limit_window_seconds,
        len(app.state.blacklists),
    )

    yield

    app.state.admission.stop()
    logger.info("ipguard API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ipguard API",
    description="Rate-limited DNSBL reputation checks for IPv4 and IPv6 addresses.",
    version=__version__,
    debug=settings.debug,
    lifespan=lifespan,
)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
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
        client_id(request),
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(blacklist_router, tags=["Blacklist"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error is rendered as {"error": "<message>"} so browser clients can
# show the message without inspecting the status code first.
# ---------------------------------------------------------------------------

_STATUS_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors, keeping any headers the raiser attached.

    Registered on Starlette's class so router-level 404/405 errors are covered
    as well as HTTPExceptions raised by route handlers and dependencies.
    """
    message = str(exc.detail)
    if message == HTTPStatus(exc.status_code).phrase:
        message = _STATUS_MESSAGES.get(exc.status_code, message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when query parameters fail validation."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error="Invalid request parameters").model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Not rate limited: load balancer probes must never be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return API liveness, version and the number of configured lists."""
    return HealthResponse(version=__version__, lists=len(request.app.state.blacklists))
