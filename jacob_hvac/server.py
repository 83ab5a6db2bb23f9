"""FastAPI server for the Jacob HVAC scheduling assistant.

Run with:
    uvicorn jacob_hvac.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jacob_hvac.agent import create_turn_orchestrator
from jacob_hvac.api.routes import router
from jacob_hvac.config import Settings, load_settings
from jacob_hvac.db import create_db_engine, create_session_factory, init_db
from jacob_hvac.errors import SchedulingError
from jacob_hvac.services.availability_client import (
    AvailabilityClient,
    AvailabilityLookup,
    LocalAvailabilityLookup,
)
from jacob_hvac.services.metrics import metrics
from jacob_hvac.services.notifications import NotificationDispatcher, TwilioTransport

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = load_settings()


def _build_lookup(app_settings: Settings, session_factory) -> AvailabilityLookup:
    """Query availability over HTTP when a URL is configured, in-process otherwise."""
    if app_settings.availability_api_url:
        logger.info("Chat availability lookups via %s", app_settings.availability_api_url)
        return AvailabilityClient(app_settings.availability_api_url)
    return LocalAvailabilityLookup(session_factory, app_settings)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create the engine, SMS dispatcher and turn orchestrator once per process."""
    metrics.configure(settings.metrics_enabled)
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)
    lookup = _build_lookup(settings, session_factory)

    application.state.settings = settings
    application.state.session_factory = session_factory
    application.state.dispatcher = NotificationDispatcher(TwilioTransport(settings))
    application.state.orchestrator = create_turn_orchestrator(session_factory, settings, lookup)
    logger.info("%s assistant ready.", settings.business_name)
    yield
    if isinstance(lookup, AvailabilityClient):
        lookup.close()
    engine.dispose()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Jacob HVAC Scheduling Assistant",
    description=(
        "Book HVAC service appointments, check availability and chat with "
        "the AI assistant. Confirmations are sent by SMS."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Tag the request with an ``X-Request-ID`` and catch anything unhandled.

    Unexpected exceptions become HTTP 500 with the underlying message in the
    failure envelope.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception as exc:
        logger.exception("[%s] Unhandled error on %s", request_id, request.url.path)
        response = _failure(500, str(exc) or type(exc).__name__)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Error envelopes ──────────────────────────────────────────────────
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    request_id = getattr(request.state, "request_id", "?")
    logger.warning("[%s] %s: %s", request_id, type(exc).__name__, exc)
    return _failure(exc.status_code, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    return _failure(422, problems)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _failure(exc.status_code, str(exc.detail))


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Jacob HVAC Scheduling Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    logger.info("Starting API server on %s:%d", settings.server_host, settings.server_port)
    uvicorn.run(
        "jacob_hvac.server:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=True,
    )
