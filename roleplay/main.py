"""
FastAPI application entry point.

Run with: uvicorn roleplay.main:app --reload
"""

from contextlib import asynccontextmanager
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from roleplay.core.config import settings, training_config
from roleplay.core.logging import configure_logging, get_logger, bind_context, clear_context
from roleplay.core.scenario_loader import load_all_scenarios
from roleplay.persistence.database import init_database
from roleplay.api.routes import health, scenarios, conversations, feedback, reflections
from roleplay.api.exception_handlers import setup_exception_handlers

# Configure logging before anything else
configure_logging()
log = get_logger(__name__)


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a unique correlation ID to each request.

    The request_id is bound to the structlog context for every log entry of
    the request and returned in the X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        bind_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()


def check_llm_configuration() -> bool:
    """
    Report whether feedback synthesis can run.

    Reads, conversations and reflections work without an API key, so a
    missing key is logged rather than fatal; synthesis requests fail with a
    configuration error until it is set.
    """
    if not settings.anthropic_api_key:
        log.warning(
            "llm_api_key_missing",
            detail="ANTHROPIC_API_KEY not set; feedback synthesis is unavailable",
        )
        return False
    log.info("llm_configured", model=settings.llm_feedback_model)
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    log.info(
        "application_starting",
        debug=settings.debug,
        database_path=str(settings.database_path),
        turn_limit=training_config.session.turn_limit,
    )

    check_llm_configuration()
    await init_database()

    catalog = load_all_scenarios()
    log.info("scenario_catalog_loaded", scenario_count=len(catalog))

    log.info("application_started")

    yield

    log.info("application_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="Roleplay Training",
    description="Guided roleplay training sessions with AI feedback",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware for development
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(CorrelationIDMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, tags=["system"])
app.include_router(scenarios.router)
app.include_router(conversations.router)
app.include_router(feedback.router)
app.include_router(reflections.router)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {"name": "Roleplay Training", "version": "0.1.0", "status": "running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "roleplay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
