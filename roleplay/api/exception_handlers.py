"""
Global exception handlers for FastAPI.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

import structlog

from roleplay.core.exceptions import (
    TrainingSystemError,
    ConfigurationError,
    ConversationCompletedError,
    ConversationNotFoundError,
    FeedbackNotFoundError,
    GenerationError,
    GuardViolation,
    LLMRateLimitError,
    LLMTimeoutError,
    ReflectionAlreadySubmittedError,
    ScenarioNotFoundError,
    ValidationError,
)

log = structlog.get_logger(__name__)


_STATUS_CODES = [
    (ReflectionAlreadySubmittedError, status.HTTP_409_CONFLICT),
    (ConversationNotFoundError, status.HTTP_404_NOT_FOUND),
    (ScenarioNotFoundError, status.HTTP_404_NOT_FOUND),
    (FeedbackNotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (GuardViolation, status.HTTP_400_BAD_REQUEST),
    (ConversationCompletedError, status.HTTP_400_BAD_REQUEST),
    (LLMTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (LLMRateLimitError, status.HTTP_429_TOO_MANY_REQUESTS),
    (GenerationError, status.HTTP_502_BAD_GATEWAY),
]


def status_code_for(exc: TrainingSystemError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI):
    """Register custom exception handlers with the FastAPI application.

    Sets up handlers for all TrainingSystemError subclasses with appropriate
    HTTP status codes, plus handlers for configuration errors and generic exceptions.
    """

    @app.exception_handler(TrainingSystemError)
    async def training_system_error_handler(
        request: Request,
        exc: TrainingSystemError,
    ) -> JSONResponse:
        """Map application errors to status codes with a uniform error body."""
        log_ctx = log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )

        status_code = status_code_for(exc)

        log_ctx.warning(
            "request_error",
            message=exc.message,
            status_code=status_code,
        )

        error = {
            "type": type(exc).__name__,
            "message": exc.message,
        }
        detail = getattr(exc, "detail", None)
        if detail:
            error["detail"] = detail

        return JSONResponse(status_code=status_code, content={"error": error})

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request,
        exc: ConfigurationError,
    ) -> JSONResponse:
        """Handle configuration errors with HTTP 500 status."""
        log.error(
            "configuration_error",
            path=request.url.path,
            message=exc.message,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "type": "ConfigurationError",
                    "message": "Server configuration error",
                }
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle all unhandled exceptions with HTTP 500 status."""
        log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        ).error(
            "unhandled_exception",
            message=str(exc),
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "type": "InternalServerError",
                    "message": "An unexpected error occurred",
                }
            },
        )
