"""
Custom exceptions for the AI Interview Coach.

This module defines the error taxonomy shared by both providers, the
interview orchestrator and the results pipeline, plus the FastAPI handlers
that turn those errors into JSON responses.
"""
import logging
from typing import Optional
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exception Classes
# ============================================================================

class AppError(Exception):
    """Base exception for all application errors."""
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class UninitializedSessionError(AppError):
    """A conversational call was made before start_chat."""
    status_code = 409


class TransportError(AppError):
    """Network or HTTP failure talking to the provider."""
    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.status = status


class MalformedResponseError(AppError):
    """A structured payload did not parse or failed schema validation."""
    status_code = 502


class MissingPrerequisiteError(AppError):
    """The results pipeline was invoked without a transcript or goal."""
    status_code = 409


class CaptureUnavailableError(AppError):
    """Camera or microphone acquisition failed. Never fatal."""
    status_code = 503


class ConfigurationError(AppError):
    """Exception raised when configuration is invalid or missing."""
    pass


class InterviewStateError(AppError):
    """Input arrived in a state that does not accept it."""
    status_code = 409


class ResultsUnavailableError(AppError):
    """The results pipeline exhausted its retries."""
    status_code = 503


# Errors worth another attempt; everything else is a sequencing bug
RETRYABLE_ERRORS = (TransportError, MalformedResponseError)


# ============================================================================
# FastAPI Exception Handlers
# ============================================================================

async def app_error_handler(request: Request, exc: AppError):
    logger.warning(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_type": type(exc).__name__},
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "error": str(exc)},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTP exception: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
