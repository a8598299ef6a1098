"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger


class FlashcardStudyException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(FlashcardStudyException):
    """A required field is missing or holds an invalid value."""


class NotFoundError(FlashcardStudyException):
    """The referenced set or card does not exist for the requesting user."""


class StorageError(FlashcardStudyException):
    """The database rejected or failed a write; safe to retry."""


class AuthenticationError(FlashcardStudyException):
    """Authentication and authorization errors."""


class StaleWriteWarning(UserWarning):
    """A server response older than already applied local state was discarded."""


async def handle_validation_error(request: Request, error: ValidationError) -> JSONResponse:
    """Render validation failures as HTTP 400."""
    logger.warning("Validation error: {}", error.message, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": error.message, "details": error.details},
    )


async def handle_not_found_error(request: Request, error: NotFoundError) -> JSONResponse:
    """Render missing or foreign resources as HTTP 404."""
    logger.info("Not found: {}", error.message, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": error.message, "details": error.details},
    )


async def handle_storage_error(request: Request, error: StorageError) -> JSONResponse:
    """Render storage failures as a retryable HTTP 503."""
    logger.error("Storage error: {}", error.message, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": error.message, "details": error.details, "retryable": True},
        headers={"Retry-After": "1"},
    )


async def handle_authentication_error(request: Request, error: AuthenticationError) -> JSONResponse:
    """Handle authentication errors."""
    logger.warning("Authentication error: {}", error.message, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": error.message},
        headers={"WWW-Authenticate": "Bearer"},
    )
