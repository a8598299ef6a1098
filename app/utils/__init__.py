"""Utility helpers package."""

from app.utils.exceptions import (
    AuthenticationError,
    FlashcardStudyException,
    NotFoundError,
    StaleWriteWarning,
    StorageError,
    ValidationError,
)

__all__ = [
    "AuthenticationError",
    "FlashcardStudyException",
    "NotFoundError",
    "StaleWriteWarning",
    "StorageError",
    "ValidationError",
]
