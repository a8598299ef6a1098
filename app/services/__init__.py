"""Service layer package."""

from app.services.analytics import AnalyticsService
from app.services.auth import AuthService
from app.services.flashcards import FlashcardService
from app.services.progress import ProgressService

__all__ = [
    "AnalyticsService",
    "AuthService",
    "FlashcardService",
    "ProgressService",
]
