"""API endpoint modules for v1."""

from app.api.v1.endpoints import analytics, auth, flashcards

__all__ = ["analytics", "auth", "flashcards"]
