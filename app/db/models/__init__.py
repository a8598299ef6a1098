"""Database models package."""
from app.db.models.user import User
from app.db.models.flashcard import Flashcard, FlashcardSet
from app.db.models.study_event import STUDY_STATUSES, ProgressReset, StudyEvent

__all__ = [
    "User",
    "Flashcard",
    "FlashcardSet",
    "ProgressReset",
    "StudyEvent",
    "STUDY_STATUSES",
]
