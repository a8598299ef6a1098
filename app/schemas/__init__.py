"""Pydantic schemas package."""

from app.schemas.auth import Token, TokenPayload
from app.schemas.flashcard import (
    FlashcardCreate,
    FlashcardEnvelope,
    FlashcardRead,
    FlashcardSetCreate,
    FlashcardSetDetail,
    FlashcardSetDetailEnvelope,
    FlashcardSetEnvelope,
    FlashcardSetListResponse,
    FlashcardSetRead,
    FlashcardSetSummary,
    FlashcardSetUpdate,
    FlashcardUpdate,
    StudySessionResponse,
)
from app.schemas.progress import (
    CardProgressRead,
    CardProgressResponse,
    DailyActivityRead,
    DailyActivityResponse,
    ProgressResetRead,
    ProgressResetResponse,
    RecentCardRead,
    RecentCardsResponse,
    RecordProgressRequest,
    RecordProgressResponse,
    SetProgressRead,
    SetProgressResponse,
    StudyEventRead,
    StudyStatus,
    TopicProgressRead,
    TopicProgressResponse,
)
from app.schemas.user import UserBase, UserCreate, UserLogin, UserRead

__all__ = [
    "Token",
    "TokenPayload",
    "FlashcardCreate",
    "FlashcardEnvelope",
    "FlashcardRead",
    "FlashcardSetCreate",
    "FlashcardSetDetail",
    "FlashcardSetDetailEnvelope",
    "FlashcardSetEnvelope",
    "FlashcardSetListResponse",
    "FlashcardSetRead",
    "FlashcardSetSummary",
    "FlashcardSetUpdate",
    "FlashcardUpdate",
    "StudySessionResponse",
    "CardProgressRead",
    "CardProgressResponse",
    "DailyActivityRead",
    "DailyActivityResponse",
    "ProgressResetRead",
    "ProgressResetResponse",
    "RecentCardRead",
    "RecentCardsResponse",
    "RecordProgressRequest",
    "RecordProgressResponse",
    "SetProgressRead",
    "SetProgressResponse",
    "StudyEventRead",
    "StudyStatus",
    "TopicProgressRead",
    "TopicProgressResponse",
    "UserBase",
    "UserCreate",
    "UserLogin",
    "UserRead",
]
