"""Pydantic models for flashcard set and card endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FlashcardSetCreate(BaseModel):
    """Payload for creating a set."""

    title: str = Field(min_length=2, max_length=100)
    description: Optional[str] = None
    is_public: bool = False


class FlashcardSetUpdate(BaseModel):
    """Partial update for a set."""

    title: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = None
    is_public: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def ensure_payload_not_empty(self) -> "FlashcardSetUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        if "title" in self.model_fields_set and self.title is None:
            raise ValueError("Title cannot be null")
        return self


class FlashcardCreate(BaseModel):
    """Payload for adding a card to a set."""

    front: str = Field(min_length=1, max_length=1000)
    back: str = Field(min_length=1, max_length=1000)


class FlashcardUpdate(BaseModel):
    """Partial update for a card."""

    front: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    back: Optional[str] = Field(default=None, min_length=1, max_length=1000)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def ensure_payload_not_empty(self) -> "FlashcardUpdate":
        if self.front is None and self.back is None:
            raise ValueError("At least one of front or back must be provided")
        return self


class FlashcardRead(BaseModel):
    """A card as returned to clients."""

    id: int
    set_id: int
    front: str
    back: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FlashcardSetRead(BaseModel):
    """A set without its cards."""

    id: int
    title: str
    description: Optional[str] = None
    is_public: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FlashcardSetSummary(FlashcardSetRead):
    """Set listing entry with its card count."""

    card_count: int = 0


class FlashcardSetDetail(FlashcardSetRead):
    """A set together with its cards in creation order."""

    cards: List[FlashcardRead] = Field(default_factory=list)


class FlashcardSetEnvelope(BaseModel):
    set: FlashcardSetRead


class FlashcardSetDetailEnvelope(BaseModel):
    set: FlashcardSetDetail


class FlashcardSetListResponse(BaseModel):
    sets: List[FlashcardSetSummary] = Field(default_factory=list)


class FlashcardEnvelope(BaseModel):
    card: FlashcardRead


class StudySessionResponse(BaseModel):
    """Cards to present, in presentation order."""

    set_id: int
    mode: str
    cards: List[FlashcardRead] = Field(default_factory=list)
