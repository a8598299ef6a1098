"""Pydantic models for study progress and analytics endpoints."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

StudyStatus = Literal["correct", "incorrect", "skipped"]


class RecordProgressRequest(BaseModel):
    """Payload for recording an answer to a card."""

    set_id: int = Field(..., alias="setId", ge=1)
    card_id: int = Field(..., alias="cardId", ge=1)
    status: StudyStatus

    model_config = ConfigDict(populate_by_name=True)


class StudyEventRead(BaseModel):
    """A persisted study event."""

    id: int
    user_id: uuid.UUID
    set_id: int
    card_id: int
    status: StudyStatus
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class RecordProgressResponse(BaseModel):
    progress: StudyEventRead


class CardProgressRead(BaseModel):
    """Current status of a card: the latest event recorded for it."""

    card_id: int
    set_id: int
    status: StudyStatus
    last_timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class CardProgressResponse(BaseModel):
    cards: List[CardProgressRead] = Field(default_factory=list)


class SetProgressRead(BaseModel):
    """Per-set rollup of card statuses."""

    set_id: int
    set_title: str
    cards_studied: int
    total_cards: int
    correct_count: int
    incorrect_count: int
    percent_complete: int

    model_config = ConfigDict(from_attributes=True)


class SetProgressResponse(BaseModel):
    progress: List[SetProgressRead] = Field(default_factory=list)


class TopicProgressRead(BaseModel):
    """Rollup of every set sharing a title prefix."""

    topic: str
    set_count: int
    cards_studied: int
    total_cards: int
    correct_count: int
    incorrect_count: int
    percent_complete: int

    model_config = ConfigDict(from_attributes=True)


class TopicProgressResponse(BaseModel):
    topics: List[TopicProgressRead] = Field(default_factory=list)


class DailyActivityRead(BaseModel):
    """Number of answers recorded on one calendar day."""

    date: date
    total_count: int

    model_config = ConfigDict(from_attributes=True)


class DailyActivityResponse(BaseModel):
    activity: List[DailyActivityRead] = Field(default_factory=list)


class RecentCardRead(BaseModel):
    """A recently studied card with its latest status and content."""

    card_id: int
    set_id: int
    set_title: str
    front: str
    back: str
    status: StudyStatus
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class RecentCardsResponse(BaseModel):
    cards: List[RecentCardRead] = Field(default_factory=list)


class ProgressResetRead(BaseModel):
    """Marker recorded when a learner restarts a set."""

    id: int
    set_id: int
    event_watermark: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProgressResetResponse(BaseModel):
    reset: ProgressResetRead
