"""Study progress recording and analytics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.config import settings
from app.db.models.user import User
from app.schemas import (
    CardProgressResponse,
    DailyActivityResponse,
    ProgressResetResponse,
    RecentCardsResponse,
    RecordProgressRequest,
    RecordProgressResponse,
    SetProgressResponse,
    TopicProgressResponse,
)
from app.services.analytics import AnalyticsService
from app.services.flashcards import FlashcardService
from app.services.progress import ProgressService


router = APIRouter(prefix="/analytics", tags=["analytics"])


def parse_limit(raw: str | None) -> int:
    """Interpret the ``limit`` query value, falling back to the default when unusable."""

    try:
        limit = int(raw) if raw is not None else settings.RECENT_CARDS_DEFAULT_LIMIT
    except ValueError:
        return settings.RECENT_CARDS_DEFAULT_LIMIT
    if limit < 1:
        return settings.RECENT_CARDS_DEFAULT_LIMIT
    return min(limit, settings.RECENT_CARDS_MAX_LIMIT)


@router.post("/progress", response_model=RecordProgressResponse, status_code=status.HTTP_201_CREATED)
def record_progress(
    *,
    payload: RecordProgressRequest,
    current_user: User = Depends(deps.get_current_user),
    content: FlashcardService = Depends(deps.get_flashcard_service),
    service: ProgressService = Depends(deps.get_progress_service),
) -> RecordProgressResponse:
    """Record the caller's answer for a card."""

    content.ensure_card_in_set(
        user_id=current_user.id, set_id=payload.set_id, card_id=payload.card_id
    )
    event = service.record(
        user_id=current_user.id,
        set_id=payload.set_id,
        card_id=payload.card_id,
        status=payload.status,
    )
    return {"progress": event}


@router.get("/progress", response_model=SetProgressResponse)
def read_set_progress(
    *,
    current_user: User = Depends(deps.get_current_user),
    service: AnalyticsService = Depends(deps.get_analytics_service),
) -> SetProgressResponse:
    """Return per-set progress for every set the caller owns."""

    return {"progress": service.get_set_progress(current_user.id)}


@router.get("/cards", response_model=CardProgressResponse)
def read_card_progress(
    *,
    current_user: User = Depends(deps.get_current_user),
    service: AnalyticsService = Depends(deps.get_analytics_service),
) -> CardProgressResponse:
    """Return the current status of every studied card, ordered by card id."""

    return {"cards": list(service.get_card_progress(current_user.id).values())}


@router.get("/daily", response_model=DailyActivityResponse)
def read_daily_activity(
    *,
    current_user: User = Depends(deps.get_current_user),
    service: AnalyticsService = Depends(deps.get_analytics_service),
) -> DailyActivityResponse:
    """Return answer counts for the most recent active days."""

    return {"activity": service.get_daily_activity(current_user.id)}


@router.get("/topics", response_model=TopicProgressResponse)
def read_topic_progress(
    *,
    current_user: User = Depends(deps.get_current_user),
    service: AnalyticsService = Depends(deps.get_analytics_service),
) -> TopicProgressResponse:
    """Return progress grouped by set title topic."""

    return {"topics": service.get_topic_progress(current_user.id)}


@router.get("/recent", response_model=RecentCardsResponse)
def read_recent_cards(
    *,
    limit: str | None = Query(None, description="Number of cards to return (default 10)"),
    current_user: User = Depends(deps.get_current_user),
    service: AnalyticsService = Depends(deps.get_analytics_service),
) -> RecentCardsResponse:
    """Return the most recently studied distinct cards."""

    return {"cards": service.get_recent_cards(current_user.id, limit=parse_limit(limit))}


@router.post(
    "/reset/{set_id}", response_model=ProgressResetResponse, status_code=status.HTTP_201_CREATED
)
def reset_set_progress(
    *,
    set_id: int,
    current_user: User = Depends(deps.get_current_user),
    content: FlashcardService = Depends(deps.get_flashcard_service),
    service: ProgressService = Depends(deps.get_progress_service),
) -> ProgressResetResponse:
    """Start the caller's progress on a set over. Past events stay in the log."""

    content.get_owned_set(user_id=current_user.id, set_id=set_id)
    return {"reset": service.reset_set(user_id=current_user.id, set_id=set_id)}
