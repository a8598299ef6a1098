"""Flashcard set, card and study session endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.core.study import StudyMode
from app.db.models.user import User
from app.schemas import (
    FlashcardCreate,
    FlashcardEnvelope,
    FlashcardRead,
    FlashcardSetCreate,
    FlashcardSetDetailEnvelope,
    FlashcardSetEnvelope,
    FlashcardSetListResponse,
    FlashcardSetSummary,
    FlashcardSetUpdate,
    FlashcardUpdate,
    StudySessionResponse,
)
from app.services.flashcards import FlashcardService


router = APIRouter(prefix="/flashcards", tags=["flashcards"])


@router.post("/sets", response_model=FlashcardSetEnvelope, status_code=status.HTTP_201_CREATED)
def create_set(
    *,
    payload: FlashcardSetCreate,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardSetEnvelope:
    """Create a new flashcard set owned by the caller."""

    return {"set": service.create_set(user=current_user, payload=payload)}


@router.get("/sets", response_model=FlashcardSetListResponse)
def list_sets(
    *,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardSetListResponse:
    """Return the caller's sets, newest first, with card counts."""

    summaries = service.list_sets(user=current_user)
    return FlashcardSetListResponse(
        sets=[
            FlashcardSetSummary.model_validate(summary.flashcard_set).model_copy(
                update={"card_count": summary.card_count}
            )
            for summary in summaries
        ]
    )


@router.get("/sets/{set_id}", response_model=FlashcardSetDetailEnvelope)
def read_set(
    *,
    set_id: int,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardSetDetailEnvelope:
    """Return one set with its cards in creation order."""

    return {"set": service.get_set_detail(user=current_user, set_id=set_id)}


@router.put("/sets/{set_id}", response_model=FlashcardSetEnvelope)
def update_set(
    *,
    set_id: int,
    payload: FlashcardSetUpdate,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardSetEnvelope:
    return {"set": service.update_set(user=current_user, set_id=set_id, payload=payload)}


@router.delete("/sets/{set_id}", response_model=FlashcardSetEnvelope)
def delete_set(
    *,
    set_id: int,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardSetEnvelope:
    return {"set": service.delete_set(user=current_user, set_id=set_id)}


@router.post(
    "/sets/{set_id}/cards", response_model=FlashcardEnvelope, status_code=status.HTTP_201_CREATED
)
def create_card(
    *,
    set_id: int,
    payload: FlashcardCreate,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardEnvelope:
    """Add a card to one of the caller's sets."""

    return {"card": service.create_card(user=current_user, set_id=set_id, payload=payload)}


@router.put("/cards/{card_id}", response_model=FlashcardEnvelope)
def update_card(
    *,
    card_id: int,
    payload: FlashcardUpdate,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardEnvelope:
    return {"card": service.update_card(user=current_user, card_id=card_id, payload=payload)}


@router.delete("/cards/{card_id}", response_model=FlashcardEnvelope)
def delete_card(
    *,
    card_id: int,
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> FlashcardEnvelope:
    return {"card": service.delete_card(user=current_user, card_id=card_id)}


@router.get("/sets/{set_id}/study", response_model=StudySessionResponse)
def start_study_session(
    *,
    set_id: int,
    mode: StudyMode = Query(StudyMode.RANDOM, description="random or sequential"),
    limit: int | None = Query(None, ge=1, le=1000, description="Optional cap on cards returned"),
    current_user: User = Depends(deps.get_current_user),
    service: FlashcardService = Depends(deps.get_flashcard_service),
) -> StudySessionResponse:
    """Return the card order for a new study session.

    The order is fixed for the session; clients should not re-request it to
    move between cards.
    """

    cards = service.select_session(user=current_user, set_id=set_id, mode=mode, limit=limit)
    return StudySessionResponse(
        set_id=set_id,
        mode=mode.value,
        cards=[FlashcardRead.model_validate(card) for card in cards],
    )
