"""Flashcard content store: owner-scoped set and card CRUD plus study ordering."""
from __future__ import annotations

import random
import uuid
from dataclasses import dataclass

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.study import StudyMode, order_cards
from app.db.models.flashcard import Flashcard, FlashcardSet
from app.db.models.user import User
from app.schemas.flashcard import (
    FlashcardCreate,
    FlashcardSetCreate,
    FlashcardSetUpdate,
    FlashcardUpdate,
)
from app.utils.exceptions import NotFoundError, StorageError, ValidationError


@dataclass(slots=True)
class SetSummary:
    """A set paired with the number of cards it holds."""

    flashcard_set: FlashcardSet
    card_count: int


class FlashcardService:
    """Owner-scoped access to flashcard sets and cards.

    A set or card that exists but belongs to someone else is reported exactly
    like a missing one.
    """

    def __init__(self, db: Session, *, rng: random.Random | None = None) -> None:
        self.db = db
        self.rng = rng

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Content write failed", action=action, error=str(exc))
            raise StorageError(f"Could not {action}", {"action": action}) from exc

    def get_owned_set(self, *, user_id: uuid.UUID, set_id: int) -> FlashcardSet:
        """Return the caller's set or raise ``NotFoundError``."""

        stmt = select(FlashcardSet).where(
            FlashcardSet.id == set_id, FlashcardSet.user_id == user_id
        )
        flashcard_set = self.db.scalars(stmt).first()
        if flashcard_set is None:
            raise NotFoundError("Flashcard set not found", {"set_id": set_id})
        return flashcard_set

    def get_owned_card(self, *, user_id: uuid.UUID, card_id: int) -> Flashcard:
        """Return a card from one of the caller's sets or raise ``NotFoundError``."""

        stmt = (
            select(Flashcard)
            .join(FlashcardSet, FlashcardSet.id == Flashcard.set_id)
            .where(Flashcard.id == card_id, FlashcardSet.user_id == user_id)
        )
        card = self.db.scalars(stmt).first()
        if card is None:
            raise NotFoundError("Flashcard not found", {"card_id": card_id})
        return card

    def ensure_card_in_set(self, *, user_id: uuid.UUID, set_id: int, card_id: int) -> Flashcard:
        """Check the caller owns ``set_id`` and that ``card_id`` belongs to it."""

        self.get_owned_set(user_id=user_id, set_id=set_id)
        card = self.get_owned_card(user_id=user_id, card_id=card_id)
        if card.set_id != set_id:
            raise NotFoundError(
                "Flashcard not found in this set", {"set_id": set_id, "card_id": card_id}
            )
        return card

    def list_cards(self, set_id: int) -> list[Flashcard]:
        """Return a set's cards in creation order."""

        stmt = (
            select(Flashcard)
            .where(Flashcard.set_id == set_id)
            .order_by(Flashcard.created_at.asc(), Flashcard.id.asc())
        )
        return list(self.db.scalars(stmt))

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------
    def create_set(self, *, user: User, payload: FlashcardSetCreate) -> FlashcardSet:
        flashcard_set = FlashcardSet(
            user_id=user.id,
            title=payload.title,
            description=payload.description,
            is_public=payload.is_public,
        )
        self.db.add(flashcard_set)
        self._commit("create flashcard set")
        self.db.refresh(flashcard_set)
        logger.info("Flashcard set created", user_id=str(user.id), set_id=flashcard_set.id)
        return flashcard_set

    def list_sets(self, *, user: User) -> list[SetSummary]:
        """Return the caller's sets, newest first, with card counts."""

        stmt = (
            select(FlashcardSet, func.count(Flashcard.id))
            .outerjoin(Flashcard, Flashcard.set_id == FlashcardSet.id)
            .where(FlashcardSet.user_id == user.id)
            .group_by(FlashcardSet.id)
            .order_by(FlashcardSet.created_at.desc(), FlashcardSet.id.desc())
        )
        return [
            SetSummary(flashcard_set=flashcard_set, card_count=int(count or 0))
            for flashcard_set, count in self.db.execute(stmt).all()
        ]

    def get_set_detail(self, *, user: User, set_id: int) -> FlashcardSet:
        stmt = (
            select(FlashcardSet)
            .options(selectinload(FlashcardSet.cards))
            .where(FlashcardSet.id == set_id, FlashcardSet.user_id == user.id)
            .execution_options(populate_existing=True)
        )
        flashcard_set = self.db.scalars(stmt).first()
        if flashcard_set is None:
            raise NotFoundError("Flashcard set not found", {"set_id": set_id})
        return flashcard_set

    def update_set(self, *, user: User, set_id: int, payload: FlashcardSetUpdate) -> FlashcardSet:
        flashcard_set = self.get_owned_set(user_id=user.id, set_id=set_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(flashcard_set, field, value)
        self._commit("update flashcard set")
        self.db.refresh(flashcard_set)
        return flashcard_set

    def delete_set(self, *, user: User, set_id: int) -> FlashcardSet:
        flashcard_set = self.get_owned_set(user_id=user.id, set_id=set_id)
        self.db.delete(flashcard_set)
        self._commit("delete flashcard set")
        logger.info("Flashcard set deleted", user_id=str(user.id), set_id=set_id)
        return flashcard_set

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------
    def create_card(self, *, user: User, set_id: int, payload: FlashcardCreate) -> Flashcard:
        self.get_owned_set(user_id=user.id, set_id=set_id)
        card = Flashcard(set_id=set_id, front=payload.front, back=payload.back)
        self.db.add(card)
        self._commit("create flashcard")
        self.db.refresh(card)
        return card

    def update_card(self, *, user: User, card_id: int, payload: FlashcardUpdate) -> Flashcard:
        card = self.get_owned_card(user_id=user.id, card_id=card_id)
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(card, field, value)
        self._commit("update flashcard")
        self.db.refresh(card)
        return card

    def delete_card(self, *, user: User, card_id: int) -> Flashcard:
        card = self.get_owned_card(user_id=user.id, card_id=card_id)
        self.db.delete(card)
        self._commit("delete flashcard")
        return card

    # ------------------------------------------------------------------
    # Study sessions
    # ------------------------------------------------------------------
    def select_session(
        self,
        *,
        user: User,
        set_id: int,
        mode: str | StudyMode = StudyMode.RANDOM,
        limit: int | None = None,
    ) -> list[Flashcard]:
        """Return the cards to present for a new study session.

        An empty set yields an empty list; callers treat that as nothing to
        study rather than an error.
        """

        try:
            study_mode = StudyMode(mode)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown study mode: {mode!r}",
                {"mode": [m.value for m in StudyMode]},
            ) from exc
        if limit is not None and limit < 1:
            raise ValidationError("Limit must be a positive integer", {"limit": limit})

        self.get_owned_set(user_id=user.id, set_id=set_id)
        cards = self.list_cards(set_id)
        return order_cards(cards, study_mode, rng=self.rng, limit=limit)
