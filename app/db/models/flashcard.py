"""Flashcard set and card models."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class FlashcardSet(Base):
    """A titled collection of flashcards owned by a single user."""

    __tablename__ = "flashcard_sets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(100), nullable=False)
    description = Column(Text)
    is_public = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="flashcard_sets")
    cards = relationship(
        "Flashcard",
        back_populates="flashcard_set",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (Flashcard.created_at, Flashcard.id),
    )


class Flashcard(Base):
    """A single front/back card inside a set."""

    __tablename__ = "flashcards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    set_id = Column(
        Integer, ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    front = Column(Text, nullable=False)
    back = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    flashcard_set = relationship("FlashcardSet", back_populates="cards")
