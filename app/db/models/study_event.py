"""Append-only study event log and progress reset markers."""
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.db.base import Base


STUDY_STATUSES = ("correct", "incorrect", "skipped")


class StudyEvent(Base):
    """One learner answer for one card.

    Rows are never updated or deleted by the application. The integer primary
    key doubles as arrival order and breaks ties between equal timestamps.
    """

    __tablename__ = "study_events"
    __table_args__ = (
        CheckConstraint(
            "status IN ('correct', 'incorrect', 'skipped')", name="ck_study_events_status"
        ),
        Index("ix_study_events_user_card_latest", "user_id", "card_id", "timestamp", "id"),
        Index("ix_study_events_user_timestamp", "user_id", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    set_id = Column(
        Integer, ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    card_id = Column(
        Integer, ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(String(20), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ProgressReset(Base):
    """Marks a learner's progress on a set as restarted.

    Status views ignore the set's events with ``id <= event_watermark``; the
    events themselves stay in the log.
    """

    __tablename__ = "progress_resets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    set_id = Column(
        Integer, ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_watermark = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
