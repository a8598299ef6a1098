"""Progress views derived from the study event log.

Nothing here is cached or persisted: every call recomputes from
``study_events`` so a view can never lag behind an acknowledged write. The
common building block is the "latest event per card" subquery, which ranks a
learner's events per card by ``(timestamp DESC, id DESC)`` and keeps rank 1.
Counting raw events instead would double count cards answered more than once.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from app.config import settings
from app.core.progress import completion_percent, extract_topic
from app.db.models.flashcard import Flashcard, FlashcardSet
from app.db.models.study_event import ProgressReset, StudyEvent


def _coerce_day(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Unsupported date payload: {value!r}")


def utc_day(timestamp: Any, dialect_name: str) -> Any:
    """SQL expression for the UTC calendar day of a timestamp column.

    PostgreSQL casts ``timestamptz`` to a date in the session time zone, so the
    value is shifted to UTC first. SQLite stores UTC wall time already.
    """

    if dialect_name == "postgresql":
        return func.date(func.timezone("UTC", timestamp))
    return func.date(timestamp)


@dataclass(slots=True)
class CardProgress:
    card_id: int
    set_id: int
    status: str
    last_timestamp: datetime


@dataclass(slots=True)
class SetProgress:
    set_id: int
    set_title: str
    cards_studied: int = 0
    total_cards: int = 0
    correct_count: int = 0
    incorrect_count: int = 0

    @property
    def percent_complete(self) -> int:
        return completion_percent(self.cards_studied, self.total_cards)


@dataclass(slots=True)
class TopicProgress:
    topic: str
    set_count: int = 0
    cards_studied: int = 0
    total_cards: int = 0
    correct_count: int = 0
    incorrect_count: int = 0

    @property
    def percent_complete(self) -> int:
        return completion_percent(self.cards_studied, self.total_cards)

    def add_set(self, row: SetProgress) -> None:
        self.set_count += 1
        self.cards_studied += row.cards_studied
        self.total_cards += row.total_cards
        self.correct_count += row.correct_count
        self.incorrect_count += row.incorrect_count


@dataclass(slots=True)
class DailyActivity:
    date: date
    total_count: int


@dataclass(slots=True)
class RecentCard:
    card_id: int
    set_id: int
    set_title: str
    front: str
    back: str
    status: str
    timestamp: datetime


class AnalyticsService:
    """Aggregate a single learner's study events for dashboards.

    Every query is filtered by ``user_id``; an unknown user simply has no rows.
    """

    def __init__(
        self,
        db: Session,
        *,
        daily_window_days: int | None = None,
        ungrouped_topic: str | None = None,
    ) -> None:
        self.db = db
        self.daily_window_days = daily_window_days or settings.DAILY_ACTIVITY_WINDOW_DAYS
        self.ungrouped_topic = ungrouped_topic or settings.UNGROUPED_TOPIC_NAME

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _reset_watermark() -> Any:
        """Correlated lookup of the newest reset watermark for an event's set."""

        return (
            select(func.coalesce(func.max(ProgressReset.event_watermark), 0))
            .where(
                ProgressReset.user_id == StudyEvent.user_id,
                ProgressReset.set_id == StudyEvent.set_id,
            )
            .scalar_subquery()
        )

    def _latest_events(self, user_id: uuid.UUID, *, honor_resets: bool) -> Any:
        """Subquery holding exactly one row, the current one, per studied card."""

        recency_rank = (
            func.row_number()
            .over(
                partition_by=StudyEvent.card_id,
                order_by=[StudyEvent.timestamp.desc(), StudyEvent.id.desc()],
            )
            .label("recency_rank")
        )
        stmt = select(
            StudyEvent.id.label("event_id"),
            StudyEvent.card_id,
            StudyEvent.set_id,
            StudyEvent.status,
            StudyEvent.timestamp,
            recency_rank,
        ).where(StudyEvent.user_id == user_id)
        if honor_resets:
            stmt = stmt.where(StudyEvent.id > self._reset_watermark())
        ranked = stmt.subquery("ranked_events")
        return select(ranked).where(ranked.c.recency_rank == 1).subquery("latest_events")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_card_progress(self, user_id: uuid.UUID) -> dict[int, CardProgress]:
        """Return the current status of every card the learner has studied."""

        latest = self._latest_events(user_id, honor_resets=True)
        stmt = (
            select(latest.c.card_id, latest.c.set_id, latest.c.status, latest.c.timestamp)
            .select_from(latest)
            .join(Flashcard, Flashcard.id == latest.c.card_id)
            .order_by(latest.c.card_id)
        )
        return {
            row.card_id: CardProgress(
                card_id=row.card_id,
                set_id=row.set_id,
                status=row.status,
                last_timestamp=row.timestamp,
            )
            for row in self.db.execute(stmt)
        }

    def get_set_progress(self, user_id: uuid.UUID) -> list[SetProgress]:
        """Return one row per owned set, including sets nobody has studied yet."""

        latest = self._latest_events(user_id, honor_resets=True)
        correct = func.coalesce(func.sum(case((latest.c.status == "correct", 1), else_=0)), 0)
        incorrect = func.coalesce(func.sum(case((latest.c.status == "incorrect", 1), else_=0)), 0)
        stmt = (
            select(
                FlashcardSet.id.label("set_id"),
                FlashcardSet.title.label("set_title"),
                func.count(latest.c.card_id.distinct()).label("cards_studied"),
                func.count(Flashcard.id.distinct()).label("total_cards"),
                correct.label("correct_count"),
                incorrect.label("incorrect_count"),
            )
            .select_from(FlashcardSet)
            .outerjoin(Flashcard, Flashcard.set_id == FlashcardSet.id)
            .outerjoin(latest, latest.c.card_id == Flashcard.id)
            .where(FlashcardSet.user_id == user_id)
            .group_by(FlashcardSet.id, FlashcardSet.title, FlashcardSet.created_at)
            .order_by(FlashcardSet.created_at.asc(), FlashcardSet.id.asc())
        )
        return [
            SetProgress(
                set_id=row.set_id,
                set_title=row.set_title,
                cards_studied=int(row.cards_studied or 0),
                total_cards=int(row.total_cards or 0),
                correct_count=int(row.correct_count or 0),
                incorrect_count=int(row.incorrect_count or 0),
            )
            for row in self.db.execute(stmt)
        ]

    def get_topic_progress(self, user_id: uuid.UUID) -> list[TopicProgress]:
        """Roll set progress up by the title prefix before the first colon."""

        topics: dict[str, TopicProgress] = {}
        for row in self.get_set_progress(user_id):
            topic = extract_topic(row.set_title, ungrouped=self.ungrouped_topic)
            topics.setdefault(topic, TopicProgress(topic=topic)).add_set(row)
        return sorted(topics.values(), key=lambda item: (item.topic.casefold(), item.topic))

    def get_daily_activity(self, user_id: uuid.UUID) -> list[DailyActivity]:
        """Return answer counts for the most recent active days, newest first."""

        day = utc_day(StudyEvent.timestamp, self.db.get_bind().dialect.name)
        rows = (
            self.db.query(day.label("day"), func.count(StudyEvent.id).label("total_count"))
            .filter(StudyEvent.user_id == user_id)
            .group_by(day)
            .order_by(day.desc())
            .limit(self.daily_window_days)
            .all()
        )
        return [
            DailyActivity(date=_coerce_day(row.day), total_count=int(row.total_count or 0))
            for row in rows
            if row.day is not None
        ]

    def get_recent_cards(self, user_id: uuid.UUID, limit: int = 10) -> list[RecentCard]:
        """Return the most recently studied distinct cards with their content."""

        if limit < 1:
            return []
        latest = self._latest_events(user_id, honor_resets=False)
        stmt = (
            select(
                latest.c.card_id,
                Flashcard.set_id,
                FlashcardSet.title.label("set_title"),
                Flashcard.front,
                Flashcard.back,
                latest.c.status,
                latest.c.timestamp,
            )
            .select_from(latest)
            .join(Flashcard, Flashcard.id == latest.c.card_id)
            .join(FlashcardSet, FlashcardSet.id == Flashcard.set_id)
            .order_by(latest.c.timestamp.desc(), latest.c.event_id.desc())
            .limit(limit)
        )
        return [
            RecentCard(
                card_id=row.card_id,
                set_id=row.set_id,
                set_title=row.set_title,
                front=row.front,
                back=row.back,
                status=row.status,
                timestamp=row.timestamp,
            )
            for row in self.db.execute(stmt)
        ]
