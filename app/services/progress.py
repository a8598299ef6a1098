"""Append-only store for study events."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.study_event import STUDY_STATUSES, ProgressReset, StudyEvent
from app.utils.exceptions import StorageError, ValidationError


def _as_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc) if value.tzinfo else value


class ProgressService:
    """Records learner answers.

    Events are only ever appended: a mistaken answer is corrected by recording
    a newer event. Whether the caller may study the referenced set and card is
    checked before this service is called.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def _validate(user_id: uuid.UUID | None, set_id: int | None, card_id: int | None, status: str | None) -> None:
        missing = [
            name
            for name, value in (("user_id", user_id), ("set_id", set_id), ("card_id", card_id), ("status", status))
            if value is None or value == ""
        ]
        if missing:
            raise ValidationError(
                "Set ID, card ID, and status are required",
                {field: "This field is required" for field in missing},
            )
        if status not in STUDY_STATUSES:
            raise ValidationError(
                f"Invalid status: {status!r}",
                {"status": f"Must be one of {', '.join(STUDY_STATUSES)}"},
            )

    def _commit(self, action: str, **context: object) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Progress write failed", action=action, error=str(exc), **context)
            raise StorageError(f"Could not {action}", {"action": action}) from exc

    def record(
        self,
        *,
        user_id: uuid.UUID,
        set_id: int,
        card_id: int,
        status: str,
        timestamp: datetime | None = None,
    ) -> StudyEvent:
        """Append one study event and return it once it is committed."""

        self._validate(user_id, set_id, card_id, status)
        event = StudyEvent(
            user_id=user_id,
            set_id=set_id,
            card_id=card_id,
            status=status,
            timestamp=_as_utc(timestamp) if timestamp else datetime.now(timezone.utc),
        )
        self.db.add(event)
        self._commit("save progress", user_id=str(user_id), card_id=card_id)
        self.db.refresh(event)
        logger.info(
            "Study event recorded",
            user_id=str(user_id),
            set_id=set_id,
            card_id=card_id,
            status=status,
            event_id=event.id,
        )
        return event

    def reset_set(self, *, user_id: uuid.UUID, set_id: int) -> ProgressReset:
        """Restart the learner's progress on a set without deleting history."""

        if user_id is None or set_id is None:
            raise ValidationError("Set ID is required", {"set_id": "This field is required"})

        watermark = self.db.scalar(
            select(func.coalesce(func.max(StudyEvent.id), 0)).where(StudyEvent.user_id == user_id)
        )
        reset = ProgressReset(user_id=user_id, set_id=set_id, event_watermark=int(watermark or 0))
        self.db.add(reset)
        self._commit("reset progress", user_id=str(user_id), set_id=set_id)
        self.db.refresh(reset)
        logger.info(
            "Set progress reset",
            user_id=str(user_id),
            set_id=set_id,
            event_watermark=reset.event_watermark,
        )
        return reset
