"""Optimistic local progress and its reconciliation with server views.

A study session updates its tallies as soon as the learner answers, before the
write is acknowledged. When the learner leaves, the session's snapshot is
buffered here until a dashboard refresh returns server rows that are at least
as new; until then the local snapshot wins for that set. Server responses that
were requested before the newest one already merged are discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Sequence

from loguru import logger

from app.core.progress import completion_percent
from app.db.models.study_event import STUDY_STATUSES
from app.schemas import RecentCardRead, SetProgressRead
from app.utils.exceptions import StaleWriteWarning, ValidationError

Clock = Callable[[], datetime]

LOCAL_RECENT_LIMIT = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_timezone(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so local and server times compare."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CardState(str, Enum):
    UNSEEN = "unseen"
    PENDING = "pending"
    CONFIRMED = "confirmed"


@dataclass(slots=True)
class CardEntry:
    state: CardState = CardState.UNSEEN
    status: str | None = None
    revision: int = 0
    failures: int = 0


@dataclass(slots=True)
class Tallies:
    studied: int = 0
    correct: int = 0
    incorrect: int = 0


@dataclass(slots=True)
class LocalRecentCard:
    card_id: int
    set_id: int
    status: str
    timestamp: datetime
    set_title: str = ""
    front: str = ""
    back: str = ""

    def as_row(self) -> RecentCardRead:
        return RecentCardRead(
            card_id=self.card_id,
            set_id=self.set_id,
            set_title=self.set_title,
            front=self.front,
            back=self.back,
            status=self.status,
            timestamp=self.timestamp,
        )


@dataclass(slots=True)
class LocalSetProgress:
    """Last-known progress for a set as seen by the client."""

    set_id: int
    total_cards: int
    cards_studied: int
    correct_count: int
    incorrect_count: int
    updated_at: datetime
    set_title: str | None = None

    @property
    def percent_complete(self) -> int:
        return completion_percent(self.cards_studied, self.total_cards)

    def as_row(self, *, set_title: str | None = None) -> SetProgressRead:
        return SetProgressRead(
            set_id=self.set_id,
            set_title=set_title if set_title is not None else (self.set_title or ""),
            cards_studied=self.cards_studied,
            total_cards=self.total_cards,
            correct_count=self.correct_count,
            incorrect_count=self.incorrect_count,
            percent_complete=self.percent_complete,
        )


class StudySessionState:
    """Per-card status machine for one study session.

    Each card moves ``unseen -> pending`` on answer and ``pending -> confirmed``
    once the server acknowledges the write. Answering a card again goes back to
    ``pending`` and applies the signed difference to the tallies, so
    ``tallies.studied`` always equals the number of cards not ``unseen``.
    """

    def __init__(
        self,
        set_id: int,
        card_ids: Iterable[int],
        *,
        set_title: str | None = None,
        total_cards: int | None = None,
        initial: dict[int, str] | None = None,
        clock: Clock | None = None,
        recent_limit: int = LOCAL_RECENT_LIMIT,
    ) -> None:
        self.set_id = set_id
        self.set_title = set_title
        self.clock = clock or utc_now
        self.recent_limit = recent_limit
        self.entries: dict[int, CardEntry] = {card_id: CardEntry() for card_id in card_ids}
        self.tallies = Tallies()
        self.updated_at: datetime | None = None
        self.failed_writes = 0
        self.recent: list[LocalRecentCard] = []

        # Cards studied earlier count toward the set even when this session skips them.
        for card_id, status in (initial or {}).items():
            if status not in STUDY_STATUSES:
                continue
            self.entries[card_id] = CardEntry(state=CardState.CONFIRMED, status=status)
            self.tallies.studied += 1
            self._bump(status, 1)
        self.total_cards = max(total_cards or 0, len(self.entries))

    def _bump(self, status: str, delta: int) -> None:
        if status == "correct":
            self.tallies.correct += delta
        elif status == "incorrect":
            self.tallies.incorrect += delta

    def entry(self, card_id: int) -> CardEntry:
        try:
            return self.entries[card_id]
        except KeyError:
            raise ValidationError(
                "Card is not part of this session", details={"card_id": card_id}
            ) from None

    def answer(
        self,
        card_id: int,
        status: str,
        *,
        front: str = "",
        back: str = "",
    ) -> int:
        """Apply an answer optimistically and return its revision number."""

        if status not in STUDY_STATUSES:
            raise ValidationError(
                f"Status must be one of: {', '.join(STUDY_STATUSES)}",
                details={"status": status},
            )
        entry = self.entry(card_id)
        if entry.state is CardState.UNSEEN:
            self.tallies.studied += 1
        elif entry.status is not None:
            self._bump(entry.status, -1)
        self._bump(status, 1)

        entry.state = CardState.PENDING
        entry.status = status
        entry.revision += 1
        self.updated_at = self.clock()
        self._remember(card_id, status, front=front, back=back)
        return entry.revision

    def confirm(self, card_id: int, status: str, *, revision: int | None = None) -> bool:
        """Mark a pending answer as acknowledged.

        Acknowledgements for an answer that has since been replaced are ignored.
        """

        entry = self.entry(card_id)
        if entry.state is not CardState.PENDING or entry.status != status:
            return False
        if revision is not None and revision != entry.revision:
            return False
        entry.state = CardState.CONFIRMED
        return True

    def mark_failed(self, card_id: int, error: Exception) -> None:
        """Record a failed write. The optimistic tallies are kept."""

        entry = self.entry(card_id)
        entry.failures += 1
        self.failed_writes += 1
        logger.warning(
            "Progress write failed; keeping local answer",
            set_id=self.set_id,
            card_id=card_id,
            status=entry.status,
            error=str(error),
        )

    def snapshot(self) -> LocalSetProgress | None:
        """Return the session's set progress, or ``None`` if nothing was answered."""

        if self.updated_at is None:
            return None
        return LocalSetProgress(
            set_id=self.set_id,
            set_title=self.set_title,
            total_cards=self.total_cards,
            cards_studied=self.tallies.studied,
            correct_count=self.tallies.correct,
            incorrect_count=self.tallies.incorrect,
            updated_at=self.updated_at,
        )

    def _remember(self, card_id: int, status: str, *, front: str, back: str) -> None:
        self.recent = [item for item in self.recent if item.card_id != card_id]
        self.recent.insert(
            0,
            LocalRecentCard(
                card_id=card_id,
                set_id=self.set_id,
                set_title=self.set_title or "",
                front=front,
                back=back,
                status=status,
                timestamp=self.updated_at or self.clock(),
            ),
        )
        del self.recent[self.recent_limit :]


@dataclass
class ProgressReconciler:
    """Merge buffered local snapshots with server set-progress rows."""

    recent_limit: int = LOCAL_RECENT_LIMIT
    local: dict[int, LocalSetProgress] = field(default_factory=dict)
    local_recent: list[LocalRecentCard] = field(default_factory=list)
    server_rows: list[SetProgressRead] = field(default_factory=list)
    last_requested_at: datetime | None = None
    last_sync_at: datetime | None = None
    stale_discards: int = 0

    def buffer(self, snapshot: LocalSetProgress | None) -> None:
        """Keep a session snapshot until the server catches up with it."""

        if snapshot is None:
            return
        current = self.local.get(snapshot.set_id)
        if current is not None and _ensure_timezone(current.updated_at) > _ensure_timezone(
            snapshot.updated_at
        ):
            return
        self.local[snapshot.set_id] = snapshot

    def buffer_recent(self, cards: Iterable[LocalRecentCard]) -> None:
        self.local_recent = _newest_per_card(
            [*cards, *self.local_recent], key=lambda item: item.timestamp
        )[: self.recent_limit]

    def merge(
        self, server_rows: Sequence[SetProgressRead], requested_at: datetime
    ) -> list[SetProgressRead]:
        """Fold a server response into the view and return the merged rows.

        ``requested_at`` is when the request was issued. Local snapshots taken
        after that moment win over the server row for their set; older ones are
        dropped because the server already reflects them. Merging the same
        response twice gives the same view.
        """

        requested_at = _ensure_timezone(requested_at)
        if self.last_requested_at is not None and requested_at < self.last_requested_at:
            warning = StaleWriteWarning(
                f"Discarding progress response requested at {requested_at.isoformat()}; "
                f"a response requested at {self.last_requested_at.isoformat()} is already applied"
            )
            self.stale_discards += 1
            logger.warning("{}: {}", type(warning).__name__, warning)
            return self.view()

        self.last_requested_at = requested_at
        self.last_sync_at = utc_now()
        self.server_rows = list(server_rows)
        for set_id, snapshot in list(self.local.items()):
            if _ensure_timezone(snapshot.updated_at) <= requested_at:
                del self.local[set_id]
        return self.view()

    def view(self) -> list[SetProgressRead]:
        """Current best-known rows: server rows overlaid with newer local ones."""

        rows: list[SetProgressRead] = []
        seen: set[int] = set()
        for row in self.server_rows:
            seen.add(row.set_id)
            snapshot = self.local.get(row.set_id)
            rows.append(snapshot.as_row(set_title=row.set_title) if snapshot else row)
        rows.extend(
            snapshot.as_row() for set_id, snapshot in self.local.items() if set_id not in seen
        )
        return rows

    def recent_cards(self, server_cards: Sequence[RecentCardRead]) -> list[RecentCardRead]:
        return merge_recent_cards(server_cards, self.local_recent, limit=self.recent_limit)


def _newest_per_card(items: Iterable, *, key: Callable) -> list:
    """Keep the newest item per card id (the earliest listed on ties), newest first."""

    chosen: dict[int, object] = {}
    for item in items:
        current = chosen.get(item.card_id)
        if current is None or _ensure_timezone(key(item)) > _ensure_timezone(key(current)):
            chosen[item.card_id] = item
    return sorted(chosen.values(), key=lambda item: _ensure_timezone(key(item)), reverse=True)


def merge_recent_cards(
    server_cards: Sequence[RecentCardRead],
    local_cards: Sequence[LocalRecentCard],
    *,
    limit: int = LOCAL_RECENT_LIMIT,
) -> list[RecentCardRead]:
    """Combine server and local recent cards, one entry per card, newest first.

    On equal timestamps the server entry is kept. With an empty server list the
    local buffer alone is returned.
    """

    rows = [*server_cards, *(card.as_row() for card in local_cards)]
    return _newest_per_card(rows, key=lambda item: item.timestamp)[:limit]
