"""Drive a study session against the API with optimistic updates."""

from __future__ import annotations

from loguru import logger

from app.client.api import ApiError, FlashcardApiClient
from app.client.reconciliation import (
    CardEntry,
    Clock,
    LocalSetProgress,
    ProgressReconciler,
    StudySessionState,
)
from app.schemas import FlashcardRead


class StudySessionController:
    """Owns one study session for one set.

    ``start`` fetches the card order once; it is never re-requested while the
    learner moves between cards. Answers update local state first and are then
    written to the server; a failed write is logged and the local answer stays.
    """

    def __init__(
        self,
        api: FlashcardApiClient,
        reconciler: ProgressReconciler,
        *,
        set_id: int,
        set_title: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.api = api
        self.reconciler = reconciler
        self.set_id = set_id
        self.set_title = set_title
        self.clock = clock
        self.cards: list[FlashcardRead] = []
        self.state: StudySessionState | None = None

    async def start(self, *, mode: str = "random", limit: int | None = None) -> list[FlashcardRead]:
        self.cards = await self.api.start_study_session(self.set_id, mode=mode, limit=limit)

        # Seed from the server so the snapshot reflects the whole set, not just this session.
        initial: dict[int, str] = {}
        total_cards = len(self.cards)
        try:
            card_rows = await self.api.get_card_progress()
            set_rows = await self.api.get_set_progress()
        except ApiError as exc:
            logger.warning(
                "Could not load prior progress; starting from unseen",
                set_id=self.set_id,
                error=str(exc),
            )
        else:
            initial = {row.card_id: row.status for row in card_rows if row.set_id == self.set_id}
            for row in set_rows:
                if row.set_id == self.set_id:
                    total_cards = max(row.total_cards, total_cards)
                    self.set_title = self.set_title or row.set_title

        self.state = StudySessionState(
            self.set_id,
            [card.id for card in self.cards],
            set_title=self.set_title,
            total_cards=total_cards,
            initial=initial,
            clock=self.clock,
        )
        logger.info(
            "Study session started",
            set_id=self.set_id,
            mode=mode,
            card_count=len(self.cards),
        )
        return self.cards

    def _require_state(self) -> StudySessionState:
        if self.state is None:
            raise RuntimeError("Study session has not been started")
        return self.state

    async def answer(self, card_id: int, status: str) -> CardEntry:
        state = self._require_state()
        card = next((card for card in self.cards if card.id == card_id), None)
        revision = state.answer(
            card_id,
            status,
            front=card.front if card else "",
            back=card.back if card else "",
        )
        try:
            await self.api.record_progress(self.set_id, card_id, status)
        except ApiError as exc:
            state.mark_failed(card_id, exc)
        else:
            state.confirm(card_id, status, revision=revision)
        return state.entry(card_id)

    def leave(self) -> LocalSetProgress | None:
        """Hand the session's progress to the reconciler for the dashboard."""

        state = self._require_state()
        snapshot = state.snapshot()
        self.reconciler.buffer(snapshot)
        self.reconciler.buffer_recent(state.recent)
        logger.info(
            "Study session left",
            set_id=self.set_id,
            cards_studied=state.tallies.studied,
            failed_writes=state.failed_writes,
        )
        return snapshot
