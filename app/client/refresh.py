"""Periodic dashboard refresh with reconciliation against local progress."""

from __future__ import annotations

import asyncio

from loguru import logger

from app.client.api import ApiError, FlashcardApiClient
from app.client.reconciliation import Clock, ProgressReconciler, merge_recent_cards, utc_now
from app.schemas import RecentCardRead, SetProgressRead

DEFAULT_POLL_INTERVAL_SECONDS = 10.0


class DashboardRefresher:
    """Keep dashboard progress and recent cards current.

    A pass runs every ``poll_interval_seconds`` and whenever the dashboard
    becomes visible again. Only one pass is in flight at a time; a trigger that
    arrives during a pass is dropped rather than queued.
    """

    def __init__(
        self,
        api: FlashcardApiClient,
        reconciler: ProgressReconciler,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        recent_limit: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.api = api
        self.reconciler = reconciler
        self.poll_interval_seconds = poll_interval_seconds
        self.recent_limit = recent_limit or reconciler.recent_limit
        self.clock = clock or utc_now
        self.progress: list[SetProgressRead] = []
        self.recent_cards: list[RecentCardRead] = []
        self.passes_run = 0
        self.passes_skipped = 0
        self._in_flight = False
        self._task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def refresh(self, *, reason: str = "manual") -> bool:
        """Run one pass. Returns ``False`` when another pass was already running."""

        if self._in_flight:
            self.passes_skipped += 1
            logger.debug("Refresh already in flight; skipping", reason=reason)
            return False

        self._in_flight = True
        try:
            requested_at = self.clock()
            try:
                rows = await self.api.get_set_progress()
            except ApiError as exc:
                logger.warning("Progress refresh failed", reason=reason, error=str(exc))
                self.progress = self.reconciler.view()
            else:
                self.progress = self.reconciler.merge(rows, requested_at)

            try:
                server_cards = await self.api.get_recent_cards(self.recent_limit)
            except ApiError as exc:
                logger.warning("Recent cards refresh failed", reason=reason, error=str(exc))
                server_cards = []
            self.recent_cards = merge_recent_cards(
                server_cards, self.reconciler.local_recent, limit=self.recent_limit
            )
        finally:
            self._in_flight = False

        self.passes_run += 1
        logger.debug(
            "Dashboard refreshed",
            reason=reason,
            sets=len(self.progress),
            recent_cards=len(self.recent_cards),
        )
        return True

    def on_visibility_regained(self) -> asyncio.Task:
        task = asyncio.create_task(self.refresh(reason="visibility"))
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error("Visibility refresh crashed")

    async def _run_periodically(self) -> None:
        while True:
            try:
                await self.refresh(reason="interval")
            except Exception:
                logger.exception("Periodic refresh crashed; retrying next interval")
            await asyncio.sleep(self.poll_interval_seconds)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run_periodically())
        return self._task

    async def stop(self) -> None:
        """Cancel the timer and any visibility passes still running."""

        tasks = list(self._background)
        if self._task is not None:
            tasks.append(self._task)
            self._task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
