"""Tests for the async API client, study session controller and dashboard refresher."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest
from loguru import logger

from app.client import (
    ApiError,
    CardState,
    DashboardRefresher,
    FlashcardApiClient,
    LocalSetProgress,
    ProgressReconciler,
    StudySessionController,
)
from app.client.reconciliation import LocalRecentCard
from app.core.security import create_access_token
from app.schemas import RecentCardRead, SetProgressRead

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _api(async_client: httpx.AsyncClient, user) -> FlashcardApiClient:
    return FlashcardApiClient(http_client=async_client, token=create_access_token(str(user.id)))


def _row(set_id: int = 1, studied: int = 1) -> SetProgressRead:
    return SetProgressRead(
        set_id=set_id,
        set_title="Spanish: Verbs",
        cards_studied=studied,
        total_cards=2,
        correct_count=studied,
        incorrect_count=0,
        percent_complete=50 * studied,
    )


class FakeApi:
    """Stands in for FlashcardApiClient in refresher tests."""

    def __init__(self, rows=None, recent=None) -> None:
        self.rows = rows or []
        self.recent = recent or []
        self.calls = 0
        self.gate: asyncio.Event | None = None
        self.fail_progress = False
        self.fail_recent = False

    async def get_set_progress(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_progress:
            raise ApiError("offline")
        return list(self.rows)

    async def get_recent_cards(self, limit=None):
        if self.fail_recent:
            raise ApiError("offline")
        return list(self.recent)[:limit]


@pytest.mark.asyncio
async def test_api_client_round_trip(async_client, user, make_set) -> None:
    flashcard_set = make_set(user, "Spanish: Verbs", fronts=("a", "b"))
    api = _api(async_client, user)

    cards = await api.start_study_session(flashcard_set.id, mode="sequential")
    event = await api.record_progress(flashcard_set.id, cards[0].id, "correct")
    progress = await api.get_set_progress()
    topics = await api.get_topic_progress()
    recent = await api.get_recent_cards(5)
    daily = await api.get_daily_activity()

    assert [card.front for card in cards] == ["a", "b"]
    assert event.status == "correct"
    assert progress[0].cards_studied == 1
    assert progress[0].percent_complete == 50
    assert topics[0].topic == "Spanish"
    assert [card.card_id for card in recent] == [cards[0].id]
    assert sum(entry.total_count for entry in daily) == 1

    reset = await api.reset_set_progress(flashcard_set.id)
    assert reset.event_watermark == event.id
    assert (await api.get_set_progress())[0].cards_studied == 0


@pytest.mark.asyncio
async def test_api_client_register_and_login(async_client) -> None:
    api = FlashcardApiClient(http_client=async_client)

    created = await api.register(username="newbie", email="newbie@example.com", password="verysecure")
    token = await api.login(email="newbie@example.com", password="verysecure")

    assert created["username"] == "newbie"
    assert token == api.token
    assert await api.get_set_progress() == []


@pytest.mark.asyncio
async def test_api_client_raises_api_error(async_client, user) -> None:
    api = _api(async_client, user)

    with pytest.raises(ApiError) as exc_info:
        await api.record_progress(999, 999, "correct")

    assert exc_info.value.status_code == 404
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_api_client_retries_then_wraps_transport_errors() -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://testserver"
    ) as http_client:
        api = FlashcardApiClient(
            http_client=http_client, token="token", retry_attempts=2, retry_backoff=0
        )
        with pytest.raises(ApiError) as exc_info:
            await api.get_set_progress()

    assert exc_info.value.status_code is None
    assert exc_info.value.retryable is True
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_session_controller_confirms_and_reconciles(async_client, user, make_set, record) -> None:
    flashcard_set = make_set(user, "Spanish: Verbs")
    earlier_card = flashcard_set.cards[2]
    record(user, earlier_card, "incorrect", T0)
    api = _api(async_client, user)
    reconciler = ProgressReconciler()
    controller = StudySessionController(api, reconciler, set_id=flashcard_set.id)

    cards = await controller.start(mode="sequential")
    assert [card.front for card in cards] == ["one", "two", "three"]
    assert controller.state.entry(earlier_card.id).state is CardState.CONFIRMED
    assert controller.set_title == "Spanish: Verbs"

    entry = await controller.answer(cards[0].id, "correct")
    assert entry.state is CardState.CONFIRMED

    snapshot = controller.leave()
    assert (snapshot.cards_studied, snapshot.correct_count, snapshot.incorrect_count) == (2, 1, 1)
    assert snapshot.total_cards == 3
    assert reconciler.local[flashcard_set.id] == snapshot

    refresher = DashboardRefresher(api, reconciler)
    assert await refresher.refresh() is True

    (row,) = refresher.progress
    assert (row.cards_studied, row.correct_count, row.incorrect_count) == (2, 1, 1)
    assert reconciler.local == {}
    assert [card.card_id for card in refresher.recent_cards] == [cards[0].id, earlier_card.id]


@pytest.mark.asyncio
async def test_session_controller_keeps_answer_when_write_fails() -> None:
    writes = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/study"):
            return httpx.Response(
                200,
                json={
                    "set_id": 1,
                    "mode": "sequential",
                    "cards": [{"id": 7, "set_id": 1, "front": "hola", "back": "hello"}],
                },
            )
        if path.endswith("/analytics/cards"):
            return httpx.Response(200, json={"cards": []})
        if path.endswith("/analytics/progress") and request.method == "GET":
            return httpx.Response(200, json={"progress": []})
        writes.append(request)
        return httpx.Response(
            503, json={"message": "Could not save progress", "details": {}, "retryable": True}
        )

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://testserver"
    ) as http_client:
        api = FlashcardApiClient(http_client=http_client, token="token", retry_backoff=0)
        reconciler = ProgressReconciler()
        controller = StudySessionController(api, reconciler, set_id=1, set_title="Spanish: Greetings")
        await controller.start(mode="sequential")

        entry = await controller.answer(7, "correct")

    assert entry.state is CardState.PENDING
    assert entry.failures == 1
    assert len(writes) == 3
    assert controller.state.tallies.correct == 1
    snapshot = controller.leave()
    assert snapshot.cards_studied == 1
    assert reconciler.local_recent[0].front == "hola"


@pytest.mark.asyncio
async def test_refresher_skips_overlapping_passes() -> None:
    api = FakeApi(rows=[_row()])
    api.gate = asyncio.Event()
    refresher = DashboardRefresher(api, ProgressReconciler())

    first = asyncio.create_task(refresher.refresh())
    await asyncio.sleep(0)
    assert refresher.in_flight is True
    assert await refresher.refresh(reason="visibility") is False

    api.gate.set()
    assert await first is True
    assert (refresher.passes_run, refresher.passes_skipped, api.calls) == (1, 1, 1)
    assert refresher.in_flight is False
    assert refresher.progress == [_row()]


@pytest.mark.asyncio
async def test_refresher_on_visibility_regained() -> None:
    api = FakeApi(rows=[_row(studied=2)])
    refresher = DashboardRefresher(api, ProgressReconciler())

    assert await refresher.on_visibility_regained() is True
    assert refresher.progress[0].cards_studied == 2


@pytest.mark.asyncio
async def test_refresher_runs_periodically_until_stopped() -> None:
    api = FakeApi(rows=[_row()])
    refresher = DashboardRefresher(api, ProgressReconciler(), poll_interval_seconds=0.01)

    task = refresher.start()
    assert refresher.start() is task
    await asyncio.sleep(0.05)
    await refresher.stop()

    assert refresher.passes_run >= 2
    assert task.cancelled()
    calls = api.calls
    await asyncio.sleep(0.02)
    assert api.calls == calls


@pytest.mark.asyncio
async def test_api_client_rejects_malformed_replies_without_retrying() -> None:
    replies = [
        httpx.Response(200, text="<html>proxy page</html>", headers={"content-type": "text/html"}),
        httpx.Response(200, json={"unexpected": []}),
        httpx.Response(200, json={"progress": [{"set_id": "not-a-number"}]}),
        httpx.Response(200, json={"progress": {"set_id": 1}}),
    ]
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return replies[len(requests) - 1]

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://testserver"
    ) as http_client:
        api = FlashcardApiClient(http_client=http_client, token="token", retry_backoff=0)
        for _ in replies:
            with pytest.raises(ApiError) as exc_info:
                await api.get_set_progress()
            assert exc_info.value.retryable is False

    assert len(requests) == len(replies)


@pytest.mark.asyncio
async def test_refresher_keeps_polling_after_malformed_reply() -> None:
    progress_requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/analytics/progress"):
            progress_requests.append(request)
            if len(progress_requests) == 1:
                return httpx.Response(
                    200, text="<html>proxy page</html>", headers={"content-type": "text/html"}
                )
            return httpx.Response(200, json={"progress": [_row().model_dump(mode="json")]})
        return httpx.Response(200, json={"cards": []})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://testserver"
    ) as http_client:
        api = FlashcardApiClient(http_client=http_client, token="token", retry_backoff=0)
        refresher = DashboardRefresher(api, ProgressReconciler(), poll_interval_seconds=0.01)

        task = refresher.start()
        await asyncio.sleep(0.1)
        assert not task.done()
        await refresher.stop()

    assert len(progress_requests) >= 2
    assert refresher.passes_run >= 2
    assert refresher.progress == [_row()]


class CrashingApi(FakeApi):
    """Raises an unexpected error on the first progress call only."""

    async def get_set_progress(self):
        if self.calls == 0:
            self.calls += 1
            raise RuntimeError("unexpected reply shape")
        return await super().get_set_progress()


@pytest.mark.asyncio
async def test_periodic_refresh_survives_unexpected_errors() -> None:
    api = CrashingApi(rows=[_row()])
    refresher = DashboardRefresher(api, ProgressReconciler(), poll_interval_seconds=0.01)

    task = refresher.start()
    await asyncio.sleep(0.05)
    assert not task.done()
    await refresher.stop()

    assert api.calls >= 2
    assert refresher.passes_run >= 1
    assert refresher.progress == [_row()]
    assert refresher.in_flight is False


@pytest.mark.asyncio
async def test_visibility_refresh_errors_are_logged_and_released() -> None:
    errors = []
    sink_id = logger.add(errors.append, level="ERROR")
    try:
        refresher = DashboardRefresher(CrashingApi(), ProgressReconciler())

        task = refresher.on_visibility_regained()
        await asyncio.sleep(0.01)
        await refresher.stop()
    finally:
        logger.remove(sink_id)

    assert task.done()
    assert isinstance(task.exception(), RuntimeError)
    assert any("Visibility refresh crashed" in message for message in errors)
    assert refresher._background == set()


@pytest.mark.asyncio
async def test_refresher_falls_back_to_local_state_when_offline() -> None:
    api = FakeApi()
    api.fail_progress = True
    api.fail_recent = True
    reconciler = ProgressReconciler()
    reconciler.buffer(
        LocalSetProgress(
            set_id=3,
            set_title="Spanish: Food",
            total_cards=4,
            cards_studied=1,
            correct_count=1,
            incorrect_count=0,
            updated_at=T0,
        )
    )
    reconciler.buffer_recent([LocalRecentCard(card_id=11, set_id=3, status="correct", timestamp=T0)])
    refresher = DashboardRefresher(api, reconciler)

    assert await refresher.refresh() is True

    assert [(row.set_id, row.set_title, row.percent_complete) for row in refresher.progress] == [
        (3, "Spanish: Food", 25)
    ]
    assert [card.card_id for card in refresher.recent_cards] == [11]


@pytest.mark.asyncio
async def test_refresher_merges_server_and_local_recent_cards() -> None:
    server_card = RecentCardRead(
        card_id=1,
        set_id=1,
        set_title="Spanish: Verbs",
        front="ser",
        back="to be",
        status="correct",
        timestamp=T0,
    )
    reconciler = ProgressReconciler()
    reconciler.buffer_recent(
        [LocalRecentCard(card_id=2, set_id=1, status="incorrect", timestamp=T0.replace(hour=10))]
    )
    refresher = DashboardRefresher(FakeApi(recent=[server_card]), reconciler)

    await refresher.refresh()

    assert [card.card_id for card in refresher.recent_cards] == [2, 1]


@pytest.mark.asyncio
async def test_api_client_closes_only_its_own_http_client(async_client) -> None:
    async with FlashcardApiClient(base_url="http://localhost:8000/") as api:
        owned = api.client
        assert owned.base_url.host == "localhost"
    assert owned.is_closed

    shared = FlashcardApiClient(http_client=async_client)
    await shared.aclose()
    assert not async_client.is_closed
