"""Tests for study session card selection."""
from __future__ import annotations

import random

import pytest

from app.core.progress import completion_percent, extract_topic
from app.core.study import StudyMode, order_cards
from app.services.flashcards import FlashcardService
from app.utils.exceptions import NotFoundError, ValidationError


def test_sequential_keeps_creation_order() -> None:
    assert order_cards([1, 2, 3, 4], StudyMode.SEQUENTIAL) == [1, 2, 3, 4]


def test_random_is_a_permutation_and_does_not_mutate() -> None:
    cards = list(range(20))

    shuffled = order_cards(cards, StudyMode.RANDOM, rng=random.Random(7))

    assert sorted(shuffled) == cards
    assert cards == list(range(20))
    assert shuffled == order_cards(cards, StudyMode.RANDOM, rng=random.Random(7))


def test_limit_truncates_materialized_order() -> None:
    assert order_cards([1, 2, 3, 4], StudyMode.SEQUENTIAL, limit=2) == [1, 2]
    assert order_cards([], StudyMode.RANDOM, limit=5) == []


@pytest.mark.parametrize(
    ("title", "topic"),
    [
        ("Spanish: Verbs", "Spanish"),
        ("Spanish:Food", "Spanish"),
        ("  Spanish  : Numbers: Ordinals", "Spanish"),
        ("Geography", "Geography"),
        (": Misc", "General"),
        ("", "General"),
    ],
)
def test_extract_topic(title, topic) -> None:
    assert extract_topic(title) == topic


@pytest.mark.parametrize(
    ("completed", "total", "percent"),
    [(0, 0, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 200, 1), (5, 5, 100)],
)
def test_completion_percent_rounds_half_up(completed, total, percent) -> None:
    assert completion_percent(completed, total) == percent


def test_select_session_sequential(db_session, user, make_set) -> None:
    flashcard_set = make_set(user, "German", fronts=("eins", "zwei", "drei"))

    cards = FlashcardService(db_session).select_session(
        user=user, set_id=flashcard_set.id, mode="sequential"
    )

    assert [card.front for card in cards] == ["eins", "zwei", "drei"]


def test_select_session_random_uses_injected_rng(db_session, user, make_set) -> None:
    flashcard_set = make_set(user, "German", fronts=[str(n) for n in range(10)])

    first = FlashcardService(db_session, rng=random.Random(3)).select_session(
        user=user, set_id=flashcard_set.id
    )
    second = FlashcardService(db_session, rng=random.Random(3)).select_session(
        user=user, set_id=flashcard_set.id
    )

    assert [card.id for card in first] == [card.id for card in second]
    assert sorted(card.id for card in first) == sorted(card.id for card in flashcard_set.cards)


def test_select_session_empty_set(db_session, user, make_set) -> None:
    flashcard_set = make_set(user, "Empty", fronts=())

    assert FlashcardService(db_session).select_session(user=user, set_id=flashcard_set.id) == []


def test_select_session_errors(db_session, user, other_user, make_set) -> None:
    mine = make_set(user, "Mine")
    foreign = make_set(other_user, "Theirs")
    service = FlashcardService(db_session)

    with pytest.raises(ValidationError):
        service.select_session(user=user, set_id=mine.id, mode="shuffled")
    with pytest.raises(ValidationError):
        service.select_session(user=user, set_id=mine.id, limit=0)
    with pytest.raises(NotFoundError):
        service.select_session(user=user, set_id=foreign.id)


def test_study_endpoint(client, auth_headers, user, make_set) -> None:
    flashcard_set = make_set(user, "German", fronts=("eins", "zwei", "drei"))

    sequential = client.get(
        f"/api/v1/flashcards/sets/{flashcard_set.id}/study?mode=sequential", headers=auth_headers
    )
    assert sequential.status_code == 200
    body = sequential.json()
    assert body["mode"] == "sequential"
    assert [card["front"] for card in body["cards"]] == ["eins", "zwei", "drei"]

    limited = client.get(
        f"/api/v1/flashcards/sets/{flashcard_set.id}/study?limit=2", headers=auth_headers
    )
    assert limited.json()["mode"] == "random"
    assert len(limited.json()["cards"]) == 2


def test_study_endpoint_rejects_unknown_mode(client, auth_headers, user, make_set) -> None:
    flashcard_set = make_set(user, "German")

    response = client.get(
        f"/api/v1/flashcards/sets/{flashcard_set.id}/study?mode=backwards", headers=auth_headers
    )

    assert response.status_code == 400


def test_study_endpoint_foreign_set(client, auth_headers, other_user, make_set) -> None:
    foreign = make_set(other_user, "Theirs")

    response = client.get(f"/api/v1/flashcards/sets/{foreign.id}/study", headers=auth_headers)

    assert response.status_code == 404
