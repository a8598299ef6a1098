"""Card ordering for study sessions.

A session's order is materialized once when the session starts. ``random``
is a uniform permutation of every card; ``sequential`` keeps creation order.
Neither mode drops cards unless the caller asks for an explicit limit.
"""
from __future__ import annotations

import random
from enum import Enum
from typing import Sequence, TypeVar

CardT = TypeVar("CardT")


class StudyMode(str, Enum):
    """Supported study orderings."""

    RANDOM = "random"
    SEQUENTIAL = "sequential"


def order_cards(
    cards: Sequence[CardT],
    mode: StudyMode,
    *,
    rng: random.Random | None = None,
    limit: int | None = None,
) -> list[CardT]:
    """Return the presentation order for ``cards``.

    ``cards`` must already be in creation order. The input is never mutated.
    """

    ordered = list(cards)
    if mode is StudyMode.RANDOM:
        (rng or random.Random()).shuffle(ordered)
    if limit is not None:
        ordered = ordered[:limit]
    return ordered
