"""Pure helpers shared by the progress views.

Topics are derived from set titles rather than stored: ``"Spanish: Verbs"``
and ``"Spanish: Food"`` both roll up into the ``"Spanish"`` topic. A title
without a colon is its own topic. A title whose prefix is blank (``": Verbs"``)
lands in the ungrouped topic supplied by the caller.
"""
from __future__ import annotations

import math

TOPIC_DELIMITER = ":"


def extract_topic(title: str | None, *, ungrouped: str = "General") -> str:
    """Return the topic key for a set title."""

    if not title:
        return ungrouped
    topic = title.split(TOPIC_DELIMITER, 1)[0].strip()
    return topic or ungrouped


def completion_percent(completed: int, total: int) -> int:
    """Return ``completed / total`` as a whole percentage, rounding halves up.

    A zero total reports 0% instead of failing.
    """

    if total <= 0:
        return 0
    return int(math.floor(100 * completed / total + 0.5))
