"""Feed ranking score."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, TypeVar

from ventbuddy.db.time import as_utc

REPLY_WEIGHT = 10
UPVOTE_WEIGHT = 3
DOWNVOTE_WEIGHT = 1


class Rankable(Protocol):
    reply_count: int
    upvote_count: int
    downvote_count: int
    created_at: datetime
    ledger_id: int


R = TypeVar("R", bound=Rankable)


def score(reply_count: int, upvote_count: int, downvote_count: int) -> int:
    """Return the ranking score: replies weigh most, downvotes subtract."""
    return (
        reply_count * REPLY_WEIGHT
        + upvote_count * UPVOTE_WEIGHT
        - downvote_count * DOWNVOTE_WEIGHT
    )


def rank(items: Iterable[R]) -> list[R]:
    """Order items by score, then newest first, then by ledger id."""
    return sorted(
        items,
        key=lambda item: (
            score(item.reply_count, item.upvote_count, item.downvote_count),
            as_utc(item.created_at),
            item.ledger_id,
        ),
        reverse=True,
    )
