"""
Leaderboard filters.

- default: everyone, shuffled, each row keeps its overall rank
- women / men: only that gender, ranked within the group
- ordered: everyone by rank
"""

import random
from typing import Optional

from .schemas import LeaderboardFilter, LeaderboardRow, RankedLeaderboardRow
from .service import sort_rows

_GENDER_FOR_FILTER = {
    LeaderboardFilter.WOMEN: "female",
    LeaderboardFilter.MEN: "male",
}


def _ranked(rows: list[LeaderboardRow]) -> list[RankedLeaderboardRow]:
    return [
        RankedLeaderboardRow(**row.model_dump(), original_rank=index + 1, original_index=index)
        for index, row in enumerate(rows)
    ]


def filter_leaderboard(
    rows: list[LeaderboardRow],
    selected: LeaderboardFilter,
    rng: Optional[random.Random] = None
) -> list[RankedLeaderboardRow]:
    """Apply a leaderboard filter to rows already sorted by rank."""
    if selected in _GENDER_FOR_FILTER:
        gender = _GENDER_FOR_FILTER[selected]
        return _ranked(sort_rows([row for row in rows if row.gender == gender]))

    if selected is LeaderboardFilter.ORDERED:
        return _ranked(sort_rows(rows))

    shuffled = _ranked(rows)
    (rng or random).shuffle(shuffled)
    return shuffled
