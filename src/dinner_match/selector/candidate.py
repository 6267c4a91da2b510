# src/dinner_match/selector/candidate.py
from __future__ import annotations

"""
candidate.py

Purpose:
    Deterministic daily candidate selection.

    Every paired device must show the same recipe on the same day without
    talking to each other, so the choice is a pure function of
    (recipe sequence, calendar day):

        seed  = year * 1000 + month * 100 + day
        index = seed % len(recipes)

    The recipe sequence must be ordered the same way on every client
    (the stores return `created_at` descending).

    "Today" is the UTC calendar date on every device. Using the device
    local date lets partners in different time zones disagree about the
    daily recipe around midnight.
"""

import datetime
import re
from typing import TYPE_CHECKING, Callable, Optional, Sequence, Union

if TYPE_CHECKING:
    from src.dinner_match.models import Recipe

DayLike = Union[str, datetime.date]

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(value: DayLike) -> datetime.date:
    """Parse a strict YYYY-MM-DD string (or pass a date through).

    Raises ValueError for anything else, including impossible dates.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str) or not _DAY_RE.match(value):
        raise ValueError(f"day must be YYYY-MM-DD, got {value!r}")
    return datetime.date.fromisoformat(value)


def today(clock: Optional[Callable[[], datetime.datetime]] = None) -> str:
    """Shared calendar day (UTC) as YYYY-MM-DD."""
    now = clock() if clock is not None else datetime.datetime.now(datetime.timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(datetime.timezone.utc)
    return now.date().isoformat()


def day_seed(day: DayLike) -> int:
    # Positional weights keep e.g. (1, 12) and (11, 2) apart.
    d = parse_day(day)
    return d.year * 1000 + d.month * 100 + d.day


def candidate_index(count: int, day: DayLike) -> Optional[int]:
    if count <= 0:
        return None
    return day_seed(day) % count


def select_candidate(recipes: Sequence[Recipe], day: DayLike) -> Optional[Recipe]:
    """Return the recipe everyone votes on for `day`, or None when there are no recipes."""
    index = candidate_index(len(recipes), day)
    if index is None:
        return None
    return recipes[index]


def has_candidate_today(recipes: Sequence[Recipe], day: DayLike) -> bool:
    return select_candidate(recipes, day) is not None
