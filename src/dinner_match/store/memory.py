# src/dinner_match/store/memory.py
from __future__ import annotations

"""
memory.py

Purpose:
    In-process stand-ins for the Supabase tables, used in local mode (no
    Supabase credentials) and by the tests.

    InMemoryVoteStore broadcasts every inserted row to every open feed,
    the inserting session's own feed included, like Realtime does.
    `fail_next` makes the next N calls raise StoreUnavailable.
"""

from typing import Dict, List, Optional

from src.dinner_match.errors import StoreUnavailable
from src.dinner_match.models import Recipe, Vote
from src.dinner_match.store.realtime import VoteFeed
from src.dinner_match.store.starter_recipes import starter_recipes


class _Flaky:
    # plain method calls; safe to run on the event loop thread
    blocking = False

    def __init__(self) -> None:
        self.fail_next = 0

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise StoreUnavailable(f"{operation} failed: store offline", operation=operation)


class InMemoryRecipeStore(_Flaky):
    def __init__(self, recipes: Optional[List[Recipe]] = None) -> None:
        super().__init__()
        # newest first, same as the Supabase ordering
        self._recipes: List[Recipe] = list(recipes) if recipes is not None else starter_recipes()

    def list_recipes(self) -> List[Recipe]:
        self._maybe_fail("list_recipes")
        return list(self._recipes)

    def insert_recipe(self, recipe: Recipe) -> Recipe:
        self._maybe_fail("insert_recipe")
        if any(r.id == recipe.id for r in self._recipes):
            raise StoreUnavailable(f"duplicate recipe id {recipe.id}", operation="insert_recipe")
        self._recipes.insert(0, recipe)
        return recipe


class InMemoryVoteStore(_Flaky):
    def __init__(self) -> None:
        super().__init__()
        self._rows: Dict[str, Vote] = {}
        self._feeds: List[VoteFeed] = []

    def list_votes(self, day: str, user_id: Optional[str] = None) -> List[Vote]:
        self._maybe_fail("list_votes")
        return [
            v for v in self._rows.values()
            if v.day == day and (user_id is None or v.user_id == user_id)
        ]

    def insert_vote(self, vote: Vote) -> Vote:
        self._maybe_fail("insert_vote")
        if vote.id in self._rows:
            # retried insert of a row that already landed
            return self._rows[vote.id]
        self._rows[vote.id] = vote
        for feed in list(self._feeds):
            if feed.closed:
                self._feeds.remove(feed)
                continue
            feed.push(vote.to_row())
        return vote

    def subscribe_insertions(self) -> VoteFeed:
        feed = VoteFeed()
        self._feeds.append(feed)
        return feed

    @property
    def rows(self) -> List[Vote]:
        return list(self._rows.values())
