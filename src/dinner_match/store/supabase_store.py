# src/dinner_match/store/supabase_store.py
from __future__ import annotations

"""
supabase_store.py

Purpose:
    Thin adapters over the Supabase tables used by the web client:

      recipes(id, title, content, image_url, created_by, created_at)
      swipes(id, user_id, recipe_id, type, day)

    Every client exception is re-raised as StoreUnavailable so callers can
    treat all backend trouble (network, RLS, missing table) as retryable.
    Calls are blocking (supabase sync Client); the session runs them off
    the event loop.
"""

from typing import Any, Dict, List, Optional

from supabase import Client

from src.dinner_match.config import RECIPES_TABLE, VOTES_TABLE, get_supabase_client
from src.dinner_match.errors import MalformedEvent, StoreUnavailable
from src.dinner_match.logging_utils import get_logger
from src.dinner_match.models import Recipe, Vote

MODULE_PURPOSE = "Read/write recipes and swipes in Supabase."

logger = get_logger("supabase_store")


def _unavailable(operation: str, exc: Exception) -> StoreUnavailable:
    logger.warning(
        "%s failed: %s",
        operation,
        exc,
        extra={
            "invoking_func": operation,
            "invoking_purpose": MODULE_PURPOSE,
            "next_step": "Raise StoreUnavailable to caller",
            "resolution": "Check network / SUPABASE_URL / table policies, then retry",
        },
    )
    return StoreUnavailable(f"{operation} failed: {exc}", operation=operation)


class SupabaseRecipeStore:
    blocking = True

    def __init__(self, client: Optional[Client] = None) -> None:
        self.client = client if client is not None else get_supabase_client()

    def list_recipes(self) -> List[Recipe]:
        """All recipes, newest first. The order is what the daily selector indexes into."""
        try:
            resp = (
                self.client.table(RECIPES_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            raise _unavailable("list_recipes", exc) from exc

        recipes: List[Recipe] = []
        for row in resp.data or []:
            try:
                recipes.append(Recipe.from_row(row))
            except MalformedEvent as exc:
                logger.warning(
                    "Skipping recipe row: %s",
                    exc,
                    extra={
                        "invoking_func": "list_recipes",
                        "invoking_purpose": MODULE_PURPOSE,
                        "next_step": "Continue with next row",
                        "resolution": "",
                    },
                )
        return recipes

    def insert_recipe(self, recipe: Recipe) -> Recipe:
        try:
            resp = self.client.table(RECIPES_TABLE).insert(recipe.to_row()).execute()
        except Exception as exc:  # noqa: BLE001
            raise _unavailable("insert_recipe", exc) from exc
        rows = resp.data or []
        return Recipe.from_row(rows[0]) if rows else recipe


class SupabaseVoteStore:
    blocking = True

    def __init__(self, client: Optional[Client] = None) -> None:
        self.client = client if client is not None else get_supabase_client()

    def list_votes(self, day: str, user_id: Optional[str] = None) -> List[Vote]:
        try:
            query = self.client.table(VOTES_TABLE).select("*").eq("day", day)
            if user_id:
                query = query.eq("user_id", user_id)
            resp = query.execute()
        except Exception as exc:  # noqa: BLE001
            raise _unavailable("list_votes", exc) from exc

        votes: List[Vote] = []
        for row in resp.data or []:
            try:
                votes.append(Vote.from_row(row))
            except MalformedEvent as exc:
                logger.warning(
                    "Skipping swipes row: %s",
                    exc,
                    extra={
                        "invoking_func": "list_votes",
                        "invoking_purpose": MODULE_PURPOSE,
                        "next_step": "Continue with next row",
                        "resolution": "",
                    },
                )
        return votes

    def insert_vote(self, vote: Vote) -> Vote:
        payload: Dict[str, Any] = vote.to_row()
        try:
            # A retried vote may already be stored if only the ack was lost.
            resp = (
                self.client.table(VOTES_TABLE)
                .upsert(payload, on_conflict="id", ignore_duplicates=True)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            raise _unavailable("insert_vote", exc) from exc
        logger.debug(
            "Inserted vote %s (%s %s on %s)",
            vote.id,
            vote.kind.value,
            vote.recipe_id,
            vote.day,
            extra={"invoking_func": "insert_vote", "invoking_purpose": MODULE_PURPOSE},
        )
        rows = resp.data or []
        if rows:
            try:
                return Vote.from_row(rows[0])
            except MalformedEvent:
                return vote
        return vote
