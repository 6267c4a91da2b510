# src/dinner_match/session/match_session.py
from __future__ import annotations

"""
match_session.py

Purpose:
    One user's running session: recipes, today's candidate, casting votes,
    replaying today's votes from the store, and dispatching pushed vote
    rows to the match detector.

Concurrency model:
    Single event loop. Blocking store calls (supabase sync Client) run in a
    worker thread via asyncio.to_thread, but their results are applied on
    the loop, so the ledger and the suppression set are only ever touched
    from one thread. Fetch results that arrive late are merged by vote id.

Failure policy:
    - cast_vote: ValidationError is raised before anything is recorded;
      StoreUnavailable is returned inside CastVoteResult, the optimistic
      vote stays in the ledger and can be resent with retry_pending().
    - run(feed): a bad pushed row never stops the dispatcher.
"""

import asyncio
import datetime
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set

from src.dinner_match.errors import StoreUnavailable, ValidationError
from src.dinner_match.ledger.match_detector import DayState, MatchDetector, MatchListener
from src.dinner_match.ledger.vote_ledger import VoteLedger
from src.dinner_match.logging_utils import get_logger
from src.dinner_match.models import Match, Recipe, Vote, VoteKind
from src.dinner_match.pairing import PairingConfig, ProfileStore
from src.dinner_match.selector.candidate import parse_day, select_candidate
from src.dinner_match.selector.candidate import today as utc_today
from src.dinner_match.store.starter_recipes import starter_recipes

MODULE_PURPOSE = "Wire selector, ledger, detector and stores for one user session."

logger = get_logger("match_session")


@dataclass
class CastVoteResult:
    vote: Vote
    confirmed: bool
    error: Optional[StoreUnavailable] = None
    match: Optional[Match] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_vote_fields(user_id: Any, recipe_id: Any, kind: Any, day: Any) -> VoteKind:
    """Reject empty ids, unknown kinds and malformed days. Returns the parsed kind."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id must be a non-empty string")
    if not isinstance(recipe_id, str) or not recipe_id.strip():
        raise ValidationError("recipe_id must be a non-empty string")
    try:
        parsed_kind = VoteKind.parse(kind)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if not isinstance(day, str):
        raise ValidationError(f"day must be a YYYY-MM-DD string, got {day!r}")
    try:
        parse_day(day)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return parsed_kind


class MatchSession:
    def __init__(
        self,
        pairing: PairingConfig,
        vote_store: Any,
        recipe_store: Any = None,
        *,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        profile: Optional[ProfileStore] = None,
    ) -> None:
        self.pairing = pairing
        self.vote_store = vote_store
        self.recipe_store = recipe_store
        self.profile = profile
        self._clock = clock

        self.ledger = VoteLedger()
        self.detector = MatchDetector(pairing, self.ledger, current_day=self.today)
        self.recipes: List[Recipe] = []

        self._background: Set["asyncio.Task[Any]"] = set()
        self._unsubscribe_pairing = pairing.subscribe(self._on_partner_changed)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def today(self) -> str:
        return utc_today(self._clock)

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        owner = getattr(fn, "__self__", None)
        if getattr(owner, "blocking", True):
            return await asyncio.to_thread(fn, *args)
        return fn(*args)

    def add_match_listener(self, listener: MatchListener) -> None:
        self.detector.add_listener(listener)

    # ------------------------------------------------------------------
    # Recipes / candidate
    # ------------------------------------------------------------------
    async def load_recipes(self) -> List[Recipe]:
        """Fetch recipes; fall back to the cached list, then to the starter recipes."""
        recipes: List[Recipe] = []
        if self.recipe_store is not None:
            try:
                recipes = await self._call(self.recipe_store.list_recipes)
            except StoreUnavailable as exc:
                logger.warning(
                    "Recipe fetch failed, using local copy: %s",
                    exc,
                    extra={
                        "invoking_func": "load_recipes",
                        "invoking_purpose": MODULE_PURPOSE,
                        "next_step": "Use cached or starter recipes",
                        "resolution": "Retry when the store is reachable",
                    },
                )
            else:
                if recipes and self.profile is not None:
                    self.profile.cache_recipes(recipes)

        if not recipes and self.profile is not None:
            recipes = self.profile.cached_recipes()
        if not recipes:
            recipes = starter_recipes()

        self.recipes = recipes
        return recipes

    async def add_recipe(self, title: str, body: str, image_ref: Optional[str] = None) -> Recipe:
        """Create a recipe locally first, then push it to the store.

        Raises StoreUnavailable if the store write fails; the recipe stays
        in the local list either way.
        """
        recipe = Recipe.new(title, body, self.pairing.self_id(), image_ref)
        self.recipes = [recipe] + self.recipes
        if self.profile is not None:
            self.profile.cache_recipes(self.recipes)
        if self.recipe_store is not None:
            await self._call(self.recipe_store.insert_recipe, recipe)
        return recipe

    def candidate(self, day: Optional[str] = None) -> Optional[Recipe]:
        return select_candidate(self.recipes, day or self.today())

    def has_candidate_today(self) -> bool:
        return self.candidate() is not None

    def recipe_by_id(self, recipe_id: str) -> Optional[Recipe]:
        return next((r for r in self.recipes if r.id == recipe_id), None)

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------
    async def start(self) -> int:
        """Replay today's votes of self and partner into the detector.

        Returns how many votes were fetched. A store failure is logged and
        the session continues with what it already knows.
        """
        total = 0
        for user_id in (self.pairing.self_id(), self.pairing.partner_id()):
            if user_id:
                total += await self.replay(user_id)
        return total

    async def replay(self, user_id: Optional[str] = None, day: Optional[str] = None) -> int:
        day = day or self.today()
        try:
            votes = await self._call(self.vote_store.list_votes, day, user_id)
        except StoreUnavailable as exc:
            logger.warning(
                "Replay fetch failed for user=%s day=%s: %s",
                user_id,
                day,
                exc,
                extra={
                    "invoking_func": "replay",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Continue with locally known votes",
                    "resolution": "Push notifications or a later replay fill the gap",
                },
            )
            return 0
        self.detector.on_votes_fetched(votes)
        return len(votes)

    def _on_partner_changed(self, old: Optional[str], new: Optional[str]) -> None:
        if not new:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # not running yet; start() will fetch the new partner's votes
            return
        task = loop.create_task(self.replay(new))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------
    async def cast_vote(self, recipe_id: str, kind: VoteKind | str) -> CastVoteResult:
        """Vote on `recipe_id` as the local user for today."""
        return await self.cast_vote_for(self.pairing.self_id(), recipe_id, kind, self.today())

    async def cast_vote_for(self, user_id: str, recipe_id: str, kind: VoteKind | str, day: str) -> CastVoteResult:
        parsed_kind = validate_vote_fields(user_id, recipe_id, kind, day)
        vote = Vote.new(user_id, recipe_id, parsed_kind, day)

        self.ledger.record_local(vote)
        match = self.detector.evaluate(vote)

        try:
            await self._call(self.vote_store.insert_vote, vote)
        except StoreUnavailable as exc:
            logger.warning(
                "Vote %s kept locally only: %s",
                vote.id,
                exc,
                extra={
                    "invoking_func": "cast_vote",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Return unconfirmed result to caller",
                    "resolution": "Call retry_pending() when back online",
                },
            )
            return CastVoteResult(vote=vote, confirmed=False, error=exc, match=match)

        self.ledger.confirm(vote)
        return CastVoteResult(vote=vote, confirmed=True, match=match)

    async def retry_pending(self) -> int:
        """Resend unconfirmed votes. Returns how many were confirmed."""
        confirmed = 0
        for vote in self.ledger.pending():
            try:
                await self._call(self.vote_store.insert_vote, vote)
            except StoreUnavailable as exc:
                logger.info(
                    "Retry of vote %s failed: %s",
                    vote.id,
                    exc,
                    extra={
                        "invoking_func": "retry_pending",
                        "invoking_purpose": MODULE_PURPOSE,
                        "next_step": "Stop retrying for now",
                        "resolution": "",
                    },
                )
                break
            self.ledger.confirm(vote)
            confirmed += 1
        return confirmed

    @property
    def sync_degraded(self) -> bool:
        return bool(self.ledger.pending())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def has_decided_today(self, user_id: Optional[str] = None) -> bool:
        return self.detector.has_decided(user_id or self.pairing.self_id(), self.today())

    def matches_for_day(self, day: Optional[str] = None) -> Set[str]:
        return self.detector.matches_for_day(day or self.today())

    def day_state(self, day: Optional[str] = None) -> DayState:
        return self.detector.day_state(day or self.today())

    # ------------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------------
    async def run(self, feed: Any) -> None:
        """Feed every pushed row to the detector until the feed ends."""
        async for row in feed:
            try:
                self.detector.on_vote_observed(row)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Vote event handling failed: %s",
                    exc,
                    exc_info=True,
                    extra={
                        "invoking_func": "run",
                        "invoking_purpose": MODULE_PURPOSE,
                        "next_step": "Continue with next event",
                        "resolution": "Check match listeners",
                    },
                )

    async def close(self) -> None:
        self._unsubscribe_pairing()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
