# src/dinner_match/ledger/match_detector.py
from __future__ import annotations

"""
match_detector.py

Purpose:
    Decide, for every vote the store reports (replay fetch or push), whether
    the two paired users now both like the same recipe on the current day,
    and emit a Match event exactly once per (recipe_id, day) per session.

    Rules:
      - partner Like for today  -> match if self already liked it today
      - self Like for today     -> match if partner already liked it today
      - Dislike                 -> recorded (counts as "decided"), never matches
      - votes of other users    -> ignored
      - malformed rows          -> logged and dropped, processing continues
      - failing listeners       -> logged, the vote is still processed

    Both directions are checked so arrival order does not matter, and the
    suppression set makes duplicate delivery (including the echo of our own
    optimistic vote) harmless.
"""

import enum
from typing import Any, Callable, Iterable, List, Optional, Set, Tuple

from src.dinner_match.errors import MalformedEvent
from src.dinner_match.ledger.vote_ledger import VoteLedger
from src.dinner_match.logging_utils import get_logger
from src.dinner_match.models import Match, Vote
from src.dinner_match.pairing import PairingConfig
from src.dinner_match.selector.candidate import today as utc_today

MODULE_PURPOSE = "Detect mutual likes between paired users and emit Match events."

logger = get_logger("match_detector")

MatchListener = Callable[[Match], None]


class DayState(str, enum.Enum):
    NO_DECISION = "no_decision"
    DECIDED = "decided"
    MATCHED = "matched"


class MatchDetector:
    def __init__(
        self,
        pairing: PairingConfig,
        ledger: Optional[VoteLedger] = None,
        current_day: Optional[Callable[[], str]] = None,
    ) -> None:
        self.pairing = pairing
        self.ledger = ledger if ledger is not None else VoteLedger()
        self._current_day = current_day or utc_today
        # (recipe_id, day) pairs already celebrated in this session
        self._celebrated: Set[Tuple[str, str]] = set()
        self._listeners: List[MatchListener] = []
        self.dropped_events = 0

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_listener(self, listener: MatchListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Event entrypoints
    # ------------------------------------------------------------------
    def on_vote_observed(self, event: Any) -> Optional[Match]:
        """Process one vote reported by the store.

        Accepts a Vote or a raw `swipes` row. Never raises for bad input;
        returns the emitted Match, or None.
        """
        vote = self._parse(event)
        if vote is None:
            return None

        if not self._is_relevant(vote):
            logger.debug(
                "Ignoring vote %s from unrelated user %s",
                vote.id,
                vote.user_id,
                extra={"invoking_func": "on_vote_observed", "invoking_purpose": MODULE_PURPOSE},
            )
            return None

        self.ledger.observe(vote)
        return self.evaluate(vote)

    def on_votes_fetched(self, events: Iterable[Any]) -> List[Match]:
        """Merge a replay fetch into the ledger, then evaluate each vote.

        The whole batch lands in the ledger before any listener runs, and a
        batch that overlaps votes already pushed emits nothing twice.
        """
        votes = [v for v in map(self._parse, events) if v is not None and self._is_relevant(v)]
        self.ledger.merge(votes)
        matches = [self.evaluate(vote) for vote in votes]
        return [m for m in matches if m is not None]

    def evaluate(self, vote: Vote) -> Optional[Match]:
        """Check one already recorded vote against the other side's likes."""
        if not vote.is_like or vote.day != self._current_day():
            return None

        self_id = self.pairing.self_id()
        partner_id = self.pairing.partner_id()
        if not self.pairing.is_paired or partner_id is None:
            return None

        if vote.user_id == partner_id:
            other = self_id
        elif vote.user_id == self_id:
            other = partner_id
        else:
            return None

        if not self.ledger.has_liked(other, vote.recipe_id, vote.day):
            return None

        match = Match(recipe_id=vote.recipe_id, day=vote.day, user_id=self_id, partner_id=partner_id)
        if match.key in self._celebrated:
            return None
        self._celebrated.add(match.key)

        logger.info(
            "Match on recipe %s for %s",
            match.recipe_id,
            match.day,
            extra={
                "invoking_func": "evaluate",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Notify %d listener(s)" % len(self._listeners),
                "resolution": "",
            },
        )
        for listener in list(self._listeners):
            try:
                listener(match)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Match listener failed: %s",
                    exc,
                    exc_info=True,
                    extra={
                        "invoking_func": "evaluate",
                        "invoking_purpose": MODULE_PURPOSE,
                        "next_step": "Notify remaining listeners",
                        "resolution": "Check match listeners",
                    },
                )
        return match

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def has_decided(self, user_id: str, day: str) -> bool:
        return self.ledger.has_decided(user_id, day)

    def matches_for_day(self, day: str) -> Set[str]:
        return self.ledger.matches_for_day(day, self.pairing.self_id(), self.pairing.partner_id())

    def was_celebrated(self, recipe_id: str, day: str) -> bool:
        return (recipe_id, day) in self._celebrated

    def day_state(self, day: str) -> DayState:
        if any(d == day for _, d in self._celebrated) or self.matches_for_day(day):
            return DayState.MATCHED
        if self.ledger.has_decided(self.pairing.self_id(), day):
            return DayState.DECIDED
        return DayState.NO_DECISION

    def _parse(self, event: Any) -> Optional[Vote]:
        try:
            return Vote.from_row(event)
        except MalformedEvent as exc:
            self.dropped_events += 1
            logger.warning(
                "Dropping malformed vote event: %s",
                exc,
                extra={
                    "invoking_func": "on_vote_observed",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Continue with next event",
                    "resolution": "Check the swipes row shape written by the client",
                },
            )
            return None

    def _is_relevant(self, vote: Vote) -> bool:
        return vote.user_id in (self.pairing.self_id(), self.pairing.partner_id())
