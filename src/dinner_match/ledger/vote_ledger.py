# src/dinner_match/ledger/vote_ledger.py
from __future__ import annotations

"""
vote_ledger.py

Purpose:
    Append-only, in-session collection of votes.

    Two logical sets, both keyed by vote id:
      - locally_known: everything this session knows about, including
        optimistic votes the store has not acknowledged yet
      - confirmed: votes the store acknowledged, or that came back from the
        store (replay fetch / push)

    Every write is an upsert by id, so a vote that is recorded locally and
    later echoed back by the push channel is stored once. Any number of
    votes per user per day is accepted in any order.
"""

from typing import Dict, Iterable, List, Optional, Set

from src.dinner_match.models import Vote, VoteKind


class VoteLedger:
    def __init__(self) -> None:
        self._known: Dict[str, Vote] = {}
        self._confirmed: Dict[str, Vote] = {}

    def __len__(self) -> int:
        return len(self._known)

    def __contains__(self, vote_id: object) -> bool:
        return vote_id in self._known

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def record_local(self, vote: Vote) -> bool:
        """Add an optimistic vote. Returns False if the id was already known."""
        is_new = vote.id not in self._known
        self._known.setdefault(vote.id, vote)
        return is_new

    def confirm(self, vote: Vote) -> bool:
        """Mark a vote as durable in the store. Returns False if already confirmed."""
        self._known.setdefault(vote.id, vote)
        if vote.id in self._confirmed:
            return False
        self._confirmed[vote.id] = vote
        return True

    def observe(self, vote: Vote) -> bool:
        """A vote reported by the store. Returns True when it was not known before."""
        is_new = vote.id not in self._known
        self.confirm(vote)
        return is_new

    def merge(self, votes: Iterable[Vote]) -> int:
        """Upsert a batch of store votes (late fetch results included). Returns how many were new."""
        return sum(1 for vote in votes if self.observe(vote))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def pending(self) -> List[Vote]:
        return [v for vid, v in self._known.items() if vid not in self._confirmed]

    def has_decided(self, user_id: str, day: str) -> bool:
        return any(v.user_id == user_id and v.day == day for v in self._known.values())

    def likes(self, user_id: str, day: str) -> Set[str]:
        return {
            v.recipe_id
            for v in self._known.values()
            if v.user_id == user_id and v.day == day and v.kind is VoteKind.LIKE
        }

    def has_liked(self, user_id: str, recipe_id: str, day: str) -> bool:
        return recipe_id in self.likes(user_id, day)

    def matches_for_day(self, day: str, user_id: str, partner_id: Optional[str]) -> Set[str]:
        """Recipe ids both users liked on `day`; empty when unpaired."""
        if not partner_id or partner_id == user_id:
            return set()
        return self.likes(user_id, day) & self.likes(partner_id, day)
