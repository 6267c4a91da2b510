"""
models.py

Purpose:
    Shared dataclasses for the DinnerMatch core.

    These are the "internal contracts" between:
      - store adapters (Supabase rows, in-memory rows),
      - the vote ledger and match detector,
      - the session / CLI layer.

    Nothing in this module talks to Supabase directly. Row conversion lives
    here so both the Supabase adapters and the realtime feed parse rows the
    same way.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from src.dinner_match.errors import MalformedEvent
from src.dinner_match.selector.candidate import parse_day

DEFAULT_IMAGE_URL = (
    "https://images.unsplash.com/photo-1495521821757-a1efb6729352"
    "?auto=format&fit=crop&q=80&w=800"
)


class VoteKind(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"

    @classmethod
    def parse(cls, value: Any) -> "VoteKind":
        if isinstance(value, VoteKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown vote kind: {value!r}") from None


@dataclass(frozen=True)
class Recipe:
    """A recipe card. Identity is `id`; immutable for matching purposes."""

    id: str
    title: str
    body: str = ""
    image_ref: str = DEFAULT_IMAGE_URL
    owner_id: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Recipe":
        """Build from a `recipes` row.

        Older web clients wrote camelCase keys, so both spellings are read.
        """
        rid = row.get("id")
        if rid in (None, ""):
            raise MalformedEvent("recipe row without id", payload=dict(row))
        return cls(
            id=str(rid),
            title=row.get("title") or "",
            body=row.get("content") or row.get("recipeText") or "",
            image_ref=row.get("image_url") or row.get("imageUrl") or DEFAULT_IMAGE_URL,
            owner_id=row.get("created_by") or row.get("createdBy") or "",
            created_at=row.get("created_at"),
        )

    @classmethod
    def new(cls, title: str, body: str, owner_id: str, image_ref: Optional[str] = None) -> "Recipe":
        """Build a recipe with a fresh id; missing images get the placeholder."""
        return cls(
            id=uuid.uuid4().hex,
            title=title,
            body=body,
            image_ref=image_ref or DEFAULT_IMAGE_URL,
            owner_id=owner_id,
        )

    def to_row(self) -> dict[str, Any]:
        row = {
            "id": self.id,
            "title": self.title,
            "content": self.body,
            "image_url": self.image_ref,
            "created_by": self.owner_id,
        }
        if self.created_at:
            row["created_at"] = self.created_at
        return row


@dataclass(frozen=True)
class Vote:
    """One swipe. Never mutated, never deleted by the core."""

    id: str
    user_id: str
    recipe_id: str
    kind: VoteKind
    day: str  # YYYY-MM-DD

    @property
    def is_like(self) -> bool:
        return self.kind is VoteKind.LIKE

    @classmethod
    def new(cls, user_id: str, recipe_id: str, kind: VoteKind | str, day: str) -> "Vote":
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            recipe_id=recipe_id,
            kind=VoteKind.parse(kind),
            day=day,
        )

    @classmethod
    def from_row(cls, row: Any) -> "Vote":
        """Build from a `swipes` row; raises MalformedEvent on missing fields."""
        if isinstance(row, Vote):
            return row
        if not isinstance(row, Mapping):
            raise MalformedEvent(f"vote payload is not a mapping: {type(row).__name__}", payload=row)

        missing = [
            key for key in ("id", "user_id", "recipe_id", "type", "day")
            if row.get(key) in (None, "")
        ]
        if missing:
            raise MalformedEvent(f"vote row missing fields: {', '.join(missing)}", payload=dict(row))

        try:
            kind = VoteKind.parse(row["type"])
        except ValueError as exc:
            raise MalformedEvent(str(exc), payload=dict(row)) from exc

        day = str(row["day"])[:10]
        try:
            parse_day(day)
        except ValueError as exc:
            raise MalformedEvent(str(exc), payload=dict(row)) from exc

        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            recipe_id=str(row["recipe_id"]),
            kind=kind,
            day=day,
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "recipe_id": self.recipe_id,
            "type": self.kind.value,
            "day": self.day,
        }


@dataclass(frozen=True)
class Match:
    """Derived value: both partners liked `recipe_id` on `day`. Never persisted."""

    recipe_id: str
    day: str
    user_id: str
    partner_id: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.recipe_id, self.day)
