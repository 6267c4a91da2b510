"""
pairing.py

Purpose:
    Self / partner identity for one device, and the small JSON profile file
    that keeps it (plus the last fetched recipe list) between runs.

    PairingConfig is an explicit value handed to the match detector. The
    partner can change at runtime; subscribers are told so they can
    re-evaluate against the new partner without a restart.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from src.dinner_match.logging_utils import get_logger
from src.dinner_match.errors import MalformedEvent
from src.dinner_match.models import Recipe

logger = get_logger("pairing")

MODULE_PURPOSE = "Hold self/partner identity and persist the local profile."

PairingListener = Callable[[Optional[str], Optional[str]], None]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class PairingConfig:
    """Self id, optional partner id and a display name."""

    def __init__(self, self_id: str, partner_id: Optional[str] = None, display_name: str = "Ich") -> None:
        self_id = _clean(self_id)
        if not self_id:
            raise ValueError("self_id must be non-empty")
        self._self_id = self_id
        self._partner_id = _clean(partner_id)
        self.display_name = display_name
        self._listeners: List[PairingListener] = []

    def self_id(self) -> str:
        return self._self_id

    def partner_id(self) -> Optional[str]:
        return self._partner_id

    @property
    def is_paired(self) -> bool:
        return self._partner_id is not None and self._partner_id != self._self_id

    def subscribe(self, listener: PairingListener) -> Callable[[], None]:
        """Register listener(old_partner, new_partner). Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_partner(self, partner_id: Optional[str]) -> None:
        new = _clean(partner_id)
        old = self._partner_id
        if new == old:
            return
        self._partner_id = new
        logger.info(
            "Partner changed from %s to %s",
            old,
            new,
            extra={
                "invoking_func": "set_partner",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Notify %d subscriber(s)" % len(self._listeners),
                "resolution": "",
            },
        )
        for listener in list(self._listeners):
            listener(old, new)


class ProfileStore:
    """JSON file holding user id, partner id, display name and a recipe cache.

    Layout:
        {"user_id": ..., "partner_id": ..., "user_name": ..., "recipes": [row, ...]}
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: Dict[str, Any] = {}
        self._loaded = False

    def _load(self) -> Dict[str, Any]:
        if self._loaded:
            return self._data
        self._loaded = True
        if not self.path.exists():
            return self._data
        try:
            self._data = json.loads(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError) as exc:
            logger.warning(
                "Could not read profile file %s: %s",
                self.path,
                exc,
                extra={
                    "invoking_func": "_load",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Start with an empty profile",
                    "resolution": "Delete or fix the profile file",
                },
            )
            self._data = {}
        return self._data

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2, ensure_ascii=False), encoding="utf-8")

    def load_pairing(self) -> PairingConfig:
        """Return the stored pairing, generating and saving a user id on first run."""
        data = self._load()
        if not _clean(data.get("user_id")):
            data["user_id"] = str(uuid.uuid4())
            self._save()
            logger.info(
                "Generated new user id %s",
                data["user_id"],
                extra={
                    "invoking_func": "load_pairing",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Share this id with your partner",
                    "resolution": "",
                },
            )
        return PairingConfig(
            self_id=data["user_id"],
            partner_id=data.get("partner_id"),
            display_name=data.get("user_name") or "Ich",
        )

    def save_pairing(self, pairing: PairingConfig) -> None:
        data = self._load()
        data["user_id"] = pairing.self_id()
        data["partner_id"] = pairing.partner_id() or ""
        data["user_name"] = pairing.display_name
        self._save()

    def cached_recipes(self) -> List[Recipe]:
        rows = self._load().get("recipes") or []
        recipes: List[Recipe] = []
        for row in rows:
            try:
                recipes.append(Recipe.from_row(row))
            except (MalformedEvent, AttributeError) as exc:
                logger.debug(
                    "Skipping cached recipe row: %s",
                    exc,
                    extra={"invoking_func": "cached_recipes", "invoking_purpose": MODULE_PURPOSE},
                )
        return recipes

    def cache_recipes(self, recipes: List[Recipe]) -> None:
        self._load()["recipes"] = [r.to_row() for r in recipes]
        try:
            self._save()
        except OSError as exc:
            # The cache is a convenience; the list stays in memory.
            logger.warning(
                "Could not write recipe cache: %s",
                exc,
                extra={
                    "invoking_func": "cache_recipes",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Keep recipes in memory only",
                    "resolution": "Check permissions on the profile directory",
                },
            )
