# src/dinner_match/store/realtime.py
from __future__ import annotations

"""
realtime.py

Purpose:
    Turn swipes INSERT notifications into an async stream of raw rows.

    VoteFeed is the queue-backed stream the session's dispatcher loop
    consumes. SupabaseVoteFeed fills it from a Supabase Realtime channel
    (postgres_changes, event INSERT, table swipes). Delivery is
    at-least-once: duplicates and our own inserts come through too.

    Rows are passed on unparsed; the match detector owns validation so a
    bad payload is dropped in one place.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, Optional

from supabase import AsyncClient

from src.dinner_match.config import VOTES_TABLE, get_async_supabase_client
from src.dinner_match.errors import StoreUnavailable
from src.dinner_match.logging_utils import get_logger

MODULE_PURPOSE = "Stream swipe insertions from Supabase Realtime."

logger = get_logger("realtime")

_CLOSED = object()


def extract_record(payload: Any) -> Any:
    """Pull the inserted row out of a realtime payload.

    realtime-py wraps it as payload["data"]["record"]; the JS client shape
    payload["new"] is accepted as well. Anything else is returned as is and
    left for the detector to reject.
    """
    if not isinstance(payload, dict):
        return payload
    data = payload.get("data")
    if isinstance(data, dict) and "record" in data:
        return data["record"]
    if "new" in payload:
        return payload["new"]
    if "record" in payload:
        return payload["record"]
    return payload


class VoteFeed:
    """Async iterator over pushed swipes rows, ended by close()."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self.closed = False

    def push(self, row: Any) -> None:
        if self.closed:
            return
        self._queue.put_nowait(row)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        while True:
            row = await self._queue.get()
            if row is _CLOSED:
                return
            yield row


class SupabaseVoteFeed(VoteFeed):
    def __init__(self, client: Optional[AsyncClient] = None, channel_name: str = "swipes_realtime") -> None:
        super().__init__()
        self._client = client
        self._channel_name = channel_name
        self._channel = None

    def _on_insert(self, payload: Dict[str, Any]) -> None:
        self.push(extract_record(payload))

    async def open(self) -> "SupabaseVoteFeed":
        if self._client is None:
            self._client = await get_async_supabase_client()
        try:
            channel = self._client.channel(self._channel_name)
            channel.on_postgres_changes(
                "INSERT",
                schema="public",
                table=VOTES_TABLE,
                callback=self._on_insert,
            )
            await channel.subscribe()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Realtime subscription failed: %s",
                exc,
                extra={
                    "invoking_func": "open",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Raise StoreUnavailable; session keeps working from replay fetches",
                    "resolution": "Enable Realtime on the swipes table",
                },
            )
            raise StoreUnavailable(f"subscribe failed: {exc}", operation="subscribe_insertions") from exc

        self._channel = channel
        logger.info(
            "Subscribed to %s inserts on channel %s",
            VOTES_TABLE,
            self._channel_name,
            extra={
                "invoking_func": "open",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Dispatch pushed rows to the match detector",
                "resolution": "",
            },
        )
        return self

    async def close(self) -> None:
        if self._channel is not None and self._client is not None:
            channel, self._channel = self._channel, None
            try:
                await self._client.remove_channel(channel)
            except Exception as exc:  # noqa: BLE001
                logger.debug(
                    "remove_channel failed: %s",
                    exc,
                    extra={"invoking_func": "close", "invoking_purpose": MODULE_PURPOSE},
                )
        await super().close()
