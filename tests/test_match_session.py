"""Tests for MatchSession: casting votes, replay, push dispatch and failures."""

import asyncio

import pytest

from src.dinner_match.errors import ValidationError
from src.dinner_match.ledger.match_detector import DayState
from src.dinner_match.pairing import PairingConfig, ProfileStore
from src.dinner_match.session.match_session import MatchSession
from src.dinner_match.store.memory import InMemoryRecipeStore

from tests.conftest import DAY, fixed_clock


async def _drain(feeds, tasks):
    for feed in feeds:
        await feed.close()
    await asyncio.gather(*tasks)


class TestCastVote:

    def test_vote_is_confirmed_and_stored(self, session_a, vote_store):
        result = asyncio.run(session_a.cast_vote("R2", "like"))

        assert result.confirmed and result.ok
        assert result.vote.user_id == "A"
        assert result.vote.day == DAY
        assert [v.id for v in vote_store.rows] == [result.vote.id]
        assert session_a.has_decided_today()
        assert session_a.day_state() is DayState.DECIDED
        assert not session_a.sync_degraded

    @pytest.mark.parametrize(
        "user_id, recipe_id, kind, day",
        [
            ("", "R1", "like", DAY),
            ("A", "  ", "like", DAY),
            ("A", "R1", "love", DAY),
            ("A", "R1", "like", "05.01.2024"),
            ("A", "R1", "like", None),
        ],
    )
    def test_validation_happens_before_persistence(self, session_a, vote_store, user_id, recipe_id, kind, day):
        with pytest.raises(ValidationError):
            asyncio.run(session_a.cast_vote_for(user_id, recipe_id, kind, day))
        assert vote_store.rows == []
        assert len(session_a.ledger) == 0

    def test_store_failure_keeps_optimistic_vote(self, session_a, vote_store):
        vote_store.fail_next = 1

        result = asyncio.run(session_a.cast_vote("R1", "dislike"))

        assert not result.confirmed
        assert result.error is not None and result.error.retryable
        assert session_a.has_decided_today()
        assert session_a.sync_degraded
        assert vote_store.rows == []

    def test_retry_pending_confirms(self, session_a, vote_store):
        vote_store.fail_next = 1

        async def scenario():
            await session_a.cast_vote("R1", "like")
            return await session_a.retry_pending()

        assert asyncio.run(scenario()) == 1
        assert not session_a.sync_degraded
        assert len(vote_store.rows) == 1

    def test_local_like_matches_known_partner_like(self, session_a):
        async def scenario():
            await session_a.cast_vote_for("B", "R3", "like", DAY)
            return await session_a.cast_vote("R3", "like")

        result = asyncio.run(scenario())
        assert result.match is not None
        assert session_a.matches_for_day() == {"R3"}

    def test_failing_listener_still_stores_vote(self, session_a, vote_store):
        def broken(match):
            raise RuntimeError("ui crashed")

        session_a.add_match_listener(broken)

        async def scenario():
            await session_a.cast_vote_for("B", "R3", "like", DAY)
            return await session_a.cast_vote("R3", "like")

        result = asyncio.run(scenario())
        assert result.confirmed
        assert result.match is not None
        assert [(v.user_id, v.recipe_id) for v in vote_store.rows] == [("B", "R3"), ("A", "R3")]
        assert not session_a.sync_degraded


class TestTwoSessions:

    def test_scenario_both_sessions_celebrate_once(self, session_a, session_b, vote_store):
        events_a, events_b = [], []
        session_a.add_match_listener(events_a.append)
        session_b.add_match_listener(events_b.append)

        async def scenario():
            feed_a = vote_store.subscribe_insertions()
            feed_b = vote_store.subscribe_insertions()
            tasks = [
                asyncio.create_task(session_a.run(feed_a)),
                asyncio.create_task(session_b.run(feed_b)),
            ]
            await session_a.cast_vote("R2", "like")
            await asyncio.sleep(0)
            await session_b.cast_vote("R2", "like")
            await _drain([feed_a, feed_b], tasks)

        asyncio.run(scenario())

        assert [(m.recipe_id, m.day) for m in events_a] == [("R2", DAY)]
        assert [(m.recipe_id, m.day) for m in events_b] == [("R2", DAY)]
        assert session_a.matches_for_day(DAY) == {"R2"}
        assert session_b.matches_for_day(DAY) == {"R2"}

    def test_dislike_then_partner_like(self, session_a, session_b, vote_store):
        events = []
        session_a.add_match_listener(events.append)

        async def scenario():
            feed = vote_store.subscribe_insertions()
            task = asyncio.create_task(session_a.run(feed))
            await session_a.cast_vote("R1", "dislike")
            await session_b.cast_vote("R1", "like")
            await _drain([feed], [task])

        asyncio.run(scenario())

        assert session_a.has_decided_today()
        assert events == []
        assert "R1" not in session_a.matches_for_day(DAY)

    def test_dispatcher_survives_bad_rows_and_listener_errors(self, session_a, vote_store):
        calls = []

        def flaky_listener(match):
            calls.append(match)
            raise RuntimeError("ui crashed")

        session_a.add_match_listener(flaky_listener)

        async def scenario():
            feed = vote_store.subscribe_insertions()
            task = asyncio.create_task(session_a.run(feed))
            feed.push({"user_id": "B"})
            await session_a.cast_vote("R1", "like")
            feed.push({"id": "b1", "user_id": "B", "recipe_id": "R1", "type": "like", "day": DAY})
            feed.push({"id": "zz", "user_id": "B", "recipe_id": "R2", "type": "like", "day": DAY})
            await _drain([feed], [task])

        asyncio.run(scenario())
        assert len(calls) == 1
        assert session_a.detector.dropped_events == 1
        assert session_a.ledger.has_liked("B", "R2", DAY)


class TestReplay:

    def test_start_replays_today_for_both_users(self, pairing_a, vote_store, recipe_store):
        seed = MatchSession(PairingConfig("B", "A"), vote_store, recipe_store, clock=fixed_clock())
        asyncio.run(seed.cast_vote("R2", "like"))
        asyncio.run(seed.cast_vote_for("A", "R2", "like", DAY))

        session = MatchSession(pairing_a, vote_store, recipe_store, clock=fixed_clock())
        events = []
        session.add_match_listener(events.append)

        fetched = asyncio.run(session.start())

        assert fetched == 2
        assert len(events) == 1
        assert session.matches_for_day() == {"R2"}

    def test_start_merges_every_vote_despite_failing_listener(self, pairing_a, vote_store, recipe_store):
        seed = MatchSession(PairingConfig("B", "A"), vote_store, recipe_store, clock=fixed_clock())

        async def fill():
            await seed.cast_vote("R2", "like")
            await seed.cast_vote_for("A", "R2", "like", DAY)
            await seed.cast_vote_for("A", "R1", "dislike", DAY)
            await seed.cast_vote("R3", "like")

        asyncio.run(fill())

        session = MatchSession(pairing_a, vote_store, recipe_store, clock=fixed_clock())

        def broken(match):
            raise RuntimeError("ui crashed")

        session.add_match_listener(broken)

        assert asyncio.run(session.start()) == 4
        assert len(session.ledger) == 4
        assert session.matches_for_day() == {"R2"}

    def test_late_replay_after_push_does_not_celebrate_twice(self, session_a, vote_store, recipe_store):
        partner = MatchSession(PairingConfig("B", "A"), vote_store, recipe_store, clock=fixed_clock())
        events = []
        session_a.add_match_listener(events.append)

        async def scenario():
            await partner.cast_vote("R1", "like")
            await partner.cast_vote_for("A", "R1", "like", DAY)
            for vote in vote_store.rows:
                session_a.detector.on_vote_observed(vote.to_row())
            return await session_a.start()

        assert asyncio.run(scenario()) == 2
        assert len(events) == 1
        assert len(session_a.ledger) == 2

    def test_start_survives_store_outage(self, session_a, vote_store):
        vote_store.fail_next = 2
        assert asyncio.run(session_a.start()) == 0

    def test_partner_change_triggers_replay(self, vote_store, recipe_store):
        pairing = PairingConfig("A")
        session = MatchSession(pairing, vote_store, recipe_store, clock=fixed_clock())
        other = MatchSession(PairingConfig("C"), vote_store, recipe_store, clock=fixed_clock())

        async def scenario():
            await other.cast_vote("R1", "like")
            await session.cast_vote("R1", "like")
            pairing.set_partner("C")
            await session.close()

        asyncio.run(scenario())
        assert session.matches_for_day(DAY) == {"R1"}
        assert session.detector.was_celebrated("R1", DAY)


class TestRecipes:

    def test_candidate_follows_store_order(self, session_a, recipes):
        asyncio.run(session_a.load_recipes())
        # 2024-01-05 -> seed 2024105, 2024105 % 3 == 2
        assert session_a.candidate() == recipes[2]
        assert session_a.has_candidate_today()

    def test_empty_collection_has_no_candidate(self, session_a):
        session_a.recipes = []
        assert session_a.candidate() is None
        assert not session_a.has_candidate_today()

    def test_outage_falls_back_to_cache(self, tmp_path, pairing_a, vote_store, recipes):
        profile = ProfileStore(tmp_path / "profile.json")
        profile.cache_recipes(recipes[:2])
        store = InMemoryRecipeStore(recipes)
        store.fail_next = 1
        session = MatchSession(pairing_a, vote_store, store, clock=fixed_clock(), profile=profile)

        loaded = asyncio.run(session.load_recipes())
        assert [r.id for r in loaded] == ["R1", "R2"]

    def test_outage_without_cache_uses_starter_recipes(self, pairing_a, vote_store):
        store = InMemoryRecipeStore([])
        store.fail_next = 1
        session = MatchSession(pairing_a, vote_store, store, clock=fixed_clock())

        loaded = asyncio.run(session.load_recipes())
        assert len(loaded) == 5
        assert session.has_candidate_today()

    def test_add_recipe_goes_first(self, session_a, recipe_store):
        async def scenario():
            await session_a.load_recipes()
            return await session_a.add_recipe("Shakshuka", "Eier in Tomatensauce")

        recipe = asyncio.run(scenario())
        assert session_a.recipes[0] == recipe
        assert recipe.owner_id == "A"
        assert recipe_store.list_recipes()[0].id == recipe.id
        assert recipe.image_ref.startswith("https://")
