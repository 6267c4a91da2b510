"""Shared fixtures for the DinnerMatch tests."""

import datetime

import pytest

from src.dinner_match.models import Recipe
from src.dinner_match.pairing import PairingConfig
from src.dinner_match.session.match_session import MatchSession
from src.dinner_match.store.memory import InMemoryRecipeStore, InMemoryVoteStore


DAY = "2024-01-05"


def fixed_clock(day: str = DAY):
    """Clock callable pinned to noon UTC of `day`."""
    d = datetime.date.fromisoformat(day)
    moment = datetime.datetime(d.year, d.month, d.day, 12, 0, tzinfo=datetime.timezone.utc)
    return lambda: moment


# ============================================================================
# Mock Supabase client
# ============================================================================

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records the PostgREST builder chain and returns canned rows."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def _method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return _method

    def execute(self):
        self.client.executed.append((self.table, self.calls))
        if self.client.should_fail:
            raise RuntimeError("connection refused")
        return FakeResponse(self.client.rows.get(self.table, []))


class FakeSupabaseClient:
    def __init__(self):
        self.rows = {}
        self.executed = []
        self.should_fail = False

    def table(self, name):
        return FakeQuery(self, name)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def recipes():
    return [
        Recipe(id="R1", title="Lasagne", owner_id="system"),
        Recipe(id="R2", title="Sushi Bowl", owner_id="system"),
        Recipe(id="R3", title="Thai Curry", owner_id="system"),
    ]


@pytest.fixture
def pairing_a():
    return PairingConfig(self_id="A", partner_id="B", display_name="Lukas")


@pytest.fixture
def pairing_b():
    return PairingConfig(self_id="B", partner_id="A", display_name="Sarah")


@pytest.fixture
def vote_store():
    return InMemoryVoteStore()


@pytest.fixture
def recipe_store(recipes):
    return InMemoryRecipeStore(recipes)


@pytest.fixture
def session_a(pairing_a, vote_store, recipe_store):
    return MatchSession(pairing_a, vote_store, recipe_store, clock=fixed_clock())


@pytest.fixture
def session_b(pairing_b, vote_store, recipe_store):
    return MatchSession(pairing_b, vote_store, recipe_store, clock=fixed_clock())


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()
