"""
config.py

Purpose:
    Provide get_supabase_client() / get_async_supabase_client() that create
    Supabase Python clients using environment variables, plus the few
    DinnerMatch settings read from the environment.

Usage:
    from src.dinner_match.config import get_supabase_client
"""
from __future__ import annotations
import os       # os module to read environment variables
from pathlib import Path

# Client connection details are not hardcoded; everything comes from env / .env
from supabase import AsyncClient, Client, acreate_client, create_client

from dotenv import load_dotenv      # Load environment variables from .env file

load_dotenv()  # loads .env

DEFAULT_PROFILE_PATH = Path.home() / ".dinner_match" / "profile.json"

# Table names used by the web client as well; keep in sync with it.
RECIPES_TABLE = "recipes"
VOTES_TABLE = "swipes"


def _supabase_key() -> str:
    # Client apps use the anon key; never ship the service role key to a device.
    return os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY", "")


def supabase_configured() -> bool:
    """True when a URL and a real (JWT shaped) key are available.

    Anything else means local mode: in-process stores, no cross-device sync.
    """
    url = os.environ.get("SUPABASE_URL", "")
    key = _supabase_key()
    return bool(url) and key.startswith("eyJ")


def get_supabase_client() -> Client:
    """Create a Supabase client using env vars."""
    url = os.environ["SUPABASE_URL"]
    return create_client(url, _supabase_key())


async def get_async_supabase_client() -> AsyncClient:
    """Create an async Supabase client (needed for Realtime subscriptions)."""
    url = os.environ["SUPABASE_URL"]
    return await acreate_client(url, _supabase_key())


def profile_path() -> Path:
    raw = os.environ.get("DINNER_MATCH_PROFILE")
    return Path(raw).expanduser() if raw else DEFAULT_PROFILE_PATH
