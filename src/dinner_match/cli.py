"""
cli.py

Purpose:
    Command line entrypoint for DinnerMatch.

    Commands:
      whoami                      show your user id (share it with your partner)
      pair PARTNER_ID [--name N]  store your partner's id (and your display name)
      today                       show today's candidate and your decision state
      vote like|dislike           swipe on today's candidate
      matches [--day YYYY-MM-DD]  list recipes you both liked
      add-recipe --title --body   add a recipe to the shared list
      watch [--seconds N]         listen for swipes and announce matches
      doctor                      check that SUPABASE_URL is reachable

Usage:
    python scripts/daily_match.py today
    python scripts/daily_match.py vote like

Without SUPABASE_URL / SUPABASE_ANON_KEY the CLI runs in local mode:
in-process stores, nothing is shared with the partner.
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import os
from typing import List, Optional, Tuple

import httpx

from src.dinner_match.config import profile_path, supabase_configured
from src.dinner_match.errors import StoreUnavailable, ValidationError
from src.dinner_match.logging_utils import LOG_RUN_ID, log_error, log_info, log_warning
from src.dinner_match.models import Match
from src.dinner_match.pairing import ProfileStore
from src.dinner_match.session.match_session import MatchSession
from src.dinner_match.store.memory import InMemoryRecipeStore, InMemoryVoteStore

MODULE_PURPOSE = "Command line entrypoint for daily swipes and matches."


# ---------------------------------------------------------------------------
# RUN BANNER
# ---------------------------------------------------------------------------
def print_run_banner(command: str, mode: str) -> None:
    now = datetime.datetime.now(datetime.timezone.utc)
    banner = [
        "\n===============================================================",
        "  DINNERMATCH",
        f"  Run ID       : {LOG_RUN_ID}",
        f"  UTC Time     : {now.strftime('%Y-%m-%d %H:%M:%S')}",
        f"  Command      : {command}",
        f"  Mode         : {mode}",
        "===============================================================\n",
    ]
    print("\n".join(banner))


# ---------------------------------------------------------------------------
# SESSION WIRING
# ---------------------------------------------------------------------------
def build_session(profile: ProfileStore) -> Tuple[MatchSession, str]:
    pairing = profile.load_pairing()
    if supabase_configured():
        from src.dinner_match.store.supabase_store import SupabaseRecipeStore, SupabaseVoteStore

        return (
            MatchSession(pairing, SupabaseVoteStore(), SupabaseRecipeStore(), profile=profile),
            "supabase",
        )

    log_warning(
        "No valid Supabase key found, running in local mode",
        module_purpose=MODULE_PURPOSE,
        invoking_function="build_session",
        invoking_purpose="Pick store adapters",
        next_step="Use in-memory stores",
        resolution="Set SUPABASE_URL and SUPABASE_ANON_KEY (JWT starting with eyJ)",
    )
    return MatchSession(pairing, InMemoryVoteStore(), InMemoryRecipeStore(), profile=profile), "local"


def announce(session: MatchSession, match: Match) -> None:
    recipe = session.recipe_by_id(match.recipe_id)
    title = recipe.title if recipe else match.recipe_id
    print(f"*** It's a match! You both want '{title}' on {match.day} ***")


# ---------------------------------------------------------------------------
# COMMANDS
# ---------------------------------------------------------------------------
def cmd_whoami(profile: ProfileStore, args: argparse.Namespace) -> int:
    pairing = profile.load_pairing()
    print(f"User id : {pairing.self_id()}")
    print(f"Name    : {pairing.display_name}")
    print(f"Partner : {pairing.partner_id() or '(single mode)'}")
    return 0


def cmd_pair(profile: ProfileStore, args: argparse.Namespace) -> int:
    pairing = profile.load_pairing()
    pairing.set_partner(args.partner_id)
    if args.name:
        pairing.display_name = args.name
    profile.save_pairing(pairing)
    print(f"Partner set to {pairing.partner_id() or '(none)'}")
    return 0


async def cmd_today(session: MatchSession, args: argparse.Namespace) -> int:
    await session.load_recipes()
    await session.start()
    recipe = session.candidate()
    if recipe is None:
        print("Nothing to vote on today.")
        return 0
    print(f"Today ({session.today()}): {recipe.title}")
    print(recipe.body)
    print(f"State: {session.day_state().value}")
    return 0


async def cmd_vote(session: MatchSession, args: argparse.Namespace) -> int:
    await session.load_recipes()
    await session.start()
    session.add_match_listener(lambda m: announce(session, m))

    recipe = session.candidate()
    if recipe is None:
        print("Nothing to vote on today.")
        return 0
    if session.has_decided_today() and not args.force:
        print("You already decided today. See you tomorrow!")
        return 0

    try:
        result = await session.cast_vote(recipe.id, args.kind)
    except ValidationError as exc:
        log_error(
            "Vote rejected",
            module_purpose=MODULE_PURPOSE,
            invoking_function="cmd_vote",
            invoking_purpose="Swipe on today's candidate",
            next_step="Exit with error",
            resolution="Check profile user id and recipe list",
            exc=exc,
        )
        return 2

    print(f"{args.kind.capitalize()} recorded for '{recipe.title}'.")
    if not result.confirmed:
        print("Saved locally only; sync is degraded. Run the command again later.")
    return 0


async def cmd_matches(session: MatchSession, args: argparse.Namespace) -> int:
    await session.load_recipes()
    day = args.day or session.today()
    for user_id in (session.pairing.self_id(), session.pairing.partner_id()):
        if user_id:
            await session.replay(user_id, day=day)
    recipe_ids = sorted(session.matches_for_day(day))
    if not recipe_ids:
        print(f"No matches for {day}.")
        return 0
    print(f"Matches for {day}:")
    for rid in recipe_ids:
        recipe = session.recipe_by_id(rid)
        print(f"  - {recipe.title if recipe else rid}")
    return 0


async def cmd_add_recipe(session: MatchSession, args: argparse.Namespace) -> int:
    await session.load_recipes()
    try:
        recipe = await session.add_recipe(args.title, args.body, args.image)
    except StoreUnavailable as exc:
        log_error(
            "Recipe saved locally but not synced",
            module_purpose=MODULE_PURPOSE,
            invoking_function="cmd_add_recipe",
            invoking_purpose="Add a recipe to the shared list",
            next_step="Exit with error",
            resolution="Retry when the store is reachable",
            exc=exc,
        )
        return 1
    print(f"Added recipe {recipe.id}: {recipe.title}")
    return 0


async def cmd_watch(session: MatchSession, args: argparse.Namespace, mode: str) -> int:
    await session.load_recipes()
    session.add_match_listener(lambda m: announce(session, m))

    if mode == "supabase":
        from src.dinner_match.store.realtime import SupabaseVoteFeed

        try:
            feed = await SupabaseVoteFeed().open()
        except StoreUnavailable as exc:
            log_error(
                "Could not subscribe to swipes",
                module_purpose=MODULE_PURPOSE,
                invoking_function="cmd_watch",
                invoking_purpose="Listen for partner swipes",
                next_step="Exit with error",
                resolution="Enable Realtime for the swipes table",
                exc=exc,
            )
            return 1
    else:
        feed = session.vote_store.subscribe_insertions()

    await session.start()
    log_info(
        "Watching for swipes",
        module_purpose=MODULE_PURPOSE,
        invoking_function="cmd_watch",
        invoking_purpose="Listen for partner swipes",
        next_step="Dispatch events until interrupted",
    )
    dispatcher = asyncio.create_task(session.run(feed))
    try:
        if args.seconds:
            await asyncio.sleep(args.seconds)
        else:
            await asyncio.Event().wait()
    finally:
        await feed.close()
        await dispatcher
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    """Simple reachability check for SUPABASE_URL."""
    url = os.environ.get("SUPABASE_URL")
    if not url:
        log_error(
            "SUPABASE_URL environment variable not set",
            module_purpose=MODULE_PURPOSE,
            invoking_function="cmd_doctor",
            invoking_purpose="Reachability check for Supabase URL",
            next_step="Set SUPABASE_URL in environment or .env",
        )
        return 1

    try:
        resp = httpx.get(url, timeout=args.timeout)
    except httpx.HTTPError as exc:
        log_error(
            "HTTP request to SUPABASE_URL failed",
            module_purpose=MODULE_PURPOSE,
            invoking_function="cmd_doctor",
            invoking_purpose="Reachability check for Supabase URL",
            next_step="Check network / URL",
            exc=exc,
        )
        return 1

    print(f"SUPABASE_URL status: {resp.status_code}")
    print(f"Key looks valid: {'yes' if supabase_configured() else 'no (local mode)'}")
    return 0


# ---------------------------------------------------------------------------
# CLI ENTRYPOINT
# ---------------------------------------------------------------------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="DinnerMatch: swipe on today's dinner with your partner")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("whoami", help="Show your user id")

    p_pair = sub.add_parser("pair", help="Set your partner's user id")
    p_pair.add_argument("partner_id", help="Partner user id ('' to unpair)")
    p_pair.add_argument("--name", help="Your display name")

    sub.add_parser("today", help="Show today's candidate")

    p_vote = sub.add_parser("vote", help="Swipe on today's candidate")
    p_vote.add_argument("kind", choices=["like", "dislike"])
    p_vote.add_argument("--force", action="store_true", help="Vote even if you already decided today")

    p_matches = sub.add_parser("matches", help="List matches for a day")
    p_matches.add_argument("--day", help="YYYY-MM-DD (default: today, UTC)")

    p_add = sub.add_parser("add-recipe", help="Add a recipe")
    p_add.add_argument("--title", required=True)
    p_add.add_argument("--body", required=True)
    p_add.add_argument("--image", default=None, help="Image URL")

    p_watch = sub.add_parser("watch", help="Listen for swipes and announce matches")
    p_watch.add_argument("--seconds", type=float, default=0, help="Stop after N seconds (default: run forever)")

    p_doctor = sub.add_parser("doctor", help="Check that SUPABASE_URL is reachable")
    p_doctor.add_argument("--timeout", type=float, default=10.0)

    return parser.parse_args(argv)


async def _run_async(args: argparse.Namespace, profile: ProfileStore) -> int:
    session, mode = build_session(profile)
    print_run_banner(args.command, mode)
    try:
        if args.command == "today":
            return await cmd_today(session, args)
        if args.command == "vote":
            return await cmd_vote(session, args)
        if args.command == "matches":
            return await cmd_matches(session, args)
        if args.command == "add-recipe":
            return await cmd_add_recipe(session, args)
        if args.command == "watch":
            return await cmd_watch(session, args, mode)
        raise ValueError(f"unknown command {args.command}")
    finally:
        await session.close()


def main(argv: Optional[List[str]] = None, profile: Optional[ProfileStore] = None) -> int:
    args = parse_args(argv)
    profile = profile or ProfileStore(profile_path())

    if args.command == "whoami":
        return cmd_whoami(profile, args)
    if args.command == "pair":
        return cmd_pair(profile, args)
    if args.command == "doctor":
        return cmd_doctor(args)
    return asyncio.run(_run_async(args, profile))
