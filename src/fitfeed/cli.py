"""
FitFeed CLI entrypoint.

Intended for local demos and for debugging why an item lands where it does in the feed.
Ranking is delegated to `fitfeed.ranking.engine`; live data to `fitfeed.feed.home`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from fitfeed.catalog.loader import load_feed_catalog
from fitfeed.config.settings import get_settings
from fitfeed.core.logging import configure_logging
from fitfeed.core.time import parse_datetime
from fitfeed.domain.models import RankedFeed, ScoreBreakdown
from fitfeed.feed.home import build_home_feed
from fitfeed.ranking.engine import rank_feed
from fitfeed.ranking.explain import one_line_summary


def _print_section(title: str, items: list[Any], scores: list[ScoreBreakdown]) -> None:
    print(f"{title}:")
    if not items:
        print("   (none)")
        return
    for i, item in enumerate(items, start=1):
        when = item.reference_timestamp.isoformat() if item.reference_timestamp else "-"
        line = f"{i:>3}. [{item.sport}] {item.title_en or item.id}  ({when})"
        if scores:
            line += f"  {one_line_summary(scores[i - 1])}"
        print(line)


def _print_feed(feed: RankedFeed, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(feed.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return
    print(f"Generated at: {feed.generated_at.isoformat()}")
    print(f"Interests: {', '.join(feed.interests) or '(none)'}")
    _print_section("Listings", feed.listings, feed.listing_scores)
    _print_section("Packages", feed.packages, feed.package_scores)


def _cmd_rank(args: argparse.Namespace) -> int:
    """Handle the `rank` subcommand (offline catalog)."""
    settings = get_settings()
    listings, packages = load_feed_catalog(args.catalog or settings.catalog.path)
    now = parse_datetime(args.now, settings.app.timezone) if args.now else None
    interests = {t.strip().lower() for t in args.interest if t and t.strip()}

    feed = rank_feed(
        interests,
        listings,
        packages,
        now=now,
        weights=settings.ranking,
        explain=bool(args.explain),
    )
    _print_feed(feed, as_json=bool(args.json))
    return 0


def _cmd_home_feed(args: argparse.Namespace) -> int:
    """Handle the `home-feed` subcommand (live Supabase data)."""
    settings = get_settings()
    now = parse_datetime(args.now, settings.app.timezone) if args.now else None
    feed = build_home_feed(args.user_id, settings=settings, now=now, explain=bool(args.explain))
    _print_feed(feed, as_json=bool(args.json))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the FitFeed CLI."""
    parser = argparse.ArgumentParser(prog="fitfeed")
    sub = parser.add_subparsers(dest="command", required=True)

    rank = sub.add_parser("rank", help="Rank listings and packages from a local catalog JSON file.")
    rank.add_argument("--catalog", type=str, default=None, help="Catalog path (defaults to catalog.path in config)")
    rank.add_argument("--interest", action="append", default=[], help="Repeatable interest tag, e.g. --interest yoga")
    rank.add_argument("--now", type=str, default=None, help="ISO datetime used as the ranking clock")
    rank.add_argument("--explain", action="store_true", help="Show per-signal points for every item")
    rank.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    rank.set_defaults(func=_cmd_rank)

    home = sub.add_parser("home-feed", help="Rank the live home feed for a user (needs Supabase credentials).")
    home.add_argument("--user-id", type=str, default=None, help="Omit for an anonymous (no interests) feed")
    home.add_argument("--now", type=str, default=None, help="ISO datetime used as the ranking clock")
    home.add_argument("--explain", action="store_true")
    home.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    home.set_defaults(func=_cmd_home_feed)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m fitfeed.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
