from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from fitfeed.config.settings import get_settings
from fitfeed.core.env import resolve_project_path
from fitfeed.core.logging import configure_logging
from fitfeed.core.time import parse_datetime
from fitfeed.feed.home import build_cache
from fitfeed.ingestion.supabase_client import SupabaseClient


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def main() -> int:
    ap = argparse.ArgumentParser(description="Snapshot the live home feed into an offline catalog file.")
    ap.add_argument("--out", default=None, help="Output path (defaults to catalog.path in config)")
    ap.add_argument("--now", default=None, help="ISO datetime; listings before it are excluded")
    ap.add_argument("--no-cache", action="store_true", help="Bypass the on-disk feed cache")
    args = ap.parse_args()

    configure_logging()
    settings = get_settings()
    if args.no_cache:
        settings = settings.model_copy(update={"cache": settings.cache.model_copy(update={"enabled": False})})

    client = SupabaseClient(settings, build_cache(settings))
    now = parse_datetime(args.now, settings.app.timezone) if args.now else None
    listings, packages = client.get_home_feed(now=now)

    out = resolve_project_path(args.out or settings.catalog.path)
    _write_json(
        out,
        {
            "listings": [x.model_dump(mode="json") for x in listings],
            "packages": [x.model_dump(mode="json") for x in packages],
        },
    )
    print(f"wrote {len(listings)} listings, {len(packages)} packages -> {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
