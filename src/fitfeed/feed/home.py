from __future__ import annotations

# Home feed orchestration.
# Wires together:
# - settings (+ per-request ranking overrides)
# - the Supabase provider (interests + candidate pool, cached per staleness window)
# - the pure ranking engine
#
# The provider owns freshness; ranking always runs on whatever it was handed.

import logging
import time
from datetime import datetime
from typing import Any, Mapping

from fitfeed.config.overrides import apply_settings_overrides
from fitfeed.config.settings import Settings, get_settings
from fitfeed.core.cache import FileCache
from fitfeed.core.env import resolve_project_path
from fitfeed.core.time import ensure_tz, utc_now
from fitfeed.domain.models import RankedFeed
from fitfeed.ingestion.supabase_client import SupabaseClient
from fitfeed.ranking.engine import rank_feed

logger = logging.getLogger(__name__)


def build_cache(settings: Settings) -> FileCache:
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


def build_home_feed(
    user_id: str | None,
    *,
    settings: Settings | None = None,
    client: SupabaseClient | None = None,
    now: datetime | None = None,
    settings_overrides: Mapping[str, Any] | None = None,
    explain: bool = False,
) -> RankedFeed:
    """Fetch a user's interests and the candidate pool, then rank both feed sections."""
    t0 = time.monotonic()
    settings = settings or get_settings()
    settings = apply_settings_overrides(settings, settings_overrides)
    # Injected clients keep tests offline.
    if client is None:
        client = SupabaseClient(settings, build_cache(settings))
    moment = ensure_tz(now) if now is not None else utc_now()

    interests = client.get_user_interests(user_id)
    listings, packages = client.get_home_feed(now=moment)
    t_fetch = time.monotonic()

    feed = rank_feed(interests, listings, packages, now=moment, weights=settings.ranking, explain=explain)
    t_rank = time.monotonic()

    feed.meta = {
        "user_id": user_id,
        "counts": {"listings": len(feed.listings), "packages": len(feed.packages), "interests": len(interests)},
        "weights": settings.ranking.weights.model_dump(mode="json"),
        "timings_ms": {
            "fetch": int((t_fetch - t0) * 1000),
            "rank": int((t_rank - t_fetch) * 1000),
        },
    }
    logger.info(
        "Home feed for %s: %d listings, %d packages ranked in %dms",
        user_id or "anonymous",
        len(feed.listings),
        len(feed.packages),
        feed.meta["timings_ms"]["rank"],
    )
    return feed
