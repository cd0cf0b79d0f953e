"""
Supabase ingestion client (PostgREST over HTTP).

This module is responsible only for:
- looking up a user's interest tags (`user_interests` table),
- fetching the home feed candidate pool (approved upcoming listings + approved packages,
  each with the partner's rating aggregates embedded),
- parsing rows into the typed models used by the ranking engine.

It does not implement ranking; see `fitfeed.ranking.engine` for that. Aggregates such as
`avg_rating`/`review_count` are trusted as returned.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from fitfeed.config.settings import Settings
from fitfeed.core.cache import FileCache
from fitfeed.core.http import get_json
from fitfeed.core.time import ensure_tz, utc_now
from fitfeed.domain.models import TrainingListing, TrainingPackage

logger = logging.getLogger(__name__)


class SupabaseConfigError(RuntimeError):
    """Raised when the Supabase URL or API key is not configured."""


def _parse_rows(rows: Any, model: type[BaseModel], *, kind: str) -> list[Any]:
    """Validate rows one by one; malformed rows are logged and skipped."""
    if not isinstance(rows, list):
        logger.warning("Unexpected %s payload type %s; treating as empty", kind, type(rows).__name__)
        return []
    out: list[Any] = []
    for row in rows:
        try:
            out.append(model.model_validate(row))
        except ValidationError as exc:
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning("Skipping malformed %s row id=%s: %s", kind, row_id, exc.errors()[:1])
    return out


class SupabaseClient:
    """Reads feed inputs from Supabase tables and caches them on disk."""

    def __init__(self, settings: Settings, cache: FileCache):
        self._settings = settings
        self._cache = cache

    def _table_url(self, table: str) -> str:
        cfg = self._settings.supabase
        if not cfg.url or not cfg.anon_key:
            raise SupabaseConfigError("Missing Supabase credentials (set SUPABASE_URL and SUPABASE_ANON_KEY).")
        return f"{cfg.url.rstrip('/')}{cfg.rest_path}/{table}"

    def _headers(self) -> dict[str, str]:
        key = self._settings.supabase.anon_key or ""
        return {"apikey": key, "Authorization": f"Bearer {key}", "Accept": "application/json"}

    def _select(self, table: str, params: list[tuple[str, Any]]) -> Any:
        return get_json(
            self._table_url(table),
            params=params,
            headers=self._headers(),
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def get_user_interests(self, user_id: str | None) -> frozenset[str]:
        """Return the user's interest tags, lowercased. Anonymous users have none."""
        if not user_id:
            return frozenset()

        cfg = self._settings.supabase

        def _fetch() -> list[str]:
            rows = self._select(cfg.interests_table, [("select", "tag"), ("user_id", f"eq.{user_id}")])
            tags = [str(r.get("tag") or "").strip().lower() for r in rows or [] if isinstance(r, dict)]
            return sorted({t for t in tags if t})

        tags = self._cache.get_or_set(
            "interests",
            str(user_id),
            _fetch,
            ttl_seconds=int(cfg.interests_ttl_seconds),
        )
        logger.info("Loaded %d interest tags for user %s", len(tags), user_id)
        return frozenset(tags)

    def get_home_feed(
        self, *, now: datetime | None = None
    ) -> tuple[list[TrainingListing], list[TrainingPackage]]:
        """Return (upcoming approved listings, approved packages) from the feed tables.

        Listings come soonest-first and packages newest-first; that order is the
        tie-break order the ranking engine preserves.
        """
        cfg = self._settings.supabase
        cutoff = ensure_tz(now) if now is not None else utc_now()

        def _fetch() -> dict[str, Any]:
            listings = self._select(
                cfg.listings_table,
                [
                    ("select", f"*,partner_profiles({cfg.listing_partner_select})"),
                    ("status", f"eq.{cfg.approved_status}"),
                    ("scheduled_at", f"gte.{cutoff.isoformat()}"),
                    ("order", "scheduled_at.asc"),
                ],
            )
            packages = self._select(
                cfg.packages_table,
                [
                    ("select", f"*,partner_profiles({cfg.package_partner_select})"),
                    ("status", f"eq.{cfg.approved_status}"),
                    ("order", "created_at.desc"),
                ],
            )
            return {"listings": listings or [], "packages": packages or []}

        payload = self._cache.get_or_set(
            "feed",
            "home-feed",
            _fetch,
            ttl_seconds=int(cfg.feed_ttl_seconds),
            stale_if_error=True,
            stale_predicate=lambda exc: isinstance(exc, httpx.HTTPError),
        )
        listings = _parse_rows(payload.get("listings"), TrainingListing, kind="listing")
        packages = _parse_rows(payload.get("packages"), TrainingPackage, kind="package")
        logger.info("Loaded home feed: %d listings, %d packages", len(listings), len(packages))
        return listings, packages
