"""
API routes.

Endpoints:
- POST `/api/feed/rank`: rank a caller-supplied pool of listings/packages.
- GET  `/api/feed/home`: rank the live home feed for a user.
- GET  `/api/settings`: ranking settings for clients (credentials removed).
- GET  `/api/health`: liveness probe.
"""

from __future__ import annotations

import logging
from functools import lru_cache

import httpx
from fastapi import APIRouter, HTTPException

from fitfeed.config.overrides import apply_settings_overrides
from fitfeed.config.settings import get_settings
from fitfeed.domain.models import RankedFeed, RankRequest
from fitfeed.feed.home import build_cache, build_home_feed
from fitfeed.ingestion.supabase_client import SupabaseClient, SupabaseConfigError
from fitfeed.ranking.engine import rank_feed

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def _client() -> SupabaseClient:
    settings = get_settings()
    return SupabaseClient(settings, build_cache(settings))


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok"}


@router.post("/api/feed/rank", response_model=RankedFeed)
def post_rank(request: RankRequest) -> RankedFeed:
    """Rank the listings and packages in the request body."""
    try:
        settings = apply_settings_overrides(get_settings(), request.settings_overrides)
        return rank_feed(
            request.interests,
            request.listings,
            request.packages,
            now=request.now,
            weights=settings.ranking,
            explain=request.explain,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    except Exception as e:
        logger.exception("Ranking request failed")
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e


@router.get("/api/feed/home", response_model=RankedFeed)
def get_home_feed(user_id: str | None = None, explain: bool = False) -> RankedFeed:
    """Fetch interests + candidates from Supabase and return the ranked feed."""
    try:
        return build_home_feed(user_id, settings=get_settings(), client=_client(), explain=explain)
    except SupabaseConfigError as e:
        raise HTTPException(
            status_code=503,
            detail={"code": "NOT_CONFIGURED", "message": str(e)},
        ) from e
    except httpx.HTTPError as e:
        logger.warning("Supabase request failed: %s", e)
        raise HTTPException(
            status_code=502,
            detail={"code": "UPSTREAM_ERROR", "message": str(e)},
        ) from e
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    except Exception as e:
        logger.exception("Home feed failed")
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return safe-to-expose settings (no Supabase credentials)."""
    settings = get_settings()
    return {
        "app": {"name": settings.app.name, "timezone": settings.app.timezone},
        "ranking": settings.ranking.model_dump(mode="json"),
        "supabase": {"configured": bool(settings.supabase.url and settings.supabase.anon_key)},
    }
