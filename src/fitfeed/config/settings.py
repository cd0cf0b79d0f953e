# src/fitfeed/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/fitfeed/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `SUPABASE_URL`, `SUPABASE_ANON_KEY`)
- an external YAML file via `FITFEED_CONFIG_PATH`

Design rule:
- Ranking weights and decay windows live in YAML, not hard-coded in call sites.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from fitfeed.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `fitfeed.config`."""
    text = resources.files("fitfeed.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "FitFeed"
    timezone: str = "UTC"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/fitfeed"
    default_ttl_seconds: int = 300


class CatalogSettings(BaseModel):
    path: str = "data/catalogs/feed.json"


class SupabaseSettings(BaseModel):
    url: str | None = None
    anon_key: str | None = None
    rest_path: str = "/rest/v1"
    interests_table: str = "user_interests"
    listings_table: str = "training_listings"
    packages_table: str = "training_packages"
    listing_partner_select: str = (
        "id, display_name, logo_url, partner_type, bio, avg_rating, review_count"
    )
    package_partner_select: str = "id, display_name, logo_url, partner_type, avg_rating, review_count"
    approved_status: str = "approved"
    interests_ttl_seconds: int = Field(5 * 60, ge=0)
    feed_ttl_seconds: int = Field(3 * 60, ge=0)


class RankingWeights(BaseModel):
    """Points awarded by each feed-ranking signal (max total is their sum)."""

    interest_match: float = Field(40, ge=0)
    rating: float = Field(25, ge=0)
    popularity: float = Field(20, ge=0)
    recency: float = Field(10, ge=0)
    freshness: float = Field(5, ge=0)


class RankingSettings(BaseModel):
    weights: RankingWeights = Field(default_factory=RankingWeights)
    max_rating: float = Field(5, gt=0)
    # review_count at which the log-scaled popularity term saturates
    popularity_cap: int = Field(50, ge=1)
    recency_decay_days: float = Field(30, gt=0)
    freshness_window_hours: float = Field(48, ge=0)
    clamp_negative_rating: bool = False


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    ranking: RankingSettings = Field(default_factory=RankingSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)
    cache_dir = os.getenv("FITFEED_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    log_level = os.getenv("FITFEED_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if supabase_url:
        data.setdefault("supabase", {})["url"] = supabase_url
    if supabase_key:
        data.setdefault("supabase", {})["anon_key"] = supabase_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("FITFEED_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
