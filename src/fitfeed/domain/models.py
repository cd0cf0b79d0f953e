"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- marketplace rows as returned by PostgREST (`TrainingListing`, `TrainingPackage`,
  each embedding a `PartnerSummary` with the partner's rating aggregates)
- API inputs (`RankRequest`)
- ranking output (`RankedFeed`, `ScoreBreakdown`)

Listings and packages both satisfy `fitfeed.ranking.scorable.Scorable` through the
read-only properties below, so the engine scores either shape with one function.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PartnerSummary(BaseModel):
    """Partner (trainer or gym) columns embedded in a feed row."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    display_name: str | None = None
    logo_url: str | None = None
    partner_type: str | None = None
    bio: str | None = None
    avg_rating: float | None = None
    review_count: int | None = None


class _PartnerBacked(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sport: str
    partner_profiles: PartnerSummary | None = None

    @property
    def rating(self) -> float | None:
        return self.partner_profiles.avg_rating if self.partner_profiles else None

    @property
    def review_count(self) -> int | None:
        return self.partner_profiles.review_count if self.partner_profiles else None


class TrainingListing(_PartnerBacked):
    """A single bookable session. Ranked by when the session takes place."""

    id: str
    title_en: str = ""
    title_ka: str | None = None
    description_en: str | None = None
    description_ka: str | None = None
    training_type: str | None = None
    scheduled_at: datetime
    created_at: datetime | None = None
    duration_minutes: int | None = None
    price_gel: float | None = None
    max_spots: int | None = None
    background_image_url: str | None = None
    equipment_notes_en: str | None = None
    equipment_notes_ka: str | None = None
    status: str | None = None
    partner_id: str | None = None
    location: str | None = None

    @property
    def reference_timestamp(self) -> datetime | None:
        return self.scheduled_at


class TrainingPackage(_PartnerBacked):
    """A multi-session bundle. Ranked by when it was published."""

    id: str
    title_en: str = ""
    title_ka: str | None = None
    training_type: str | None = None
    sessions_count: int | None = None
    price_per_session_gel: float | None = None
    total_price_gel: float | None = None
    duration_minutes: int | None = None
    max_spots: int | None = None
    background_image_url: str | None = None
    location: str | None = None
    status: str | None = None
    created_at: datetime | None = None

    @property
    def reference_timestamp(self) -> datetime | None:
        return self.created_at


class ScoreBreakdown(BaseModel):
    """Per-signal points for one item; `total` is their plain sum."""

    item_id: str | None = None
    interest: float
    rating: float
    popularity: float
    recency: float
    freshness: float
    total: float


def _normalize_interest_tags(tags: list[str]) -> list[str]:
    return sorted({t.strip().lower() for t in tags if t and t.strip()})


class RankRequest(BaseModel):
    """Request body for ranking a caller-supplied candidate pool."""

    interests: list[str] = Field(default_factory=list)
    listings: list[TrainingListing] = Field(default_factory=list)
    packages: list[TrainingPackage] = Field(default_factory=list)
    now: datetime | None = None
    explain: bool = False
    settings_overrides: dict[str, Any] | None = None

    @field_validator("interests")
    @classmethod
    def _normalize_interests(cls, tags: list[str]) -> list[str]:
        return _normalize_interest_tags(tags)


class RankedFeed(BaseModel):
    """Listings and packages in feed order, plus optional score breakdowns."""

    generated_at: datetime
    interests: list[str] = Field(default_factory=list)
    listings: list[TrainingListing] = Field(default_factory=list)
    packages: list[TrainingPackage] = Field(default_factory=list)
    listing_scores: list[ScoreBreakdown] = Field(default_factory=list)
    package_scores: list[ScoreBreakdown] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)
