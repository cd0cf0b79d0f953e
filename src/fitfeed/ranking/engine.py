"""
Feed ranking engine.

Orders training listings and packages for the home feed by blending five
independently bounded signals (points under the default weights):

    interest match  40  sport matches one of the user's interest tags
    rating          25  partner average rating, scaled to 0..25
    popularity      20  log-scaled partner review count, saturating at 50 reviews
    recency         10  linear decay over 30 days from the reference timestamp
    freshness        5  flat bonus when the reference timestamp is within 48h

The total is the plain sum (about 100 max); items are sorted by it descending with
a stable sort, so equal scores keep their input order.

Everything here is a pure function of (item, interests, now): no I/O, no caching,
inputs are never mutated.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from fitfeed.config.settings import RankingSettings
from fitfeed.core.time import ensure_tz, utc_now
from fitfeed.domain.models import RankedFeed, ScoreBreakdown, TrainingListing, TrainingPackage
from fitfeed.ranking.scorable import Scorable, ScoredItem, T

logger = logging.getLogger(__name__)

DEFAULT_RANKING = RankingSettings()


def matches_interest(sport: str, interests: Iterable[str]) -> bool:
    """Loose bidirectional substring match between a sport label and interest tags.

    "box" matches "Boxing" and "kickboxing" matches "boxing"; no tokenizing or
    fuzzy matching. Tags are expected lowercase already.
    """
    sport_lower = (sport or "").lower()
    return any(tag in sport_lower or sport_lower in tag for tag in interests)


def _interest_points(item: Scorable, interests: frozenset[str], cfg: RankingSettings) -> float:
    if interests and matches_interest(item.sport, interests):
        return float(cfg.weights.interest_match)
    return 0.0


def _rating_points(item: Scorable, cfg: RankingSettings) -> float:
    rating = item.rating or 0
    if cfg.clamp_negative_rating:
        rating = max(rating, 0)
    return (min(rating, cfg.max_rating) / cfg.max_rating) * cfg.weights.rating


def _popularity_points(item: Scorable, cfg: RankingSettings) -> float:
    reviews = item.review_count or 0
    # Zero and negative counts never reach the log.
    if reviews <= 0:
        return 0.0
    log_score = math.log(reviews + 1) / math.log(cfg.popularity_cap + 1)
    return min(log_score, 1.0) * cfg.weights.popularity


def _age(item: Scorable, now: datetime) -> timedelta | None:
    ref = item.reference_timestamp
    if ref is None:
        return None
    return now - ensure_tz(ref)


def _recency_points(age: timedelta | None, cfg: RankingSettings) -> float:
    if age is None:
        return 0.0
    days = max(0.0, age.total_seconds() / 86400)
    factor = max(0.0, 1 - days / cfg.recency_decay_days)
    return factor * cfg.weights.recency


def _freshness_points(age: timedelta | None, cfg: RankingSettings) -> float:
    # Future timestamps have a negative age and count as fresh.
    if age is None:
        return 0.0
    if age.total_seconds() / 3600 <= cfg.freshness_window_hours:
        return float(cfg.weights.freshness)
    return 0.0


def _resolve_now(now: datetime | None) -> datetime:
    return ensure_tz(now) if now is not None else utc_now()


def _breakdown(
    item: Scorable, interests: frozenset[str], now: datetime, cfg: RankingSettings
) -> ScoreBreakdown:
    age = _age(item, now)
    interest = _interest_points(item, interests, cfg)
    rating = _rating_points(item, cfg)
    popularity = _popularity_points(item, cfg)
    recency = _recency_points(age, cfg)
    freshness = _freshness_points(age, cfg)
    item_id = getattr(item, "id", None)
    return ScoreBreakdown(
        item_id=str(item_id) if item_id is not None else None,
        interest=interest,
        rating=rating,
        popularity=popularity,
        recency=recency,
        freshness=freshness,
        total=interest + rating + popularity + recency + freshness,
    )


def score_breakdown(
    item: Scorable,
    interests: Iterable[str],
    *,
    now: datetime | None = None,
    weights: RankingSettings | None = None,
) -> ScoreBreakdown:
    """Return every signal's points for `item` plus the total."""
    return _breakdown(item, frozenset(interests), _resolve_now(now), weights or DEFAULT_RANKING)


def compute_score(
    item: Scorable,
    interests: Iterable[str],
    *,
    now: datetime | None = None,
    weights: RankingSettings | None = None,
) -> float:
    """Return the feed score of a single item."""
    return score_breakdown(item, interests, now=now, weights=weights).total


def rank_scored(
    interests: Iterable[str],
    items: Sequence[T],
    *,
    now: datetime | None = None,
    weights: RankingSettings | None = None,
) -> list[ScoredItem[T]]:
    """Score `items` and return them best-first, keeping input order among ties."""
    tags = frozenset(interests)
    moment = _resolve_now(now)
    cfg = weights or DEFAULT_RANKING
    scored = [ScoredItem(item=it, score=_breakdown(it, tags, moment, cfg).total) for it in items]
    # sorted() is stable, including with reverse=True.
    ranked = sorted(scored, key=lambda s: s.score, reverse=True)
    logger.debug("Ranked %d items against %d interest tags", len(ranked), len(tags))
    return ranked


def rank_items(
    interests: Iterable[str],
    items: Sequence[T],
    *,
    now: datetime | None = None,
    weights: RankingSettings | None = None,
) -> list[T]:
    """Return a new list with the same items in descending score order."""
    return [s.item for s in rank_scored(interests, items, now=now, weights=weights)]


def rank_feed(
    interests: Iterable[str],
    listings: Sequence[TrainingListing],
    packages: Sequence[TrainingPackage],
    *,
    now: datetime | None = None,
    weights: RankingSettings | None = None,
    explain: bool = False,
) -> RankedFeed:
    """Rank listings and packages separately, against one interest set and one clock."""
    tags = frozenset(interests)
    moment = _resolve_now(now)
    cfg = weights or DEFAULT_RANKING

    ranked_listings = rank_items(tags, listings, now=moment, weights=cfg)
    ranked_packages = rank_items(tags, packages, now=moment, weights=cfg)

    feed = RankedFeed(
        generated_at=moment,
        interests=sorted(tags),
        listings=ranked_listings,
        packages=ranked_packages,
    )
    if explain:
        feed.listing_scores = [_breakdown(it, tags, moment, cfg) for it in ranked_listings]
        feed.package_scores = [_breakdown(it, tags, moment, cfg) for it in ranked_packages]
    return feed
