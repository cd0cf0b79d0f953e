import math
from datetime import datetime, timedelta, timezone

import pytest

from fitfeed.config.settings import RankingSettings
from fitfeed.domain.models import PartnerSummary, TrainingListing, TrainingPackage
from fitfeed.ranking.engine import (
    compute_score,
    matches_interest,
    rank_feed,
    rank_items,
    rank_scored,
    score_breakdown,
)
from fitfeed.ranking.scorable import Scorable, ScorableRecord

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _item(id, sport="Yoga", rating=None, reviews=None, age=None):
    ref = NOW - age if age is not None else None
    return ScorableRecord(id=id, sport=sport, rating=rating, review_count=reviews, reference_timestamp=ref)


def test_perfect_item_scores_one_hundred():
    item = _item("a", sport="Yoga", rating=5, reviews=50, age=timedelta(0))
    assert compute_score(item, {"yoga"}, now=NOW) == pytest.approx(100.0)


def test_same_item_without_interests_scores_sixty():
    item = _item("a", sport="Yoga", rating=5, reviews=50, age=timedelta(0))
    b = score_breakdown(item, set(), now=NOW)
    assert b.interest == 0
    assert b.total == pytest.approx(60.0)


def test_old_item_without_metadata_scores_zero():
    item = _item("a", sport="Tennis", age=timedelta(days=40))
    assert compute_score(item, {"yoga"}, now=NOW) == 0


def test_single_review_popularity_is_log_scaled():
    item = _item("a", sport="Tennis", reviews=1)
    expected = math.log(2) / math.log(51) * 20
    assert compute_score(item, {"yoga"}, now=NOW) == pytest.approx(expected)
    assert expected == pytest.approx(3.53, abs=0.01)


def test_equal_scores_keep_input_order():
    a = _item("a", sport="Tennis", rating=4)
    b = _item("b", sport="Tennis", rating=4)
    assert [x.id for x in rank_items(set(), [a, b], now=NOW)] == ["a", "b"]
    assert [x.id for x in rank_items(set(), [b, a], now=NOW)] == ["b", "a"]


def test_ranks_descending_and_does_not_mutate_input():
    items = [
        _item("low", sport="Tennis"),
        _item("mid", sport="Tennis", rating=3),
        _item("top", sport="Yoga", rating=3),
    ]
    snapshot = list(items)
    ranked = rank_items({"yoga"}, items, now=NOW)
    assert [x.id for x in ranked] == ["top", "mid", "low"]
    assert items == snapshot
    assert ranked is not items


@pytest.mark.parametrize("n", [0, 1, 7])
def test_output_is_a_permutation_of_input(n):
    items = [_item(str(i), rating=i % 5, reviews=i * 3, age=timedelta(days=i)) for i in range(n)]
    ranked = rank_items({"yoga"}, items, now=NOW)
    assert len(ranked) == n
    assert sorted(x.id for x in ranked) == sorted(x.id for x in items)


def test_ranking_is_idempotent_and_scores_are_order_independent():
    items = [
        _item("a", sport="Boxing", rating=4.5, reviews=10, age=timedelta(hours=5)),
        _item("b", sport="Yoga", rating=2, reviews=200, age=timedelta(days=12)),
        _item("c", sport="Pilates", rating=None, reviews=3, age=timedelta(days=-2)),
        _item("d", sport="Yoga", rating=5, reviews=0, age=None),
    ]
    first = rank_scored({"yoga", "box"}, items, now=NOW)
    second = rank_scored({"yoga", "box"}, items, now=NOW)
    assert [(s.item.id, s.score) for s in first] == [(s.item.id, s.score) for s in second]

    reversed_scores = {s.item.id: s.score for s in rank_scored({"yoga", "box"}, items[::-1], now=NOW)}
    assert {s.item.id: s.score for s in first} == reversed_scores


def test_signal_contributions_stay_within_bounds():
    items = [
        _item("a", rating=7, reviews=10_000, age=timedelta(hours=1)),
        _item("b", rating=0, reviews=0, age=timedelta(days=400)),
        _item("c", rating=2.5, reviews=5, age=timedelta(days=-30)),
        _item("d"),
    ]
    for item in items:
        b = score_breakdown(item, {"yoga"}, now=NOW)
        assert b.interest in (0, 40)
        assert 0 <= b.rating <= 25
        assert 0 <= b.popularity <= 20
        assert 0 <= b.recency <= 10
        assert b.freshness in (0, 5)


def test_signals_are_monotonic():
    pop = [score_breakdown(_item("x", reviews=n), set(), now=NOW).popularity for n in range(0, 120)]
    assert pop == sorted(pop)
    assert pop[50] == pytest.approx(20.0)
    assert pop[119] == pytest.approx(20.0)

    ratings = [score_breakdown(_item("x", rating=r / 2), set(), now=NOW).rating for r in range(0, 11)]
    assert ratings == sorted(ratings)

    ages = [timedelta(days=d) for d in (45, 30, 20, 10, 2, 1, 0)]
    recency = [score_breakdown(_item("x", age=a), set(), now=NOW).recency for a in ages]
    assert recency == sorted(recency)


def test_recency_decays_linearly_and_clamps_future_timestamps():
    assert score_breakdown(_item("x", age=timedelta(days=15)), set(), now=NOW).recency == pytest.approx(5.0)
    assert score_breakdown(_item("x", age=timedelta(days=31)), set(), now=NOW).recency == 0
    future = score_breakdown(_item("x", age=timedelta(days=-10)), set(), now=NOW)
    assert future.recency == pytest.approx(10.0)
    assert future.freshness == 5


def test_freshness_window_is_48_hours_inclusive():
    assert score_breakdown(_item("x", age=timedelta(hours=48)), set(), now=NOW).freshness == 5
    assert score_breakdown(_item("x", age=timedelta(hours=49)), set(), now=NOW).freshness == 0


def test_rating_is_capped_at_five():
    assert score_breakdown(_item("x", rating=9), set(), now=NOW).rating == pytest.approx(25.0)


def test_interest_match_is_loose_bidirectional_substring():
    assert matches_interest("Boxing", {"box"})
    assert matches_interest("Boxing", {"kickboxing"})
    assert matches_interest("Martial Arts", {"art"})
    assert not matches_interest("Boxing", {"yoga"})
    assert not matches_interest("Boxing", set())


def test_negative_values_follow_unguarded_arithmetic_by_default():
    b = score_breakdown(_item("x", rating=-1, reviews=-3), set(), now=NOW)
    assert b.rating == pytest.approx(-5.0)
    assert b.popularity == 0

    clamped = score_breakdown(
        _item("x", rating=-1), set(), now=NOW, weights=RankingSettings(clamp_negative_rating=True)
    )
    assert clamped.rating == 0


def test_naive_timestamps_are_read_as_utc():
    item = ScorableRecord(sport="Yoga", reference_timestamp=datetime(2026, 10, 19, 11, 0))
    b = score_breakdown(item, set(), now=NOW)
    assert b.freshness == 5
    assert b.recency == pytest.approx(10 * (1 - (1 / 24) / 30))


def test_custom_weights_change_points():
    weights = RankingSettings(weights={"interest_match": 10, "rating": 0, "popularity": 0, "recency": 0, "freshness": 0})
    item = _item("x", sport="Yoga", rating=5, reviews=50, age=timedelta(0))
    assert compute_score(item, {"yoga"}, now=NOW, weights=weights) == pytest.approx(10.0)


def _listing(id, sport, scheduled_at, partner=None):
    return TrainingListing(id=id, sport=sport, scheduled_at=scheduled_at, partner_profiles=partner)


def test_listing_and_package_use_their_own_reference_timestamps():
    partner = PartnerSummary(avg_rating=5, review_count=50)
    listing = TrainingListing(
        id="l",
        sport="Yoga",
        scheduled_at=NOW + timedelta(hours=2),
        created_at=NOW - timedelta(days=60),
        partner_profiles=partner,
    )
    package = TrainingPackage(id="p", sport="Yoga", created_at=NOW - timedelta(days=60), partner_profiles=partner)

    assert isinstance(listing, Scorable)
    assert isinstance(package, Scorable)
    assert compute_score(listing, {"yoga"}, now=NOW) == pytest.approx(100.0)
    assert compute_score(package, {"yoga"}, now=NOW) == pytest.approx(85.0)


def test_missing_partner_profile_degrades_to_zero():
    listing = _listing("l", "Tennis", NOW - timedelta(days=60))
    b = score_breakdown(listing, {"yoga"}, now=NOW)
    assert b.total == 0
    assert b.item_id == "l"


def test_rank_feed_ranks_both_sections_with_one_clock():
    listings = [
        _listing("l-tennis", "Tennis", NOW + timedelta(days=3)),
        _listing("l-yoga", "Yoga", NOW + timedelta(days=3)),
    ]
    packages = [
        TrainingPackage(id="p-old", sport="Yoga", created_at=NOW - timedelta(days=90)),
        TrainingPackage(id="p-new", sport="Yoga", created_at=NOW - timedelta(hours=3)),
    ]
    feed = rank_feed({"yoga"}, listings, packages, now=NOW, explain=True)

    assert feed.generated_at == NOW
    assert feed.interests == ["yoga"]
    assert [x.id for x in feed.listings] == ["l-yoga", "l-tennis"]
    assert [x.id for x in feed.packages] == ["p-new", "p-old"]
    assert [b.item_id for b in feed.listing_scores] == ["l-yoga", "l-tennis"]
    assert feed.package_scores[0].total == pytest.approx(40 + 10 * (1 - (3 / 24) / 30) + 5)


def test_rank_feed_handles_empty_inputs():
    feed = rank_feed(set(), [], [], now=NOW)
    assert feed.listings == []
    assert feed.packages == []
    assert feed.listing_scores == []
