"""Tests for insights: waste, low value, duplicates, category overlap, price creep."""
from datetime import date, timedelta

from subtracker.application.insights import (
    cost_percentile_75, find_category_overlaps, find_duplicates, find_low_value_high_cost,
    find_price_increases, find_waste, get_waste_total, name_similarity,
)
from subtracker.domain.subscription import Category, PriceEntry, Subscription

TODAY = date(2025, 6, 1)


def _sub(sid, name=None, amount=10.0, **kw):
    return Subscription(id=sid, name=name or f"Sub {sid}", amount=amount,
                        next_renewal_date=TODAY + timedelta(days=20), **kw)


class TestWaste:
    def test_unused_active_subscriptions_most_expensive_first(self):
        subs = [
            _sub("a", amount=5.0, last_used="never"),
            _sub("b", amount=20.0, last_used="over90"),
            _sub("c", amount=50.0, last_used="within7"),
            _sub("d", amount=30.0, last_used="never", status="paused"),
            _sub("e", amount=8.0),
        ]
        assert [s.id for s in find_waste(subs, TODAY)] == ["b", "a"]
        assert get_waste_total(subs, TODAY) == 25.0

    def test_no_usage_data_no_waste(self):
        assert find_waste([_sub("a")], TODAY) == []
        assert get_waste_total([], TODAY) == 0


class TestLowValueHighCost:
    def _subs(self):
        return [
            _sub("cheap", amount=5.0, value_score=1),
            _sub("mid", amount=10.0, value_score=5),
            _sub("meh", amount=20.0, value_score=2),
            _sub("pricey", amount=40.0, value_score=1),
        ]

    def test_percentile(self):
        assert cost_percentile_75(self._subs(), TODAY) == 40.0
        assert cost_percentile_75([], TODAY) == 0.0

    def test_only_top_quartile_low_scores(self):
        assert [s.id for s in find_low_value_high_cost(self._subs(), TODAY)] == ["pricey"]

    def test_unrated_never_matches(self):
        assert find_low_value_high_cost([_sub("x", amount=100.0)], TODAY) == []


class TestDuplicates:
    def test_similarity_bounds(self):
        assert name_similarity("", "") == 1.0
        assert name_similarity("abc", "abc") == 1.0
        assert name_similarity("abc", "xyz") == 0.0

    def test_exact_match_after_normalizing(self):
        pairs = find_duplicates([_sub("a", "Netflix"), _sub("b", "netflix ")])
        assert len(pairs) == 1
        assert pairs[0].score == 1.0
        assert pairs[0].reason == "Exact name match"
        assert {pairs[0].sub1.id, pairs[0].sub2.id} == {"a", "b"}

    def test_near_match_reason(self):
        pairs = find_duplicates([_sub("a", "YouTube Premium"), _sub("b", "Youtube Premiun")])
        assert len(pairs) == 1
        assert pairs[0].reason == "Names are 93% similar"

    def test_dissimilar_names(self):
        assert find_duplicates([_sub("a", "Spotify"), _sub("b", "Spotify Family")]) == []

    def test_cancelled_excluded(self):
        subs = [_sub("a", "Netflix"), _sub("b", "Netflix", status="cancelled")]
        assert find_duplicates(subs) == []

    def test_sorted_by_score(self):
        subs = [_sub("a", "Disney Plus"), _sub("b", "Disney Plas"),
                _sub("c", "Netflix"), _sub("d", "NETFLIX")]
        pairs = find_duplicates(subs)
        assert [p.score for p in pairs] == sorted((p.score for p in pairs), reverse=True)
        assert pairs[0].score == 1.0


def test_category_overlaps():
    cats = [Category(id="c1", name="Streaming")]
    subs = [
        _sub("a", category_id="c1"), _sub("b", category_id="c1", amount=5.0),
        _sub("c", category_id="c1", amount=2.5),
        _sub("d", category_id="c2"), _sub("e", category_id="c2"),
        _sub("f", category_id="c2", status="cancelled"),
    ]
    groups = find_category_overlaps(subs, cats, TODAY)
    assert len(groups) == 1
    assert groups[0].category_name == "Streaming"
    assert groups[0].total_monthly == 17.5
    assert len(groups[0].subs) == 3


def test_price_increases():
    up = _sub("up", price_history=[PriceEntry(date(2025, 1, 1), 10.0), PriceEntry(date(2025, 5, 1), 12.0)])
    down = _sub("down", price_history=[PriceEntry(date(2025, 1, 1), 12.0), PriceEntry(date(2025, 5, 1), 10.0)])
    single = _sub("single", price_history=[PriceEntry(date(2025, 1, 1), 10.0)])
    assert [s.id for s in find_price_increases([up, down, single])] == ["up"]
