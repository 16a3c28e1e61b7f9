"""Tests for cashflow aggregation — dated charges, month totals, projection."""
from datetime import date

from subtracker.application.cashflow import (
    get_cashflow_entries, get_month_cashflow, get_month_total, get_upcoming_cashflow,
    project_monthly_totals, month_bounds,
)
from subtracker.domain.subscription import AddOn, Subscription

TODAY = date(2025, 3, 10)


def _subs():
    return [
        Subscription(id="a", name="Netflix", next_renewal_date=date(2025, 3, 15),
                     amount=10.0, tax_amount=1.0, category_id="streaming",
                     add_ons=[AddOn(id="x", name="Extra", amount=4.0)]),
        # 2025-03-03 is a Monday
        Subscription(id="b", name="Gym", next_renewal_date=date(2025, 3, 3),
                     amount=5.0, billing_cycle="weekly", category_id="fitness"),
        Subscription(id="c", name="Old", next_renewal_date=date(2025, 3, 20),
                     amount=99.0, status="cancelled"),
    ]


def test_month_bounds():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))


def test_month_entries_sorted_and_skip_cancelled():
    entries = get_month_cashflow(_subs(), 2025, 3)
    assert [e.date for e in entries] == sorted(e.date for e in entries)
    assert {e.subscription_id for e in entries} == {"a", "b"}
    assert len([e for e in entries if e.subscription_id == "b"]) == 5


def test_entry_amount_is_charge_with_tax_without_add_ons():
    entries = get_month_cashflow(_subs(), 2025, 3)
    netflix = [e for e in entries if e.subscription_id == "a"]
    assert len(netflix) == 1
    assert netflix[0].amount == 11.0
    assert netflix[0].category_id == "streaming"


def test_month_total():
    assert get_month_total(get_month_cashflow(_subs(), 2025, 3)) == 36.0
    assert get_month_total([]) == 0


def test_upcoming_window_is_inclusive():
    entries, total = get_upcoming_cashflow(_subs(), TODAY, days=7)
    assert [(e.date, e.subscription_id) for e in entries] == [
        (date(2025, 3, 10), "b"),
        (date(2025, 3, 15), "a"),
        (date(2025, 3, 17), "b"),
    ]
    assert total == 21.0


def test_entries_respect_window():
    start, end = date(2025, 4, 1), date(2025, 4, 30)
    entries = get_cashflow_entries(_subs(), start, end)
    assert all(start <= e.date <= end for e in entries)


def test_project_monthly_totals():
    result = project_monthly_totals(_subs(), TODAY, months=3)
    assert [(y, m) for y, m, _ in result] == [(2025, 3), (2025, 4), (2025, 5)]
    assert result[0][2] == 36.0
    # April: Netflix once, Gym on 7, 14, 21, 28
    assert result[1][2] == 31.0


def test_project_crosses_year_end():
    result = project_monthly_totals(_subs(), date(2025, 11, 20), months=3)
    assert [(y, m) for y, m, _ in result] == [(2025, 11), (2025, 12), (2026, 1)]
