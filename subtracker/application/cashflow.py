"""
Cashflow aggregation — expands subscriptions into dated cash events.

Pure read-layer: takes materialized Subscription lists, never queries or mutates.
Each entry carries the per-renewal cash amount (amount + tax); add-ons only
affect monthly normalization, not the single charge.
"""
from dataclasses import dataclass
from datetime import date, timedelta

from subtracker.domain.renewal import add_months, get_renewals_in_range, last_day_of_month
from subtracker.domain.subscription import Subscription
from subtracker.utils.money import round2


@dataclass(frozen=True)
class CashflowEntry:
    date: date
    subscription_id: str
    subscription_name: str
    amount: float
    category_id: str


def get_cashflow_entries(subs: list[Subscription], start: date, end: date) -> list[CashflowEntry]:
    """All renewal charges in [start, end], ascending by date (stable for same-day entries)."""
    entries: list[CashflowEntry] = []
    for sub in subs:
        if sub.is_cancelled():
            continue
        for d in get_renewals_in_range(sub, start, end):
            entries.append(CashflowEntry(
                date=d,
                subscription_id=sub.id,
                subscription_name=sub.name,
                amount=sub.cycle_amount,
                category_id=sub.category_id,
            ))
    entries.sort(key=lambda e: e.date)
    return entries


def get_month_total(entries: list[CashflowEntry]) -> float:
    return round2(sum(e.amount for e in entries))


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, last_day_of_month(year, month))


def get_month_cashflow(subs: list[Subscription], year: int, month: int) -> list[CashflowEntry]:
    """Entries for one calendar month (calendar view)."""
    start, end = month_bounds(year, month)
    return get_cashflow_entries(subs, start, end)


def get_upcoming_cashflow(
    subs: list[Subscription],
    today: date,
    days: int = 30,
) -> tuple[list[CashflowEntry], float]:
    """Charges in [today, today + days] and their total."""
    entries = get_cashflow_entries(subs, today, today + timedelta(days=days))
    return entries, get_month_total(entries)


def project_monthly_totals(
    subs: list[Subscription],
    today: date,
    months: int = 6,
) -> list[tuple[int, int, float]]:
    """(year, month, total) for the current month and the next `months - 1` months."""
    first = today.replace(day=1)
    out: list[tuple[int, int, float]] = []
    for i in range(months):
        m = add_months(first, i)
        out.append((m.year, m.month, get_month_total(get_month_cashflow(subs, m.year, m.month))))
    return out
