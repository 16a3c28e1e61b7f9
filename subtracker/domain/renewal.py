"""
Deterministic renewal date engine.

Uses date only (no timezone). Every step advances by at least one day,
so catch-up and window enumeration always terminate.

Cycles:
- weekly: +7 days
- monthly / quarterly / biannual / annual: +1 / +3 / +6 / +12 calendar months,
  clipped to the last valid day of the target month (Jan 31 -> Feb 28)
- custom: +custom_cycle_days days (missing or non-positive -> 30)

The day rule is applied to the advanced date.
"""
import calendar
from datetime import date, timedelta

from subtracker.domain.subscription import (
    Subscription,
    CYCLE_WEEKLY, CYCLE_MONTHLY, CYCLE_QUARTERLY, CYCLE_BIANNUAL, CYCLE_ANNUAL, CYCLE_CUSTOM,
    DAY_RULE_EXACT, DAY_RULE_LAST_DAY_OF_MONTH, DAY_RULE_NEXT_BUSINESS_DAY,
    DEFAULT_CUSTOM_CYCLE_DAYS,
)

_CYCLE_MONTHS = {
    CYCLE_MONTHLY: 1,
    CYCLE_QUARTERLY: 3,
    CYCLE_BIANNUAL: 6,
    CYCLE_ANNUAL: 12,
}


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, n: int) -> date:
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    last = last_day_of_month(year, month)
    day = min(d.day, last)
    return date(year, month, day)


def custom_cycle_days(custom_days: int | None) -> int:
    """Day count of a custom cycle; malformed values fall back to 30."""
    if custom_days is None or custom_days < 1:
        return DEFAULT_CUSTOM_CYCLE_DAYS
    return int(custom_days)


def _advance(d: date, cycle: str, custom_days: int | None) -> date:
    if cycle == CYCLE_WEEKLY:
        return d + timedelta(days=7)
    if cycle in _CYCLE_MONTHS:
        return add_months(d, _CYCLE_MONTHS[cycle])
    if cycle == CYCLE_CUSTOM:
        return d + timedelta(days=custom_cycle_days(custom_days))
    raise ValueError(f"invalid billing cycle: {cycle}")


def apply_day_rule(d: date, day_rule: str) -> date:
    if day_rule == DAY_RULE_LAST_DAY_OF_MONTH:
        return d.replace(day=last_day_of_month(d.year, d.month))
    if day_rule == DAY_RULE_NEXT_BUSINESS_DAY:
        wd = d.weekday()
        if wd >= 5:  # SA=5, SU=6
            return d + timedelta(days=7 - wd)
        return d
    return d


def compute_next_renewal(
    last_renewal: date,
    cycle: str,
    custom_days: int | None = None,
    day_rule: str = DAY_RULE_EXACT,
) -> date:
    """Next renewal after `last_renewal`: advance by one cycle, then apply the day rule."""
    return apply_day_rule(_advance(last_renewal, cycle, custom_days), day_rule)


def advance_renewal_to_future(
    renewal_date: date,
    cycle: str,
    custom_days: int | None,
    day_rule: str,
    today: date,
) -> date:
    """Roll a stale renewal date forward until it is today or later."""
    current = renewal_date
    while current < today:
        current = compute_next_renewal(current, cycle, custom_days, day_rule)
    return current


def next_renewal_for(sub: Subscription, current: date) -> date:
    return compute_next_renewal(current, sub.billing_cycle, sub.custom_cycle_days, sub.renewal_day_rule)


def get_renewals_in_range(sub: Subscription, start: date, end: date) -> list[date]:
    """Renewal dates of `sub` in [start, end] (inclusive), ascending.

    Cancelled subscriptions have no renewals."""
    if sub.is_cancelled():
        return []

    current = sub.next_renewal_date
    while current < start:
        current = next_renewal_for(sub, current)

    out: list[date] = []
    while current <= end:
        out.append(current)
        current = next_renewal_for(sub, current)
    return out


def is_renewal_today(sub: Subscription, today: date) -> bool:
    return sub.next_renewal_date == today
