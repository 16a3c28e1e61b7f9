"""
Cost normalization: any billing cycle + amount -> monthly figure.

Every per-subscription figure is rounded to cents where it is computed,
so sums match what the user sees line by line.
"""
from dataclasses import dataclass
from datetime import date

from subtracker.domain.renewal import custom_cycle_days
from subtracker.domain.subscription import (
    AddOn, Category, Subscription, billable,
    CYCLE_WEEKLY, CYCLE_MONTHLY, CYCLE_QUARTERLY, CYCLE_BIANNUAL, CYCLE_ANNUAL, CYCLE_CUSTOM,
)
from subtracker.utils.money import format_money, round2

AVG_DAYS_PER_MONTH = 30.436875  # 365.2425 / 12

_CYCLE_SUFFIX = {
    CYCLE_WEEKLY: "/wk",
    CYCLE_QUARTERLY: "/qtr",
    CYCLE_BIANNUAL: "/6mo",
    CYCLE_ANNUAL: "/yr",
}


@dataclass(frozen=True)
class CategoryBreakdown:
    category_id: str
    category_name: str
    category_icon: str
    total_monthly: float
    count: int
    percentage: float


def normalize_to_monthly(amount: float, cycle: str, custom_days: int | None = None) -> float:
    """Monthly equivalent of `amount` billed every `cycle` (unrounded)."""
    if cycle == CYCLE_WEEKLY:
        return amount * (52 / 12)
    if cycle == CYCLE_MONTHLY:
        return amount
    if cycle == CYCLE_QUARTERLY:
        return amount / 3
    if cycle == CYCLE_BIANNUAL:
        return amount / 6
    if cycle == CYCLE_ANNUAL:
        return amount / 12
    if cycle == CYCLE_CUSTOM:
        return amount * AVG_DAYS_PER_MONTH / custom_cycle_days(custom_days)
    raise ValueError(f"invalid billing cycle: {cycle}")


def normalize_add_on_monthly(add_on: AddOn) -> float:
    return normalize_to_monthly(add_on.amount, add_on.billing_cycle, add_on.custom_cycle_days)


def get_effective_monthly(sub: Subscription) -> float:
    """(amount + tax) on the subscription's cycle plus each add-on on its own cycle."""
    base = normalize_to_monthly(sub.cycle_amount, sub.billing_cycle, sub.custom_cycle_days)
    add_ons = sum(normalize_add_on_monthly(a) for a in sub.add_ons)
    return round2(base + add_ons)


def is_intro_pricing_active(sub: Subscription, today: date) -> bool:
    return (
        sub.has_intro_pricing
        and sub.intro_end_date is not None
        and sub.intro_price is not None
        and today < sub.intro_end_date
    )


def get_current_effective_monthly(sub: Subscription, today: date) -> float:
    """Effective monthly cost as of `today`; active intro pricing replaces the regular price.

    Intro pricing covers the base charge only: add-ons and tax are not added on top."""
    if is_intro_pricing_active(sub, today):
        return round2(normalize_to_monthly(sub.intro_price, sub.billing_cycle, sub.custom_cycle_days))
    return get_effective_monthly(sub)


def get_effective_yearly(sub: Subscription) -> float:
    return round2(get_effective_monthly(sub) * 12)


def get_total_monthly(subs, today: date) -> float:
    """Sum of current effective monthly cost over active and trial subscriptions."""
    return round2(sum(get_current_effective_monthly(s, today) for s in billable(subs)))


def get_total_yearly(subs, today: date) -> float:
    return round2(get_total_monthly(subs, today) * 12)


def get_average_monthly(subs, today: date) -> float:
    """Average current effective monthly cost of active+trial subscriptions (0 when none)."""
    active = billable(subs)
    if not active:
        return 0.0
    return get_total_monthly(active, today) / len(active)


def get_category_breakdown(
    subs,
    categories: list[Category],
    today: date,
) -> list[CategoryBreakdown]:
    """
    Monthly spend per category for active+trial subscriptions.

    Returns:
        list sorted by total_monthly descending; percentage is 0 when the
        grand total is 0
    """
    active = billable(subs)
    grand_total = get_total_monthly(active, today)
    cat_map = {c.id: c for c in categories}

    totals: dict[str, float] = {}
    counts: dict[str, int] = {}
    for sub in active:
        totals[sub.category_id] = totals.get(sub.category_id, 0.0) + get_current_effective_monthly(sub, today)
        counts[sub.category_id] = counts.get(sub.category_id, 0) + 1

    out: list[CategoryBreakdown] = []
    for cat_id, total in totals.items():
        cat = cat_map.get(cat_id)
        out.append(CategoryBreakdown(
            category_id=cat_id,
            category_name=cat.name if cat else "Unknown",
            category_icon=cat.icon if cat else "package",
            total_monthly=round2(total),
            count=counts[cat_id],
            percentage=round2(total / grand_total * 100) if grand_total > 0 else 0.0,
        ))
    out.sort(key=lambda b: b.total_monthly, reverse=True)
    return out


def format_effective_cost(sub: Subscription, today: date) -> str:
    """"$15.00/mo" for monthly plans, "$120.00/yr ($10.00/mo)" otherwise."""
    monthly = get_current_effective_monthly(sub, today)
    currency = sub.currency or "USD"
    if sub.billing_cycle == CYCLE_MONTHLY:
        return f"{format_money(monthly, currency)}/mo"
    suffix = _CYCLE_SUFFIX.get(sub.billing_cycle, "/cycle")
    return f"{format_money(sub.cycle_amount, currency)}{suffix} ({format_money(monthly, currency)}/mo)"
