"""
Insights — waste, low value, duplicates, category overlap, price creep.

Pure functions over the subscription list; missing value score or usage
recency simply keeps a subscription out of the corresponding detector.
Duplicate detection is pairwise (O(n^2)), fine for household-sized lists.
"""
import math
from dataclasses import dataclass
from datetime import date

from rapidfuzz.distance import Levenshtein

from subtracker.domain.costs import get_current_effective_monthly
from subtracker.domain.subscription import Category, Subscription, WASTE_USAGE, billable
from subtracker.utils.money import round2

DUPLICATE_THRESHOLD = 0.8
OVERLAP_MIN_GROUP = 3
LOW_VALUE_MAX_SCORE = 2


@dataclass(frozen=True)
class DuplicatePair:
    sub1: Subscription
    sub2: Subscription
    score: float
    reason: str


@dataclass(frozen=True)
class CategoryGroup:
    category_id: str
    category_name: str
    subs: list[Subscription]
    total_monthly: float


def _by_cost_desc(subs: list[Subscription], today: date) -> list[Subscription]:
    return sorted(subs, key=lambda s: get_current_effective_monthly(s, today), reverse=True)


def find_waste(subs: list[Subscription], today: date) -> list[Subscription]:
    """Active subscriptions not used in 90+ days (or never), most expensive first."""
    unused = [s for s in billable(subs) if s.last_used in WASTE_USAGE]
    return _by_cost_desc(unused, today)


def get_waste_total(subs: list[Subscription], today: date) -> float:
    return round2(sum(get_current_effective_monthly(s, today) for s in find_waste(subs, today)))


def cost_percentile_75(subs: list[Subscription], today: date) -> float:
    costs = sorted(get_current_effective_monthly(s, today) for s in billable(subs))
    if not costs:
        return 0.0
    return costs[math.floor(len(costs) * 0.75)]


def find_low_value_high_cost(subs: list[Subscription], today: date) -> list[Subscription]:
    """Value score <= 2 and cost in the top quartile; unrated subscriptions never match."""
    p75 = cost_percentile_75(subs, today)
    matched = [
        s for s in billable(subs)
        if (s.value_score if s.value_score is not None else 5) <= LOW_VALUE_MAX_SCORE
        and get_current_effective_monthly(s, today) >= p75
    ]
    return _by_cost_desc(matched, today)


def name_similarity(a: str, b: str) -> float:
    """1 - levenshtein(a, b) / max(len(a), len(b)); two empty names are identical."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1 - Levenshtein.distance(a, b) / max_len


def _duplicate_reason(score: float) -> str:
    if score == 1:
        return "Exact name match"
    return f"Names are {math.floor(score * 100 + 0.5)}% similar"


def find_duplicates(subs: list[Subscription], threshold: float = DUPLICATE_THRESHOLD) -> list[DuplicatePair]:
    """Pairs of active subscriptions with near-identical names, best match first."""
    active = billable(subs)
    names = [s.name.strip().lower() for s in active]

    pairs: list[DuplicatePair] = []
    for i in range(len(active)):
        for j in range(i + 1, len(active)):
            score = name_similarity(names[i], names[j])
            if score >= threshold:
                pairs.append(DuplicatePair(
                    sub1=active[i],
                    sub2=active[j],
                    score=score,
                    reason=_duplicate_reason(score),
                ))
    pairs.sort(key=lambda p: p.score, reverse=True)
    return pairs


def find_category_overlaps(
    subs: list[Subscription],
    categories: list[Category],
    today: date,
) -> list[CategoryGroup]:
    """Categories holding 3+ active subscriptions, with their combined monthly cost."""
    cat_map = {c.id: c for c in categories}
    groups: dict[str, list[Subscription]] = {}
    for sub in billable(subs):
        groups.setdefault(sub.category_id, []).append(sub)

    out: list[CategoryGroup] = []
    for cat_id, group in groups.items():
        if len(group) < OVERLAP_MIN_GROUP:
            continue
        cat = cat_map.get(cat_id)
        out.append(CategoryGroup(
            category_id=cat_id,
            category_name=cat.name if cat else "Unknown",
            subs=group,
            total_monthly=round2(sum(get_current_effective_monthly(s, today) for s in group)),
        ))
    return out


def has_recent_price_increase(sub: Subscription) -> bool:
    if len(sub.price_history) < 2:
        return False
    return sub.price_history[-1].amount > sub.price_history[-2].amount


def find_price_increases(subs: list[Subscription]) -> list[Subscription]:
    return [s for s in subs if has_recent_price_increase(s)]
