"""
Renewal alerts — rule-based, recomputed from scratch on every evaluation.

Rules per active/trial subscription:
  - lead times = configured alert_days_before, plus 30 days when the
    subscription is costly (above the escalation threshold or above twice
    the household average)
  - snoozed subscriptions (alert_snoozed_until after today) are skipped
  - the smallest lead time with 0 <= days_until <= lead wins, so at most
    one alert per subscription per run
  - identity = (subscription id, renewal date, lead time): recomputing
    yields the same key, a rolled-over renewal date yields a new one

Dismissal lives outside the generator: callers keep a DismissedAlerts
side table (per session) and filter with filter_dismissed().
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, NamedTuple

from subtracker.domain.costs import get_average_monthly, get_current_effective_monthly
from subtracker.domain.subscription import ESCALATION_LEAD_DAYS, Subscription, billable

DEFAULT_ESCALATION_THRESHOLD = 50.0

# Urgency bands, most urgent first: (max days until renewal, band)
URGENCY_CRITICAL = "critical"
URGENCY_HIGH = "high"
URGENCY_MEDIUM = "medium"
URGENCY_LOW = "low"
URGENCY_INFO = "info"
_URGENCY_BANDS = (
    (1, URGENCY_CRITICAL),
    (3, URGENCY_HIGH),
    (7, URGENCY_MEDIUM),
    (14, URGENCY_LOW),
)


class AlertKey(NamedTuple):
    subscription_id: str
    renewal_date: date
    days_before: int

    def token(self) -> str:
        return f"{self.subscription_id}:{self.renewal_date.isoformat()}:{self.days_before}"

    @classmethod
    def from_token(cls, token: str) -> "AlertKey":
        sub_id, renewal, days = token.rsplit(":", 2)
        return cls(sub_id, date.fromisoformat(renewal), int(days))


@dataclass(frozen=True)
class Alert:
    id: AlertKey
    subscription_id: str
    subscription_name: str
    renewal_date: date
    amount: float
    effective_monthly: float
    days_before: int
    alert_date: date
    days_until: int

    @property
    def urgency(self) -> str:
        return alert_urgency(self.days_until)


def alert_urgency(days_until: int) -> str:
    for limit, band in _URGENCY_BANDS:
        if days_until <= limit:
            return band
    return URGENCY_INFO


def _lead_times(sub: Subscription, monthly: float, threshold: float, avg_monthly: float) -> set[int]:
    leads = set(sub.alert_days_before)
    if monthly > threshold or monthly > avg_monthly * 2:
        leads.add(ESCALATION_LEAD_DAYS)
    return leads


def _is_snoozed(sub: Subscription, today: date) -> bool:
    return sub.alert_snoozed_until is not None and today < sub.alert_snoozed_until


def generate_alerts(
    subs: list[Subscription],
    today: date,
    escalation_threshold: float = DEFAULT_ESCALATION_THRESHOLD,
) -> list[Alert]:
    """Alerts due as of `today`, most urgent first. Pure and idempotent."""
    active = billable(subs)
    avg_monthly = get_average_monthly(active, today)

    alerts: list[Alert] = []
    for sub in active:
        if _is_snoozed(sub, today):
            continue

        days_until = (sub.next_renewal_date - today).days
        if days_until < 0:
            continue

        monthly = get_current_effective_monthly(sub, today)
        matched = [
            lead for lead in _lead_times(sub, monthly, escalation_threshold, avg_monthly)
            if days_until <= lead
        ]
        if not matched:
            continue

        lead = min(matched)
        alerts.append(Alert(
            id=AlertKey(sub.id, sub.next_renewal_date, lead),
            subscription_id=sub.id,
            subscription_name=sub.name,
            renewal_date=sub.next_renewal_date,
            amount=sub.cycle_amount,
            effective_monthly=monthly,
            days_before=lead,
            alert_date=sub.next_renewal_date - timedelta(days=lead),
            days_until=days_until,
        ))

    alerts.sort(key=lambda a: a.days_until)
    return alerts


class DismissedAlerts:
    """
    Session-scoped side table of dismissed alert keys.

    Never written by generate_alerts; the API persists it as tokens in the
    HTTP session.
    """

    def __init__(self, keys: Iterable[AlertKey] = ()):
        self._keys: set[AlertKey] = set(keys)

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> "DismissedAlerts":
        return cls(AlertKey.from_token(t) for t in tokens)

    def dismiss(self, key: AlertKey) -> None:
        self._keys.add(key)

    def __contains__(self, key: AlertKey) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def tokens(self) -> list[str]:
        return sorted(k.token() for k in self._keys)


def filter_dismissed(alerts: list[Alert], dismissed: DismissedAlerts) -> list[Alert]:
    return [a for a in alerts if a.id not in dismissed]
