"""
Dashboard — aggregated read views over the subscription list.

Pure read-layer: no mutations. Each method loads the collections it needs
once and hands them to the core functions with an explicit `today`.
Provides:
  1. Summary (totals, counts, trials ending, waste)
  2. Category breakdown
  3. Upcoming cashflow and alerts
  4. Household spend per payer
  5. Calendar month
  6. Insights bundle
  7. Subscription list / detail
"""
from dataclasses import asdict
from datetime import date

from sqlalchemy.orm import Session

from subtracker.application.alerts import DismissedAlerts, filter_dismissed, generate_alerts
from subtracker.application.cashflow import (
    CashflowEntry, get_month_cashflow, get_month_total, get_upcoming_cashflow, project_monthly_totals,
)
from subtracker.application.insights import (
    find_category_overlaps, find_duplicates, find_low_value_high_cost, find_price_increases,
    find_waste, get_waste_total, has_recent_price_increase,
)
from subtracker.application.settings import load_settings
from subtracker.application.subscriptions import filter_subscriptions, SORT_NAME
from subtracker.domain.costs import (
    format_effective_cost, get_category_breakdown, get_current_effective_monthly,
    get_total_monthly, get_total_yearly, is_intro_pricing_active,
)
from subtracker.domain.renewal import add_months, get_renewals_in_range
from subtracker.domain.subscription import (
    Subscription, STATUS_ACTIVE, STATUS_TRIAL, STATUS_PAUSED, STATUS_ON_HOLD, STATUS_CANCELLED,
    STATUS_LABELS, BILLING_CYCLE_LABELS, CATEGORY_FALLBACK_COLOR,
)
from subtracker.infrastructure.db.repository import (
    CategoryRepository, HouseholdMemberRepository, SubscriptionRepository,
)
from subtracker.utils.money import format_money, round2

TRIAL_ENDING_DAYS = 7
BIG_HIT_FACTOR = 1.5
UNASSIGNED = "Unassigned"


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def _subs(self) -> list[Subscription]:
        return SubscriptionRepository(self.db).get_all()

    # ------------------------------------------------------------------
    # 1. Summary
    # ------------------------------------------------------------------

    def get_summary(self, today: date) -> dict:
        subs = self._subs()
        currency = load_settings(self.db).default_currency
        monthly = get_total_monthly(subs, today)
        yearly = get_total_yearly(subs, today)
        counts = {status: 0 for status in STATUS_LABELS}
        for sub in subs:
            counts[sub.status] = counts.get(sub.status, 0) + 1
        trials_ending = [
            s for s in subs
            if s.status == STATUS_TRIAL and (s.next_renewal_date - today).days <= TRIAL_ENDING_DAYS
        ]
        return {
            "currency": currency,
            "total_monthly": monthly,
            "total_yearly": yearly,
            "total_monthly_fmt": format_money(monthly, currency),
            "total_yearly_fmt": format_money(yearly, currency),
            "active_count": counts[STATUS_ACTIVE] + counts[STATUS_TRIAL],
            "status_counts": counts,
            "trials_ending_soon": [self._sub_item(s, today) for s in trials_ending],
            "waste_total": get_waste_total(subs, today),
            "categories_used": len({s.category_id for s in subs}),
        }

    # ------------------------------------------------------------------
    # 2. Category breakdown
    # ------------------------------------------------------------------

    def get_category_breakdown(self, today: date) -> list[dict]:
        categories = CategoryRepository(self.db).get_all()
        return [asdict(b) for b in get_category_breakdown(self._subs(), categories, today)]

    # ------------------------------------------------------------------
    # 3. Cashflow & alerts
    # ------------------------------------------------------------------

    def get_upcoming(self, today: date, days: int = 30) -> dict:
        entries, total = get_upcoming_cashflow(self._subs(), today, days)
        return {
            "days": days,
            "total": total,
            "entries": [self._entry_item(e, today) for e in entries],
        }

    def get_alerts(self, today: date, dismissed: DismissedAlerts | None = None) -> list[dict]:
        """Alerts due today, minus the ones dismissed in this session."""
        threshold = load_settings(self.db).escalation_threshold
        alerts = generate_alerts(self._subs(), today, threshold)
        if dismissed is not None:
            alerts = filter_dismissed(alerts, dismissed)
        return [
            {
                "id": a.id.token(),
                "subscription_id": a.subscription_id,
                "subscription_name": a.subscription_name,
                "renewal_date": a.renewal_date,
                "amount": a.amount,
                "effective_monthly": a.effective_monthly,
                "days_before": a.days_before,
                "days_until": a.days_until,
                "alert_date": a.alert_date,
                "urgency": a.urgency,
            }
            for a in alerts
        ]

    # ------------------------------------------------------------------
    # 4. Household
    # ------------------------------------------------------------------

    def get_household_spend(self, today: date) -> list[dict]:
        """Monthly cost per payer (active + trial), members without spend included."""
        subs = self._subs()
        members = HouseholdMemberRepository(self.db).get_all()
        out = []
        for m in members:
            paid = [s for s in subs if s.is_billable() and s.payer_id == m.id]
            out.append({
                "member_id": m.id,
                "name": m.name,
                "role": m.role,
                "avatar_color": m.avatar_color,
                "monthly_cost": round2(sum(get_current_effective_monthly(s, today) for s in paid)),
                "subscription_count": len(self._member_subs(subs, m.id)),
            })
        known = {m.id for m in members}
        orphan = [s for s in subs if s.is_billable() and s.payer_id not in known]
        if orphan:
            out.append({
                "member_id": None,
                "name": UNASSIGNED,
                "role": None,
                "avatar_color": CATEGORY_FALLBACK_COLOR,
                "monthly_cost": round2(sum(get_current_effective_monthly(s, today) for s in orphan)),
                "subscription_count": len(orphan),
            })
        return out

    @staticmethod
    def _member_subs(subs: list[Subscription], member_id: str) -> list[Subscription]:
        return [
            s for s in subs
            if member_id in s.user_ids or s.payer_id == member_id or s.owner_id == member_id
        ]

    def get_member_subscriptions(self, member_id: str, today: date) -> list[dict]:
        return [self._sub_item(s, today) for s in self._member_subs(self._subs(), member_id)]

    # ------------------------------------------------------------------
    # 5. Calendar
    # ------------------------------------------------------------------

    def get_calendar_month(self, year: int, month: int, today: date) -> dict:
        """
        Entries grouped per day for one month.

        is_big_hit: the month total exceeds 1.5x the average of the
        six projected months starting at the current one.
        """
        subs = self._subs()
        entries = get_month_cashflow(subs, year, month)
        total = get_month_total(entries)
        projected = [t for _, _, t in project_monthly_totals(subs, today, 6)]
        avg = sum(projected) / len(projected) if projected else 0.0

        days: dict[str, list[dict]] = {}
        for e in entries:
            days.setdefault(e.date.isoformat(), []).append(self._entry_item(e, today))
        return {
            "year": year,
            "month": month,
            "total": total,
            "average_monthly": round2(avg),
            "is_big_hit": avg > 0 and total > avg * BIG_HIT_FACTOR,
            "days": days,
        }

    # ------------------------------------------------------------------
    # 6. Insights
    # ------------------------------------------------------------------

    def get_insights(self, today: date) -> dict:
        subs = self._subs()
        categories = CategoryRepository(self.db).get_all()
        return {
            "waste": [self._sub_item(s, today) for s in find_waste(subs, today)],
            "waste_total": get_waste_total(subs, today),
            "low_value": [self._sub_item(s, today) for s in find_low_value_high_cost(subs, today)],
            "duplicates": [
                {
                    "sub1": self._sub_item(p.sub1, today),
                    "sub2": self._sub_item(p.sub2, today),
                    "score": round2(p.score),
                    "reason": p.reason,
                }
                for p in find_duplicates(subs)
            ],
            "category_overlaps": [
                {
                    "category_id": g.category_id,
                    "category_name": g.category_name,
                    "total_monthly": g.total_monthly,
                    "subscriptions": [self._sub_item(s, today) for s in g.subs],
                }
                for g in find_category_overlaps(subs, categories, today)
            ],
            "price_increases": [
                {
                    **self._sub_item(s, today),
                    "previous_amount": s.price_history[-2].amount,
                    "current_amount": s.price_history[-1].amount,
                    "changed_on": s.price_history[-1].date,
                }
                for s in find_price_increases(subs)
            ],
        }

    # ------------------------------------------------------------------
    # 7. Subscription list / detail
    # ------------------------------------------------------------------

    def list_subscriptions(
        self,
        today: date,
        search: str | None = None,
        status: str | None = None,
        category_id: str | None = None,
        sort_by: str = SORT_NAME,
    ) -> list[dict]:
        subs = filter_subscriptions(self._subs(), today, search, status, category_id, sort_by)
        return [self._sub_item(s, today) for s in subs]

    def get_subscription_detail(self, sub_id: str, today: date, horizon_months: int = 12) -> dict | None:
        sub = SubscriptionRepository(self.db).get(sub_id)
        if sub is None:
            return None
        upcoming = get_renewals_in_range(sub, today, add_months(today, horizon_months))
        return {
            **self._sub_item(sub, today),
            "billing_cycle_label": BILLING_CYCLE_LABELS.get(sub.billing_cycle, sub.billing_cycle),
            "intro_pricing_active": is_intro_pricing_active(sub, today),
            "upcoming_renewals": upcoming,
            "price_history": [asdict(p) for p in sub.price_history],
            "add_ons": [asdict(a) for a in sub.add_ons],
            "has_sensitive_notes": bool(sub.sensitive_notes),
        }

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _sub_item(sub: Subscription, today: date) -> dict:
        return {
            "id": sub.id,
            "name": sub.name,
            "status": sub.status,
            "status_label": STATUS_LABELS.get(sub.status, sub.status),
            "category_id": sub.category_id,
            "billing_cycle": sub.billing_cycle,
            "amount": sub.amount,
            "currency": sub.currency,
            "next_renewal_date": sub.next_renewal_date,
            "days_until_renewal": (sub.next_renewal_date - today).days,
            "effective_monthly": get_current_effective_monthly(sub, today),
            "effective_cost_label": format_effective_cost(sub, today),
            "price_increased": has_recent_price_increase(sub),
            "is_inactive": sub.status in (STATUS_PAUSED, STATUS_ON_HOLD, STATUS_CANCELLED),
        }

    @staticmethod
    def _entry_item(entry: CashflowEntry, today: date) -> dict:
        return {
            "date": entry.date,
            "days_until": (entry.date - today).days,
            "subscription_id": entry.subscription_id,
            "subscription_name": entry.subscription_name,
            "amount": entry.amount,
            "category_id": entry.category_id,
        }
