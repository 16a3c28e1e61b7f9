"""
Subscription use cases — create / edit / cancel / delete, alert snooze,
renewal-date rollover, plus the list filter used by the subscriptions view.

Edits that change the amount append a price point dated today, or on the
latest point when a scheduled change is still ahead. Price history stays
chronological: explicitly dated entries older than the latest are rejected.
"""
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from subtracker.domain.costs import get_current_effective_monthly
from subtracker.domain.renewal import advance_renewal_to_future
from subtracker.domain.subscription import (
    Subscription, PriceEntry, AddOn,
    BILLING_CYCLES, DAY_RULES, STATUSES, USAGE_RECENCIES, ALERT_TIMINGS, CANCEL_METHODS,
    STATUS_CANCELLED,
)
from subtracker.infrastructure.db.live_query import commit
from subtracker.infrastructure.db.repository import SubscriptionRepository
from subtracker.utils.money import SUPPORTED_CURRENCIES

logger = logging.getLogger(__name__)

SORT_NAME = "name"
SORT_AMOUNT = "amount"
SORT_RENEWAL = "renewal"
SORT_ADDED = "added"
SORT_KEYS = frozenset({SORT_NAME, SORT_AMOUNT, SORT_RENEWAL, SORT_ADDED})


class SubscriptionValidationError(ValueError):
    pass


class SubscriptionNotFoundError(SubscriptionValidationError):
    pass


def new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Validation
# ============================================================================


def validate_subscription(sub: Subscription) -> None:
    """Raise SubscriptionValidationError on the first broken rule."""
    if not sub.name or not sub.name.strip():
        raise SubscriptionValidationError("Name cannot be empty")
    if sub.billing_cycle not in BILLING_CYCLES:
        raise SubscriptionValidationError(f"Unknown billing cycle: {sub.billing_cycle}")
    if sub.custom_cycle_days is not None and sub.custom_cycle_days < 1:
        raise SubscriptionValidationError("Custom cycle must be at least 1 day")
    if sub.amount < 0:
        raise SubscriptionValidationError("Amount cannot be negative")
    if sub.tax_amount is not None and sub.tax_amount < 0:
        raise SubscriptionValidationError("Tax cannot be negative")
    if sub.currency not in SUPPORTED_CURRENCIES:
        raise SubscriptionValidationError(f"Unsupported currency: {sub.currency}")
    if sub.renewal_day_rule not in DAY_RULES:
        raise SubscriptionValidationError(f"Unknown renewal day rule: {sub.renewal_day_rule}")
    if sub.status not in STATUSES:
        raise SubscriptionValidationError(f"Unknown status: {sub.status}")
    if sub.has_intro_pricing:
        if sub.intro_price is None or sub.intro_price < 0:
            raise SubscriptionValidationError("Intro pricing needs a non-negative intro price")
        if sub.intro_end_date is None:
            raise SubscriptionValidationError("Intro pricing needs an end date")
    bad_leads = set(sub.alert_days_before) - ALERT_TIMINGS
    if bad_leads:
        raise SubscriptionValidationError(f"Unsupported alert lead times: {sorted(bad_leads)}")
    if sub.last_used is not None and sub.last_used not in USAGE_RECENCIES:
        raise SubscriptionValidationError(f"Unknown usage recency: {sub.last_used}")
    if sub.value_score is not None and not 1 <= sub.value_score <= 5:
        raise SubscriptionValidationError("Value score must be between 1 and 5")
    if sub.cancel_method is not None and sub.cancel_method not in CANCEL_METHODS:
        raise SubscriptionValidationError(f"Unknown cancel method: {sub.cancel_method}")
    if sub.seat_count is not None and sub.seat_count < 1:
        raise SubscriptionValidationError("Seat count must be at least 1")
    for add_on in sub.add_ons:
        _validate_add_on(add_on)
    for prev, cur in zip(sub.price_history, sub.price_history[1:]):
        if cur.date < prev.date:
            raise SubscriptionValidationError("Price history must be chronological")


def _validate_add_on(add_on: AddOn) -> None:
    if not add_on.name.strip():
        raise SubscriptionValidationError("Add-on name cannot be empty")
    if add_on.amount < 0:
        raise SubscriptionValidationError("Add-on amount cannot be negative")
    if add_on.billing_cycle not in BILLING_CYCLES:
        raise SubscriptionValidationError(f"Unknown add-on billing cycle: {add_on.billing_cycle}")


def append_price_entry(history: list[PriceEntry], entry: PriceEntry) -> list[PriceEntry]:
    """New list with `entry` appended; history is append-only and chronological."""
    if history and entry.date < history[-1].date:
        raise SubscriptionValidationError("Price entry is older than the latest price point")
    return [*history, entry]


# ============================================================================
# Subscriptions CRUD
# ============================================================================


class CreateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, name: str, next_renewal_date: date, today: date | None = None, **data) -> str:
        today = today or date.today()
        now = _utcnow()
        sub = Subscription(
            id=new_id(),
            name=name.strip() if name else "",
            next_renewal_date=next_renewal_date,
            created_at=now,
            updated_at=now,
            **data,
        )
        if sub.start_date is None:
            sub.start_date = today
        if not sub.price_history:
            sub.price_history = [PriceEntry(date=today, amount=sub.amount)]
        validate_subscription(sub)

        SubscriptionRepository(self.db).add(sub)
        commit(self.db)
        logger.info("Subscription created: id=%s name=%s", sub.id, sub.name)
        return sub.id


class UpdateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: str, today: date | None = None, **changes) -> Subscription:
        today = today or date.today()
        repo = SubscriptionRepository(self.db)
        current = repo.get(sub_id)
        if current is None:
            raise SubscriptionNotFoundError("Subscription not found")

        for key in ("id", "created_at", "updated_at", "price_history"):
            changes.pop(key, None)
        if "name" in changes and changes["name"] is not None:
            changes["name"] = changes["name"].strip()

        updated = replace(current, **changes)
        if updated.amount != current.amount:
            # a scheduled price point may already sit in the future
            last = current.price_history[-1].date if current.price_history else today
            updated.price_history = append_price_entry(
                current.price_history, PriceEntry(date=max(today, last), amount=updated.amount),
            )
        validate_subscription(updated)

        patch = {k: getattr(updated, k) for k in changes}
        patch["price_history"] = updated.price_history
        patch["updated_at"] = _utcnow()
        result = repo.update(sub_id, **patch)
        commit(self.db)
        return result


class RecordPriceChangeUseCase:
    """Log a price point explicitly (e.g. a dated price notice) and adopt it as the amount."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: str, amount: float, effective: date, note: str | None = None) -> Subscription:
        repo = SubscriptionRepository(self.db)
        sub = repo.get(sub_id)
        if sub is None:
            raise SubscriptionNotFoundError("Subscription not found")
        if amount < 0:
            raise SubscriptionValidationError("Amount cannot be negative")
        history = append_price_entry(sub.price_history, PriceEntry(date=effective, amount=amount, note=note))
        result = repo.update(sub_id, amount=amount, price_history=history, updated_at=_utcnow())
        commit(self.db)
        return result


class CancelSubscriptionUseCase:
    """Soft cancel: the subscription stays visible for history but stops renewing."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: str) -> None:
        repo = SubscriptionRepository(self.db)
        sub = repo.get(sub_id)
        if sub is None:
            raise SubscriptionNotFoundError("Subscription not found")
        if sub.status == STATUS_CANCELLED:
            raise SubscriptionValidationError("Subscription is already cancelled")
        repo.update(sub_id, status=STATUS_CANCELLED, auto_renew=False,
                    cancellation_needed=False, updated_at=_utcnow())
        commit(self.db)
        logger.info("Subscription cancelled: id=%s", sub_id)


class DeleteSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: str) -> None:
        if not SubscriptionRepository(self.db).delete(sub_id):
            raise SubscriptionNotFoundError("Subscription not found")
        commit(self.db)


class SnoozeAlertsUseCase:
    """Silence alerts until a date (None clears the snooze)."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: str, until: date | None) -> None:
        repo = SubscriptionRepository(self.db)
        if repo.update(sub_id, alert_snoozed_until=until, updated_at=_utcnow()) is None:
            raise SubscriptionNotFoundError("Subscription not found")
        commit(self.db)


class RolloverRenewalsUseCase:
    """
    Catch up stale renewal dates after periods the app was not used.

    Every non-cancelled subscription whose next_renewal_date is before today
    is advanced cycle by cycle until it is today or later.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, today: date | None = None) -> int:
        today = today or date.today()
        repo = SubscriptionRepository(self.db)
        count = 0
        for sub in repo.get_all():
            if sub.is_cancelled() or sub.next_renewal_date >= today:
                continue
            advanced = advance_renewal_to_future(
                sub.next_renewal_date, sub.billing_cycle, sub.custom_cycle_days,
                sub.renewal_day_rule, today,
            )
            repo.update(sub.id, next_renewal_date=advanced, updated_at=_utcnow())
            count += 1
        if count:
            commit(self.db)
            logger.info("Renewal rollover: %d subscription(s) advanced to %s or later", count, today)
        return count


# ============================================================================
# List view
# ============================================================================


def filter_subscriptions(
    subs: list[Subscription],
    today: date,
    search: str | None = None,
    status: str | None = None,
    category_id: str | None = None,
    sort_by: str = SORT_NAME,
) -> list[Subscription]:
    """Search by name, filter by status/category, then sort (name, amount, renewal, added)."""
    result = subs
    if search:
        q = search.lower()
        result = [s for s in result if q in s.name.lower()]
    if status:
        result = [s for s in result if s.status == status]
    if category_id:
        result = [s for s in result if s.category_id == category_id]

    if sort_by == SORT_AMOUNT:
        return sorted(result, key=lambda s: get_current_effective_monthly(s, today), reverse=True)
    if sort_by == SORT_RENEWAL:
        return sorted(result, key=lambda s: s.next_renewal_date)
    if sort_by == SORT_ADDED:
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(result, key=lambda s: _aware(s.created_at) or epoch, reverse=True)
    return sorted(result, key=lambda s: s.name.lower())


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive timestamps
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
