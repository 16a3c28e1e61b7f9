"""
ORM rows <-> domain dataclasses.

Columns carry the same names as the dataclass fields; only the JSON
columns (add-ons, price history) need explicit conversion.
"""
from dataclasses import fields
from datetime import date

from subtracker.domain.subscription import (
    AddOn, AppSettings, Category, HouseholdMember, PriceEntry, Subscription,
)
from subtracker.infrastructure.db.models import (
    AppSettingsModel, CategoryModel, HouseholdMemberModel, SubscriptionModel,
)

# Server-side defaults: never overwrite with None
_TIMESTAMP_FIELDS = {"created_at", "updated_at"}


def add_on_to_json(add_on: AddOn) -> dict:
    return {
        "id": add_on.id,
        "name": add_on.name,
        "amount": add_on.amount,
        "billing_cycle": add_on.billing_cycle,
        "custom_cycle_days": add_on.custom_cycle_days,
    }


def add_on_from_json(raw: dict) -> AddOn:
    return AddOn(
        id=raw["id"],
        name=raw["name"],
        amount=float(raw["amount"]),
        billing_cycle=raw.get("billing_cycle", "monthly"),
        custom_cycle_days=raw.get("custom_cycle_days"),
    )


def price_entry_to_json(entry: PriceEntry) -> dict:
    return {"date": entry.date.isoformat(), "amount": entry.amount, "note": entry.note}


def price_entry_from_json(raw: dict) -> PriceEntry:
    return PriceEntry(
        date=date.fromisoformat(raw["date"][:10]),
        amount=float(raw["amount"]),
        note=raw.get("note"),
    )


def _copy_to_row(entity, row) -> None:
    for f in fields(entity):
        value = getattr(entity, f.name)
        if value is None and f.name in _TIMESTAMP_FIELDS:
            continue
        setattr(row, f.name, value)


def subscription_from_row(row: SubscriptionModel) -> Subscription:
    return Subscription(
        **{f.name: getattr(row, f.name) for f in fields(Subscription)
           if f.name not in ("add_ons", "price_history", "tags", "alert_days_before",
                             "user_ids", "cancellation_checklist")},
        tags=list(row.tags or []),
        alert_days_before=list(row.alert_days_before or []),
        user_ids=list(row.user_ids or []),
        cancellation_checklist=list(row.cancellation_checklist or []),
        add_ons=[add_on_from_json(a) for a in row.add_ons or []],
        price_history=[price_entry_from_json(p) for p in row.price_history or []],
    )


def subscription_to_row(sub: Subscription, row: SubscriptionModel | None = None) -> SubscriptionModel:
    row = row if row is not None else SubscriptionModel()
    _copy_to_row(sub, row)
    row.tags = list(sub.tags)
    row.alert_days_before = sorted(set(sub.alert_days_before), reverse=True)
    row.user_ids = list(sub.user_ids)
    row.cancellation_checklist = list(sub.cancellation_checklist)
    row.add_ons = [add_on_to_json(a) for a in sub.add_ons]
    row.price_history = [price_entry_to_json(p) for p in sub.price_history]
    return row


def member_from_row(row: HouseholdMemberModel) -> HouseholdMember:
    return HouseholdMember(**{f.name: getattr(row, f.name) for f in fields(HouseholdMember)})


def member_to_row(member: HouseholdMember, row: HouseholdMemberModel | None = None) -> HouseholdMemberModel:
    row = row if row is not None else HouseholdMemberModel()
    _copy_to_row(member, row)
    return row


def category_from_row(row: CategoryModel) -> Category:
    return Category(**{f.name: getattr(row, f.name) for f in fields(Category)})


def category_to_row(category: Category, row: CategoryModel | None = None) -> CategoryModel:
    row = row if row is not None else CategoryModel()
    _copy_to_row(category, row)
    return row


def settings_from_row(row: AppSettingsModel) -> AppSettings:
    settings = AppSettings(**{f.name: getattr(row, f.name) for f in fields(AppSettings)})
    settings.default_alert_days = list(row.default_alert_days or [])
    return settings


def settings_to_row(settings: AppSettings, row: AppSettingsModel | None = None) -> AppSettingsModel:
    row = row if row is not None else AppSettingsModel()
    _copy_to_row(settings, row)
    row.default_alert_days = list(settings.default_alert_days)
    return row
