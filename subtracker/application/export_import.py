"""
Backup & exchange formats.

JSON - full versioned snapshot of the four collections, camelCase keys.
       Import is a destructive replace of subscriptions, members and
       categories; settings are overwritten only when the file has them.
CSV  - fixed column subset of subscriptions only. Import appends, filling
       every column the file lacks with defaults.

Malformed input never reaches the core: it is reported through
ImportResult(success=False, errors=[...]).
"""
import csv
import io
import json
import logging
import math
import re
import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from subtracker.domain.subscription import (
    AddOn, AppSettings, Category, HouseholdMember, PriceEntry, Subscription,
    BILLING_CYCLES, STATUSES, CYCLE_MONTHLY, STATUS_ACTIVE, DEFAULT_ALERT_DAYS,
)
from subtracker.application.subscriptions import validate_subscription
from subtracker.infrastructure.db.live_query import commit, rollback
from subtracker.infrastructure.db.repository import (
    SubscriptionRepository, HouseholdMemberRepository, CategoryRepository, SettingsRepository,
    SETTINGS_ID,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1

CSV_COLUMNS = [
    "name", "categoryId", "tags", "billingCycle", "amount", "currency",
    "taxAmount", "status", "nextRenewalDate", "startDate", "autoRenew",
    "isShared", "payerId", "ownerId", "notes",
]

_DATE_FIELDS = {"next_renewal_date", "start_date", "intro_end_date", "alert_snoozed_until", "last_backup_date"}
_DATETIME_FIELDS = {"created_at", "updated_at"}


@dataclass
class ImportResult:
    success: bool
    subscriptions_imported: int = 0
    members_imported: int = 0
    categories_imported: int = 0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def failed(cls, *errors: str) -> "ImportResult":
        return cls(success=False, errors=list(errors))


# ============================================================================
# Key / value conversion
# ============================================================================


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _encode_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (AddOn, PriceEntry)):
        return _to_json_dict(value)
    if isinstance(value, list):
        return [_encode_value(v) for v in value]
    return value


def _to_json_dict(entity) -> dict:
    return {to_camel(f.name): _encode_value(getattr(entity, f.name)) for f in fields(entity)}


def _parse_datetime(raw: str) -> datetime:
    value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _decode_fields(cls, raw: dict) -> dict:
    """camelCase dict -> constructor kwargs for `cls`; unknown keys are dropped."""
    known = {f.name for f in fields(cls)}
    kwargs = {}
    for key, value in raw.items():
        name = to_snake(key)
        if name not in known:
            continue
        if value is not None and name in _DATE_FIELDS:
            value = date.fromisoformat(value[:10])
        elif value is not None and name in _DATETIME_FIELDS:
            value = _parse_datetime(value)
        kwargs[name] = value
    return kwargs


_NUMBER_FIELDS = ("amount", "taxAmount", "introPrice")


def _check_numbers(raw: dict) -> None:
    for key in _NUMBER_FIELDS:
        value = raw.get(key)
        if value is None and key != "amount":
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError(f"{key} must be a number")


def subscription_from_json(raw: dict) -> Subscription:
    """Decode one exported subscription; raises ValueError when it breaks a subscription rule."""
    _check_numbers(raw)
    kwargs = _decode_fields(Subscription, raw)
    kwargs["add_ons"] = [AddOn(**_decode_fields(AddOn, a)) for a in raw.get("addOns") or []]
    kwargs["price_history"] = [
        PriceEntry(date=date.fromisoformat(p["date"][:10]), amount=float(p["amount"]), note=p.get("note"))
        for p in raw.get("priceHistory") or []
    ]
    for list_field in ("tags", "alert_days_before", "user_ids", "cancellation_checklist"):
        if kwargs.get(list_field) is None:
            kwargs.pop(list_field, None)
    sub = Subscription(**kwargs)
    validate_subscription(sub)
    return sub


# ============================================================================
# JSON
# ============================================================================


def export_json(db: Session, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    settings = SettingsRepository(db).get(SETTINGS_ID)
    data = {
        "version": EXPORT_VERSION,
        "exportDate": now.isoformat(),
        "subscriptions": [_to_json_dict(s) for s in SubscriptionRepository(db).get_all()],
        "householdMembers": [_to_json_dict(m) for m in HouseholdMemberRepository(db).get_all()],
        "categories": [_to_json_dict(c) for c in CategoryRepository(db).get_all()],
        "settings": _to_json_dict(settings) if settings is not None else None,
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def import_json(db: Session, text: str) -> ImportResult:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return ImportResult.failed("Invalid JSON")

    if not isinstance(data, dict) or not data.get("version") or not isinstance(data.get("subscriptions"), list):
        return ImportResult.failed("Invalid export format")

    try:
        subs = [subscription_from_json(s) for s in data["subscriptions"]]
        members = [HouseholdMember(**_decode_fields(HouseholdMember, m))
                   for m in data.get("householdMembers") or []]
        categories = [Category(**_decode_fields(Category, c)) for c in data.get("categories") or []]
        settings = (AppSettings(**_decode_fields(AppSettings, data["settings"]))
                    if data.get("settings") else None)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        return ImportResult.failed(f"Import failed: {e}")

    try:
        SubscriptionRepository(db).clear()
        HouseholdMemberRepository(db).clear()
        CategoryRepository(db).clear()
        SubscriptionRepository(db).bulk_add(subs)
        HouseholdMemberRepository(db).bulk_add(members)
        CategoryRepository(db).bulk_add(categories)
        if settings is not None:
            settings.id = SETTINGS_ID
            SettingsRepository(db).put(settings)
        commit(db)
    except SQLAlchemyError as e:
        rollback(db)
        logger.exception("JSON import failed")
        return ImportResult.failed(f"Import failed: {e.__class__.__name__}")

    logger.info("JSON import: %d subscriptions, %d members, %d categories",
                len(subs), len(members), len(categories))
    return ImportResult(
        success=True,
        subscriptions_imported=len(subs),
        members_imported=len(members),
        categories_imported=len(categories),
    )


# ============================================================================
# CSV
# ============================================================================


def _format_number(value: float | None) -> str:
    if value is None:
        return ""
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def export_csv(db: Session) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for sub in SubscriptionRepository(db).get_all():
        writer.writerow({
            "name": sub.name,
            "categoryId": sub.category_id,
            "tags": ";".join(sub.tags),
            "billingCycle": sub.billing_cycle,
            "amount": _format_number(sub.amount),
            "currency": sub.currency,
            "taxAmount": _format_number(sub.tax_amount),
            "status": sub.status,
            "nextRenewalDate": sub.next_renewal_date.isoformat(),
            "startDate": sub.start_date.isoformat() if sub.start_date else "",
            "autoRenew": _yes_no(sub.auto_renew),
            "isShared": _yes_no(sub.is_shared),
            "payerId": sub.payer_id,
            "ownerId": sub.owner_id,
            "notes": sub.notes or "",
        })
    return buffer.getvalue()


def _row_to_subscription(row: dict, today: date, now: datetime) -> Subscription:
    """Raises ValueError for rows that cannot become a subscription."""
    amount = float(row["amount"])
    if not math.isfinite(amount):
        raise ValueError("amount must be a number")
    billing_cycle = row.get("billingCycle") or CYCLE_MONTHLY
    if billing_cycle not in BILLING_CYCLES:
        raise ValueError(f"unknown billing cycle '{billing_cycle}'")
    status = row.get("status") or STATUS_ACTIVE
    if status not in STATUSES:
        raise ValueError(f"unknown status '{status}'")
    tax = row.get("taxAmount")
    sub = Subscription(
        id=str(uuid.uuid4()),
        name=row["name"].strip(),
        category_id=row.get("categoryId") or "",
        tags=[t for t in (row.get("tags") or "").split(";") if t],
        billing_cycle=billing_cycle,
        amount=amount,
        currency=row.get("currency") or "USD",
        tax_amount=float(tax) if tax else None,
        start_date=date.fromisoformat(row["startDate"]) if row.get("startDate") else today,
        next_renewal_date=(date.fromisoformat(row["nextRenewalDate"])
                           if row.get("nextRenewalDate") else today),
        status=status,
        auto_renew=row.get("autoRenew") == "yes",
        is_shared=row.get("isShared") == "yes",
        alert_days_before=list(DEFAULT_ALERT_DAYS),
        payer_id=row.get("payerId") or "",
        owner_id=row.get("ownerId") or "",
        price_history=[PriceEntry(date=today, amount=amount)],
        notes=row.get("notes") or None,
        created_at=now,
        updated_at=now,
    )
    validate_subscription(sub)
    return sub


def import_csv(db: Session, text: str, today: date | None = None) -> ImportResult:
    today = today or date.today()
    now = datetime.now(timezone.utc)
    errors: list[str] = []
    subs: list[Subscription] = []

    try:
        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames or "name" not in reader.fieldnames:
            return ImportResult.failed("Missing header row with a 'name' column")
        for line_no, row in enumerate(reader, start=2):
            if not (row.get("name") or "").strip() or not row.get("amount"):
                errors.append("Skipping row without name or amount")
                continue
            try:
                subs.append(_row_to_subscription(row, today, now))
            except ValueError as e:
                errors.append(f"Row {line_no}: {e}")
    except csv.Error as e:
        return ImportResult.failed(f"CSV parse error: {e}")

    try:
        SubscriptionRepository(db).bulk_add(subs)
        commit(db)
    except SQLAlchemyError as e:
        rollback(db)
        logger.exception("CSV import failed")
        return ImportResult.failed(f"CSV import failed: {e.__class__.__name__}")

    logger.info("CSV import: %d subscriptions appended, %d row(s) skipped", len(subs), len(errors))
    return ImportResult(success=True, subscriptions_imported=len(subs), errors=errors)
