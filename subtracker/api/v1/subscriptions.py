"""
Subscription API endpoints
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, get_today, http_error
from subtracker.application.dashboard import DashboardService
from subtracker.application.settings import SetSensitiveNoteUseCase, RevealSensitiveNoteUseCase
from subtracker.application.subscriptions import (
    CreateSubscriptionUseCase, UpdateSubscriptionUseCase, CancelSubscriptionUseCase,
    DeleteSubscriptionUseCase, SnoozeAlertsUseCase, RolloverRenewalsUseCase,
    RecordPriceChangeUseCase, SubscriptionNotFoundError, SORT_KEYS, SORT_NAME, new_id,
)
from subtracker.domain.subscription import AddOn, BILLING_CYCLES, CYCLE_MONTHLY
from subtracker.infrastructure.db.repository import SubscriptionRepository


router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])

_NON_NULLABLE = {
    "name", "category_id", "tags", "billing_cycle", "amount", "currency", "has_intro_pricing",
    "next_renewal_date", "renewal_day_rule", "status", "auto_renew", "cancellation_needed",
    "alert_days_before", "payer_id", "owner_id", "user_ids", "is_shared", "cancellation_checklist",
}


# === Request/Response models ===

class AddOnModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    name: str
    amount: float = Field(ge=0)
    billing_cycle: str = CYCLE_MONTHLY
    custom_cycle_days: int | None = None

    @field_validator("billing_cycle")
    @classmethod
    def validate_cycle(cls, v: str) -> str:
        if v not in BILLING_CYCLES:
            raise ValueError(f"billing_cycle must be one of {sorted(BILLING_CYCLES)}, got: {v}")
        return v

    def to_domain(self) -> AddOn:
        return AddOn(
            id=self.id or new_id(),
            name=self.name,
            amount=self.amount,
            billing_cycle=self.billing_cycle,
            custom_cycle_days=self.custom_cycle_days,
        )


class PriceEntryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    amount: float
    note: str | None = None


class SubscriptionFields(BaseModel):
    """Editable fields shared by create and update; everything optional for PATCH."""
    name: str | None = None
    logo_url: str | None = None
    category_id: str | None = None
    tags: list[str] | None = None
    billing_cycle: str | None = None
    custom_cycle_days: int | None = None
    amount: float | None = None
    currency: str | None = None
    tax_amount: float | None = None
    has_intro_pricing: bool | None = None
    intro_price: float | None = None
    intro_duration_days: int | None = None
    intro_end_date: date | None = None
    start_date: date | None = None
    next_renewal_date: date | None = None
    renewal_day_rule: str | None = None
    status: str | None = None
    auto_renew: bool | None = None
    cancellation_needed: bool | None = None
    alert_days_before: list[int] | None = None
    payer_id: str | None = None
    owner_id: str | None = None
    manager_id: str | None = None
    user_ids: list[str] | None = None
    is_shared: bool | None = None
    seat_count: int | None = None
    cost_per_seat: float | None = None
    cancel_url: str | None = None
    cancel_method: str | None = None
    cancel_deadline_days: int | None = None
    cancellation_checklist: list[str] | None = None
    last_used: str | None = None
    value_score: int | None = None
    would_miss: bool | None = None
    add_ons: list[AddOnModel] | None = None
    notes: str | None = None

    def to_changes(self) -> dict:
        """Only the fields the client actually sent, add-ons as domain objects."""
        changes = self.model_dump(exclude_unset=True, exclude={"add_ons"})
        # explicit nulls on required fields mean "leave unchanged"
        changes = {k: v for k, v in changes.items() if v is not None or k not in _NON_NULLABLE}
        if "add_ons" in self.model_fields_set:
            changes["add_ons"] = [a.to_domain() for a in self.add_ons or []]
        return changes


class CreateSubscriptionRequest(SubscriptionFields):
    name: str
    next_renewal_date: date
    amount: float = 0.0


class SnoozeRequest(BaseModel):
    until: date | None = None


class PriceChangeRequest(BaseModel):
    amount: float
    effective: date | None = None
    note: str | None = None


class SensitiveNoteRequest(BaseModel):
    pin: str
    text: str | None = None


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    logo_url: str | None
    category_id: str
    tags: list[str]
    billing_cycle: str
    custom_cycle_days: int | None
    amount: float
    currency: str
    tax_amount: float | None
    has_intro_pricing: bool
    intro_price: float | None
    intro_duration_days: int | None
    intro_end_date: date | None
    start_date: date | None
    next_renewal_date: date
    renewal_day_rule: str
    status: str
    auto_renew: bool
    cancellation_needed: bool
    alert_days_before: list[int]
    alert_snoozed_until: date | None
    payer_id: str
    owner_id: str
    manager_id: str | None
    user_ids: list[str]
    is_shared: bool
    seat_count: int | None
    cost_per_seat: float | None
    cancel_url: str | None
    cancel_method: str | None
    cancel_deadline_days: int | None
    cancellation_checklist: list[str]
    last_used: str | None
    value_score: int | None
    would_miss: bool | None
    add_ons: list[AddOnModel]
    price_history: list[PriceEntryModel]
    notes: str | None
    has_sensitive_notes: bool = False
    created_at: datetime | None
    updated_at: datetime | None


def _response(sub) -> SubscriptionResponse:
    resp = SubscriptionResponse.model_validate(sub)
    resp.has_sensitive_notes = bool(sub.sensitive_notes)
    return resp


# === Endpoints ===

@router.get("/")
def list_subscriptions(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    search: str | None = None,
    status: str | None = None,
    category_id: str | None = None,
    sort_by: str = SORT_NAME,
):
    """List with search, filters and sorting"""
    if sort_by not in SORT_KEYS:
        raise http_error(ValueError(f"sort_by must be one of {sorted(SORT_KEYS)}"))
    return DashboardService(db).list_subscriptions(today, search, status, category_id, sort_by)


@router.post("/", response_model=SubscriptionResponse, status_code=201)
def create_subscription(
    req: CreateSubscriptionRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    changes = req.to_changes()
    name = changes.pop("name")
    next_renewal = changes.pop("next_renewal_date")
    try:
        sub_id = CreateSubscriptionUseCase(db).execute(name, next_renewal, today=today, **changes)
    except ValueError as e:
        raise http_error(e)
    return _response(SubscriptionRepository(db).get(sub_id))


@router.post("/rollover")
def rollover_renewals(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Move stale renewal dates forward to today or later"""
    count = RolloverRenewalsUseCase(db).execute(today)
    return {"advanced": count}


@router.get("/{sub_id}")
def get_subscription(sub_id: str, db: Session = Depends(get_db), today: date = Depends(get_today)):
    sub = SubscriptionRepository(db).get(sub_id)
    if sub is None:
        raise http_error(SubscriptionNotFoundError("Subscription not found"))
    return {
        "subscription": _response(sub),
        "view": DashboardService(db).get_subscription_detail(sub_id, today),
    }


@router.patch("/{sub_id}", response_model=SubscriptionResponse)
def update_subscription(
    sub_id: str,
    req: SubscriptionFields,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    try:
        sub = UpdateSubscriptionUseCase(db).execute(sub_id, today=today, **req.to_changes())
    except ValueError as e:
        raise http_error(e)
    return _response(sub)


@router.delete("/{sub_id}")
def delete_subscription(sub_id: str, db: Session = Depends(get_db)):
    try:
        DeleteSubscriptionUseCase(db).execute(sub_id)
    except ValueError as e:
        raise http_error(e)
    return {"status": "deleted"}


@router.post("/{sub_id}/cancel")
def cancel_subscription(sub_id: str, db: Session = Depends(get_db)):
    try:
        CancelSubscriptionUseCase(db).execute(sub_id)
    except ValueError as e:
        raise http_error(e)
    return {"status": "cancelled"}


@router.post("/{sub_id}/snooze")
def snooze_alerts(sub_id: str, req: SnoozeRequest, db: Session = Depends(get_db)):
    try:
        SnoozeAlertsUseCase(db).execute(sub_id, req.until)
    except ValueError as e:
        raise http_error(e)
    return {"status": "snoozed" if req.until else "unsnoozed", "until": req.until}


@router.post("/{sub_id}/price", response_model=SubscriptionResponse)
def record_price_change(
    sub_id: str,
    req: PriceChangeRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    try:
        sub = RecordPriceChangeUseCase(db).execute(sub_id, req.amount, req.effective or today, req.note)
    except ValueError as e:
        raise http_error(e)
    return _response(sub)


@router.put("/{sub_id}/sensitive-notes")
def set_sensitive_note(sub_id: str, req: SensitiveNoteRequest, db: Session = Depends(get_db)):
    """Encrypt and store (text=None clears)"""
    try:
        SetSensitiveNoteUseCase(db).execute(sub_id, req.pin, req.text)
    except ValueError as e:
        raise http_error(e)
    return {"status": "saved"}


@router.post("/{sub_id}/sensitive-notes/reveal")
def reveal_sensitive_note(sub_id: str, req: SensitiveNoteRequest, db: Session = Depends(get_db)):
    try:
        text = RevealSensitiveNoteUseCase(db).execute(sub_id, req.pin)
    except ValueError as e:
        raise http_error(e)
    return {"text": text}
