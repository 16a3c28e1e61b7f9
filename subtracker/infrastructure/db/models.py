"""
SQLAlchemy ORM models (four collections: subscriptions, household members,
categories, settings)

Nested structures (add-ons, price history, tags, lead times) are stored as
JSON columns with ISO date strings; mappers.py converts them to dataclasses.
"""
from datetime import date as date_type, datetime
from sqlalchemy import String, Integer, Text, TIMESTAMP, Date, Boolean, Float, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from subtracker.infrastructure.db.session import Base


class SubscriptionModel(Base):
    """Recurring payment obligation"""
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    category_id: Mapped[str] = mapped_column(String(36), nullable=False, default="", index=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Billing
    billing_cycle: Mapped[str] = mapped_column(String(16), nullable=False, default="monthly")
    custom_cycle_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    tax_amount: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Intro pricing
    has_intro_pricing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    intro_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    intro_duration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    intro_end_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    # Dates & renewal
    start_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    next_renewal_date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    renewal_day_rule: Mapped[str] = mapped_column(String(20), nullable=False, default="exact")

    # Status
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", index=True)
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    cancellation_needed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Alerts
    alert_days_before: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    alert_snoozed_until: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    # Household
    payer_id: Mapped[str] = mapped_column(String(36), nullable=False, default="", index=True)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, default="", index=True)
    manager_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    user_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_shared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    seat_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cost_per_seat: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Cancellation workflow
    cancel_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cancel_method: Mapped[str | None] = mapped_column(String(16), nullable=True)
    cancel_deadline_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cancellation_checklist: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Value assessment
    last_used: Mapped[str | None] = mapped_column(String(16), nullable=True)
    value_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    would_miss: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # [{"id", "name", "amount", "billing_cycle", "custom_cycle_days"}]
    add_ons: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # [{"date": "YYYY-MM-DD", "amount", "note"}], chronological
    price_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sensitive_notes: Mapped[str | None] = mapped_column(Text, nullable=True)  # AES-GCM token

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class HouseholdMemberModel(Base):
    """Person who pays for, owns or uses subscriptions"""
    __tablename__ = "household_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="member")
    avatar_color: Mapped[str] = mapped_column(String(16), nullable=False, default="#3B82F6")
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class CategoryModel(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    icon: Mapped[str] = mapped_column(String(50), nullable=False, default="package")
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#9CA3AF")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)


class AppSettingsModel(Base):
    """Single row, id = "app" """
    __tablename__ = "settings"

    id: Mapped[str] = mapped_column(String(16), primary_key=True, default="app")
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    default_alert_days: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    escalation_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    theme: Mapped[str] = mapped_column(String(10), nullable=False, default="system")

    # PIN material: verification hash + two independent salts
    pin_verify_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    pin_verify_salt: Mapped[str | None] = mapped_column(String(64), nullable=True)
    pin_encrypt_salt: Mapped[str | None] = mapped_column(String(64), nullable=True)

    last_backup_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
