"""
Subscription domain entities.

Plain dataclasses shared by every layer: the ORM mappers build them from rows,
the renewal/cost/alert/insights functions read them and never mutate them.

Billing cycles:
- weekly, monthly, quarterly, biannual, annual
- custom: every `custom_cycle_days` days

Renewal day rules (applied after advancing a cycle):
- exact: no adjustment
- lastDayOfMonth: snap to the last calendar day of the month
- nextBusinessDay: Saturday/Sunday move to the following Monday
"""
from dataclasses import dataclass, field
from datetime import date, datetime

# Billing cycles
CYCLE_WEEKLY = "weekly"
CYCLE_MONTHLY = "monthly"
CYCLE_QUARTERLY = "quarterly"
CYCLE_BIANNUAL = "biannual"
CYCLE_ANNUAL = "annual"
CYCLE_CUSTOM = "custom"
BILLING_CYCLES = frozenset({
    CYCLE_WEEKLY, CYCLE_MONTHLY, CYCLE_QUARTERLY, CYCLE_BIANNUAL, CYCLE_ANNUAL, CYCLE_CUSTOM,
})

BILLING_CYCLE_LABELS = {
    CYCLE_WEEKLY: "Weekly",
    CYCLE_MONTHLY: "Monthly",
    CYCLE_QUARTERLY: "Quarterly (every 3 months)",
    CYCLE_BIANNUAL: "Biannual (every 6 months)",
    CYCLE_ANNUAL: "Annual (yearly)",
    CYCLE_CUSTOM: "Custom",
}

# Renewal day rules
DAY_RULE_EXACT = "exact"
DAY_RULE_LAST_DAY_OF_MONTH = "lastDayOfMonth"
DAY_RULE_NEXT_BUSINESS_DAY = "nextBusinessDay"
DAY_RULES = frozenset({DAY_RULE_EXACT, DAY_RULE_LAST_DAY_OF_MONTH, DAY_RULE_NEXT_BUSINESS_DAY})

# Lifecycle statuses
STATUS_ACTIVE = "active"
STATUS_TRIAL = "trial"
STATUS_PAUSED = "paused"
STATUS_ON_HOLD = "on_hold"
STATUS_CANCELLED = "cancelled"
STATUSES = frozenset({STATUS_ACTIVE, STATUS_TRIAL, STATUS_PAUSED, STATUS_ON_HOLD, STATUS_CANCELLED})
# Statuses that count towards totals, alerts and insights
BILLABLE_STATUSES = frozenset({STATUS_ACTIVE, STATUS_TRIAL})

STATUS_LABELS = {
    STATUS_ACTIVE: "Active",
    STATUS_TRIAL: "Trial",
    STATUS_PAUSED: "Paused",
    STATUS_ON_HOLD: "On Hold",
    STATUS_CANCELLED: "Cancelled",
}

# Usage recency
USAGE_WITHIN_7 = "within7"
USAGE_WITHIN_30 = "within30"
USAGE_WITHIN_90 = "within90"
USAGE_OVER_90 = "over90"
USAGE_NEVER = "never"
USAGE_RECENCIES = frozenset({USAGE_WITHIN_7, USAGE_WITHIN_30, USAGE_WITHIN_90, USAGE_OVER_90, USAGE_NEVER})
WASTE_USAGE = frozenset({USAGE_OVER_90, USAGE_NEVER})

USAGE_LABELS = {
    USAGE_WITHIN_7: "Used this week",
    USAGE_WITHIN_30: "Used this month",
    USAGE_WITHIN_90: "Used in last 3 months",
    USAGE_OVER_90: "Not used in 90+ days",
    USAGE_NEVER: "Never used",
}

CANCEL_METHODS = frozenset({"website", "phone", "chat", "email"})

# Alert lead times, days before renewal
ALERT_TIMINGS = frozenset({1, 3, 7, 14, 30})
ESCALATION_LEAD_DAYS = 30
DEFAULT_ALERT_DAYS = (7, 3, 1)

DEFAULT_CUSTOM_CYCLE_DAYS = 30


@dataclass(frozen=True)
class AddOn:
    """Extra recurring charge attached to a subscription, billed on its own cycle."""
    id: str
    name: str
    amount: float
    billing_cycle: str = CYCLE_MONTHLY
    custom_cycle_days: int | None = None


@dataclass(frozen=True)
class PriceEntry:
    date: date
    amount: float
    note: str | None = None


@dataclass
class Subscription:
    """
    Subscription (central entity)

    `next_renewal_date` is always a concrete date; a stale one is rolled
    forward by the renewal engine, never treated as an error.
    """
    id: str
    name: str
    next_renewal_date: date
    logo_url: str | None = None
    category_id: str = ""
    tags: list[str] = field(default_factory=list)

    # Billing
    billing_cycle: str = CYCLE_MONTHLY
    custom_cycle_days: int | None = None
    amount: float = 0.0
    currency: str = "USD"
    tax_amount: float | None = None

    # Intro / trial pricing
    has_intro_pricing: bool = False
    intro_price: float | None = None
    intro_duration_days: int | None = None
    intro_end_date: date | None = None

    # Dates & renewal
    start_date: date | None = None
    renewal_day_rule: str = DAY_RULE_EXACT

    # Status & auto-renew
    status: str = STATUS_ACTIVE
    auto_renew: bool = True
    cancellation_needed: bool = False

    # Alerts
    alert_days_before: list[int] = field(default_factory=lambda: list(DEFAULT_ALERT_DAYS))
    alert_snoozed_until: date | None = None

    # Household
    payer_id: str = ""
    owner_id: str = ""
    manager_id: str | None = None
    user_ids: list[str] = field(default_factory=list)
    is_shared: bool = False
    seat_count: int | None = None
    cost_per_seat: float | None = None

    # Cancellation workflow
    cancel_url: str | None = None
    cancel_method: str | None = None
    cancel_deadline_days: int | None = None
    cancellation_checklist: list[str] = field(default_factory=list)

    # Value assessment
    last_used: str | None = None
    value_score: int | None = None
    would_miss: bool | None = None

    add_ons: list[AddOn] = field(default_factory=list)
    price_history: list[PriceEntry] = field(default_factory=list)

    notes: str | None = None
    sensitive_notes: str | None = None  # AES-GCM token, never plaintext

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def cycle_amount(self) -> float:
        """Cash charged on each renewal: base amount plus tax, add-ons excluded."""
        return self.amount + (self.tax_amount or 0.0)

    def is_billable(self) -> bool:
        return self.status in BILLABLE_STATUSES

    def is_cancelled(self) -> bool:
        return self.status == STATUS_CANCELLED


def billable(subs) -> list[Subscription]:
    """Active and trial subscriptions, original order preserved."""
    return [s for s in subs if s.is_billable()]


@dataclass
class HouseholdMember:
    id: str
    name: str
    role: str = "member"  # admin, member
    avatar_color: str = "#3B82F6"
    avatar_url: str | None = None
    created_at: datetime | None = None


HOUSEHOLD_ROLES = frozenset({"admin", "member"})


@dataclass
class Category:
    id: str
    name: str
    icon: str = "package"
    color: str = "#9CA3AF"
    is_default: bool = False
    sort_order: int = 0


CATEGORY_FALLBACK_COLOR = "#9CA3AF"

DEFAULT_CATEGORIES = [
    {"name": "Streaming", "icon": "tv", "color": "#EF4444"},
    {"name": "Music", "icon": "music", "color": "#8B5CF6"},
    {"name": "Gaming", "icon": "gamepad-2", "color": "#22C55E"},
    {"name": "Cloud Storage", "icon": "cloud", "color": "#0EA5E9"},
    {"name": "Software", "icon": "code", "color": "#6366F1"},
    {"name": "News & Reading", "icon": "newspaper", "color": "#F59E0B"},
    {"name": "Fitness", "icon": "dumbbell", "color": "#F97316"},
    {"name": "Home & Utilities", "icon": "home", "color": "#14B8A6"},
    {"name": "Security", "icon": "shield", "color": "#64748B"},
    {"name": "Kids & Family", "icon": "baby", "color": "#EC4899"},
    {"name": "Work & Productivity", "icon": "briefcase", "color": "#3B82F6"},
    {"name": "Other", "icon": "package", "color": "#9CA3AF"},
]

AVATAR_COLORS = [
    "#EF4444", "#F97316", "#EAB308", "#22C55E", "#06B6D4",
    "#3B82F6", "#8B5CF6", "#EC4899", "#6366F1", "#14B8A6",
]


@dataclass
class AppSettings:
    """Single settings row (id is always "app")."""
    id: str = "app"
    default_currency: str = "USD"
    default_alert_days: list[int] = field(default_factory=lambda: list(DEFAULT_ALERT_DAYS))
    escalation_threshold: float = 50.0
    theme: str = "system"  # light, dark, system
    pin_verify_hash: str | None = None
    pin_verify_salt: str | None = None
    pin_encrypt_salt: str | None = None
    last_backup_date: date | None = None


THEMES = frozenset({"light", "dark", "system"})
