"""
App settings use cases: preferences, PIN lifecycle, sensitive notes, reset.

The settings row is created by seed; until then callers get the defaults
from config (default currency, escalation threshold).
"""
import logging
from dataclasses import replace

from sqlalchemy.orm import Session

from subtracker.application.encryption import (
    create_pin_verification, verify_pin, get_encryption_key, encrypt_note, decrypt_note,
)
from subtracker.application.subscriptions import SubscriptionNotFoundError
from subtracker.config import get_settings
from subtracker.domain.subscription import AppSettings, ALERT_TIMINGS, THEMES, DEFAULT_ALERT_DAYS
from subtracker.infrastructure.db.live_query import commit
from subtracker.infrastructure.db.repository import (
    SettingsRepository, SubscriptionRepository, HouseholdMemberRepository, CategoryRepository,
)
from subtracker.utils.money import SUPPORTED_CURRENCIES

logger = logging.getLogger(__name__)

MIN_PIN_LENGTH = 4

# Fields owned by the PIN use cases, never patched directly
_PIN_FIELDS = {"pin_verify_hash", "pin_verify_salt", "pin_encrypt_salt"}


class SettingsValidationError(ValueError):
    pass


class InvalidPinError(SettingsValidationError):
    pass


def default_settings() -> AppSettings:
    config = get_settings()
    return AppSettings(
        default_currency=config.DEFAULT_CURRENCY,
        default_alert_days=list(DEFAULT_ALERT_DAYS),
        escalation_threshold=config.ESCALATION_THRESHOLD,
    )


def load_settings(db: Session) -> AppSettings:
    return SettingsRepository(db).get("app") or default_settings()


def has_pin(settings: AppSettings) -> bool:
    return bool(settings.pin_verify_hash and settings.pin_verify_salt and settings.pin_encrypt_salt)


def _validate(settings: AppSettings) -> None:
    if settings.default_currency not in SUPPORTED_CURRENCIES:
        raise SettingsValidationError(f"Unsupported currency: {settings.default_currency}")
    bad = set(settings.default_alert_days) - ALERT_TIMINGS
    if bad:
        raise SettingsValidationError(f"Unsupported alert lead times: {sorted(bad)}")
    if settings.escalation_threshold < 0:
        raise SettingsValidationError("Escalation threshold cannot be negative")
    if settings.theme not in THEMES:
        raise SettingsValidationError(f"Unknown theme: {settings.theme}")


class UpdateSettingsUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, **changes) -> AppSettings:
        for key in _PIN_FIELDS | {"id"}:
            changes.pop(key, None)
        if "default_alert_days" in changes:
            changes["default_alert_days"] = sorted(set(changes["default_alert_days"]), reverse=True)
        updated = replace(load_settings(self.db), **changes)
        _validate(updated)
        result = SettingsRepository(self.db).put(updated)
        commit(self.db)
        return result


class SetPinUseCase:
    """Set the PIN for the first time; existing PINs must be removed first."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, pin: str) -> None:
        if len(pin) < MIN_PIN_LENGTH:
            raise SettingsValidationError(f"PIN must be at least {MIN_PIN_LENGTH} digits")
        settings = load_settings(self.db)
        if has_pin(settings):
            raise SettingsValidationError("PIN is already set")
        material = create_pin_verification(pin, get_settings().PIN_KDF_ITERATIONS)
        SettingsRepository(self.db).put(replace(settings, **material))
        commit(self.db)
        logger.info("PIN set")


class RemovePinUseCase:
    """
    Remove the PIN after verifying it.

    Encrypted notes become unreadable once the salts are gone, so they are
    decrypted back into plain notes first.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, pin: str) -> int:
        settings = load_settings(self.db)
        key = unlock(settings, pin)

        subs_repo = SubscriptionRepository(self.db)
        restored = 0
        for sub in subs_repo.get_all():
            if not sub.sensitive_notes:
                continue
            plaintext = decrypt_note(sub.sensitive_notes, key)
            if plaintext is None:
                logger.warning("Dropping undecryptable sensitive note: subscription=%s", sub.id)
            else:
                notes = f"{sub.notes}\n\n{plaintext}" if sub.notes else plaintext
                subs_repo.update(sub.id, notes=notes)
                restored += 1
            subs_repo.update(sub.id, sensitive_notes=None)

        SettingsRepository(self.db).put(
            replace(settings, pin_verify_hash=None, pin_verify_salt=None, pin_encrypt_salt=None)
        )
        commit(self.db)
        logger.info("PIN removed, %d sensitive note(s) restored to plain notes", restored)
        return restored


def unlock(settings: AppSettings, pin: str) -> bytes:
    """Verify the PIN and derive the note encryption key."""
    if not has_pin(settings):
        raise SettingsValidationError("No PIN is set")
    iterations = get_settings().PIN_KDF_ITERATIONS
    if not verify_pin(pin, settings.pin_verify_hash, settings.pin_verify_salt, iterations):
        raise InvalidPinError("Incorrect PIN")
    return get_encryption_key(pin, settings.pin_encrypt_salt, iterations)


class SetSensitiveNoteUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: str, pin: str, plaintext: str | None) -> None:
        key = unlock(load_settings(self.db), pin)
        token = encrypt_note(plaintext, key) if plaintext else None
        if SubscriptionRepository(self.db).update(sub_id, sensitive_notes=token) is None:
            raise SubscriptionNotFoundError("Subscription not found")
        commit(self.db)


class RevealSensitiveNoteUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, sub_id: str, pin: str) -> str | None:
        key = unlock(load_settings(self.db), pin)
        sub = SubscriptionRepository(self.db).get(sub_id)
        if sub is None:
            raise SubscriptionNotFoundError("Subscription not found")
        if not sub.sensitive_notes:
            return None
        return decrypt_note(sub.sensitive_notes, key)


class ResetAllDataUseCase:
    """Wipe all four collections. Callers reseed afterwards."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self) -> None:
        counts = {
            "subscriptions": SubscriptionRepository(self.db).clear(),
            "members": HouseholdMemberRepository(self.db).clear(),
            "categories": CategoryRepository(self.db).clear(),
            "settings": SettingsRepository(self.db).clear(),
        }
        commit(self.db)
        logger.info("All data reset: %s", counts)
