"""
Settings API endpoints (preferences, PIN, reset)
"""
from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, http_error
from subtracker.application.seed import SeedDatabaseUseCase
from subtracker.application.settings import (
    UpdateSettingsUseCase, SetPinUseCase, RemovePinUseCase, ResetAllDataUseCase,
    load_settings, has_pin,
)


router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


# === Request/Response models ===

class UpdateSettingsRequest(BaseModel):
    default_currency: str | None = None
    default_alert_days: list[int] | None = None
    escalation_threshold: float | None = None
    theme: str | None = None


class PinRequest(BaseModel):
    pin: str


class SettingsResponse(BaseModel):
    default_currency: str
    default_alert_days: list[int]
    escalation_threshold: float
    theme: str
    has_pin: bool
    last_backup_date: date | None


def _response(settings) -> SettingsResponse:
    # PIN hash and salts never leave the server
    return SettingsResponse(
        default_currency=settings.default_currency,
        default_alert_days=settings.default_alert_days,
        escalation_threshold=settings.escalation_threshold,
        theme=settings.theme,
        has_pin=has_pin(settings),
        last_backup_date=settings.last_backup_date,
    )


# === Endpoints ===

@router.get("/", response_model=SettingsResponse)
def get_settings_view(db: Session = Depends(get_db)):
    return _response(load_settings(db))


@router.patch("/", response_model=SettingsResponse)
def update_settings(req: UpdateSettingsRequest, db: Session = Depends(get_db)):
    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    try:
        settings = UpdateSettingsUseCase(db).execute(**changes)
    except ValueError as e:
        raise http_error(e)
    return _response(settings)


@router.post("/pin")
def set_pin(req: PinRequest, db: Session = Depends(get_db)):
    try:
        SetPinUseCase(db).execute(req.pin)
    except ValueError as e:
        raise http_error(e)
    return {"status": "pin_set"}


@router.post("/pin/remove")
def remove_pin(req: PinRequest, db: Session = Depends(get_db)):
    """Verify the PIN, restore encrypted notes as plain notes, drop the PIN"""
    try:
        restored = RemovePinUseCase(db).execute(req.pin)
    except ValueError as e:
        raise http_error(e)
    return {"status": "pin_removed", "notes_restored": restored}


@router.post("/reset")
def reset_all_data(db: Session = Depends(get_db)):
    """Wipe everything and reseed the defaults"""
    ResetAllDataUseCase(db).execute()
    SeedDatabaseUseCase(db).execute()
    return {"status": "reset"}
