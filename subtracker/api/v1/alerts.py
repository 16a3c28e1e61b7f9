"""
Alert API endpoints

Alerts are recomputed on every request; dismissing one only records its
token in the session, the subscription itself is never touched.
"""
from datetime import date

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, get_dismissed, get_today, save_dismissed, http_error
from subtracker.application.alerts import AlertKey, DismissedAlerts
from subtracker.application.dashboard import DashboardService


router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])


class DismissRequest(BaseModel):
    id: str  # "subscription_id:YYYY-MM-DD:days_before"


@router.get("/")
def list_alerts(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    dismissed: DismissedAlerts = Depends(get_dismissed),
    include_dismissed: bool = False,
):
    return DashboardService(db).get_alerts(today, None if include_dismissed else dismissed)


@router.post("/dismiss")
def dismiss_alert(
    request: Request,
    req: DismissRequest,
    dismissed: DismissedAlerts = Depends(get_dismissed),
):
    try:
        key = AlertKey.from_token(req.id)
    except ValueError:
        raise http_error(ValueError(f"Malformed alert id: {req.id}"))
    dismissed.dismiss(key)
    save_dismissed(request, dismissed)
    return {"status": "dismissed", "dismissed_count": len(dismissed)}


@router.delete("/dismissed")
def clear_dismissed(request: Request):
    """Bring back every dismissed alert for this session"""
    save_dismissed(request, DismissedAlerts())
    return {"status": "cleared"}
