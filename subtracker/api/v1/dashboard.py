"""
Dashboard API endpoint - one call for the home screen
"""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, get_dismissed, get_today
from subtracker.application.alerts import DismissedAlerts
from subtracker.application.dashboard import DashboardService
from subtracker.config import get_settings


router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("/")
def get_dashboard(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    dismissed: DismissedAlerts = Depends(get_dismissed),
):
    """Totals, category breakdown, next-week charges and active alerts"""
    service = DashboardService(db)
    return {
        "today": today,
        "summary": service.get_summary(today),
        "category_breakdown": service.get_category_breakdown(today),
        "upcoming": service.get_upcoming(today, days=7),
        "alerts": service.get_alerts(today, dismissed),
        "cashflow_window_days": get_settings().CASHFLOW_WINDOW_DAYS,
    }
