"""
Cashflow API endpoints (upcoming charges, calendar month, projection)
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, get_today
from subtracker.application.cashflow import project_monthly_totals
from subtracker.application.dashboard import DashboardService
from subtracker.config import get_settings
from subtracker.infrastructure.db.repository import SubscriptionRepository


router = APIRouter(prefix="/api/v1/cashflow", tags=["cashflow"])


@router.get("/")
def upcoming_cashflow(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    days: int | None = Query(default=None, ge=1, le=366),
):
    """Charges in [today, today + days]; window defaults to CASHFLOW_WINDOW_DAYS"""
    return DashboardService(db).get_upcoming(today, days or get_settings().CASHFLOW_WINDOW_DAYS)


@router.get("/calendar")
def calendar_month(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
):
    return DashboardService(db).get_calendar_month(year or today.year, month or today.month, today)


@router.get("/projection")
def monthly_projection(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    months: int = Query(default=6, ge=1, le=24),
):
    """Projected cash out per calendar month"""
    subs = SubscriptionRepository(db).get_all()
    return [
        {"year": y, "month": m, "total": total}
        for y, m, total in project_monthly_totals(subs, today, months)
    ]
