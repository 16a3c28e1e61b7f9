"""
Insights API endpoint
"""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, get_today
from subtracker.application.dashboard import DashboardService


router = APIRouter(prefix="/api/v1/insights", tags=["insights"])


@router.get("/")
def get_insights(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Waste, low value, duplicates, category overlap and price increases"""
    return DashboardService(db).get_insights(today)
