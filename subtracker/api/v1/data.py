"""
Data API endpoints - JSON backup / CSV exchange
"""
from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, get_today
from subtracker.application.export_import import export_csv, export_json, import_csv, import_json
from subtracker.application.settings import UpdateSettingsUseCase


router = APIRouter(prefix="/api/v1/data", tags=["data"])


class ImportRequest(BaseModel):
    content: str


@router.get("/export/json")
def export_backup(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Full backup; also records today as the last backup date"""
    UpdateSettingsUseCase(db).execute(last_backup_date=today)
    body = export_json(db)
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="subtracker-backup-{today.isoformat()}.json"'},
    )


@router.get("/export/csv")
def export_subscriptions_csv(db: Session = Depends(get_db), today: date = Depends(get_today)):
    return Response(
        content=export_csv(db),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="subtracker-export-{today.isoformat()}.csv"'},
    )


@router.post("/import/json")
def import_backup(req: ImportRequest, db: Session = Depends(get_db)):
    """Replaces subscriptions, members and categories"""
    result = import_json(db, req.content)
    if not result.success:
        raise HTTPException(status_code=400, detail=asdict(result))
    return asdict(result)


@router.post("/import/csv")
def import_subscriptions_csv(req: ImportRequest, db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Appends subscriptions; skipped rows are listed in errors"""
    result = import_csv(db, req.content, today)
    if not result.success:
        raise HTTPException(status_code=400, detail=asdict(result))
    return asdict(result)
