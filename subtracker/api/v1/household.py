"""
Household API endpoints
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, get_today, http_error
from subtracker.application.dashboard import DashboardService
from subtracker.application.household import (
    CreateMemberUseCase, UpdateMemberUseCase, DeleteMemberUseCase, MemberNotFoundError,
)
from subtracker.infrastructure.db.repository import HouseholdMemberRepository


router = APIRouter(prefix="/api/v1/household", tags=["household"])


# === Request/Response models ===

class CreateMemberRequest(BaseModel):
    name: str
    role: str = "member"
    avatar_color: str | None = None
    avatar_url: str | None = None


class UpdateMemberRequest(BaseModel):
    name: str | None = None
    role: str | None = None
    avatar_color: str | None = None
    avatar_url: str | None = None


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    role: str
    avatar_color: str
    avatar_url: str | None
    created_at: datetime | None


# === Endpoints ===

@router.get("/", response_model=list[MemberResponse])
def list_members(db: Session = Depends(get_db)):
    return [MemberResponse.model_validate(m) for m in HouseholdMemberRepository(db).get_all()]


@router.get("/spend")
def household_spend(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Monthly cost per payer"""
    return DashboardService(db).get_household_spend(today)


@router.post("/", response_model=MemberResponse, status_code=201)
def create_member(req: CreateMemberRequest, db: Session = Depends(get_db)):
    try:
        member_id = CreateMemberUseCase(db).execute(
            name=req.name,
            role=req.role,
            avatar_color=req.avatar_color,
            avatar_url=req.avatar_url,
        )
    except ValueError as e:
        raise http_error(e)
    return MemberResponse.model_validate(HouseholdMemberRepository(db).get(member_id))


@router.get("/{member_id}/subscriptions")
def member_subscriptions(member_id: str, db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Subscriptions the member pays for, owns or uses"""
    if HouseholdMemberRepository(db).get(member_id) is None:
        raise http_error(MemberNotFoundError("Member not found"))
    return DashboardService(db).get_member_subscriptions(member_id, today)


@router.patch("/{member_id}", response_model=MemberResponse)
def update_member(member_id: str, req: UpdateMemberRequest, db: Session = Depends(get_db)):
    changes = req.model_dump(exclude_unset=True)
    for key in ("name", "role", "avatar_color"):
        if changes.get(key, "") is None:
            changes.pop(key)
    try:
        member = UpdateMemberUseCase(db).execute(member_id, **changes)
    except ValueError as e:
        raise http_error(e)
    return MemberResponse.model_validate(member)


@router.delete("/{member_id}")
def delete_member(member_id: str, db: Session = Depends(get_db)):
    try:
        DeleteMemberUseCase(db).execute(member_id)
    except ValueError as e:
        raise http_error(e)
    return {"status": "deleted"}
