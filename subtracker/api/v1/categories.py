"""
Category API endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from subtracker.api.deps import get_db, http_error
from subtracker.application.categories import (
    CreateCategoryUseCase, UpdateCategoryUseCase, DeleteCategoryUseCase,
)
from subtracker.infrastructure.db.repository import CategoryRepository


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


# === Request/Response models ===

class CreateCategoryRequest(BaseModel):
    name: str
    icon: str = "package"
    color: str = "#9CA3AF"
    sort_order: int | None = None


class UpdateCategoryRequest(BaseModel):
    name: str | None = None
    icon: str | None = None
    color: str | None = None
    sort_order: int | None = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    icon: str
    color: str
    is_default: bool
    sort_order: int


# === Endpoints ===

@router.get("/", response_model=list[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    """All categories ordered by sort_order"""
    return [CategoryResponse.model_validate(c) for c in CategoryRepository(db).get_all()]


@router.post("/", response_model=CategoryResponse, status_code=201)
def create_category(req: CreateCategoryRequest, db: Session = Depends(get_db)):
    try:
        category_id = CreateCategoryUseCase(db).execute(
            name=req.name,
            icon=req.icon,
            color=req.color,
            sort_order=req.sort_order,
        )
    except ValueError as e:
        raise http_error(e)
    return CategoryResponse.model_validate(CategoryRepository(db).get(category_id))


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(category_id: str, req: UpdateCategoryRequest, db: Session = Depends(get_db)):
    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    try:
        category = UpdateCategoryUseCase(db).execute(category_id, **changes)
    except ValueError as e:
        raise http_error(e)
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}")
def delete_category(category_id: str, db: Session = Depends(get_db)):
    """Subscriptions keep the dangling id and show as "Unknown" """
    try:
        DeleteCategoryUseCase(db).execute(category_id)
    except ValueError as e:
        raise http_error(e)
    return {"status": "deleted"}
