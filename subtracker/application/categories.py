"""
Category use cases - user-defined groupings of subscriptions

Default categories are seeded on first start (see seed.py) and can be edited
like any other; deleting a category leaves subscriptions pointing at it, the
read layer falls back to "Uncategorized".
"""
import uuid

from sqlalchemy.orm import Session

from subtracker.domain.subscription import Category, CATEGORY_FALLBACK_COLOR
from subtracker.infrastructure.db.live_query import commit
from subtracker.infrastructure.db.repository import CategoryRepository


class CategoryValidationError(ValueError):
    pass


class CategoryNotFoundError(CategoryValidationError):
    pass


class CreateCategoryUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, name: str, icon: str = "package", color: str = CATEGORY_FALLBACK_COLOR,
                sort_order: int | None = None) -> str:
        name = (name or "").strip()
        if not name:
            raise CategoryValidationError("Name cannot be empty")

        repo = CategoryRepository(self.db)
        existing = repo.get_all()
        if any(c.name.lower() == name.lower() for c in existing):
            raise CategoryValidationError(f"Category '{name}' already exists")
        if sort_order is None:
            sort_order = max((c.sort_order for c in existing), default=-1) + 1

        category = Category(id=str(uuid.uuid4()), name=name, icon=icon, color=color,
                            is_default=False, sort_order=sort_order)
        repo.add(category)
        commit(self.db)
        return category.id


class UpdateCategoryUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: str, **changes) -> Category:
        repo = CategoryRepository(self.db)
        if repo.get(category_id) is None:
            raise CategoryNotFoundError("Category not found")
        changes.pop("id", None)
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise CategoryValidationError("Name cannot be empty")
        result = repo.update(category_id, **changes)
        commit(self.db)
        return result


class DeleteCategoryUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: str) -> None:
        if not CategoryRepository(self.db).delete(category_id):
            raise CategoryNotFoundError("Category not found")
        commit(self.db)
