"""
Collection repositories - key-indexed CRUD over the four collections.

Repositories only flush; callers finish the unit of work with
live_query.commit(db) so subscribers see one notification per commit.
"""
from dataclasses import replace
from typing import Any, Callable, Generic, TypeVar

from sqlalchemy.orm import Session

from subtracker.domain.subscription import AppSettings
from subtracker.infrastructure.db.live_query import live_query
from subtracker.infrastructure.db.mappers import (
    category_from_row, category_to_row,
    member_from_row, member_to_row,
    settings_from_row, settings_to_row,
    subscription_from_row, subscription_to_row,
)
from subtracker.infrastructure.db.models import (
    AppSettingsModel, CategoryModel, HouseholdMemberModel, SubscriptionModel,
)

T = TypeVar("T")

SUBSCRIPTIONS = "subscriptions"
HOUSEHOLD_MEMBERS = "householdMembers"
CATEGORIES = "categories"
SETTINGS = "settings"

SETTINGS_ID = "app"


class Repository(Generic[T]):
    """
    Generic repository: rows in, dataclasses out.

    Subclasses set the ORM model, the collection name, the ordering and the
    two mapper functions.
    """
    model: Any
    collection: str
    order_by: tuple = ()
    to_domain: Callable[[Any], T]
    to_row: Callable[..., Any]

    def __init__(self, db: Session):
        self.db = db

    def _touch(self) -> None:
        live_query.touch(self.db, self.collection)

    def get_all(self) -> list[T]:
        rows = self.db.query(self.model).order_by(*self.order_by).all()
        return [type(self).to_domain(r) for r in rows]

    def get(self, entity_id: str) -> T | None:
        row = self.db.get(self.model, entity_id)
        return type(self).to_domain(row) if row is not None else None

    def add(self, entity: T) -> T:
        row = type(self).to_row(entity)
        self.db.add(row)
        self.db.flush()
        self._touch()
        return type(self).to_domain(row)

    def bulk_add(self, entities: list[T]) -> int:
        for entity in entities:
            self.db.add(type(self).to_row(entity))
        self.db.flush()
        self._touch()
        return len(entities)

    def update(self, entity_id: str, **patch) -> T | None:
        """Apply a partial patch (dataclass field names). Returns None if missing."""
        row = self.db.get(self.model, entity_id)
        if row is None:
            return None
        entity = replace(type(self).to_domain(row), **patch)
        type(self).to_row(entity, row)
        self.db.flush()
        self._touch()
        return type(self).to_domain(row)

    def delete(self, entity_id: str) -> bool:
        row = self.db.get(self.model, entity_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        self._touch()
        return True

    def clear(self) -> int:
        count = self.db.query(self.model).delete()
        self.db.flush()
        self._touch()
        return count

    def count(self) -> int:
        return self.db.query(self.model).count()


class SubscriptionRepository(Repository):
    model = SubscriptionModel
    collection = SUBSCRIPTIONS
    order_by = (SubscriptionModel.name, SubscriptionModel.id)
    to_domain = staticmethod(subscription_from_row)
    to_row = staticmethod(subscription_to_row)


class HouseholdMemberRepository(Repository):
    model = HouseholdMemberModel
    collection = HOUSEHOLD_MEMBERS
    order_by = (HouseholdMemberModel.name, HouseholdMemberModel.id)
    to_domain = staticmethod(member_from_row)
    to_row = staticmethod(member_to_row)


class CategoryRepository(Repository):
    model = CategoryModel
    collection = CATEGORIES
    order_by = (CategoryModel.sort_order, CategoryModel.name)
    to_domain = staticmethod(category_from_row)
    to_row = staticmethod(category_to_row)


class SettingsRepository(Repository):
    model = AppSettingsModel
    collection = SETTINGS
    order_by = (AppSettingsModel.id,)
    to_domain = staticmethod(settings_from_row)
    to_row = staticmethod(settings_to_row)

    def put(self, settings: AppSettings) -> AppSettings:
        """Insert or overwrite the settings row."""
        row = self.db.get(AppSettingsModel, settings.id)
        row = settings_to_row(settings, row)
        self.db.add(row)
        self.db.flush()
        self._touch()
        return settings_from_row(row)

    def get_or_default(self) -> AppSettings:
        return self.get(SETTINGS_ID) or AppSettings()


for _repo in (SubscriptionRepository, HouseholdMemberRepository, CategoryRepository, SettingsRepository):
    live_query.register_loader(_repo.collection, lambda db, _r=_repo: _r(db).get_all())
