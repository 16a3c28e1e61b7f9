"""Tests for first-start seeding."""
from subtracker.application.categories import CreateCategoryUseCase
from subtracker.application.seed import SeedDatabaseUseCase
from subtracker.domain.subscription import DEFAULT_CATEGORIES
from subtracker.infrastructure.db.repository import CategoryRepository, SettingsRepository, SETTINGS_ID


def test_seed_creates_defaults(db_session):
    assert SeedDatabaseUseCase(db_session).execute() is True

    categories = CategoryRepository(db_session).get_all()
    assert [c.name for c in categories] == [c["name"] for c in DEFAULT_CATEGORIES]
    assert [c.sort_order for c in categories] == list(range(len(DEFAULT_CATEGORIES)))
    assert all(c.is_default for c in categories)
    assert SettingsRepository(db_session).get(SETTINGS_ID) is not None


def test_seed_is_idempotent(db_session):
    SeedDatabaseUseCase(db_session).execute()
    assert SeedDatabaseUseCase(db_session).execute() is False
    assert CategoryRepository(db_session).count() == len(DEFAULT_CATEGORIES)


def test_seed_keeps_user_categories(db_session):
    CreateCategoryUseCase(db_session).execute(name="Mine")
    SeedDatabaseUseCase(db_session).execute()
    assert [c.name for c in CategoryRepository(db_session).get_all()] == ["Mine"]
    assert SettingsRepository(db_session).count() == 1
