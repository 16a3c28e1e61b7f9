"""
First-start seeding: default categories and the settings row.

Idempotent; only fills collections that are still empty.
"""
import logging
import uuid

from sqlalchemy.orm import Session

from subtracker.application.settings import default_settings
from subtracker.domain.subscription import Category, DEFAULT_CATEGORIES
from subtracker.infrastructure.db.live_query import commit
from subtracker.infrastructure.db.repository import CategoryRepository, SettingsRepository, SETTINGS_ID

logger = logging.getLogger(__name__)


class SeedDatabaseUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self) -> bool:
        """Returns True if anything was created."""
        created = False

        categories = CategoryRepository(self.db)
        if categories.count() == 0:
            categories.bulk_add([
                Category(id=str(uuid.uuid4()), is_default=True, sort_order=i, **data)
                for i, data in enumerate(DEFAULT_CATEGORIES)
            ])
            created = True

        settings = SettingsRepository(self.db)
        if settings.get(SETTINGS_ID) is None:
            settings.put(default_settings())
            created = True

        if created:
            commit(self.db)
            logger.info("Database seeded with defaults")
        return created
