"""
Live queries - push-based recomputation of derived views.

Repositories mark the collections they touch on the session; commit()
commits and then re-invokes every subscriber of each touched collection with
the freshly loaded list. Subscribers only ever receive materialized lists.

Usage:
    unsubscribe = live_query.subscribe("subscriptions", lambda subs: ...)
    repo.add(sub)
    commit(db)          # callback fires with all subscriptions
    unsubscribe()
"""
import logging
from collections import defaultdict
from typing import Any, Callable

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_TOUCHED_KEY = "live_query_touched"

Loader = Callable[[Session], list[Any]]
Callback = Callable[[list[Any]], None]


class LiveQuery:
    def __init__(self):
        self._loaders: dict[str, Loader] = {}
        self._subscribers: dict[str, list[Callback]] = defaultdict(list)

    def register_loader(self, collection: str, loader: Loader) -> None:
        self._loaders[collection] = loader

    def subscribe(self, collection: str, callback: Callback) -> Callable[[], None]:
        """Register a callback; returns a function that removes it."""
        if collection not in self._loaders:
            raise ValueError(f"unknown collection: {collection}")
        self._subscribers[collection].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[collection]:
                self._subscribers[collection].remove(callback)

        return unsubscribe

    def touch(self, db: Session, collection: str) -> None:
        db.info.setdefault(_TOUCHED_KEY, set()).add(collection)

    def commit(self, db: Session) -> None:
        touched = db.info.pop(_TOUCHED_KEY, set())
        db.commit()
        for collection in sorted(touched):
            self.notify(db, collection)

    def rollback(self, db: Session) -> None:
        db.info.pop(_TOUCHED_KEY, None)
        db.rollback()

    def notify(self, db: Session, collection: str) -> None:
        callbacks = list(self._subscribers.get(collection, ()))
        if not callbacks:
            return
        items = self._loaders[collection](db)
        for cb in callbacks:
            try:
                cb(items)
            except Exception:
                logger.exception("Live query callback failed for collection=%s", collection)


live_query = LiveQuery()


def commit(db: Session) -> None:
    """Commit and notify live-query subscribers of touched collections."""
    live_query.commit(db)


def rollback(db: Session) -> None:
    live_query.rollback(db)
