"""
Durable storage for lost/found postings and the claim log.

Postings live in ``lostItems`` / ``foundItems``; claim records in
``lostAndFoundLogs``. Besides plain reads and writes the repository offers a
live feed: ``subscribe()`` hands out an async iterator that yields the full
list of active postings (newest first) when first awaited and again after every
create or delete in that collection.
"""

import asyncio
import logging
import threading
import uuid
from collections import defaultdict
from typing import Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, or_, select

from app.models.enums import Collection, ItemStatus
from app.models.found_item import FoundItem
from app.models.lost_and_found_log import LostAndFoundLog
from app.models.lost_item import LostItem
from app.utils.app_error import PersistenceError

logger = logging.getLogger(__name__)

MODELS = {
    Collection.LOST_ITEMS: LostItem,
    Collection.FOUND_ITEMS: FoundItem,
    Collection.LOGS: LostAndFoundLog,
}

POSTING_COLLECTIONS = (Collection.LOST_ITEMS, Collection.FOUND_ITEMS)


def _as_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class FeedSubscription:
    """Async iterator over snapshots of one collection's active feed.

    Writers only flag the feed as changed; each step of the iteration reads
    the active set fresh, so a delivered snapshot is never older than the
    last change seen. Any number of unread changes collapse into one flag.
    """

    def __init__(self, repository: "ItemRepository", collection: Collection, loop: asyncio.AbstractEventLoop):
        self.collection = collection
        self._repository = repository
        self._loop = loop
        self._changed = asyncio.Event()
        # first read happens right away
        self._changed.set()
        self.closed = False

    @property
    def pending(self) -> bool:
        return self._changed.is_set()

    def notify(self):
        if self.closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._changed.set)
        except RuntimeError:
            # subscriber's loop is gone
            self.close()

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._repository._unsubscribe(self)
        try:
            self._loop.call_soon_threadsafe(self._changed.set)
        except RuntimeError:
            pass

    def __aiter__(self):
        return self

    async def __anext__(self) -> list:
        if self.closed:
            raise StopAsyncIteration
        await self._changed.wait()
        if self.closed:
            raise StopAsyncIteration

        # cleared before the read, so a write landing mid-read flags again
        self._changed.clear()
        return await asyncio.to_thread(self._repository.list_active, self.collection)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.close()


class ItemRepository:
    def __init__(self, engine):
        self.engine = engine
        self._subscriptions: Dict[Collection, List[FeedSubscription]] = defaultdict(list)
        self._lock = threading.Lock()

    # -- writes -------------------------------------------------------------

    def create(self, collection: Collection, record) -> uuid.UUID:
        collection = Collection(collection)
        model = MODELS[collection]
        if not isinstance(record, model):
            raise TypeError(f"{collection.value} stores {model.__name__}, got {type(record).__name__}")

        try:
            with Session(self.engine) as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                record_id = record.id
        except SQLAlchemyError as exc:
            logger.error("Write to %s failed: %s", collection.value, exc)
            raise PersistenceError(f"Could not save record to {collection.value}") from exc

        self._publish(collection)
        return record_id

    def delete(self, collection: Collection, record_id: Union[str, uuid.UUID]) -> None:
        """Delete by id. Deleting an id that is not there is a no-op."""
        collection = Collection(collection)
        model = MODELS[collection]
        key = _as_uuid(record_id)
        if key is None:
            return

        try:
            with Session(self.engine) as session:
                record = session.get(model, key)
                if record is None:
                    return
                session.delete(record)
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Delete %s from %s failed: %s", key, collection.value, exc)
            raise PersistenceError(f"Could not delete record from {collection.value}") from exc

        self._publish(collection)

    # -- reads --------------------------------------------------------------

    def get(self, collection: Collection, record_id):
        key = _as_uuid(record_id)
        if key is None:
            return None
        try:
            with Session(self.engine) as session:
                return session.get(MODELS[Collection(collection)], key)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read from {Collection(collection).value}") from exc

    def exists(self, collection: Collection, record_id) -> bool:
        return self.get(collection, record_id) is not None

    def list_active(self, collection: Collection) -> list:
        collection = Collection(collection)
        if collection not in POSTING_COLLECTIONS:
            raise ValueError(f"{collection.value} has no active feed")
        model = MODELS[collection]

        query = (
            select(model)
            .where(model.status == ItemStatus.ACTIVE.value)
            .order_by(model.created_at.desc())
        )
        try:
            with Session(self.engine) as session:
                return list(session.exec(query).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read from {collection.value}") from exc

    def list_logs_for_user(self, user_id: str) -> List[LostAndFoundLog]:
        """Claim logs where the user was either the poster or the claimer."""
        query = (
            select(LostAndFoundLog)
            .where(or_(LostAndFoundLog.poster_user_id == user_id, LostAndFoundLog.claimer_user_id == user_id))
            .order_by(LostAndFoundLog.resolved_at.desc())
        )
        try:
            with Session(self.engine) as session:
                return list(session.exec(query).all())
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not read claim logs") from exc

    # -- live feed ----------------------------------------------------------

    def subscribe(self, collection: Collection) -> FeedSubscription:
        """Open a live feed. Must be called from inside a running event loop.

        No query runs here; the first snapshot is read when the feed is
        first awaited.
        """
        collection = Collection(collection)
        if collection not in POSTING_COLLECTIONS:
            raise ValueError(f"{collection.value} has no active feed")

        subscription = FeedSubscription(self, collection, asyncio.get_running_loop())
        with self._lock:
            self._subscriptions[collection].append(subscription)

        return subscription

    def _unsubscribe(self, subscription: FeedSubscription):
        with self._lock:
            subscribers = self._subscriptions.get(subscription.collection, [])
            if subscription in subscribers:
                subscribers.remove(subscription)

    def _publish(self, collection: Collection):
        with self._lock:
            subscribers = list(self._subscriptions.get(collection, []))

        for subscription in subscribers:
            subscription.notify()
