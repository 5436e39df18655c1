"""Per-user document store with push notifications.

Two kinds of per-user data live in the store:

* single documents (``settings``, ``workout_data``), keyed by the user id;
* collections of entries (``calorie_entries``, ``weight_entries``), each
  document tagged with its owner's id and a store-assigned identity.

Watching a document or collection delivers a full snapshot once when the
subscription opens and again after every change. Callers never receive
diffs.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from models.database import CALORIE_ENTRIES, USER_SETTINGS, WEIGHT_ENTRIES, WORKOUT_DATA
from utils.helpers import serialize_document
from utils.logger import setup_logger

logger = setup_logger(__name__)

# Logical names callers use; mapped onto MongoDB collections below.
SETTINGS = "settings"
WORKOUTS = "workout_data"
CALORIES = "calorie_entries"
WEIGHTS = "weight_entries"

DOCUMENTS = {SETTINGS: USER_SETTINGS, WORKOUTS: WORKOUT_DATA}
COLLECTIONS = {CALORIES: CALORIE_ENTRIES, WEIGHTS: WEIGHT_ENTRIES}

# How long one change-stream poll waits on the server; bounds the drain after an event.
WATCH_AWAIT_MS = 200

DocumentCallback = Callable[[Optional[Dict[str, Any]]], None]
CollectionCallback = Callable[[List[Dict[str, Any]]], None]


class StoreError(Exception):
    """The store rejected or could not complete an operation."""


def new_document_id() -> str:
    """Identity assigned to a newly created entry."""
    return uuid.uuid4().hex


class Subscription(ABC):
    """Cancellation handle for one live subscription."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivering snapshots. Safe to call more than once."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...


class DocumentStore(ABC):
    """Operations the data sync layer needs from the remote store."""

    @abstractmethod
    async def get_document(self, user_id: str, name: str) -> Optional[Dict[str, Any]]:
        """Read a single per-user document, or None if it does not exist."""

    @abstractmethod
    async def set_document(self, user_id: str, name: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Overwrite (or merge into) a single per-user document."""

    @abstractmethod
    async def list_documents(self, user_id: str, name: str) -> List[Dict[str, Any]]:
        """Read every entry of a per-user collection, each with its ``id``."""

    @abstractmethod
    async def add_document(self, user_id: str, name: str, data: Dict[str, Any]) -> str:
        """Create one entry and return its assigned id."""

    @abstractmethod
    async def update_document(self, user_id: str, name: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing entry. Unknown ids are left alone."""

    @abstractmethod
    async def delete_document(self, user_id: str, name: str, doc_id: str) -> None:
        """Remove one entry."""

    @abstractmethod
    async def delete_documents(self, user_id: str, name: str, doc_ids: Sequence[str]) -> None:
        """Remove several entries atomically."""

    @abstractmethod
    async def add_documents(self, user_id: str, name: str, items: Sequence[Dict[str, Any]]) -> List[str]:
        """Create several entries atomically and return their ids."""

    @abstractmethod
    def watch_document(self, user_id: str, name: str, on_change: DocumentCallback) -> Subscription:
        """Push the document (or None) now and after every change."""

    @abstractmethod
    def watch_collection(self, user_id: str, name: str, on_change: CollectionCallback) -> Subscription:
        """Push the collection's entries now and after every change."""


class ChangeStreamSubscription(Subscription):
    """Subscription backed by a MongoDB change stream.

    The stream is opened before the first snapshot is read so no change
    that lands in between is missed. Each event triggers a fresh read;
    events already queued behind it are drained first, so a batch write
    costs one read.
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        pipeline: List[Dict[str, Any]],
        read_snapshot: Callable[[], Awaitable[Any]],
        on_change: Callable[[Any], None],
        label: str,
        **watch_options: Any,
    ):
        self._collection = collection
        self._pipeline = pipeline
        self._watch_options = watch_options
        self._read_snapshot = read_snapshot
        self._on_change = on_change
        self._label = label
        self._cancelled = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self):
        try:
            async with self._collection.watch(self._pipeline, **self._watch_options) as stream:
                self._deliver(await self._read_snapshot())
                async for _change in stream:
                    while await stream.try_next() is not None:
                        pass
                    self._deliver(await self._read_snapshot())
        except (PyMongoError, StoreError) as e:
            logger.error(f"Subscription {self._label} stopped: {e}", exc_info=True)

    def _deliver(self, snapshot: Any):
        if not self._cancelled:
            self._on_change(snapshot)

    def cancel(self) -> None:
        if not self._cancelled:
            self._cancelled = True
            self._task.cancel()
            logger.debug(f"Subscription {self._label} cancelled")

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class MongoDocumentStore(DocumentStore):
    """DocumentStore on MongoDB (replica set required for transactions and change streams)."""

    def __init__(self, client: AsyncIOMotorClient, database: AsyncIOMotorDatabase):
        self.client = client
        self.database = database

    def _document_collection(self, name: str) -> AsyncIOMotorCollection:
        try:
            return self.database[DOCUMENTS[name]]
        except KeyError:
            raise ValueError(f"Unknown document: {name}") from None

    def _entry_collection(self, name: str) -> AsyncIOMotorCollection:
        try:
            return self.database[COLLECTIONS[name]]
        except KeyError:
            raise ValueError(f"Unknown collection: {name}") from None

    async def get_document(self, user_id: str, name: str) -> Optional[Dict[str, Any]]:
        try:
            document = await self._document_collection(name).find_one({"_id": user_id})
        except PyMongoError as e:
            raise StoreError(f"Failed to read {name} for {user_id}: {e}") from e
        if document is None:
            return None
        document.pop("_id", None)
        return document

    async def set_document(self, user_id: str, name: str, data: Dict[str, Any], merge: bool = False) -> None:
        collection = self._document_collection(name)
        try:
            if merge:
                await collection.update_one({"_id": user_id}, {"$set": data}, upsert=True)
            else:
                await collection.replace_one({"_id": user_id}, data, upsert=True)
        except PyMongoError as e:
            raise StoreError(f"Failed to write {name} for {user_id}: {e}") from e

    async def list_documents(self, user_id: str, name: str) -> List[Dict[str, Any]]:
        try:
            cursor = self._entry_collection(name).find({"user_id": user_id})
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(f"Failed to read {name} for {user_id}: {e}") from e
        return [serialize_document(d) for d in documents]

    async def add_document(self, user_id: str, name: str, data: Dict[str, Any]) -> str:
        doc_id = new_document_id()
        try:
            await self._entry_collection(name).insert_one({**data, "_id": doc_id, "user_id": user_id})
        except PyMongoError as e:
            raise StoreError(f"Failed to add to {name} for {user_id}: {e}") from e
        return doc_id

    async def update_document(self, user_id: str, name: str, doc_id: str, fields: Dict[str, Any]) -> None:
        if not fields:
            return
        try:
            await self._entry_collection(name).update_one(
                {"_id": doc_id, "user_id": user_id},
                {"$set": fields},
            )
        except PyMongoError as e:
            raise StoreError(f"Failed to update {name}/{doc_id}: {e}") from e

    async def delete_document(self, user_id: str, name: str, doc_id: str) -> None:
        try:
            await self._entry_collection(name).delete_one({"_id": doc_id, "user_id": user_id})
        except PyMongoError as e:
            raise StoreError(f"Failed to delete {name}/{doc_id}: {e}") from e

    async def delete_documents(self, user_id: str, name: str, doc_ids: Sequence[str]) -> None:
        if not doc_ids:
            return
        collection = self._entry_collection(name)
        try:
            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    await collection.delete_many(
                        {"_id": {"$in": list(doc_ids)}, "user_id": user_id},
                        session=session,
                    )
        except PyMongoError as e:
            raise StoreError(f"Failed to batch delete {name} for {user_id}: {e}") from e

    async def add_documents(self, user_id: str, name: str, items: Sequence[Dict[str, Any]]) -> List[str]:
        if not items:
            return []
        collection = self._entry_collection(name)
        documents = [{**item, "_id": new_document_id(), "user_id": user_id} for item in items]
        try:
            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    await collection.insert_many(documents, session=session)
        except PyMongoError as e:
            raise StoreError(f"Failed to batch create {name} for {user_id}: {e}") from e
        return [d["_id"] for d in documents]

    def watch_document(self, user_id: str, name: str, on_change: DocumentCallback) -> Subscription:
        collection = self._document_collection(name)
        pipeline = [{"$match": {"documentKey._id": user_id}}]
        return ChangeStreamSubscription(
            collection,
            pipeline,
            lambda: self.get_document(user_id, name),
            on_change,
            label=f"{name}:{user_id}",
            max_await_time_ms=WATCH_AWAIT_MS,
        )

    def watch_collection(self, user_id: str, name: str, on_change: CollectionCallback) -> Subscription:
        collection = self._entry_collection(name)
        # Deletes carry no body; the pre-image (enabled in init_mongo) names the owner.
        pipeline = [{"$match": {"$or": [
            {"fullDocument.user_id": user_id},
            {"fullDocumentBeforeChange.user_id": user_id},
        ]}}]
        return ChangeStreamSubscription(
            collection,
            pipeline,
            lambda: self.list_documents(user_id, name),
            on_change,
            label=f"{name}:{user_id}",
            full_document="updateLookup",
            full_document_before_change="whenAvailable",
            max_await_time_ms=WATCH_AWAIT_MS,
        )
