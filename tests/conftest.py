"""Shared fixtures for the test suite."""

import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_auth_provider, get_session_manager
from api.main import app
from services.auth_service import AuthProvider
from services.auth_store import AuthStore, EmailTakenError, new_session_token
from services.session_manager import SessionManager
from services.store import DocumentStore, StoreError, Subscription, new_document_id


# ---------------------------------------------------------------------------
# In-memory document store (no real MongoDB needed)
# ---------------------------------------------------------------------------

class FakeSubscription(Subscription):
    def __init__(self, store: "FakeStore", key: Tuple[str, str, str], callback: Callable):
        self._store = store
        self._key = key
        self._callback = callback
        self._cancelled = False

    def deliver(self, snapshot):
        if not self._cancelled:
            self._callback(snapshot)

    def cancel(self) -> None:
        self._cancelled = True
        watchers = self._store.watchers.get(self._key, [])
        if self in watchers:
            watchers.remove(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class FakeStore(DocumentStore):
    """DocumentStore kept in dicts. Watchers are notified synchronously after each commit."""

    def __init__(self):
        self.documents: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.collections: Dict[Tuple[str, str], Dict[str, Dict[str, Any]]] = {}
        self.watchers: Dict[Tuple[str, str, str], List[FakeSubscription]] = {}
        self.writes: List[Tuple[str, str, Any]] = []
        self.fail_writes = False

    # helpers -------------------------------------------------------------

    def _check_writable(self):
        if self.fail_writes:
            raise StoreError("simulated store outage")

    def _entries(self, user_id: str, name: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault((user_id, name), {})

    def snapshot_collection(self, user_id: str, name: str) -> List[Dict[str, Any]]:
        return [{**copy.deepcopy(data), "id": doc_id} for doc_id, data in self._entries(user_id, name).items()]

    def snapshot_document(self, user_id: str, name: str) -> Optional[Dict[str, Any]]:
        document = self.documents.get((user_id, name))
        return copy.deepcopy(document) if document is not None else None

    def _notify_collection(self, user_id: str, name: str):
        for watcher in list(self.watchers.get(("collection", user_id, name), [])):
            watcher.deliver(self.snapshot_collection(user_id, name))

    def _notify_document(self, user_id: str, name: str):
        for watcher in list(self.watchers.get(("document", user_id, name), [])):
            watcher.deliver(self.snapshot_document(user_id, name))

    def active_watchers(self, user_id: str) -> int:
        return sum(len(w) for key, w in self.watchers.items() if key[1] == user_id)

    # DocumentStore -------------------------------------------------------

    async def get_document(self, user_id, name):
        return self.snapshot_document(user_id, name)

    async def set_document(self, user_id, name, data, merge=False):
        self._check_writable()
        self.writes.append(("set_document", name, copy.deepcopy(data)))
        if merge and (user_id, name) in self.documents:
            self.documents[(user_id, name)].update(copy.deepcopy(data))
        else:
            self.documents[(user_id, name)] = copy.deepcopy(data)
        self._notify_document(user_id, name)

    async def list_documents(self, user_id, name):
        return self.snapshot_collection(user_id, name)

    async def add_document(self, user_id, name, data):
        self._check_writable()
        doc_id = new_document_id()
        self.writes.append(("add_document", name, copy.deepcopy(data)))
        self._entries(user_id, name)[doc_id] = copy.deepcopy(data)
        self._notify_collection(user_id, name)
        return doc_id

    async def update_document(self, user_id, name, doc_id, fields):
        self._check_writable()
        self.writes.append(("update_document", name, copy.deepcopy(fields)))
        entries = self._entries(user_id, name)
        if doc_id in entries:
            entries[doc_id].update(copy.deepcopy(fields))
            self._notify_collection(user_id, name)

    async def delete_document(self, user_id, name, doc_id):
        self._check_writable()
        self.writes.append(("delete_document", name, doc_id))
        if self._entries(user_id, name).pop(doc_id, None) is not None:
            self._notify_collection(user_id, name)

    async def delete_documents(self, user_id, name, doc_ids: Sequence[str]):
        self._check_writable()
        self.writes.append(("delete_documents", name, list(doc_ids)))
        entries = self._entries(user_id, name)
        for doc_id in doc_ids:
            entries.pop(doc_id, None)
        self._notify_collection(user_id, name)

    async def add_documents(self, user_id, name, items):
        self._check_writable()
        self.writes.append(("add_documents", name, copy.deepcopy(list(items))))
        entries = self._entries(user_id, name)
        ids = []
        for item in items:
            doc_id = new_document_id()
            entries[doc_id] = copy.deepcopy(item)
            ids.append(doc_id)
        self._notify_collection(user_id, name)
        return ids

    def watch_document(self, user_id, name, on_change):
        key = ("document", user_id, name)
        subscription = FakeSubscription(self, key, on_change)
        self.watchers.setdefault(key, []).append(subscription)
        subscription.deliver(self.snapshot_document(user_id, name))
        return subscription

    def watch_collection(self, user_id, name, on_change):
        key = ("collection", user_id, name)
        subscription = FakeSubscription(self, key, on_change)
        self.watchers.setdefault(key, []).append(subscription)
        subscription.deliver(self.snapshot_collection(user_id, name))
        return subscription


class DeferredFakeStore(FakeStore):
    """FakeStore whose first snapshot arrives on a later loop iteration, like a change stream."""

    def watch_document(self, user_id, name, on_change):
        key = ("document", user_id, name)
        subscription = FakeSubscription(self, key, on_change)
        self.watchers.setdefault(key, []).append(subscription)
        asyncio.get_running_loop().call_later(
            0.01, lambda: subscription.deliver(self.snapshot_document(user_id, name))
        )
        return subscription

    def watch_collection(self, user_id, name, on_change):
        key = ("collection", user_id, name)
        subscription = FakeSubscription(self, key, on_change)
        self.watchers.setdefault(key, []).append(subscription)
        asyncio.get_running_loop().call_later(
            0.01, lambda: subscription.deliver(self.snapshot_collection(user_id, name))
        )
        return subscription


class StalledFakeStore(FakeStore):
    """FakeStore whose subscriptions never deliver, like a change stream that failed to open."""

    def watch_document(self, user_id, name, on_change):
        key = ("document", user_id, name)
        subscription = FakeSubscription(self, key, on_change)
        self.watchers.setdefault(key, []).append(subscription)
        return subscription

    def watch_collection(self, user_id, name, on_change):
        key = ("collection", user_id, name)
        subscription = FakeSubscription(self, key, on_change)
        self.watchers.setdefault(key, []).append(subscription)
        return subscription


class FakeAuthStore(AuthStore):
    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.sessions: Dict[str, Dict[str, Any]] = {}

    async def get_user_by_email(self, email):
        return next((u for u in self.users.values() if u["email"] == email), None)

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def create_user(self, email, password_hash):
        if await self.get_user_by_email(email):
            raise EmailTakenError(email)
        user = {
            "_id": new_document_id(),
            "email": email,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }
        self.users[user["_id"]] = user
        return user

    async def create_session(self, user_id, ttl_seconds):
        token = new_session_token()
        self.sessions[token] = {
            "_id": token,
            "user_id": user_id,
            "expires_at": datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
        }
        return token

    async def get_session(self, token):
        session = self.sessions.get(token)
        if session is None or session["expires_at"] <= datetime.now(timezone.utc):
            return None
        return session

    async def delete_session(self, token):
        session = self.sessions.pop(token, None)
        return session["user_id"] if session else None

    async def count_sessions(self, user_id):
        now = datetime.now(timezone.utc)
        return sum(1 for s in self.sessions.values() if s["user_id"] == user_id and s["expires_at"] > now)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def deferred_store():
    return DeferredFakeStore()


@pytest.fixture()
def stalled_store():
    return StalledFakeStore()


@pytest.fixture()
def auth_store():
    return FakeAuthStore()


@pytest.fixture()
def auth(auth_store):
    return AuthProvider(auth_store, session_timeout=3600, min_password_length=6)


@pytest.fixture()
def sessions(store, auth):
    return SessionManager(store, auth)


@pytest.fixture()
async def client(auth, sessions):
    """HTTP client with the store and auth provider swapped for fakes."""
    app.dependency_overrides[get_auth_provider] = lambda: auth
    app.dependency_overrides[get_session_manager] = lambda: sessions
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
async def signed_in(auth):
    """Sign up a user; returns (user, auth headers)."""
    user, token = await auth.sign_up("runner@example.com", "secret123")
    return user, {"Authorization": f"Bearer {token}"}
