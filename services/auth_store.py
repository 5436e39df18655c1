"""Account and session persistence for the auth provider."""

import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from models.database import AUTH_SESSIONS, USERS
from services.store import StoreError, new_document_id


class EmailTakenError(Exception):
    """An account with this email already exists."""


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


class AuthStore(ABC):
    """Users and their sign-in sessions."""

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def create_user(self, email: str, password_hash: bytes) -> Dict[str, Any]:
        """Insert an account; raises EmailTakenError on a duplicate email."""

    @abstractmethod
    async def create_session(self, user_id: str, ttl_seconds: int) -> str:
        """Issue a session token valid for ``ttl_seconds``."""

    @abstractmethod
    async def get_session(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the live session for a token, None when unknown or expired."""

    @abstractmethod
    async def delete_session(self, token: str) -> Optional[str]:
        """Revoke a token and return the user id it belonged to."""

    @abstractmethod
    async def count_sessions(self, user_id: str) -> int:
        ...


class MongoAuthStore(AuthStore):
    """AuthStore on the ``users`` and ``auth_sessions`` collections."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.users = database[USERS]
        self.sessions = database[AUTH_SESSIONS]

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.users.find_one({"email": email})
        except PyMongoError as e:
            raise StoreError(f"Failed to look up user: {e}") from e

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.users.find_one({"_id": user_id})
        except PyMongoError as e:
            raise StoreError(f"Failed to look up user {user_id}: {e}") from e

    async def create_user(self, email: str, password_hash: bytes) -> Dict[str, Any]:
        user = {
            "_id": new_document_id(),
            "email": email,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            await self.users.insert_one(user)
        except DuplicateKeyError as e:
            raise EmailTakenError(email) from e
        except PyMongoError as e:
            raise StoreError(f"Failed to create user: {e}") from e
        return user

    async def create_session(self, user_id: str, ttl_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        token = new_session_token()
        try:
            await self.sessions.insert_one({
                "_id": token,
                "user_id": user_id,
                "created_at": now,
                "expires_at": now + timedelta(seconds=ttl_seconds),
            })
        except PyMongoError as e:
            raise StoreError(f"Failed to create session for {user_id}: {e}") from e
        return token

    async def get_session(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            # The TTL index reaps expired sessions lazily, so check expiry here too.
            return await self.sessions.find_one({
                "_id": token,
                "expires_at": {"$gt": datetime.now(timezone.utc)},
            })
        except PyMongoError as e:
            raise StoreError(f"Failed to read session: {e}") from e

    async def delete_session(self, token: str) -> Optional[str]:
        try:
            session = await self.sessions.find_one_and_delete({"_id": token})
        except PyMongoError as e:
            raise StoreError(f"Failed to delete session: {e}") from e
        return session["user_id"] if session else None

    async def count_sessions(self, user_id: str) -> int:
        try:
            return await self.sessions.count_documents({
                "user_id": user_id,
                "expires_at": {"$gt": datetime.now(timezone.utc)},
            })
        except PyMongoError as e:
            raise StoreError(f"Failed to count sessions for {user_id}: {e}") from e
