"""Email/password auth provider with identity-change notifications."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import bcrypt

from config.settings import settings
from schemas.auth import UserPublic
from services.auth_store import AuthStore, EmailTakenError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class AuthError(Exception):
    """Base class for sign-in/sign-up failures shown to the user."""

    message = "Authentication failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidCredentialsError(AuthError):
    message = "Failed to sign in. Please check your credentials."


class EmailAlreadyInUseError(AuthError):
    message = "This email is already in use."


class WeakPasswordError(AuthError):
    message = "Password should be at least 6 characters."


class PasswordMismatchError(AuthError):
    message = "Passwords do not match."


class NotAuthenticatedError(AuthError):
    message = "Not authenticated."


@dataclass
class AuthStateChange:
    """Identity notification: ``user`` is None when the user signed out."""
    user_id: str
    user: Optional[UserPublic]


AuthListener = Callable[[AuthStateChange], None]


def hash_password(password: str) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


def check_password(password: str, pw_hash: bytes) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), pw_hash)
    except ValueError:
        # Malformed stored hash
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def to_public_user(user: Dict[str, Any]) -> UserPublic:
    return UserPublic(id=str(user["_id"]), email=user["email"], created_at=user["created_at"])


class AuthProvider:
    """Issues identities and tells listeners when users sign in or out."""

    def __init__(self, store: AuthStore, session_timeout: Optional[int] = None,
                 min_password_length: Optional[int] = None):
        self.store = store
        self.session_timeout = session_timeout or settings.session_timeout
        self.min_password_length = min_password_length or settings.min_password_length
        self._listeners: List[AuthListener] = []

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: AuthStateChange):
        for listener in list(self._listeners):
            listener(change)

    async def sign_up(self, email: str, password: str, confirm_password: Optional[str] = None):
        """Create an account and sign it in. Returns (user, token)."""
        if confirm_password is not None and confirm_password != password:
            raise PasswordMismatchError()
        if len(password) < self.min_password_length:
            raise WeakPasswordError(f"Password should be at least {self.min_password_length} characters.")

        email = normalize_email(email)
        if await self.store.get_user_by_email(email):
            raise EmailAlreadyInUseError()
        try:
            user = await self.store.create_user(email, hash_password(password))
        except EmailTakenError:
            raise EmailAlreadyInUseError() from None

        logger.info(f"Created account {user['_id']}")
        return await self._start_session(user)

    async def sign_in(self, email: str, password: str):
        """Verify credentials and issue a session token. Returns (user, token)."""
        user = await self.store.get_user_by_email(normalize_email(email))
        if not user or not check_password(password, user["password_hash"]):
            logger.warning("Sign-in rejected: invalid credentials")
            raise InvalidCredentialsError()
        return await self._start_session(user)

    async def _start_session(self, user: Dict[str, Any]):
        token = await self.store.create_session(str(user["_id"]), self.session_timeout)
        public = to_public_user(user)
        logger.info(f"User {public.id} signed in")
        self._notify(AuthStateChange(user_id=public.id, user=public))
        return public, token

    async def sign_out(self, token: str) -> None:
        """Revoke a token; listeners hear about it once the user has no tokens left."""
        user_id = await self.store.delete_session(token)
        if user_id is None:
            return
        if await self.store.count_sessions(user_id) == 0:
            logger.info(f"User {user_id} signed out")
            self._notify(AuthStateChange(user_id=user_id, user=None))

    async def has_active_session(self, user_id: str) -> bool:
        """Whether the user still holds at least one unexpired token."""
        return await self.store.count_sessions(user_id) > 0

    async def current_user(self, token: Optional[str]) -> Optional[UserPublic]:
        """Identity behind a token, or None if absent, unknown or expired."""
        if not token:
            return None
        session = await self.store.get_session(token)
        if session is None:
            return None
        user = await self.store.get_user(session["user_id"])
        return to_public_user(user) if user else None
