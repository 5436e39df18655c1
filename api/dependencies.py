"""Shared FastAPI dependencies: services and the signed-in user's session."""

from typing import Optional

from fastapi import Depends, HTTPException, Query
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from schemas.auth import UserPublic
from services.app_data import AppDataSession
from services.auth_service import AuthProvider
from services.session_manager import SessionManager
from services.store import StoreError
from utils.logger import setup_logger

logger = setup_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_provider(conn: HTTPConnection) -> AuthProvider:
    """Auth provider built at startup."""
    return conn.app.state.auth


def get_session_manager(conn: HTTPConnection) -> SessionManager:
    """Session registry built at startup."""
    return conn.app.state.sessions


def get_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_current_user(
    token: Optional[str] = Depends(get_token),
    auth: AuthProvider = Depends(get_auth_provider),
) -> UserPublic:
    """Signed-in user behind the bearer token, or 401."""
    try:
        user = await auth.current_user(token)
    except StoreError as e:
        logger.error(f"Failed to resolve session: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable")
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def get_app_session(
    user: UserPublic = Depends(get_current_user),
    sessions: SessionManager = Depends(get_session_manager),
) -> AppDataSession:
    """The signed-in user's live data session, once its first snapshots are in."""
    session = sessions.ensure(user.id)
    try:
        await session.ready(timeout=settings.snapshot_timeout)
    except StoreError:
        # Drop the stalled session so the next request subscribes afresh.
        sessions.end(user.id)
        raise
    return session


async def get_ws_user(
    token: Optional[str] = Query(None),
    auth: AuthProvider = Depends(get_auth_provider),
) -> Optional[UserPublic]:
    """WebSocket variant: browsers cannot set headers, so the token is a query parameter."""
    try:
        return await auth.current_user(token)
    except StoreError as e:
        logger.error(f"Failed to resolve WebSocket session: {e}")
        return None
