"""One data session per signed-in user, driven by auth notifications."""

import asyncio
import time
from typing import Dict, Optional

from config.settings import settings
from services.app_data import AppDataSession
from services.auth_service import AuthProvider, AuthStateChange
from services.store import DocumentStore, StoreError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class SessionManager:
    """Opens a user's data session on sign-in and closes it on sign-out.

    Tokens that simply expire produce no sign-out, so ``sweep`` also closes
    sessions whose user has no live token left or that sat unused for
    longer than ``idle_timeout`` seconds.
    """

    def __init__(self, store: DocumentStore, auth: AuthProvider, idle_timeout: Optional[float] = None):
        self.store = store
        self.auth = auth
        self.idle_timeout = idle_timeout or settings.session_timeout
        self.sessions: Dict[str, AppDataSession] = {}
        self.last_used: Dict[str, float] = {}
        self._unsubscribe = auth.on_auth_state_changed(self._on_auth_state_changed)

    def _on_auth_state_changed(self, change: AuthStateChange):
        if change.user is None:
            self.end(change.user_id)
        else:
            self.ensure(change.user_id)

    def get(self, user_id: str) -> Optional[AppDataSession]:
        return self.sessions.get(user_id)

    def ensure(self, user_id: str) -> AppDataSession:
        """Return the user's open session, starting one if needed.

        Sessions are also started lazily for tokens issued before a restart.
        """
        session = self.sessions.get(user_id)
        if session is None:
            session = AppDataSession(self.store, user_id).start()
            self.sessions[user_id] = session
        self.last_used[user_id] = time.monotonic()
        return session

    def end(self, user_id: str) -> None:
        self.last_used.pop(user_id, None)
        session = self.sessions.pop(user_id, None)
        if session is not None:
            session.close()

    async def sweep(self) -> int:
        """Close idle sessions and those of users without a live token."""
        now = time.monotonic()
        closed = 0
        for user_id in list(self.sessions):
            idle = now - self.last_used.get(user_id, now) > self.idle_timeout
            if not idle and await self.auth.has_active_session(user_id):
                continue
            session = self.sessions.get(user_id)
            if session is None:
                continue
            await session.flush_settings()
            self.end(user_id)
            closed += 1
        if closed:
            logger.info(f"Released {closed} expired data sessions")
        return closed

    async def run_sweeper(self, interval: float) -> None:
        """Sweep every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep()
            except StoreError as e:
                logger.error(f"Session sweep failed: {e}")

    async def close(self) -> None:
        """Close every session (application shutdown)."""
        self._unsubscribe()
        for user_id in list(self.sessions):
            session = self.sessions[user_id]
            await session.flush_settings()
            self.end(user_id)
        logger.info("All data sessions closed")
