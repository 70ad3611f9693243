"""
Session lifecycle: creation with collision retry, per-user cap, expiry.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
from typing import Callable, Optional, Union

from ..models.records import Session, User, utc_now
from .errors import DuplicateKeyError
from .sqlite_store import SqliteStore

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session"
TOKEN_LENGTH = 32
# Maximum age of sessions, in seconds.
SESSION_MAX_AGE = 30 * 24 * 60 * 60
MAX_SESSIONS_PER_USER = 3


def encode_token(token: bytes) -> str:
    return base64.b64encode(token).decode("ascii")


def decode_token(value: str) -> Optional[bytes]:
    if not value:
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None


class SessionStore:
    def __init__(
        self,
        store: SqliteStore,
        max_sessions_per_user: int = MAX_SESSIONS_PER_USER,
        max_age_seconds: int = SESSION_MAX_AGE,
        token_factory: Callable[[], bytes] = lambda: secrets.token_bytes(TOKEN_LENGTH),
    ):
        self.store = store
        self.max_sessions_per_user = int(max_sessions_per_user)
        self.max_age_seconds = int(max_age_seconds)
        self._token_factory = token_factory

    def create_session(self, user: User, address: str, user_agent: Optional[str]) -> bytes:
        """Create a session for user and return its token."""
        while True:
            # Keep generating tokens until a unique one has been stored.
            token = self._token_factory()
            try:
                self.store.insert_session(user.id, token, address, user_agent)
                break
            except DuplicateKeyError:
                logger.warning("Session token collision for user %s, generating a new token.", user.name)
        self.enforce_session_cap(user.id)
        now = utc_now()
        self.store.set_last_login(user.id, now)
        user.last_login = now
        return token

    def enforce_session_cap(self, user_id: int) -> int:
        sessions = self.store.find_sessions_by_user(user_id)
        excess = len(sessions) - self.max_sessions_per_user
        if excess <= 0:
            return 0
        stale = [s.id for s in sessions[:excess]]
        deleted = self.store.delete_sessions(stale)
        logger.info("Deleted %d old session(s) of user %s.", deleted, user_id)
        return deleted

    def resolve_session(self, token: Optional[bytes], user_agent: Optional[str]) -> Optional[User]:
        if not token:
            return None
        session = self.store.find_session(token, user_agent)
        if session is None:
            return None
        now = utc_now()
        age = (now - session.last_access).total_seconds()
        if age >= self.max_age_seconds:
            logger.info("Session %s of user %s expired.", session.id, session.user_id)
            self.store.delete_session(session.id)
            return None
        user = self.store.get_user(session.user_id)
        if user is None:
            logger.info("Deleting orphaned session %s of missing user %s.", session.id, session.user_id)
            self.store.delete_session(session.id)
            return None
        self.store.touch_session(session.id, now)
        return user

    def delete_session(self, session_or_token: Union[Session, bytes, None]) -> None:
        if session_or_token is None:
            return
        if isinstance(session_or_token, Session):
            self.store.delete_session(session_or_token.id)
        else:
            self.store.delete_session_by_token(bytes(session_or_token))
