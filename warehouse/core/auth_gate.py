"""
Per-request authorization: origin check, session resolution, admin check.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from ..models.records import User
from .errors import NotLoggedInError, OriginError, PermissionDeniedError
from .request_context import SessionContext
from .session_store import SessionStore, decode_token

logger = logging.getLogger(__name__)


class Access(Enum):
    """Access tag attached to every operation definition."""
    PUBLIC = "public"
    REQUIRES_AUTH = "requires_auth"


class AuthGate:
    def __init__(self, sessions: SessionStore, external_hostname: str):
        self.sessions = sessions
        self.external_hostname = (external_hostname or "").strip().lower()

    def check_origin(self, origin: Optional[str]) -> None:
        """Reject cross-site requests; a missing Origin header is accepted."""
        if origin is None:
            return
        try:
            hostname = (urlparse(origin).hostname or "").lower()
        except ValueError:
            hostname = ""
        if hostname != self.external_hostname:
            logger.warning("Rejected request from origin %r.", origin)
            raise OriginError()

    def resolve(self, cookie_value: Optional[str], user_agent: Optional[str]) -> SessionContext:
        """Return the session context, anonymous if there is no valid session."""
        token = decode_token(cookie_value or "")
        if token is None:
            if cookie_value:
                logger.debug("Ignoring undecodable session cookie.")
            return SessionContext()
        user = self.sessions.resolve_session(token, user_agent)
        if user is None:
            logger.debug("Session cookie did not resolve to a user.")
            return SessionContext()
        return SessionContext(user=user, token=token)

    def authenticate(self, cookie_value: Optional[str], user_agent: Optional[str]) -> SessionContext:
        ctx = self.resolve(cookie_value, user_agent)
        if ctx.user is None:
            raise NotLoggedInError()
        return ctx

    def admit(
        self,
        access: Access,
        origin: Optional[str],
        cookie_value: Optional[str],
        user_agent: Optional[str],
    ) -> SessionContext:
        """Run every check an operation with the given access tag requires."""
        self.check_origin(origin)
        if access is Access.PUBLIC:
            return SessionContext()
        return self.authenticate(cookie_value, user_agent)

    @staticmethod
    def require_admin(user: Optional[User]) -> None:
        if user is None or not user.is_admin:
            raise PermissionDeniedError()
