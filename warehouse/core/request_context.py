"""
Request context for the web runtime.

The authorization dependency stores the resolved session here so that
handlers read the caller's identity without re-resolving the cookie.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models.records import User


@dataclass(frozen=True)
class SessionContext:
    user: Optional[User] = None
    token: Optional[bytes] = None

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user else None

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.is_admin)


ANONYMOUS = SessionContext()


def get_session(request) -> SessionContext:
    return getattr(request.state, "session", ANONYMOUS)


def set_session(request, ctx: SessionContext) -> None:
    request.state.session = ctx
