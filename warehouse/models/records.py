"""
Persistent records owned by the sqlite store.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class User:
    id: int
    name: str
    salt: bytes
    password: bytes
    is_admin: bool
    created: datetime
    last_login: Optional[datetime] = None


@dataclass
class Session:
    id: int
    user_id: int
    token: bytes
    address: str
    user_agent: Optional[str]
    created: datetime
    last_access: datetime


@dataclass
class Subscription:
    id: int
    user_id: int
    pattern: str
    category: Optional[str]
    matches: int
    created: datetime
    last_match: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "userId": str(self.user_id),
            "pattern": self.pattern,
            "category": self.category,
            "matches": self.matches,
            "created": to_iso(self.created),
            "lastMatch": to_iso(self.last_match),
        }


@dataclass
class DownloadRecord:
    user_id: int
    name: str
    size: Optional[int]
    manual: bool
    time: Optional[datetime] = None
