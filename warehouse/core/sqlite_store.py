"""
SQLite-backed store for users, sessions, subscriptions, and the download log.

Design goals:
- Narrow repository interface; callers never see SQL.
- Unique constraint violations surface as DuplicateKeyError.
- One connection shared across threads, serialised by a lock.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..models.records import (
    DownloadRecord,
    Session,
    Subscription,
    User,
    from_iso,
    to_iso,
    utc_now,
)
from .errors import DuplicateKeyError


def _placeholders(values: Sequence) -> str:
    return ",".join("?" for _ in values)


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=int(row["id"]),
        name=str(row["name"]),
        salt=bytes(row["salt"]),
        password=bytes(row["password"]),
        is_admin=bool(row["is_admin"]),
        created=from_iso(row["created"]),
        last_login=from_iso(row["last_login"]),
    )


def _session_from_row(row: sqlite3.Row) -> Session:
    return Session(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        token=bytes(row["token"]),
        address=str(row["address"]),
        user_agent=row["user_agent"],
        created=from_iso(row["created"]),
        last_access=from_iso(row["last_access"]),
    )


def _subscription_from_row(row: sqlite3.Row) -> Subscription:
    return Subscription(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        pattern=str(row["pattern"]),
        category=row["category"],
        matches=int(row["matches"]),
        created=from_iso(row["created"]),
        last_match=from_iso(row["last_match"]),
    )


class SqliteStore:
    def __init__(self, db_path: Union[str, Path]):
        self._lock = RLock()
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA foreign_keys=ON;")
        self._migrate()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _migrate(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)"
            )
            row = self._conn.execute("SELECT version FROM schema_version").fetchone()
            if not row:
                self._conn.execute("INSERT INTO schema_version(version) VALUES (1)")

            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  name TEXT UNIQUE NOT NULL,
                  salt BLOB NOT NULL,
                  password BLOB NOT NULL,
                  is_admin INTEGER NOT NULL DEFAULT 0,
                  created TEXT NOT NULL,
                  last_login TEXT
                )
                """
            )
            # Sessions outlive their user on purpose; orphans are removed on lookup.
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  user_id INTEGER NOT NULL,
                  token BLOB UNIQUE NOT NULL,
                  address TEXT NOT NULL,
                  user_agent TEXT,
                  created TEXT NOT NULL,
                  last_access TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id)"
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_sessions_lookup ON sessions(token, user_agent)"
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  user_id INTEGER NOT NULL,
                  pattern TEXT NOT NULL,
                  category TEXT,
                  matches INTEGER NOT NULL DEFAULT 0,
                  created TEXT NOT NULL,
                  last_match TEXT
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscriptions_user ON subscriptions(user_id)"
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS downloads (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  user_id INTEGER NOT NULL,
                  time TEXT NOT NULL,
                  name TEXT NOT NULL,
                  size INTEGER,
                  manual INTEGER NOT NULL
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_downloads_user ON downloads(user_id)"
            )

    # ---- Users ----
    def create_user(self, name: str, salt: bytes, password: bytes, is_admin: bool) -> User:
        created = utc_now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    "INSERT INTO users(name,salt,password,is_admin,created) VALUES (?,?,?,?,?)",
                    (name, salt, password, int(bool(is_admin)), to_iso(created)),
                )
                user_id = int(cur.lastrowid)
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(str(e)) from e
        return User(
            id=user_id,
            name=name,
            salt=salt,
            password=password,
            is_admin=bool(is_admin),
            created=created,
        )

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM users WHERE id = ?", (int(user_id),)).fetchone()
        return _user_from_row(row) if row else None

    def find_user_by_name(self, name: str) -> Optional[User]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM users WHERE name = ?", (name,)).fetchone()
        return _user_from_row(row) if row else None

    def find_users(self, user_ids: Iterable[int]) -> List[User]:
        ids = [int(i) for i in user_ids]
        if not ids:
            return []
        with self._lock:
            rows = self._conn.execute(
                f"SELECT * FROM users WHERE id IN ({_placeholders(ids)}) ORDER BY id",
                ids,
            ).fetchall()
        return [_user_from_row(r) for r in rows]

    def set_user_password(self, user_id: int, salt: bytes, password: bytes) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET salt = ?, password = ? WHERE id = ?",
                (salt, password, int(user_id)),
            )

    def set_last_login(self, user_id: int, when: datetime) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET last_login = ? WHERE id = ?",
                (to_iso(when), int(user_id)),
            )

    def delete_user_by_name(self, name: str) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM users WHERE name = ?", (name,))
            return cur.rowcount > 0

    # ---- Sessions ----
    def insert_session(
        self,
        user_id: int,
        token: bytes,
        address: str,
        user_agent: Optional[str],
        when: Optional[datetime] = None,
    ) -> Session:
        created = when or utc_now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    INSERT INTO sessions(user_id,token,address,user_agent,created,last_access)
                    VALUES (?,?,?,?,?,?)
                    """,
                    (int(user_id), token, address, user_agent, to_iso(created), to_iso(created)),
                )
                session_id = int(cur.lastrowid)
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(str(e)) from e
        return Session(
            id=session_id,
            user_id=int(user_id),
            token=token,
            address=address,
            user_agent=user_agent,
            created=created,
            last_access=created,
        )

    def find_session(self, token: bytes, user_agent: Optional[str]) -> Optional[Session]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM sessions WHERE token = ? AND user_agent IS ?",
                (token, user_agent),
            ).fetchone()
        return _session_from_row(row) if row else None

    def find_session_by_token(self, token: bytes) -> Optional[Session]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM sessions WHERE token = ?", (token,)).fetchone()
        return _session_from_row(row) if row else None

    def find_sessions_by_user(self, user_id: int) -> List[Session]:
        """Sessions of a user, least recently accessed first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM sessions WHERE user_id = ? ORDER BY last_access ASC, id ASC",
                (int(user_id),),
            ).fetchall()
        return [_session_from_row(r) for r in rows]

    def touch_session(self, session_id: int, when: datetime) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE sessions SET last_access = ? WHERE id = ?",
                (to_iso(when), int(session_id)),
            )

    def delete_session(self, session_id: int) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM sessions WHERE id = ?", (int(session_id),))

    def delete_session_by_token(self, token: bytes) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM sessions WHERE token = ?", (token,))

    def delete_sessions(self, session_ids: Iterable[int]) -> int:
        ids = [int(i) for i in session_ids]
        if not ids:
            return 0
        with self._lock, self._conn:
            cur = self._conn.execute(
                f"DELETE FROM sessions WHERE id IN ({_placeholders(ids)})",
                ids,
            )
            return cur.rowcount

    # ---- Subscriptions ----
    def create_subscription(self, user_id: int, pattern: str, category: Optional[str]) -> Subscription:
        created = utc_now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                "INSERT INTO subscriptions(user_id,pattern,category,matches,created) VALUES (?,?,?,0,?)",
                (int(user_id), pattern, category, to_iso(created)),
            )
            subscription_id = int(cur.lastrowid)
        return Subscription(
            id=subscription_id,
            user_id=int(user_id),
            pattern=pattern,
            category=category,
            matches=0,
            created=created,
        )

    def find_subscriptions(self, user_id: Optional[int] = None) -> List[Subscription]:
        with self._lock:
            if user_id is None:
                rows = self._conn.execute("SELECT * FROM subscriptions ORDER BY id").fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY id",
                    (int(user_id),),
                ).fetchall()
        return [_subscription_from_row(r) for r in rows]

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?", (int(subscription_id),)
            ).fetchone()
        return _subscription_from_row(row) if row else None

    def delete_subscription(self, subscription_id: int, user_id: Optional[int] = None) -> bool:
        """Delete a subscription, optionally only if it belongs to user_id."""
        with self._lock, self._conn:
            if user_id is None:
                cur = self._conn.execute(
                    "DELETE FROM subscriptions WHERE id = ?", (int(subscription_id),)
                )
            else:
                cur = self._conn.execute(
                    "DELETE FROM subscriptions WHERE id = ? AND user_id = ?",
                    (int(subscription_id), int(user_id)),
                )
            return cur.rowcount > 0

    def record_subscription_match(self, subscription_ids: Iterable[int], when: datetime) -> int:
        """Increment match counters and set last match in a single statement."""
        ids = [int(i) for i in subscription_ids]
        if not ids:
            return 0
        with self._lock, self._conn:
            cur = self._conn.execute(
                f"UPDATE subscriptions SET matches = matches + 1, last_match = ? WHERE id IN ({_placeholders(ids)})",
                [to_iso(when)] + ids,
            )
            return cur.rowcount

    # ---- Downloads ----
    def add_download(self, record: DownloadRecord) -> None:
        when = record.time or utc_now()
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO downloads(user_id,time,name,size,manual) VALUES (?,?,?,?,?)",
                (int(record.user_id), to_iso(when), record.name, record.size, int(bool(record.manual))),
            )

    def download_stats(self, user_id: int) -> Tuple[int, int]:
        """Number of downloads and their summed size for a user."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(1) AS n, COALESCE(SUM(size), 0) AS total FROM downloads WHERE user_id = ?",
                (int(user_id),),
            ).fetchone()
        return int(row["n"]), int(row["total"])

    def find_downloads(self, user_id: int) -> List[DownloadRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM downloads WHERE user_id = ? ORDER BY id",
                (int(user_id),),
            ).fetchall()
        return [
            DownloadRecord(
                user_id=int(r["user_id"]),
                name=str(r["name"]),
                size=r["size"],
                manual=bool(r["manual"]),
                time=from_iso(r["time"]),
            )
            for r in rows
        ]
