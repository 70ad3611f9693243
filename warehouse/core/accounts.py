"""
User accounts: creation, deletion, password handling and profiles.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..models.records import User, to_iso
from .credentials import generate_password, generate_salt, hash_password, verify_password
from .errors import DuplicateKeyError, NotFoundError, ValidationError
from .sqlite_store import SqliteStore

logger = logging.getLogger(__name__)

MINIMUM_PASSWORD_LENGTH = 10
GENERATED_PASSWORD_LENGTH = 32


class AccountService:
    def __init__(self, store: SqliteStore):
        self.store = store

    def create_user(self, name: str, password: Optional[str] = None, is_admin: bool = False):
        """Create a user; returns (user, password), generating the password if none is given."""
        password = password or generate_password(GENERATED_PASSWORD_LENGTH)
        salt = generate_salt()
        try:
            user = self.store.create_user(name, salt, hash_password(password, salt), is_admin)
        except DuplicateKeyError as e:
            raise DuplicateKeyError("Unable to create user. Username already in use.") from e
        logger.info("Created %s %s.", "administrator" if is_admin else "user", name)
        return user, password

    def delete_user(self, name: str) -> bool:
        deleted = self.store.delete_user_by_name(name)
        if deleted:
            logger.info("Deleted user %s.", name)
        return deleted

    def reset_password(self, name: str) -> str:
        user = self.store.find_user_by_name(name)
        if user is None:
            raise NotFoundError(f'No such user "{name}".')
        password = generate_password(GENERATED_PASSWORD_LENGTH)
        self._set_password(user, password)
        logger.info("Reset password of user %s.", name)
        return password

    def authenticate(self, name: str, password: str) -> Optional[User]:
        user = self.store.find_user_by_name(name)
        if user is None or not verify_password(password, user.salt, user.password):
            logger.info("Failed login attempt for %r.", name)
            return None
        return user

    def change_password(self, user: User, current_password: str, new_password: str) -> bool:
        if len(new_password) < MINIMUM_PASSWORD_LENGTH:
            raise ValidationError("Password too short.")
        if not verify_password(current_password, user.salt, user.password):
            return False
        self._set_password(user, new_password)
        return True

    def _set_password(self, user: User, password: str) -> None:
        salt = generate_salt()
        digest = hash_password(password, salt)
        self.store.set_user_password(user.id, salt, digest)
        user.salt = salt
        user.password = digest

    def profile(self, user: User) -> Dict[str, Any]:
        downloads, download_size = self.store.download_stats(user.id)
        return {
            "name": user.name,
            "isAdmin": user.is_admin,
            "created": to_iso(user.created),
            "downloads": downloads,
            "downloadSize": download_size,
        }
