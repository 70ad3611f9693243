"""
Subscription management: pattern validation, creation, listing and deletion.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..models.records import Subscription, User
from .auth_gate import AuthGate
from .credentials import generate_password
from .errors import NotFoundError, ValidationError, WarehouseError
from .sqlite_store import SqliteStore

logger = logging.getLogger(__name__)

# A random name carrying the tokens most release names share.
BROAD_MATCH_SUFFIX = ".S01E02.720p.1080p"
INVALID_SUBSCRIPTION_ID = "Invalid subscription ID."

# Range of an SQLite INTEGER.
SQLITE_MIN_INT = -(2 ** 63)
SQLITE_MAX_INT = 2 ** 63 - 1


def validate_pattern(pattern: str) -> re.Pattern:
    """Compile a subscription pattern, rejecting invalid and overly broad ones."""
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ValidationError("You have specified an invalid regular expression.") from e
    if compiled.search(generate_password() + BROAD_MATCH_SUFFIX):
        raise ValidationError("Your regular expression matches too many release names.")
    return compiled


def _parse_id(value, error: WarehouseError) -> int:
    """Parse a row id, rejecting anything SQLite cannot store as an INTEGER."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise error from None
    if not SQLITE_MIN_INT <= parsed <= SQLITE_MAX_INT:
        raise error
    return parsed


class SubscriptionService:
    def __init__(self, store: SqliteStore):
        self.store = store

    def create(self, user: User, pattern: str, category: Optional[str] = None) -> Subscription:
        validate_pattern(pattern)
        subscription = self.store.create_subscription(user.id, pattern, category)
        logger.info("User %s subscribed to %r.", user.name, pattern)
        return subscription

    def list(self, user: User, all: bool = False, user_id: Optional[str] = None) -> List[Subscription]:
        """The caller's own subscriptions unless an admin asks for all or for another user's"""
        if all:
            AuthGate.require_admin(user)
            return self.store.find_subscriptions()
        if user_id is not None:
            AuthGate.require_admin(user)
            target = _parse_id(user_id, ValidationError("Invalid user ID."))
            return self.store.find_subscriptions(target)
        return self.store.find_subscriptions(user.id)

    def delete(self, user: User, subscription_id: str) -> None:
        target = _parse_id(subscription_id, NotFoundError(INVALID_SUBSCRIPTION_ID))
        # Only admins may delete the subscriptions of other users.
        owner = None if user.is_admin else user.id
        if not self.store.delete_subscription(target, owner):
            raise NotFoundError(INVALID_SUBSCRIPTION_ID)
        logger.info("User %s deleted subscription %s.", user.name, target)
