"""User registry for the Dealbuster system."""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List

from ..models.user import User
from ..utils.error_handling import DuplicateError, NotFoundError, ValidationError
from ..utils.logging import get_logger

logger = get_logger("user_registry")


class UserRegistry:
    """In-memory store of registered users keyed by id."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self._users: Dict[str, User] = {}

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

    def register(self, username: Any) -> User:
        """
        Register a new user.

        Raises:
            ValidationError: if the username is missing or blank.
            DuplicateError: if the trimmed username is already registered.
        """
        if not isinstance(username, str) or not username.strip():
            raise ValidationError("Username required")

        username = username.strip()
        if any(user.username == username for user in self._users.values()):
            raise DuplicateError("Username already exists")

        user = User(id=str(uuid.uuid4()), username=username, created_at=self.clock())
        self._users[user.id] = user

        logger.info("User registered", extra={"user_id": user.id, "username": username})
        return user

    def get(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def list_users(self) -> List[User]:
        return list(self._users.values())

    def record_verification(self, user_id: str, verification_id: str) -> None:
        self.get(user_id).verification_history.append(verification_id)
