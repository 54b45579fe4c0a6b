"""User CRUD and search use cases over the JSON collection."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from users_api.domain.users import (
    find_conflict,
    matches_filters,
    matches_query,
    normalize_payload,
    validate_user_payload,
)
from users_api.repositories.json_storage import JsonUserStorage

logger = logging.getLogger(__name__)

OPTIONAL_DEFAULTS = {"phone": "", "website": "", "company": ""}


def _records(users: list) -> list[dict]:
    """Entries that are JSON objects; anything else in the file is left untouched."""
    return [user for user in users if isinstance(user, Mapping)]


class UserServiceError(Exception):
    """Base exception for user workflows."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class BadRequestError(UserServiceError):
    """Raised when a required request parameter is missing."""


class UserValidationError(UserServiceError):
    """Raised when payload fields fail validation; carries every violation."""

    def __init__(self, errors: list[dict]):
        super().__init__("Validation failed")
        self.errors = errors

    def to_dict(self) -> dict:
        return {"error": self.message, "errors": self.errors}


class UserConflictError(UserServiceError):
    """Raised when username or email is already taken by another record."""

    status_code = 409

    def __init__(self, field: str):
        super().__init__(f"{field} already exists")
        self.field = field

    def to_dict(self) -> dict:
        return {"error": self.message, "field": self.field}


class UserNotFoundError(UserServiceError):
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__("User not found")
        self.user_id = user_id


class UserService:
    """Orchestrates validation, uniqueness checks and whole-file persistence."""

    def __init__(self, storage: JsonUserStorage, clock=time.time) -> None:
        self.storage = storage
        self._clock = clock

    def list_users(self, filters: Mapping[str, str] | None = None) -> list[dict]:
        users = _records(self.storage.load_all())
        if not filters:
            return users
        return [user for user in users if matches_filters(user, filters)]

    def search_users(self, query: str | None) -> list[dict]:
        q = (query or "").strip()
        if not q:
            raise BadRequestError('Search query parameter "q" is required')
        return [user for user in _records(self.storage.load_all()) if matches_query(user, q)]

    def get_user(self, user_id: str) -> dict:
        for user in _records(self.storage.load_all()):
            if str(user.get("id")) == user_id:
                return user
        raise UserNotFoundError(user_id)

    def create_user(self, payload: Any) -> dict:
        data = self._validated(payload, partial=False)
        users = self.storage.load_all()
        conflict = find_conflict(users, data)
        if conflict:
            raise UserConflictError(conflict)

        user = {"id": self._new_id(users)}
        user.update(OPTIONAL_DEFAULTS)
        user.update(data)
        user["address"] = dict(data.get("address") or {})
        users.append(user)
        self.storage.save_all(users)
        logger.info("Created user %s (%s)", user["id"], user["username"])
        return user

    def update_user(self, user_id: str, payload: Any) -> dict:
        data = self._validated(payload, partial=True)
        users = self.storage.load_all()
        index = self._index_of(users, user_id)
        conflict = find_conflict(users, data, exclude_id=user_id)
        if conflict:
            raise UserConflictError(conflict)

        current = users[index]
        updated = {**current, **data, "id": current["id"]}
        stored_address = current.get("address")
        address = dict(stored_address) if isinstance(stored_address, Mapping) else {}
        address.update(data.get("address") or {})
        updated["address"] = address
        users[index] = updated
        self.storage.save_all(users)
        logger.info("Updated user %s", user_id)
        return updated

    def delete_user(self, user_id: str) -> None:
        users = self.storage.load_all()
        index = self._index_of(users, user_id)
        del users[index]
        self.storage.save_all(users)
        logger.info("Deleted user %s", user_id)

    def _validated(self, payload: Any, *, partial: bool) -> dict:
        if not isinstance(payload, Mapping):
            raise UserValidationError([{"field": "body", "message": "Request body must be a JSON object"}])
        data = normalize_payload(payload)
        errors = validate_user_payload(data, partial=partial)
        if errors:
            raise UserValidationError(errors)
        return data

    @staticmethod
    def _index_of(users: list[dict], user_id: str) -> int:
        for index, user in enumerate(users):
            if isinstance(user, Mapping) and str(user.get("id")) == user_id:
                return index
        raise UserNotFoundError(user_id)

    def _new_id(self, users: list[dict]) -> str:
        # millisecond timestamp, bumped past any id already in the collection
        taken = {str(user.get("id")) for user in _records(users)}
        candidate = int(self._clock() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)
