"""Domain rules for user records: field validation and record matching."""
from __future__ import annotations

import re
from typing import Any, Mapping

USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_.-]{3,30}")
EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s.]+(\.[^@\s.]+)+")

USER_FIELDS = ("name", "username", "email", "address", "phone", "website", "company")
ADDRESS_FIELDS = ("street", "city", "zipcode")
SEARCH_FIELDS = ("name", "username", "email")
UNIQUE_FIELDS = ("username", "email")

NAME_MAX = 100
EMAIL_MAX = 254
ADDRESS_MAX = {"street": 200, "city": 100, "zipcode": 20}


def is_valid_username(value: str | None) -> bool:
    """Return True when username is 3-30 chars of [a-zA-Z0-9_.-]."""
    if not value:
        return False
    return bool(USERNAME_PATTERN.fullmatch(value))


def is_valid_email(value: str | None) -> bool:
    if not value or len(value) > EMAIL_MAX:
        return False
    return bool(EMAIL_PATTERN.fullmatch(value))


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def normalize_payload(payload: Mapping[str, Any]) -> dict:
    """
    Keep only known fields and trim string values (address subfields included).
    Unknown keys, ``id`` among them, are dropped; a null address counts as absent.
    """
    data: dict = {}
    for key in USER_FIELDS:
        if key not in payload:
            continue
        value = payload[key]
        if key == "address" and value is None:
            continue
        if key == "address" and isinstance(value, Mapping):
            value = {k: _clean(v) for k, v in value.items() if k in ADDRESS_FIELDS}
        data[key] = _clean(value)
    return data


def validate_user_payload(data: Mapping[str, Any], *, partial: bool = False) -> list[dict]:
    """
    Check a normalized payload and return every violation as {field, message}.

    With ``partial`` (updates) required fields may be absent, but whatever is
    supplied must satisfy the same rules as on create.
    """
    errors: list[dict] = []

    def fail(field: str, message: str) -> None:
        errors.append({"field": field, "message": message})

    if "name" in data or not partial:
        name = data.get("name")
        if not isinstance(name, str) or not name:
            fail("name", "Name is required")
        elif len(name) > NAME_MAX:
            fail("name", f"Name must be at most {NAME_MAX} characters")

    if "username" in data or not partial:
        username = data.get("username")
        if not isinstance(username, str) or not username:
            fail("username", "Username is required")
        elif not is_valid_username(username):
            fail("username", "Username must be 3-30 characters of letters, digits, '_', '.' or '-'")

    if "email" in data or not partial:
        email = data.get("email")
        if not isinstance(email, str) or not is_valid_email(email):
            fail("email", "Valid email is required")

    if "address" in data:
        address = data["address"]
        if not isinstance(address, Mapping):
            fail("address", "Address must be an object")
        else:
            for key in ADDRESS_FIELDS:
                if key not in address:
                    continue
                value = address[key]
                if not isinstance(value, str):
                    fail(f"address.{key}", "Must be a string")
                elif len(value) > ADDRESS_MAX[key]:
                    fail(f"address.{key}", f"Must be at most {ADDRESS_MAX[key]} characters")

    for key in ("phone", "website"):
        if key in data and not isinstance(data[key], str):
            fail(key, "Must be a string")
    if "company" in data and not isinstance(data["company"], (str, Mapping)):
        fail("company", "Must be a string or an object")

    return errors


def find_conflict(records: list[dict], data: Mapping[str, Any], exclude_id: str | None = None) -> str | None:
    """Return the first unique field in ``data`` already owned by another record."""
    for field in UNIQUE_FIELDS:
        value = data.get(field)
        if value is None:
            continue
        for record in records:
            if not isinstance(record, Mapping):
                continue
            if exclude_id is not None and str(record.get("id")) == exclude_id:
                continue
            if record.get(field) == value:
                return field
    return None


def _contains(value: Any, needle: str) -> bool:
    if value is None or isinstance(value, (dict, list)):
        return False
    return needle in str(value).lower()


def resolve_field(record: Mapping[str, Any], path: str) -> tuple[bool, Any]:
    """
    Look up ``field`` or ``parent.child`` on a record.

    Returns (known, value); ``known`` is False when the path does not name a
    record field, so callers can ignore unrelated query parameters.
    """
    head, _, tail = path.partition(".")
    if head != "id" and head not in USER_FIELDS:
        return False, None
    if "." in tail:
        return False, None
    value = record.get(head)
    if not tail:
        return True, value
    if not isinstance(value, Mapping):
        return True, None
    return True, value.get(tail)


def matches_filters(record: Mapping[str, Any], filters: Mapping[str, str]) -> bool:
    """Match every filter naming a known field: exact on id, case-insensitive substring elsewhere."""
    for path, expected in filters.items():
        known, value = resolve_field(record, path)
        if not known:
            continue
        if path == "id":
            if str(value) != str(expected):
                return False
            continue
        if not _contains(value, str(expected).lower()):
            return False
    return True


def matches_query(record: Mapping[str, Any], query: str) -> bool:
    """Free-text search over name, username, email and the address subfields."""
    needle = query.lower()
    if any(_contains(record.get(field), needle) for field in SEARCH_FIELDS):
        return True
    address = record.get("address")
    if isinstance(address, Mapping):
        return any(_contains(value, needle) for value in address.values())
    return False
