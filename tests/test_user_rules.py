from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the users_api package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from users_api.domain.users import (  # noqa: E402
    find_conflict,
    is_valid_email,
    is_valid_username,
    matches_filters,
    matches_query,
    normalize_payload,
    validate_user_payload,
)

ANN = {
    "id": "100",
    "name": "Ann Lee",
    "username": "ann1",
    "email": "ann@x.com",
    "address": {"street": "1 Main St", "city": "Springfield", "zipcode": "12345"},
}


@pytest.mark.parametrize("value", ["ann", "a.b_c-d", "A" * 30, "user123"])
def test_valid_usernames(value):
    assert is_valid_username(value)


@pytest.mark.parametrize("value", ["", None, "ab", "A" * 31, "with space", "bad!"])
def test_invalid_usernames(value):
    assert not is_valid_username(value)


@pytest.mark.parametrize("value", ["ann@x.com", "first.last+tag@mail.example.org"])
def test_valid_emails(value):
    assert is_valid_email(value)


@pytest.mark.parametrize("value", ["", "invalid-email", "a@b", "a b@x.com", "@x.com", "a@@x.com"])
def test_invalid_emails(value):
    assert not is_valid_email(value)


def test_normalize_trims_and_drops_unknown_fields():
    data = normalize_payload(
        {
            "id": "999",
            "name": "  Ann  ",
            "role": "admin",
            "address": {"city": " Foo ", "country": "BR"},
        }
    )
    assert data == {"name": "Ann", "address": {"city": "Foo"}}


def test_create_validation_lists_every_field():
    errors = validate_user_payload({"name": "", "username": "te", "email": "nope"})
    assert [e["field"] for e in errors] == ["name", "username", "email"]


def test_create_validation_requires_fields():
    errors = validate_user_payload({})
    assert {e["field"] for e in errors} == {"name", "username", "email"}


def test_partial_validation_only_checks_supplied_fields():
    assert validate_user_payload({"name": "Ann2"}, partial=True) == []
    errors = validate_user_payload({"email": "bad"}, partial=True)
    assert errors == [{"field": "email", "message": "Valid email is required"}]


def test_address_limits():
    errors = validate_user_payload(
        {
            "name": "A" * 101,
            "username": "ann1",
            "email": "ann@x.com",
            "address": {"street": "A" * 201, "city": "A" * 101, "zipcode": "A" * 21},
        }
    )
    assert [e["field"] for e in errors] == ["name", "address.street", "address.city", "address.zipcode"]


def test_address_must_be_object():
    errors = validate_user_payload({"address": "Main St"}, partial=True)
    assert errors[0]["field"] == "address"


def test_find_conflict_excludes_record_being_updated():
    records = [ANN, {"id": "200", "username": "bob", "email": "bob@x.com"}]
    assert find_conflict(records, {"username": "ann1"}) == "username"
    assert find_conflict(records, {"email": "bob@x.com"}) == "email"
    assert find_conflict(records, {"username": "ann1"}, exclude_id="100") is None
    assert find_conflict(records, {"username": "ANN1"}) is None


def test_filters_match_top_level_and_nested_fields():
    assert matches_filters(ANN, {"address.city": "spring"})
    assert matches_filters(ANN, {"name": "ann", "username": "ann1"})
    assert not matches_filters(ANN, {"address.city": "Shelbyville"})
    assert not matches_filters(ANN, {"phone": "555"})


def test_filters_ignore_unknown_parameters():
    assert matches_filters(ANN, {"_": "12345", "sort": "name", "address.city.x": "y"})


def test_filter_on_id_is_exact():
    assert matches_filters(ANN, {"id": "100"})
    assert not matches_filters(ANN, {"id": "10"})


@pytest.mark.parametrize("query", ["LEE", "ann1", "@x.co", "springfield", "12345"])
def test_search_matches(query):
    assert matches_query(ANN, query)


def test_search_no_match():
    assert not matches_query(ANN, "zzz")


def test_null_address_counts_as_absent():
    data = normalize_payload({"name": "Ann", "username": "ann1", "email": "ann@x.com", "address": None})
    assert "address" not in data
    assert validate_user_payload(data) == []


def test_find_conflict_skips_non_object_records():
    assert find_conflict([1, "x", ANN], {"username": "ann1"}) == "username"
