"""
Tests for the whole-file JSON storage adapter.
"""
from __future__ import annotations

import json
import sys
import threading
from pathlib import Path

import pytest

# Make the users_api package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from users_api.repositories.json_storage import JsonUserStorage, StorageError  # noqa: E402


def test_missing_file_is_initialised_empty(tmp_path):
    path = tmp_path / "nested" / "users.json"
    storage = JsonUserStorage(path)

    assert storage.load_all() == []
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == []


@pytest.mark.parametrize("content", ["", "   \n", "{not json", '{"id": "1"}'])
def test_unparseable_content_resets_file(tmp_path, content):
    path = tmp_path / "users.json"
    path.write_text(content, encoding="utf-8")

    assert JsonUserStorage(path).load_all() == []
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_leading_bom_is_stripped(tmp_path):
    path = tmp_path / "users.json"
    path.write_text("\ufeff" + json.dumps([{"id": "1", "name": "Ann"}]), encoding="utf-8")

    assert JsonUserStorage(path).load_all() == [{"id": "1", "name": "Ann"}]


def test_save_then_load_preserves_order_and_unicode(tmp_path):
    storage = JsonUserStorage(tmp_path / "users.json")
    records = [{"id": "2", "name": "Zoë"}, {"id": "1", "name": "Ann"}]

    storage.save_all(records)

    assert storage.load_all() == records
    assert "Zoë" in (tmp_path / "users.json").read_text(encoding="utf-8")


def test_read_failure_raises_storage_error(tmp_path):
    # a directory in place of the file cannot be read as text
    path = tmp_path / "users.json"
    path.mkdir()

    with pytest.raises(StorageError):
        JsonUserStorage(path).load_all()


def test_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    storage = JsonUserStorage(blocker / "users.json")

    with pytest.raises(StorageError):
        storage.save_all([])


def test_concurrent_reader_never_sees_a_wiped_collection(tmp_path):
    storage = JsonUserStorage(tmp_path / "users.json")
    records = [{"id": str(i), "name": f"User {i}", "username": f"user{i}"} for i in range(3000)]
    storage.save_all(records)

    stop = threading.Event()
    failures: list[Exception] = []

    def writer():
        try:
            while not stop.is_set():
                storage.save_all(storage.load_all())
        except Exception as exc:  # pragma: no cover - surfaced below
            failures.append(exc)

    thread = threading.Thread(target=writer)
    thread.start()
    try:
        for _ in range(200):
            assert len(storage.load_all()) == len(records)
    finally:
        stop.set()
        thread.join()

    assert failures == []
    assert len(storage.load_all()) == len(records)
    assert list(tmp_path.glob("*.tmp")) == []
