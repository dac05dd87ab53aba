"""Tests for library stores."""
import json
from unittest.mock import MagicMock

import pytest

from booklist.errors import StorageError
from booklist.models import SavedBook
from booklist.storage import BOOKS_STORAGE_KEY, DatabaseStore, JsonFileStore, MemoryStore


def saved(book_id="1", title="Emma", comments=""):
    return SavedBook(
        id=book_id,
        title=title,
        author="Jane Austen",
        date_added="2024-01-01T00:00:00+00:00",
        comments=comments,
    )


def test_json_store_missing_file_is_empty(tmp_path):
    """Test json store missing file is empty."""
    store = JsonFileStore(str(tmp_path / "library.json"))

    assert store.get_all() == []


def test_json_store_round_trip(tmp_path):
    """Test json store round trip."""
    path = tmp_path / "nested" / "library.json"
    store = JsonFileStore(str(path))
    books = [saved("1"), saved("2", "Persuasion", comments="favourite")]

    store.set_all(books)

    assert store.get_all() == books
    stored = json.loads(path.read_text())
    assert stored[BOOKS_STORAGE_KEY][1]["dateAdded"] == "2024-01-01T00:00:00+00:00"
    assert stored[BOOKS_STORAGE_KEY][1]["comments"] == "favourite"


def test_json_store_preserves_other_keys(tmp_path):
    """Test json store preserves other keys."""
    path = tmp_path / "library.json"
    path.write_text(json.dumps({"@Settings:theme": "dark"}))

    JsonFileStore(str(path)).set_all([saved()])

    data = json.loads(path.read_text())
    assert data["@Settings:theme"] == "dark"
    assert len(data[BOOKS_STORAGE_KEY]) == 1


def test_json_store_corrupt_file_raises(tmp_path):
    """Test json store corrupt file raises."""
    path = tmp_path / "library.json"
    path.write_text("{not json")

    with pytest.raises(StorageError):
        JsonFileStore(str(path)).get_all()


def test_json_store_malformed_entry_raises(tmp_path):
    """Test json store malformed entry raises."""
    path = tmp_path / "library.json"
    path.write_text(json.dumps({BOOKS_STORAGE_KEY: [{"title": "no id"}]}))

    with pytest.raises(StorageError):
        JsonFileStore(str(path)).get_all()


def test_json_store_write_failure_raises(tmp_path):
    """Test json store write failure raises."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(StorageError):
        JsonFileStore(str(blocker / "library.json")).set_all([saved()])


def test_memory_store_copies():
    """Test memory store copies."""
    store = MemoryStore()
    books = [saved()]

    store.set_all(books)
    books.append(saved("2"))

    assert len(store.get_all()) == 1


def test_database_store_uses_key_value_table():
    """Test database store uses key value table."""
    db = MagicMock()
    db.get_item.return_value = [saved().to_dict()]
    store = DatabaseStore(db, key="books")

    assert store.get_all() == [saved()]
    db.get_item.assert_called_once_with("books")

    store.set_all([saved("9")])
    key, value = db.set_item.call_args[0]
    assert key == "books"
    assert value[0]["id"] == "9"


def test_database_store_unset_key_is_empty():
    """Test database store unset key is empty."""
    db = MagicMock()
    db.get_item.return_value = None

    assert DatabaseStore(db).get_all() == []
