"""Local library stores: whole-collection get-all / set-all persistence."""
import json
import os
import tempfile
from typing import Any, Dict, List, Sequence
import logging

from booklist.errors import StorageError
from booklist.models import SavedBook

logger = logging.getLogger(__name__)

BOOKS_STORAGE_KEY = "@MyBookList:books"


def _decode(raw: Any) -> List[SavedBook]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise StorageError("Stored library is not a list")
    try:
        return [SavedBook.from_dict(entry) for entry in raw]
    except (KeyError, TypeError, AttributeError) as e:
        raise StorageError(f"Malformed book entry in library: {e}") from e


def _encode(books: Sequence[SavedBook]) -> List[Dict[str, Any]]:
    return [book.to_dict() for book in books]


class BookStore:
    """Persistence boundary for the saved-book collection."""

    def get_all(self) -> List[SavedBook]:
        raise NotImplementedError

    def set_all(self, books: Sequence[SavedBook]) -> None:
        raise NotImplementedError


class MemoryStore(BookStore):
    """In-process store; nothing survives the process."""

    def __init__(self, books: Sequence[SavedBook] = ()):
        self._books = list(books)

    def get_all(self) -> List[SavedBook]:
        return list(self._books)

    def set_all(self, books: Sequence[SavedBook]) -> None:
        self._books = list(books)


class JsonFileStore(BookStore):
    """
    Key-value JSON file holding the collection under a single key.

    The file is a JSON object so other keys written by other tools are
    preserved. Writes go to a temporary file that replaces the original.
    """

    def __init__(self, path: str, key: str = BOOKS_STORAGE_KEY):
        self.path = path
        self.key = key

    def _read_file(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading books from {self.path}: {e}")
            raise StorageError(f"Failed to read library: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Library file is not a JSON object: {self.path}")
        return data

    def get_all(self) -> List[SavedBook]:
        return _decode(self._read_file().get(self.key))

    def set_all(self, books: Sequence[SavedBook]) -> None:
        data = self._read_file()
        data[self.key] = _encode(books)

        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Error saving books to {self.path}: {e}")
            raise StorageError(f"Failed to write library: {e}") from e

        logger.info(f"Saved {len(books)} books to {self.path}")


class DatabaseStore(BookStore):
    """Collection stored as one JSONB value in the database key-value table."""

    def __init__(self, db, key: str = BOOKS_STORAGE_KEY):
        self.db = db
        self.key = key

    def get_all(self) -> List[SavedBook]:
        return _decode(self.db.get_item(self.key))

    def set_all(self, books: Sequence[SavedBook]) -> None:
        self.db.set_item(self.key, _encode(books))
        logger.info(f"Saved {len(books)} books under {self.key}")
