"""Saved-book library operations over a BookStore."""
import uuid
from typing import Iterable, List, Optional, Set
import logging

from booklist.errors import BookAlreadyExistsError, BookNotFoundError, ValidationError
from booklist.models import BookRecord, SavedBook
from booklist.parse import sanitize_book
from booklist.storage import BookStore

logger = logging.getLogger(__name__)


def is_saved(book_id: str, saved_books: Iterable[SavedBook]) -> bool:
    """
    Exact id membership test against saved books.

    Unlike ``dedupe.are_duplicates`` this does no fuzzy matching: a search
    result whose catalog id differs from a manually entered copy of the
    same book is not considered saved.
    """
    return any(book.id == book_id for book in saved_books)


class Library:
    """
    The user's saved books.

    Every mutation loads the full collection, computes the new one and
    writes it back. A single writer is assumed; concurrent writers can
    lose updates. Store failures propagate as ``StorageError``.
    """

    def __init__(self, store: BookStore):
        self.store = store

    def load_books(self) -> List[SavedBook]:
        return self.store.get_all()

    def saved_ids(self) -> Set[str]:
        return {book.id for book in self.load_books()}

    def is_saved(self, book_id: str) -> bool:
        return is_saved(book_id, self.load_books())

    def get_book(self, book_id: str) -> SavedBook:
        for book in self.load_books():
            if book.id == book_id:
                return book
        raise BookNotFoundError(book_id)

    def add_book(self, record: BookRecord, comments: str = "") -> SavedBook:
        """
        Save a search result.

        Args:
            record: Book to save
            comments: Initial personal notes

        Returns:
            The stored SavedBook

        Raises:
            BookAlreadyExistsError: A book with the same id is saved already
        """
        books = self.load_books()
        if is_saved(record.id, books):
            raise BookAlreadyExistsError(record.id)

        saved = SavedBook.from_record(sanitize_book(record), comments=comments.strip())
        self.store.set_all(books + [saved])
        logger.info(f"Added to library: {saved.title} ({saved.id})")
        return saved

    def add_manual_book(self, title: str, author: str, comments: str = "") -> SavedBook:
        """Save a book typed in by the user; title and author are required."""
        title = (title or "").strip()
        author = (author or "").strip()
        if not title or not author:
            raise ValidationError("Title and author are required")

        record = BookRecord(id=f"manual-{uuid.uuid4().hex}", title=title, author=author)
        return self.add_book(record, comments=comments)

    def _replace(self, book_id: str, updated: Optional[SavedBook]) -> List[SavedBook]:
        books = self.load_books()
        if not is_saved(book_id, books):
            raise BookNotFoundError(book_id)

        if updated is None:
            new_books = [book for book in books if book.id != book_id]
        else:
            new_books = [updated if book.id == book_id else book for book in books]

        self.store.set_all(new_books)
        return new_books

    def update_book(self, updated: SavedBook) -> List[SavedBook]:
        return self._replace(updated.id, updated)

    def delete_book(self, book_id: str) -> List[SavedBook]:
        """Remove a saved book and return the remaining collection."""
        new_books = self._replace(book_id, None)
        logger.info(f"Deleted from library: {book_id}")
        return new_books

    def update_comments(self, book_id: str, comments: str) -> SavedBook:
        """Replace a book's notes and stamp its last-edited time."""
        updated = self.get_book(book_id).with_comments(comments)
        self._replace(book_id, updated)
        return updated
