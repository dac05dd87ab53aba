"""Exceptions raised at the catalog and storage boundaries."""
from typing import Optional


class BooklistError(Exception):
    """Base class for all booklist errors."""
    pass


class CatalogError(BooklistError):
    """The catalog search could not complete."""
    pass


class NetworkError(CatalogError):
    """Connectivity failure (timeout, refused connection, DNS)."""
    pass


class ProviderError(CatalogError):
    """The catalog answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(BooklistError):
    """Reading or writing the local library failed."""
    pass


class BookAlreadyExistsError(BooklistError):
    """A book with the same id is already in the library."""

    def __init__(self, book_id: str):
        super().__init__("Book already exists in library")
        self.book_id = book_id


class BookNotFoundError(BooklistError):
    """No saved book has the requested id."""

    def __init__(self, book_id: str):
        super().__init__(f"Book not found in library: {book_id}")
        self.book_id = book_id


class ValidationError(BooklistError):
    """User-supplied book data is incomplete."""
    pass


def friendly_message(error: Exception) -> str:
    """
    Map an error to a message suitable for a retry prompt.

    Args:
        error: Exception raised by a search or library operation

    Returns:
        Human-readable message
    """
    if isinstance(error, NetworkError):
        return "No internet connection. Please check your network and try again."

    if isinstance(error, ProviderError):
        if error.status_code == 429:
            return "Too many requests. Please try again in a moment."
        if error.status_code in (401, 403):
            return "Unable to access the book service. Please try again later."
        return "Something went wrong while searching. Please try again."

    if isinstance(error, StorageError):
        return "Could not access your library. Please try again."

    if isinstance(error, BooklistError):
        return str(error)

    return "Something went wrong. Please try again."
