"""Parse and normalize Google Books API responses."""
from typing import Dict, Any, Iterable, List, Optional
import logging

from booklist.models import BookRecord, UNKNOWN_AUTHOR

logger = logging.getLogger(__name__)

ISBN_TYPES = ("ISBN_13", "ISBN_10")


def _clean(value: Any) -> Optional[str]:
    """Trim a string field; empty or non-string values become None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def extract_isbn(identifiers: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """
    Return the first ISBN-13 or ISBN-10 identifier in provider order.

    Args:
        identifiers: ``industryIdentifiers`` list from ``volumeInfo``

    Returns:
        Trimmed identifier, or None when no ISBN is listed
    """
    if not isinstance(identifiers, list):
        return None

    for identifier in identifiers:
        if not isinstance(identifier, dict):
            continue
        if identifier.get("type") in ISBN_TYPES:
            return _clean(identifier.get("identifier"))
    return None


def secure_url(url: Optional[str]) -> Optional[str]:
    """Rewrite an ``http:`` image link to ``https:``."""
    url = _clean(url)
    if url and url.startswith("http:"):
        return "https:" + url[len("http:"):]
    return url


def parse_book(item: Dict[str, Any]) -> Optional[BookRecord]:
    """
    Parse a single book item from Google Books API.

    Items without a title (or without a provider id) are dropped.
    Missing optional fields fall back to None, and a missing author
    list falls back to the "Unknown Author" sentinel.

    Args:
        item: Single item from Google Books API response

    Returns:
        BookRecord or None if the item is unusable
    """
    if not isinstance(item, dict):
        return None

    volume_info = _as_dict(item.get("volumeInfo"))

    title = _clean(volume_info.get("title"))
    if not title:
        return None

    book_id = _clean(item.get("id"))
    if not book_id:
        logger.warning(f"Skipping catalog item without id: {title}")
        return None

    authors = volume_info.get("authors") or []
    author = _clean(authors[0]) if isinstance(authors, list) and authors else None

    image_links = _as_dict(volume_info.get("imageLinks"))

    return BookRecord(
        id=book_id,
        title=title,
        author=author or UNKNOWN_AUTHOR,
        thumbnail=secure_url(image_links.get("thumbnail")),
        description=_clean(volume_info.get("description")),
        isbn=extract_isbn(volume_info.get("industryIdentifiers")),
    )


def parse_books_response(response_json: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Unwrap the raw items of a search response envelope.

    Args:
        response_json: Complete API response JSON

    Returns:
        List of raw catalog items (empty if no items found)
    """
    if not isinstance(response_json, dict):
        return []
    items = response_json.get("items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def parse_books(items: Iterable[Dict[str, Any]]) -> List[BookRecord]:
    """Convert raw catalog items to BookRecords, dropping unusable ones."""
    books = []

    for item in items:
        book = parse_book(item)
        if book:
            books.append(book)

    return books


def sanitize_book(book: BookRecord) -> BookRecord:
    """Fill display defaults before a record is saved."""
    return BookRecord(
        id=book.id,
        title=book.title or "Untitled",
        author=book.author or UNKNOWN_AUTHOR,
        thumbnail=book.thumbnail or None,
        description=book.description or "",
        isbn=book.isbn or "",
    )
