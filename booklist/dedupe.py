"""Deduplicate and rank catalog search results.

The catalog often returns several editions of the same book. Records are
judged equivalent by ISBN when both carry one, otherwise by a fuzzy
title match plus an exact author match on normalized strings. Of each
group of equivalents the most complete record survives, and the result
list is ordered so the most complete records come first.
"""
import re
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from booklist.models import BookRecord
from booklist.parse import parse_books

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_WHITESPACE = re.compile(r"\s+")

STRATEGIES = ("replace", "merge")


def normalize(value: Optional[str]) -> str:
    """Lowercase alphanumeric projection of a string, for comparison only."""
    if not value:
        return ""
    value = value.lower().strip()
    value = _NON_ALNUM.sub("", value)
    return _WHITESPACE.sub("", value)


def are_duplicates(a: BookRecord, b: BookRecord) -> bool:
    """
    Decide whether two records describe the same book.

    When both records carry an ISBN the ISBNs alone decide; title and
    author are not consulted even if the ISBNs differ.

    Args:
        a: First record
        b: Second record

    Returns:
        True if the records are equivalent
    """
    if a.isbn and b.isbn:
        return normalize(a.isbn) == normalize(b.isbn)

    title_a = normalize(a.title)
    title_b = normalize(b.title)
    titles_match = title_a == title_b or title_a in title_b or title_b in title_a

    return titles_match and normalize(a.author) == normalize(b.author)


def should_replace(candidate: BookRecord, existing: BookRecord) -> bool:
    """True if the candidate offers something the existing record lacks."""
    return (
        (candidate.has_isbn and not existing.has_isbn)
        or (candidate.has_thumbnail and not existing.has_thumbnail)
        or (candidate.has_description and not existing.has_description)
        or (candidate.has_known_author and not existing.has_known_author)
    )


def merge_records(existing: BookRecord, candidate: BookRecord) -> BookRecord:
    """
    Combine two equivalent records field by field.

    Identity and title come from the record that would win a wholesale
    replacement; every optional field is taken from whichever record has it,
    preferring the existing one.
    """
    base = candidate if should_replace(candidate, existing) else existing

    author = base.author
    if not base.has_known_author:
        author = existing.author if existing.has_known_author else candidate.author

    return replace(
        base,
        author=author,
        isbn=existing.isbn or candidate.isbn,
        thumbnail=existing.thumbnail or candidate.thumbnail,
        description=existing.description or candidate.description,
    )


def deduplicate_books(books: Iterable[BookRecord], strategy: str = "replace") -> List[BookRecord]:
    """
    Merge equivalent records, keeping input order of first appearance.

    Args:
        books: Parsed records in catalog order
        strategy: "replace" swaps in the richer record wholesale;
            "merge" combines the best fields of both

    Returns:
        Deduplicated list of books
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown merge strategy: {strategy}")

    unique_books: List[BookRecord] = []

    for candidate in books:
        index = next(
            (i for i, existing in enumerate(unique_books) if are_duplicates(existing, candidate)),
            None,
        )

        if index is None:
            unique_books.append(candidate)
            continue

        existing = unique_books[index]
        if strategy == "merge":
            unique_books[index] = merge_records(existing, candidate)
        elif should_replace(candidate, existing):
            unique_books[index] = candidate

    return unique_books


def rank_key(book: BookRecord):
    # False sorts first, so "has field" records lead.
    return (
        not book.has_isbn,
        not book.has_thumbnail,
        not book.has_description,
        not book.has_known_author,
    )


def rank_books(books: Iterable[BookRecord]) -> List[BookRecord]:
    """Stable sort: ISBN, then thumbnail, then description, then known author."""
    return sorted(books, key=rank_key)


def process(raw_items: Iterable[Dict[str, Any]], strategy: str = "replace") -> List[BookRecord]:
    """
    Turn raw catalog items into a duplicate-free, ranked result list.

    Pure and deterministic; unusable items are dropped rather than raising.
    Items are unusable when they have no title, or no provider id (the id
    is the record identity used by the library), or are not objects.

    Args:
        raw_items: ``items`` entries from a Google Books search response
        strategy: Merge strategy, see ``deduplicate_books``

    Returns:
        Ranked list of BookRecords
    """
    return rank_books(deduplicate_books(parse_books(raw_items), strategy=strategy))
