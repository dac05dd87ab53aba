"""Data models for books."""
from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone
from typing import Optional, Dict, Any


UNKNOWN_AUTHOR = "Unknown Author"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class BookRecord:
    """Normalized catalog search result."""
    id: str
    title: str
    author: str = UNKNOWN_AUTHOR
    thumbnail: Optional[str] = None
    description: Optional[str] = None
    isbn: Optional[str] = None

    @property
    def has_isbn(self) -> bool:
        return bool(self.isbn)

    @property
    def has_thumbnail(self) -> bool:
        return bool(self.thumbnail)

    @property
    def has_description(self) -> bool:
        return bool(self.description)

    @property
    def has_known_author(self) -> bool:
        return self.author != UNKNOWN_AUTHOR

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookRecord":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            author=data.get("author") or UNKNOWN_AUTHOR,
            thumbnail=data.get("thumbnail"),
            description=data.get("description"),
            isbn=data.get("isbn"),
        )


@dataclass(frozen=True)
class SavedBook:
    """A book kept in the user's library, with personal notes."""
    id: str
    title: str
    author: str
    date_added: str
    thumbnail: Optional[str] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    comments: str = ""
    last_edited: Optional[str] = None

    @classmethod
    def from_record(cls, record: BookRecord, comments: str = "") -> "SavedBook":
        """Stamp a search result with the time it was added."""
        return cls(
            id=record.id,
            title=record.title,
            author=record.author,
            date_added=utc_now_iso(),
            thumbnail=record.thumbnail,
            description=record.description,
            isbn=record.isbn,
            comments=comments,
        )

    def with_comments(self, comments: str) -> "SavedBook":
        return replace(self, comments=comments, last_edited=utc_now_iso())

    def to_record(self) -> BookRecord:
        return BookRecord(
            id=self.id,
            title=self.title,
            author=self.author,
            thumbnail=self.thumbnail,
            description=self.description,
            isbn=self.isbn,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the stored (camelCase) key names."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "thumbnail": self.thumbnail,
            "description": self.description,
            "isbn": self.isbn,
            "comments": self.comments,
            "dateAdded": self.date_added,
            "lastEdited": self.last_edited,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedBook":
        return cls(
            id=data["id"],
            title=data.get("title") or "Untitled",
            author=data.get("author") or UNKNOWN_AUTHOR,
            date_added=data.get("dateAdded") or "",
            thumbnail=data.get("thumbnail"),
            description=data.get("description"),
            isbn=data.get("isbn"),
            comments=data.get("comments") or "",
            last_edited=data.get("lastEdited"),
        )
