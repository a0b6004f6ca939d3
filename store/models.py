"""
Pydantic models for users and books as they are persisted.
Each model converts to and from the MongoDB document layout, where the
numeric id is stored as ``_id``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a timestamp to aware UTC.

    MongoDB keeps datetimes as UTC instants and hands them back naive, so a
    naive value is taken to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class User(BaseModel):
    """
    Account record. ``password`` holds the bcrypt hash once the user has
    been stored; it is only plaintext on a signup candidate.
    """
    id: Optional[int] = Field(None, description="Unique numeric user id")
    username: str = Field(..., description="Unique login name")
    email: str = Field(..., description="Unique email address")
    password: str = Field(..., description="Password hash (plaintext only before signup)")
    first_name: str = ""
    last_name: str = ""
    phone_number: str = Field("", description="Unique phone number")
    gender: str = ""

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        doc["_id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        data = dict(doc)
        data["id"] = data.pop("_id")
        return cls(**data)


class Author(BaseModel):
    """Author details embedded in a book."""
    first_name: str = ""
    last_name: str = ""
    birthday: Optional[datetime] = None
    nationality: str = ""

    @field_validator("birthday")
    @classmethod
    def normalise_birthday(cls, v):
        return as_utc(v)


class ContentEntry(BaseModel):
    """One table-of-contents line. Lives and dies with its book."""
    id: int
    content_name: str
    book_id: int


class Book(BaseModel):
    """
    Catalog item owned by exactly one user.

    ``user_id`` is assigned from the authenticated requester when the book
    is created and never changes afterwards.
    """
    id: Optional[int] = None
    name: str = ""
    category: str = ""
    volume: int = 0
    published_at: Optional[datetime] = None
    summary: str = ""
    publisher: str = ""
    author: Author = Field(default_factory=Author)
    user_id: Optional[int] = None
    table_of_contents: List[ContentEntry] = Field(default_factory=list)

    @field_validator("published_at")
    @classmethod
    def normalise_published_at(cls, v):
        return as_utc(v)

    def content_names(self) -> List[str]:
        """Flatten the stored entries back into their labels, in order."""
        return [entry.content_name for entry in self.table_of_contents]

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        doc["_id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Book":
        data = dict(doc)
        data["id"] = data.pop("_id")
        return cls(**data)
