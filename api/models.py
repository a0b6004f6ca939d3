"""
Request and response schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from store.models import Author, Book, User

# BSON stores integers in at most 8 bytes
BSON_INT_MIN = -2 ** 63
BSON_INT_MAX = 2 ** 63 - 1


class SignupRequest(BaseModel):
    """Signup payload. The password arrives in plaintext and is hashed at rest."""
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., max_length=50, validation_alias=AliasChoices("user_name", "username"))
    email: str = Field(..., max_length=50)
    password: str
    first_name: str = Field("", max_length=50)
    last_name: str = Field("", max_length=50)
    phone_number: str = Field("", max_length=11)
    gender: str = Field("", max_length=50)

    def to_user(self) -> User:
        return User(**self.model_dump())


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str = Field(..., description="Bearer token for the Authorization header")


class TableOfContentsPayload(BaseModel):
    """The content labels of a book creation body."""
    table_of_contents: List[Annotated[str, Field(max_length=255)]] = Field(default_factory=list)


class AuthorPayload(BaseModel):
    first_name: str = Field("", max_length=50)
    last_name: str = Field("", max_length=50)
    birthday: Optional[datetime] = None
    nationality: str = Field("", max_length=50)


class BookPayload(BaseModel):
    """
    The direct fields of a book creation body.

    Owner and ids are not accepted from clients; unknown keys, including
    ``table_of_contents``, are ignored here.
    """
    name: str = Field("", max_length=255)
    category: str = Field("", max_length=255)
    volume: int = Field(
        0, ge=BSON_INT_MIN, le=BSON_INT_MAX, validation_alias=AliasChoices("volume", "volumn")
    )
    published_at: Optional[datetime] = None
    summary: str = ""
    publisher: str = Field("", max_length=255)
    author: AuthorPayload = Field(default_factory=AuthorPayload)

    def to_book(self, owner_id: int) -> Book:
        data = self.model_dump()
        data["author"] = Author(**data["author"])
        return Book(**data, user_id=owner_id)


class BookResponse(BaseModel):
    """Book as returned to clients, with contents flattened to their labels."""
    id: int
    name: str
    category: str
    volume: int
    published_at: Optional[datetime] = None
    summary: str
    publisher: str
    author: AuthorPayload
    table_of_contents: List[str]

    @classmethod
    def from_book(cls, book: Book) -> "BookResponse":
        return cls(
            id=book.id,
            name=book.name,
            category=book.category,
            volume=book.volume,
            published_at=book.published_at,
            summary=book.summary,
            publisher=book.publisher,
            author=AuthorPayload(**book.author.model_dump()),
            table_of_contents=book.content_names(),
        )


class UpdateBookRequest(BaseModel):
    """Both fields are required and both are overwritten."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., max_length=255)
    category: str = Field(..., max_length=255)


class MessageResponse(BaseModel):
    """Envelope for errors and mutation acknowledgements."""
    message: str = Field(..., description="Human-readable outcome")
    detail: Optional[str] = Field(None, description="Internal detail, only in debug mode")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
