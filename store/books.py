"""
Catalog store: books and their table-of-contents entries.

Contents are embedded in the book document, so deleting a book deletes its
entries and their order is the array order.
"""

from typing import List

import structlog

from .database import MongoDBManager
from .errors import BookNotFound, PermissionDenied
from .models import Book, ContentEntry, User
from .users import CredentialStore

logger = structlog.get_logger(__name__)


def is_owner(user: User, book: Book) -> bool:
    """A user may mutate a book only if it is recorded as the book's owner."""
    return user.id is not None and user.id == book.user_id


class CatalogStore:
    """Persists books and applies ownership checks to mutations."""

    def __init__(self, db_manager: MongoDBManager, credentials: CredentialStore):
        self.db_manager = db_manager
        self.credentials = credentials

    @property
    def collection(self):
        return self.db_manager.books

    async def create_book(self, book: Book, contents: List[str] = ()) -> Book:
        """
        Insert a book together with its table of contents.

        Args:
            book: Book fields, with ``user_id`` already set to the owner
            contents: Content labels in display order

        Returns:
            The stored book with ids assigned
        """
        contents = list(contents)
        book_id = await self.db_manager.next_id("books")
        entry_ids = await self.db_manager.next_ids("contents", len(contents))
        entries = [
            ContentEntry(id=entry_id, content_name=name, book_id=book_id)
            for entry_id, name in zip(entry_ids, contents)
        ]
        stored = book.model_copy(update={"id": book_id, "table_of_contents": entries})

        await self.collection.insert_one(stored.to_document())
        logger.info("Book created", book_id=book_id, user_id=stored.user_id, contents=len(entries))
        return stored

    async def get_book(self, book_id: int) -> Book:
        """
        Get a single book with its contents.

        Raises:
            BookNotFound: if no book has this id
        """
        doc = await self.collection.find_one({"_id": book_id})
        if doc is None:
            raise BookNotFound()
        return Book.from_document(doc)

    async def get_all_books(self) -> List[Book]:
        """Get every book in id order."""
        books = []
        async for doc in self.collection.find({}).sort("_id", 1):
            books.append(Book.from_document(doc))
        return books

    async def _authorize(self, acting_username: str, book_id: int) -> Book:
        """Resolve book, then acting user, then check ownership."""
        book = await self.get_book(book_id)
        user = await self.credentials.find_by_username(acting_username)
        if not is_owner(user, book):
            logger.warning(
                "Ownership check failed",
                book_id=book_id,
                username=acting_username,
                owner_id=book.user_id,
            )
            raise PermissionDenied()
        return book

    async def update_owned_book(self, acting_username: str, book_id: int, name: str, category: str) -> None:
        """
        Overwrite a book's name and category on behalf of its owner.

        Both values are always written; an empty string is a valid value.

        Raises:
            BookNotFound, UserNotFound, PermissionDenied
        """
        book = await self._authorize(acting_username, book_id)

        result = await self.collection.update_one(
            {"_id": book_id, "user_id": book.user_id},
            {"$set": {"name": name, "category": category}},
        )
        if result.matched_count == 0:
            # Deleted between the check and the write
            raise BookNotFound()
        logger.info("Book updated", book_id=book_id, username=acting_username)

    async def delete_owned_book(self, acting_username: str, book_id: int) -> None:
        """
        Delete a book and its contents on behalf of its owner.

        Raises:
            BookNotFound, UserNotFound, PermissionDenied
        """
        book = await self._authorize(acting_username, book_id)

        result = await self.collection.delete_one({"_id": book_id, "user_id": book.user_id})
        if result.deleted_count == 0:
            raise BookNotFound()
        logger.info("Book deleted", book_id=book_id, username=acting_username)
