"""
Credential store: user accounts with bcrypt-hashed passwords.
"""

import asyncio

import bcrypt
import structlog
from pymongo.errors import DuplicateKeyError

from .database import MongoDBManager
from .errors import EmailTaken, MalformedRequest, PhoneTaken, UserNotFound, UsernameTaken
from .models import User

logger = structlog.get_logger(__name__)

# bcrypt ignores everything past 72 bytes and recent releases refuse it outright
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int) -> str:
    """Hash a plaintext password with a fresh salt at the given cost."""
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_PASSWORD_BYTES:
        raise MalformedRequest(f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    """Constant-time comparison of a plaintext password against a stored hash."""
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(raw, hashed.encode("utf-8"))


class CredentialStore:
    """Persists user records and answers identity lookups."""

    def __init__(self, db_manager: MongoDBManager, bcrypt_rounds: int = 4):
        self.db_manager = db_manager
        self.bcrypt_rounds = bcrypt_rounds

    @property
    def collection(self):
        return self.db_manager.users

    async def _ensure_available(self, candidate: User) -> None:
        """Raise the first uniqueness conflict found, username first."""
        if await self.username_exists(candidate.username):
            raise UsernameTaken()
        if await self.collection.count_documents({"email": candidate.email}) > 0:
            raise EmailTaken()
        if await self.collection.count_documents({"phone_number": candidate.phone_number}) > 0:
            raise PhoneTaken()

    async def create_user(self, candidate: User) -> User:
        """
        Store a new account.

        Args:
            candidate: User with a plaintext password

        Returns:
            The stored user, with its id and password hash

        Raises:
            UsernameTaken, EmailTaken, PhoneTaken: on a uniqueness conflict
        """
        await self._ensure_available(candidate)

        hashed = await asyncio.to_thread(hash_password, candidate.password, self.bcrypt_rounds)
        user_id = await self.db_manager.next_id("users")
        user = candidate.model_copy(update={"id": user_id, "password": hashed})

        try:
            await self.collection.insert_one(user.to_document())
        except DuplicateKeyError:
            # A concurrent signup committed between the checks and the insert.
            logger.warning("Unique index rejected signup", username=candidate.username)
            await self._ensure_available(candidate)
            raise

        logger.info("User created", user_id=user.id, username=user.username)
        return user

    async def find_by_username(self, username: str) -> User:
        """
        Resolve a username to exactly one account.

        Raises:
            UserNotFound: if there is no match, or more than one
        """
        docs = await self.collection.find({"username": username}).to_list(length=2)
        if len(docs) != 1:
            if docs:
                logger.error("Multiple users share a username", username=username, count=len(docs))
            raise UserNotFound()
        return User.from_document(docs[0])

    async def username_exists(self, username: str) -> bool:
        """Check whether an account with this username exists."""
        return await self.collection.count_documents({"username": username}) > 0
