"""
MongoDB connection utilities for async operations.
Handles connection, schema bootstrap (indexes) and numeric id sequences.
"""

from typing import Optional, Dict, Any
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure
import structlog

logger = structlog.get_logger(__name__)

USERS_COLLECTION = "users"
BOOKS_COLLECTION = "books"
COUNTERS_COLLECTION = "counters"


class MongoDBManager:
    """
    Async MongoDB manager shared by the credential and catalog stores.
    Handles connection, indexing and id allocation.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    def from_client(cls, client, database_name: str) -> "MongoDBManager":
        """Wrap an already constructed client without pinging it."""
        manager = cls(connection_url="", database_name=database_name)
        manager.client = client
        manager.database = client[database_name]
        return manager

    @property
    def users(self) -> AsyncIOMotorCollection:
        return self.database[USERS_COLLECTION]

    @property
    def books(self) -> AsyncIOMotorCollection:
        return self.database[BOOKS_COLLECTION]

    @property
    def counters(self) -> AsyncIOMotorCollection:
        return self.database[COUNTERS_COLLECTION]

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url, tz_aware=True)
            self.database = self.client[self.database_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def create_schema(self) -> None:
        """
        Create indexes if they don't exist.

        The unique indexes on username, email and phone number are what keeps
        two accounts from sharing them; signup pre-checks only pick the
        error message.
        """
        try:
            await self.users.create_index("username", unique=True)
            await self.users.create_index("email", unique=True)
            await self.users.create_index("phone_number", unique=True)

            # Owner lookups
            await self.books.create_index("user_id")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def next_ids(self, sequence: str, count: int = 1) -> range:
        """
        Reserve ``count`` consecutive numeric ids from a named sequence.

        Args:
            sequence: Counter name (one per id space)
            count: Number of ids to reserve

        Returns:
            Range of reserved ids, empty when count is 0
        """
        if count <= 0:
            return range(0)

        counter = await self.counters.find_one_and_update(
            {"_id": sequence},
            {"$inc": {"seq": count}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        last = counter["seq"]
        return range(last - count + 1, last + 1)

    async def next_id(self, sequence: str) -> int:
        """Reserve a single id from a named sequence."""
        return (await self.next_ids(sequence, 1))[0]

    async def get_database_stats(self) -> Dict[str, Any]:
        """Get document counts for monitoring."""
        try:
            return {
                "users": await self.users.count_documents({}),
                "books": await self.books.count_documents({}),
            }
        except Exception as e:
            logger.error("Failed to get database stats", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            stats = await self.get_database_stats()
            return {"status": "healthy", **stats}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
