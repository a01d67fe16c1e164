"""MongoDB database connection using Motor (async driver)."""
import logging
from contextlib import contextmanager

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from worktrack.config import settings
from worktrack.errors import StorageError

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure the indexes exist."""
        self.client = AsyncIOMotorClient(settings.mongodb_url)
        self.db = self.client[settings.mongodb_db_name]
        await ensure_indexes(self.db)
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        if self.db is None:
            raise RuntimeError("Database not connected")
        return self.db[name]


# Global database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    if database.db is None:
        raise RuntimeError("Database not connected")
    return database.db


async def ensure_indexes(db) -> None:
    """
    Create the indexes the lifecycle relies on.

    The partial unique index on work_logs.source_session_id allows at most
    one work log per session, while still accepting work logs created
    directly (no source session). In single-timer mode a second partial
    unique index keeps each user to one RUNNING session. Turning the mode
    off later does not drop that index.
    """
    await db["work_logs"].create_index(
        [("source_session_id", ASCENDING)],
        name="uniq_source_session",
        unique=True,
        partialFilterExpression={"source_session_id": {"$type": "string"}},
    )
    await db["time_sessions"].create_index(
        [("user_id", ASCENDING), ("status", ASCENDING)],
        name="user_status",
    )
    await db["time_sessions"].create_index(
        [("user_id", ASCENDING), ("created_at", DESCENDING)],
        name="user_created",
    )
    if settings.single_active_timer:
        await db["time_sessions"].create_index(
            [("user_id", ASCENDING)],
            name="one_running_per_user",
            unique=True,
            partialFilterExpression={"status": "RUNNING"},
        )


@contextmanager
def storage_guard(operation: str):
    """Translate driver failures into StorageError."""
    try:
        yield
    except PyMongoError as e:
        logger.error("Storage failure during %s", operation, exc_info=True)
        raise StorageError(f"Storage failure during {operation}") from e
