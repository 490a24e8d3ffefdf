from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from typing import Optional
import os
from dotenv import load_dotenv
import logging

load_dotenv()
logger = logging.getLogger(__name__)

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "movies")
MOVIES_COLLECTION = "movies"

_client: Optional[AsyncIOMotorClient] = None


def connect() -> AsyncIOMotorClient:
    """
    Create the shared MongoDB client.
    The driver connects lazily; nothing is sent to the server until the first query.
    """
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(
            MONGODB_URI,
            serverSelectionTimeoutMS=int(os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", 5000)),
            maxPoolSize=int(os.getenv("MONGODB_MAX_POOL_SIZE", 50)),
            tz_aware=False,
        )
        logger.info(f"MongoDB client created for database '{MONGODB_DB_NAME}'")
    return _client


def close() -> None:
    """Close the shared client (application shutdown)."""
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB client closed")


# Dependency for FastAPI routes
def get_db() -> AsyncIOMotorDatabase:
    """
    Database dependency for FastAPI.

    Usage:
        @router.get("/endpoint")
        async def endpoint(db: AsyncIOMotorDatabase = Depends(get_db)):
            movies = db[MOVIES_COLLECTION]
    """
    return connect()[MONGODB_DB_NAME]
