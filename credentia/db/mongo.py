"""
MongoDB access through Motor.

One client per process, opened by the application lifespan. Routes receive
the database through ``DatabaseDep``.
"""

from typing import Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from ..core.config import get_settings
from ..utils.logger import get_logger

logger = get_logger("database")

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo() -> AsyncIOMotorDatabase:
    """Open the client, check it answers, and make sure indexes exist."""
    global _client, _database

    settings = get_settings()
    client = AsyncIOMotorClient(settings.mongodb_url)
    try:
        await client.admin.command("ping")
    except Exception as e:
        logger.error(f"MongoDB at {settings.mongodb_url} is unreachable: {e}")
        client.close()
        raise

    _client = client
    _database = client[settings.database_name]
    logger.info(f"Connected to MongoDB database '{settings.database_name}'")

    await ensure_indexes(_database)
    return _database


async def close_mongo_connection() -> None:
    global _client, _database

    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Indexes issuance relies on. The unique recipient email is what makes the
    recipient upsert safe under concurrent issuance.
    """
    await db.recipients.create_index([("email", ASCENDING)], unique=True)
    await db.templates.create_index([("owner_id", ASCENDING), ("created_at", DESCENDING)])
    await db.credentials.create_index([("owner_id", ASCENDING), ("issue_date", DESCENDING)])
    await db.credentials.create_index([("recipient_id", ASCENDING)])
    await db.file_metadata.create_index([("key", ASCENDING)])
    logger.debug("Database indexes ensured")


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("Database connection not established. Call connect_to_mongo() first.")
    return _database


async def get_database_dependency() -> AsyncIOMotorDatabase:
    """FastAPI dependency yielding the process-wide database."""
    return get_database()


DatabaseDep = Depends(get_database_dependency)
