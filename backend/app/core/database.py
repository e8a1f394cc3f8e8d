"""
MongoDB database connection and utilities
"""
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import IndexModel, ASCENDING, DESCENDING, TEXT
from typing import Optional
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB connection manager"""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None


database = Database()


async def connect_db():
    """Connect to MongoDB and create indexes"""
    logger.info(f"Connecting to MongoDB at {settings.MONGO_URL}")

    try:
        database.client = AsyncIOMotorClient(
            settings.MONGO_URL,
            serverSelectionTimeoutMS=30000,
            connectTimeoutMS=30000,
            socketTimeoutMS=30000
        )
        database.db = database.client[settings.MONGO_DB]

        # Test connection
        await database.client.admin.command('ping')
        logger.info("MongoDB connection successful")

        await create_indexes()

        logger.info("MongoDB connection established")
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        logger.error(f"MongoDB URL: {settings.MONGO_URL}")
        raise


async def disconnect_db():
    """Close MongoDB connection"""
    if database.client:
        database.client.close()
        logger.info("MongoDB connection closed")


async def create_indexes():
    """Create database indexes for the list, search and stats queries"""
    db = database.db

    await db.users.create_indexes([
        IndexModel([("email", ASCENDING)], unique=True),
        IndexModel([("username", ASCENDING)], unique=True),
    ])

    await db.images.create_indexes([
        IndexModel([("public_id", ASCENDING)], unique=True),
        IndexModel([("uploaded_by", ASCENDING), ("created_at", DESCENDING)]),
        IndexModel([("tags", ASCENDING)]),
        IndexModel([("is_public", ASCENDING)]),
        IndexModel([("title", TEXT), ("description", TEXT)]),
    ])

    logger.info("Database indexes created")


def get_db() -> AsyncIOMotorDatabase:
    """Get database instance"""
    return database.db


def get_collection(name: str):
    """Get a specific collection"""
    return database.db[name]
