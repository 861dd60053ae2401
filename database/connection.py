"""
MongoDB connection management.

Handles database initialization, connection pooling, and collection access.
Includes retry logic for resilience.
"""

import logging
import time
from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import get_settings

# Set up logging
logger = logging.getLogger(__name__)

# Global connection objects (initialized on startup)
_mongo_client: Optional[MongoClient] = None
_database: Optional[Database] = None

# Retry configuration
MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 2


def initialize_database() -> bool:
    """
    Initialize MongoDB connection and verify connectivity.

    This function should be called once at application startup.
    Includes retry logic with exponential backoff.

    Returns:
        bool: True if connection successful, False otherwise
    """
    global _mongo_client, _database

    settings = get_settings()

    if not settings.mongodb_uri:
        logger.warning("MONGODB_URI is not set. MongoDB features will be disabled.")
        return False

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            _mongo_client = MongoClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=5000,
                maxPoolSize=50,
                minPoolSize=5,
                maxIdleTimeMS=30000,
                connectTimeoutMS=5000,
                socketTimeoutMS=30000,
                retryWrites=True,
                retryReads=True,
            )

            # Verify connection by pinging the server
            _mongo_client.admin.command("ping")

            _database = _mongo_client[settings.mongodb_database_name]

            logger.info(
                "Successfully connected to MongoDB database: %s (attempt %d/%d)",
                settings.mongodb_database_name, attempt, MAX_RETRIES,
            )
            return True

        except PyMongoError as exc:
            logger.error("MongoDB connection attempt %d/%d failed: %s", attempt, MAX_RETRIES, exc)
            _mongo_client = None
            _database = None

            if attempt < MAX_RETRIES:
                delay = RETRY_DELAY_SECONDS * (2 ** (attempt - 1))  # Exponential backoff
                logger.info("Retrying in %d seconds...", delay)
                time.sleep(delay)

    logger.error("Failed to connect to MongoDB after %d attempts", MAX_RETRIES)
    return False


def get_mongo_client() -> Optional[MongoClient]:
    """
    Get the global MongoDB client instance.

    Returns:
        Optional[MongoClient]: MongoDB client if initialized, None otherwise
    """
    return _mongo_client


def get_database() -> Optional[Database]:
    """
    Get the global database instance.

    Returns:
        Optional[Database]: Database instance if initialized, None otherwise
    """
    if _database is None:
        logger.debug("Database requested but not initialized")
    return _database


def get_collection(name: str) -> Optional[Collection]:
    """Get a collection by name, or None while the database is down."""
    db = get_database()
    if db is None:
        logger.debug("%s collection requested but database not initialized", name)
        return None
    return db[name]


def get_users_collection() -> Optional[Collection]:
    """Get the users collection."""
    return get_collection("users")


def close_database_connection() -> None:
    """
    Close the MongoDB connection.

    Should be called during application shutdown.
    """
    global _mongo_client, _database

    if _mongo_client:
        try:
            _mongo_client.close()
            logger.info("MongoDB connection closed")
        except PyMongoError as exc:
            logger.warning("Error closing MongoDB connection: %s", exc)

    _mongo_client = None
    _database = None
