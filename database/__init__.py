"""
Database module for ResearchStats.

Manages MongoDB connections and provides access to collections.
"""

from .connection import (
    close_database_connection,
    get_collection,
    get_database,
    get_mongo_client,
    initialize_database,
)

__all__ = [
    "close_database_connection",
    "get_collection",
    "get_database",
    "get_mongo_client",
    "initialize_database",
]
