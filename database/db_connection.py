# backend/database/db_connection.py
"""
=====================================================
db_connection.py
-----------------------------------------------------
Handles MongoDB database connection using PyMongo.
The client is created lazily so the app can start
(and degrade) without a reachable database.
=====================================================
"""

import logging

from pymongo import MongoClient

from config import Config

logger = logging.getLogger(__name__)

_client = None
_db = None


def get_database():
    """Return the configured database, connecting on first use."""
    global _client, _db
    if _db is None:
        try:
            _client = MongoClient(Config.MONGO_URI, serverSelectionTimeoutMS=5000)
            _db = _client[Config.MONGO_DB]
            logger.info("MongoDB client ready for database: %s", Config.MONGO_DB)
        except Exception as e:
            logger.exception("MongoDB connection failed")
            raise ConnectionError(f"Database not connected. Check MongoDB configuration. ({e})") from e
    return _db


# Utility function for modules
def get_collection(name: str):
    """
    Get a MongoDB collection safely.

    Args:
        name (str): Collection name
    Returns:
        pymongo.collection.Collection
    """
    return get_database()[name]
