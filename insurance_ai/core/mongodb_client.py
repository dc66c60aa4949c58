"""
MongoDB client singleton for database operations.
Provides connection management and collection access.
"""

from typing import Optional
from pymongo import MongoClient
from pymongo.database import Database

from insurance_ai.config import Settings, get_settings


_client: Optional[MongoClient] = None


def get_mongodb_client(settings: Optional[Settings] = None) -> MongoClient:
    """
    Get MongoDB client singleton.
    The client connects lazily; timeouts come from settings.
    """
    global _client
    if _client is None:
        settings = settings or get_settings()
        _client = MongoClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            socketTimeoutMS=settings.mongodb_timeout_ms,
            connectTimeoutMS=settings.mongodb_timeout_ms,
        )
    return _client


def get_database(settings: Optional[Settings] = None) -> Database:
    """Get the configured database."""
    settings = settings or get_settings()
    client = get_mongodb_client(settings)
    return client[settings.mongodb_database]


def close_mongodb_client() -> None:
    """Close the MongoDB client connection."""
    global _client
    if _client is not None:
        _client.close()
        _client = None


# Collection names as constants
class Collections:
    """MongoDB collection names."""
    CUSTOMERS = "customers"
    INSURERS = "insurers"
    POLICIES = "policies"
    INQUIRIES = "inquiries"
