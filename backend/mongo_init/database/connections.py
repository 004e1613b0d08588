"""
Database connection management for MongoDB.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import errors as mongo_errors

from mongo_init.config import Settings, get_settings
from mongo_init.errors import ConnectionFailure

# Global connection instance
_mongo_client: Optional[AsyncIOMotorClient] = None


async def get_mongo_client(settings: Optional[Settings] = None) -> AsyncIOMotorClient:
    """Get or create MongoDB client, configured from `settings` or the environment."""
    global _mongo_client
    if _mongo_client is None:
        settings = settings or get_settings()
        kwargs = {"serverSelectionTimeoutMS": settings.server_selection_timeout_ms}
        # Credentials are only applied when both are configured
        if settings.mongo_user and settings.mongo_pwd:
            kwargs["username"] = settings.mongo_user
            kwargs["password"] = settings.mongo_pwd
        _mongo_client = AsyncIOMotorClient(settings.mongo_uri, **kwargs)
    return _mongo_client


async def ping(client: AsyncIOMotorClient) -> None:
    """
    Check the deployment is reachable.

    Raises:
        ConnectionFailure: If no server answers within the selection timeout
    """
    try:
        await client.admin.command("ping")
    except mongo_errors.ConnectionFailure as e:
        raise ConnectionFailure(f"MongoDB is unreachable: {e}") from e


async def close_connections():
    """Close the database connection."""
    global _mongo_client

    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
