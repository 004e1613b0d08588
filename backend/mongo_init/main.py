#!/usr/bin/env python3
"""
MongoDB index initialisation job.

Makes sure every declared index of the service databases exists with the
declared key pattern, uniqueness and partial filter. Meant to run once per
deployment, before the services start.

Usage:
    python -m mongo_init

Environment Variables:
    MONGO_URI: MongoDB connection string
    MONGO_USER / MONGO_PWD: Credentials (applied only when both are set)
    INIT_DATABASES: JSON list of databases to initialise (default: all)
    MIGRATIONS_COLLECTION: Collection recording applied migrations
    LOG_LEVEL: Logging level (default: INFO)
"""
import asyncio
import logging
from typing import Optional

from mongo_init.config import Settings, get_settings
from mongo_init.database.connections import close_connections, get_mongo_client, ping
from mongo_init.database.registry import load_declarations
from mongo_init.errors import IndexInitError
from mongo_init.models import ApplyResult
from mongo_init.services.index_applier import IndexApplier

logger = logging.getLogger("mongo_init")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def run(settings: Optional[Settings] = None) -> list[ApplyResult]:
    """
    Load, validate and apply the declaration set.

    The declaration set is validated before connecting, so a broken set
    never leaves a database half initialised.
    """
    settings = settings or get_settings()
    declarations = load_declarations(settings.init_databases)

    try:
        client = await get_mongo_client(settings)
        await ping(client)
        logger.info("Connected to MongoDB")

        applier = IndexApplier(client, settings.migrations_collection)
        return await applier.apply_all(declarations)
    finally:
        await close_connections()
        logger.info("Disconnected")


def main() -> int:
    """Main entry point. Returns the process exit status."""
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("MongoDB index initialisation")
    logger.info(f"Databases: {settings.init_databases or 'all'}")
    logger.info("=" * 60)

    try:
        results = asyncio.run(run(settings))
    except IndexInitError as e:
        logger.error(f"Index initialisation failed: {e}")
        return 1

    logger.info(f"Index initialisation complete ({len(results)} declaration(s))")
    return 0
