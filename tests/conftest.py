"""
Global test fixtures for the MongoDB index initialisation job.

This module provides shared fixtures for all tests including:
- Mock async MongoDB (mongomock-motor)
- Declaration factories
- Settings cache reset
"""

import sys
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.

    Collections behave like motor's: every driver call is awaited. Unique
    and partial indexes are enforced on writes.
    """
    client = AsyncMongoMockClient()
    yield client
    client.close()


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start every test from the environment."""
    from mongo_init.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Declaration Fixtures
# =============================================================================

@pytest.fixture
def make_declaration():
    """
    Factory for IndexDeclaration with the shape of the shipped records.

    Usage:
        def test_something(make_declaration):
            declaration = make_declaration(keys=[("vat_code", 1)])
    """
    from mongo_init.models import ACTIVE_RECORDS_FILTER, IndexDeclaration

    def _make(**overrides: Any) -> IndexDeclaration:
        fields = {
            "migration_id": 1,
            "database": "authentication_service",
            "collection": "customers",
            "keys": [("email", 1)],
            "unique": True,
            "partialFilterExpression": ACTIVE_RECORDS_FILTER,
        }
        fields.update(overrides)
        return IndexDeclaration(**fields)

    return _make


@pytest.fixture
def make_manifest():
    """Factory for a database manifest holding the given index records."""
    def _make(db_name: str, *records: dict) -> dict:
        return {
            "db_name": db_name,
            "purpose": "test",
            "collections": sorted({r["collection"] for r in records}),
            "indexes": list(records),
        }

    return _make


@pytest.fixture
def staff_records() -> list[dict]:
    """The two overlapping staff records, unresolved."""
    from mongo_init.database.databases import authentication_service

    return [
        dict(record)
        for record in authentication_service.Collections.INDEXES
        if record["collection"] == "staff"
    ]
