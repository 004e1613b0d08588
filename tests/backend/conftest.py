"""
Backend-specific test fixtures.

These fixtures extend the global fixtures with applier helpers and
driver-level doubles for failure paths mongomock cannot produce.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest


# =============================================================================
# Applier Fixtures
# =============================================================================

@pytest.fixture
def applier(mock_async_mongo_client):
    """IndexApplier over the in-memory MongoDB."""
    from mongo_init.services.index_applier import IndexApplier

    return IndexApplier(mock_async_mongo_client)


@pytest.fixture
def mock_collection():
    """
    A collection whose driver calls are AsyncMock.

    Configure failures per test:

        mock_collection.create_index.side_effect = OperationFailure(...)
    """
    collection = MagicMock()
    collection.index_information = AsyncMock(return_value={})
    collection.create_index = AsyncMock(return_value="email_1")
    collection.update_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    return collection


@pytest.fixture
def mock_collection_client(mock_collection):
    """Client returning mock_collection for every database and collection."""
    client = MagicMock()
    client.__getitem__.return_value.__getitem__.return_value = mock_collection
    return client


@pytest.fixture
def mock_applier(mock_collection_client):
    """IndexApplier whose driver calls are AsyncMock."""
    from mongo_init.services.index_applier import IndexApplier

    return IndexApplier(mock_collection_client)
