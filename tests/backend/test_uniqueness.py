"""
Tests for the data-integrity contract the declared indexes enforce.

Indexes are applied through IndexApplier, then documents are written
directly to the in-memory database:
- two active documents may not share a declared key value
- inactive (soft-deleted) documents are exempt
- toggling `active` is checked against the constraint
"""

import pytest
import pytest_asyncio
from pymongo.errors import DuplicateKeyError

from mongo_init.database.registry import load_declarations, parse_manifest
from mongo_init.database.databases import authentication_service


def _key_value(declaration, seed: str = "a") -> dict:
    """A document value for every field of the declared key."""
    return {field: f"{seed}-{field}@x.com" for field, _ in declaration.key_pattern}


def _resolvable_declarations():
    """Every shipped declaration that loads without an explicit resolution."""
    declarations = load_declarations(["customer_service", "restaurant_service"])
    declarations += [
        d
        for d in parse_manifest(authentication_service.DB_MANIFEST)
        if d.collection != "staff"
    ]
    return declarations


DECLARATIONS = _resolvable_declarations()


@pytest_asyncio.fixture(params=DECLARATIONS, ids=str)
async def applied(request, applier, mock_async_mongo_client):
    """One shipped declaration applied, with its target collection."""
    declaration = request.param
    await applier.apply_one(declaration)
    return declaration, mock_async_mongo_client[declaration.database][declaration.collection]


class TestActiveUniqueness:
    """Properties that hold for every declared (database, collection)."""

    @pytest.mark.asyncio
    async def test_two_active_documents_with_same_key_rejected(self, applied):
        declaration, collection = applied
        key = _key_value(declaration)
        await collection.insert_one({**key, "active": True})

        with pytest.raises(DuplicateKeyError):
            await collection.insert_one({**key, "active": True})

    @pytest.mark.asyncio
    async def test_inactive_documents_may_share_key(self, applied):
        declaration, collection = applied
        key = _key_value(declaration)

        for _ in range(3):
            await collection.insert_one({**key, "active": False})
        await collection.insert_one({**key, "active": True})

        assert await collection.count_documents(key) == 4

    @pytest.mark.asyncio
    async def test_deactivated_key_can_be_reused(self, applied):
        declaration, collection = applied
        key = _key_value(declaration)
        first = (await collection.insert_one({**key, "active": True})).inserted_id

        await collection.update_one({"_id": first}, {"$set": {"active": False}})
        await collection.insert_one({**key, "active": True})

        assert await collection.count_documents({**key, "active": True}) == 1

    @pytest.mark.asyncio
    async def test_reactivating_colliding_document_rejected(self, applied):
        declaration, collection = applied
        key = _key_value(declaration)
        await collection.insert_one({**key, "active": True})
        dormant = (await collection.insert_one({**key, "active": False})).inserted_id

        with pytest.raises(DuplicateKeyError):
            await collection.update_one({"_id": dormant}, {"$set": {"active": True}})

        assert (await collection.find_one({"_id": dormant}))["active"] is False

    @pytest.mark.asyncio
    async def test_different_key_values_coexist(self, applied):
        declaration, collection = applied

        await collection.insert_one({**_key_value(declaration, "a"), "active": True})
        await collection.insert_one({**_key_value(declaration, "b"), "active": True})

        assert await collection.count_documents({"active": True}) == 2


class TestAuthenticationCustomerScenario:
    """Customer email uniqueness in authentication_service, end to end."""

    @pytest.mark.asyncio
    async def test_customer_email_scenario(self, applier, mock_async_mongo_client):
        customers_declaration = next(
            d
            for d in parse_manifest(authentication_service.DB_MANIFEST)
            if d.collection == "customers"
        )
        await applier.apply_one(customers_declaration)
        customers = mock_async_mongo_client["authentication_service"]["customers"]

        await customers.insert_one({"email": "a@x.com", "active": True})
        with pytest.raises(DuplicateKeyError):
            await customers.insert_one({"email": "a@x.com", "active": True})
        await customers.insert_one({"email": "a@x.com", "active": False})

        assert await customers.count_documents({"email": "a@x.com"}) == 2


class TestResolvedStaffRules:
    """What each explicit staff resolution would enforce."""

    @pytest.mark.asyncio
    async def test_per_restaurant_rule_allows_same_email_elsewhere(
        self, applier, mock_async_mongo_client, make_manifest, staff_records
    ):
        for record in staff_records:
            if record["migration_id"] == 3:
                record["supersedes"] = 4
        (declaration,) = load_declarations(
            manifests=[make_manifest("authentication_service", *staff_records)]
        )
        await applier.apply_one(declaration)
        staff = mock_async_mongo_client["authentication_service"]["staff"]

        await staff.insert_one({"email": "chef@x.com", "restaurant_id": "r1", "active": True})
        await staff.insert_one({"email": "chef@x.com", "restaurant_id": "r2", "active": True})
        with pytest.raises(DuplicateKeyError):
            await staff.insert_one({"email": "chef@x.com", "restaurant_id": "r1", "active": True})

    @pytest.mark.asyncio
    async def test_platform_wide_rule_rejects_same_email_elsewhere(
        self, applier, mock_async_mongo_client, make_manifest, staff_records
    ):
        for record in staff_records:
            if record["migration_id"] == 4:
                record["supersedes"] = 3
        (declaration,) = load_declarations(
            manifests=[make_manifest("authentication_service", *staff_records)]
        )
        await applier.apply_one(declaration)
        staff = mock_async_mongo_client["authentication_service"]["staff"]

        await staff.insert_one({"email": "chef@x.com", "restaurant_id": "r1", "active": True})
        with pytest.raises(DuplicateKeyError):
            await staff.insert_one({"email": "chef@x.com", "restaurant_id": "r2", "active": True})
