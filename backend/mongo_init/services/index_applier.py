"""
Index declaration applier.

Converges a database towards its declared indexes: an index already present
with the declared definition is left alone, a missing one is created, and
anything contradicting the declaration is reported instead of being
replaced.
"""
import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import errors as mongo_errors

from mongo_init.errors import (
    ConflictingIndexDefinition,
    ConnectionFailure,
    IndexInitError,
    UniquenessViolationOnCreate,
)
from mongo_init.models import ApplyOutcome, ApplyResult, IndexDeclaration

logger = logging.getLogger(__name__)

# Server error codes
DUPLICATE_KEY = 11000
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86


class MigrationLog:
    """Applied index migrations of one database, keyed by migration id."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def get(self, migration_id: int) -> Optional[dict]:
        """Get the record of an applied migration."""
        return await self.collection.find_one({"_id": migration_id})

    async def record(self, declaration: IndexDeclaration, outcome: ApplyOutcome):
        """Upsert the record of a successfully applied declaration."""
        now = datetime.now(timezone.utc)
        await self.collection.update_one(
            {"_id": declaration.migration_id},
            {
                "$set": declaration.migration_record(outcome, now),
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )


class IndexApplier:
    """Applies index declarations through a motor client."""

    def __init__(
        self,
        client: AsyncIOMotorClient,
        migrations_collection: str = "_index_migrations",
    ):
        self.client = client
        self.migrations_collection = migrations_collection

    def migration_log(self, db_name: str) -> MigrationLog:
        return MigrationLog(self.client[db_name][self.migrations_collection])

    async def apply_all(self, declarations: Iterable[IndexDeclaration]) -> list[ApplyResult]:
        """
        Apply declarations for every database they target.

        Databases share nothing, so they are applied concurrently. Every
        failure is logged; the first one is re-raised once all databases
        are done.

        Raises:
            IndexInitError: The first failure, in database name order
        """
        by_database: dict[str, list[IndexDeclaration]] = defaultdict(list)
        for declaration in declarations:
            by_database[declaration.database].append(declaration)

        names = sorted(by_database)
        outcomes = await asyncio.gather(
            *(self.apply_database(name, by_database[name]) for name in names),
            return_exceptions=True,
        )

        results: list[ApplyResult] = []
        failures: list[BaseException] = []
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Index initialisation of {name} failed: {outcome}")
                failures.append(outcome)
            else:
                results.extend(outcome)

        if failures:
            raise failures[0]
        return results

    async def apply_database(
        self, db_name: str, declarations: Iterable[IndexDeclaration]
    ) -> list[ApplyResult]:
        """
        Apply the declarations of one database in migration id order.

        Stops at the first failure; later migrations are not attempted.
        """
        ordered = sorted(declarations, key=lambda d: d.migration_id)
        for declaration in ordered:
            if declaration.database != db_name:
                raise ValueError(f"{declaration} does not target {db_name}")

        results = []
        for declaration in ordered:
            results.append(await self.apply_one(declaration))

        created = sum(1 for r in results if r.outcome == ApplyOutcome.CREATED)
        logger.info(
            f"{db_name}: {created} index(es) created, "
            f"{len(results) - created} already in place"
        )
        return results

    async def apply_one(self, declaration: IndexDeclaration) -> ApplyResult:
        """
        Ensure a single declared index exists.

        Raises:
            ConflictingIndexDefinition: An index on the same keys or with the
                same name exists with a different definition
            UniquenessViolationOnCreate: Existing active documents already
                share a key value
            ConnectionFailure: The deployment is unreachable
        """
        collection = self.client[declaration.database][declaration.collection]
        try:
            existing = await collection.index_information()
            outcome = self._reconcile(declaration, existing)
            if outcome is None:
                await collection.create_index(
                    list(declaration.key_pattern),
                    **declaration.create_index_options(),
                )
                outcome = ApplyOutcome.CREATED
                logger.info(f"Created index {declaration.index_name} for {declaration}")
            else:
                logger.info(f"Index {declaration.index_name} already in place for {declaration}")
            await self.migration_log(declaration.database).record(declaration, outcome)
        except mongo_errors.ConnectionFailure as e:
            raise ConnectionFailure(f"{declaration}: MongoDB is unreachable: {e}") from e
        except mongo_errors.OperationFailure as e:
            translated = self._translate(declaration, e)
            if translated is None:
                raise
            raise translated from e

        return ApplyResult(declaration=declaration, outcome=outcome)

    def _reconcile(
        self, declaration: IndexDeclaration, existing: dict[str, dict[str, Any]]
    ) -> Optional[ApplyOutcome]:
        """Compare against the collection's indexes; None means create it."""
        for name, info in existing.items():
            if name == "_id_":
                continue
            same_keys = declaration.matches_keys(info)
            if not same_keys and name != declaration.index_name:
                continue

            if same_keys and declaration.matches_options(info):
                if name != declaration.index_name:
                    logger.warning(
                        f"{declaration} is already in place under the name '{name}'"
                    )
                return ApplyOutcome.UNCHANGED

            undeclared = declaration.undeclared_options(info)
            if same_keys and undeclared:
                reason = (
                    f"index '{name}' exists on the same keys with undeclared "
                    f"options {undeclared}"
                )
            elif same_keys:
                reason = f"index '{name}' exists on the same keys with different options"
            else:
                reason = f"index '{name}' exists on different keys"
            raise ConflictingIndexDefinition(
                declaration.database,
                declaration.collection,
                declaration.key_pattern,
                reason,
                existing={"name": name, **info},
            )
        return None

    def _translate(
        self, declaration: IndexDeclaration, error: mongo_errors.OperationFailure
    ) -> Optional[IndexInitError]:
        details = error.details or {}
        if error.code == DUPLICATE_KEY:
            return UniquenessViolationOnCreate(
                declaration.database,
                declaration.collection,
                declaration.key_pattern,
                key_value=details.get("keyValue"),
            )
        if error.code in (INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT):
            return ConflictingIndexDefinition(
                declaration.database,
                declaration.collection,
                declaration.key_pattern,
                f"server rejected the index: {details.get('errmsg', error)}",
            )
        return None
