"""
Index declaration registry.
Collects every database manifest and turns its records into a validated,
ordered declaration set before anything touches a database.
"""
import logging
from collections import defaultdict
from itertools import combinations
from typing import Iterable, Optional

from pydantic import ValidationError

from mongo_init.database.databases import (
    authentication_service,
    customer_service,
    restaurant_service,
)
from mongo_init.errors import ConflictingIndexDefinition, DeclarationError
from mongo_init.models import IndexDeclaration

logger = logging.getLogger(__name__)

# All database manifests
ALL_DB_MANIFESTS = [
    authentication_service.DB_MANIFEST,
    customer_service.DB_MANIFEST,
    restaurant_service.DB_MANIFEST,
]


def parse_manifest(manifest: dict) -> list[IndexDeclaration]:
    """Parse the index records of one manifest into declarations."""
    db_name = manifest["db_name"]
    declarations = []
    for record in manifest.get("indexes", []):
        try:
            declarations.append(IndexDeclaration(database=db_name, **record))
        except ValidationError as e:
            raise DeclarationError(
                f"invalid index declaration in {db_name}: {record!r}: {e}"
            ) from e
    return declarations


def load_declarations(
    databases: Optional[Iterable[str]] = None,
    manifests: Optional[list[dict]] = None,
) -> list[IndexDeclaration]:
    """
    Load and validate the declaration set.

    Args:
        databases: Names of the databases to load (all when empty or None)
        manifests: Manifests to read, defaults to ALL_DB_MANIFESTS

    Returns:
        Effective declarations sorted by (database, migration_id)

    Raises:
        DeclarationError: If a database is unknown or the records are invalid
        ConflictingIndexDefinition: If two declarations contradict each other
    """
    manifests = ALL_DB_MANIFESTS if manifests is None else manifests
    known = {manifest["db_name"]: manifest for manifest in manifests}

    selected = list(databases or [])
    unknown = sorted(set(selected) - set(known))
    if unknown:
        raise DeclarationError(
            f"unknown database(s) {unknown}; declared: {sorted(known)}"
        )

    declarations = []
    for db_name, manifest in known.items():
        if selected and db_name not in selected:
            continue
        declarations.extend(parse_manifest(manifest))

    effective = validate_declarations(declarations)
    logger.info(
        f"Loaded {len(effective)} index declaration(s) for "
        f"{len({d.database for d in effective})} database(s)"
    )
    return effective


def validate_declarations(declarations: Iterable[IndexDeclaration]) -> list[IndexDeclaration]:
    """
    Validate a declaration set and resolve explicit supersessions.

    Checks are per database: migration ids must be unique, `supersedes` must
    point at a declaration on the same collection, and the remaining
    declarations of a collection must not contradict or overlap each other.
    """
    by_database: dict[str, list[IndexDeclaration]] = defaultdict(list)
    for declaration in declarations:
        by_database[declaration.database].append(declaration)

    effective = []
    for db_name in sorted(by_database):
        effective.extend(_validate_database(db_name, by_database[db_name]))
    return effective


def _validate_database(db_name: str, declarations: list[IndexDeclaration]) -> list[IndexDeclaration]:
    by_id: dict[int, IndexDeclaration] = {}
    for declaration in declarations:
        if declaration.migration_id in by_id:
            raise DeclarationError(
                f"{db_name}: migration id {declaration.migration_id} is declared more than once"
            )
        by_id[declaration.migration_id] = declaration

    superseded = set()
    for declaration in by_id.values():
        if declaration.supersedes is None:
            continue
        target = by_id.get(declaration.supersedes)
        if target is None:
            raise DeclarationError(
                f"{declaration} supersedes unknown migration id {declaration.supersedes}"
            )
        if target.collection != declaration.collection:
            raise DeclarationError(
                f"{declaration} supersedes {target}, which targets another collection"
            )
        if declaration.supersedes == declaration.migration_id:
            raise DeclarationError(f"{declaration} supersedes itself")
        superseded.add(declaration.supersedes)

    remaining = [by_id[mid] for mid in sorted(by_id) if mid not in superseded]
    for superseded_id in sorted(superseded):
        logger.info(f"{by_id[superseded_id]} is superseded and will not be applied")

    by_collection: dict[str, list[IndexDeclaration]] = defaultdict(list)
    for declaration in remaining:
        by_collection[declaration.collection].append(declaration)
    for collection_declarations in by_collection.values():
        for first, second in combinations(collection_declarations, 2):
            _check_pair(first, second)

    return remaining


def _check_pair(first: IndexDeclaration, second: IndexDeclaration) -> None:
    """Reject two declarations on one collection that cannot both hold as written."""
    if first.same_definition(second):
        raise DeclarationError(
            f"{second} declares the same index as {first}"
        )

    if first.key_pattern == second.key_pattern:
        raise ConflictingIndexDefinition(
            second.database,
            second.collection,
            second.key_pattern,
            f"migration {first.migration_id} declares the same keys with different options",
        )

    if first.index_name == second.index_name:
        raise ConflictingIndexDefinition(
            second.database,
            second.collection,
            second.key_pattern,
            f"migration {first.migration_id} declares index '{first.index_name}' "
            f"on different keys",
        )

    # A unique constraint on a subset of fields makes the wider one redundant
    # (or vice versa), so the set no longer says which rule is intended.
    if (
        first.unique
        and second.unique
        and first.same_options(second.unique, second.partial_filter)
        and (
            first.field_names <= second.field_names
            or second.field_names <= first.field_names
        )
    ):
        raise ConflictingIndexDefinition(
            second.database,
            second.collection,
            second.key_pattern,
            f"overlaps unique index of migration {first.migration_id} "
            f"{first.index_name}; declare which one supersedes the other",
        )
