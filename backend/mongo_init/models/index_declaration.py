"""
Index declaration model.

A declaration is one record of the static index set: which database and
collection it targets, the ordered key pattern, and the constraint options.
Records keep the shape `create_index` takes (`keys`, `unique`,
`partialFilterExpression`) so they read like the mongo shell scripts they
replace.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Uniqueness is only enforced among records that are not soft-deleted
ACTIVE_RECORDS_FILTER = {"active": True}

ASCENDING = 1
DESCENDING = -1

# index_information() fields that are metadata or covered by a declaration
DECLARABLE_INDEX_FIELDS = frozenset(
    {"key", "v", "ns", "name", "unique", "partialFilterExpression"}
)


def normalize_key_pattern(key) -> list[tuple[str, Any]]:
    """
    Normalize a key pattern as reported by the server.

    `index_information()` returns the key as a list of pairs, other drivers
    and the shell hand back a document; numeric directions may come back
    as floats (`1.0`) when the index was created from JavaScript.
    """
    items = key.items() if isinstance(key, dict) else key
    normalized = []
    for field, direction in items:
        if isinstance(direction, (int, float)) and not isinstance(direction, bool):
            direction = int(direction)
        normalized.append((field, direction))
    return normalized


class ApplyOutcome(str, Enum):
    """What applying a declaration did to the database."""
    CREATED = "created"
    UNCHANGED = "unchanged"


class IndexDeclaration(BaseModel):
    """
    One declared index on a (database, collection).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    migration_id: int = Field(..., ge=1, description="Ordering within the database")
    database: str = Field(..., min_length=1)
    collection: str = Field(..., min_length=1)
    key_pattern: list[tuple[str, int]] = Field(..., alias="keys")
    unique: bool = False
    partial_filter: Optional[dict[str, Any]] = Field(
        None, alias="partialFilterExpression"
    )
    name: Optional[str] = None
    supersedes: Optional[int] = Field(
        None, description="Migration id this declaration replaces"
    )
    description: str = ""

    @field_validator("key_pattern")
    @classmethod
    def validate_key_pattern(cls, value: list[tuple[str, int]]) -> list[tuple[str, int]]:
        if not value:
            raise ValueError("key pattern must name at least one field")
        fields = [field for field, _ in value]
        if len(set(fields)) != len(fields):
            raise ValueError(f"key pattern repeats a field: {fields}")
        for field, direction in value:
            if direction not in (ASCENDING, DESCENDING):
                raise ValueError(
                    f"direction for '{field}' must be {ASCENDING} or {DESCENDING}, got {direction}"
                )
        return value

    @property
    def index_name(self) -> str:
        """Explicit name, or the one MongoDB generates (`email_1_restaurant_id_1`)."""
        if self.name:
            return self.name
        return "_".join(f"{field}_{direction}" for field, direction in self.key_pattern)

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(field for field, _ in self.key_pattern)

    def create_index_options(self) -> dict[str, Any]:
        """Keyword arguments for `Collection.create_index`."""
        options: dict[str, Any] = {"name": self.index_name}
        if self.unique:
            options["unique"] = True
        if self.partial_filter is not None:
            options["partialFilterExpression"] = dict(self.partial_filter)
        return options

    def same_definition(self, other: "IndexDeclaration") -> bool:
        """True when both declare the same index, regardless of migration id."""
        return (
            self.key_pattern == other.key_pattern
            and self.index_name == other.index_name
            and self.same_options(other.unique, other.partial_filter)
        )

    def same_options(self, unique: bool, partial_filter: Optional[dict[str, Any]]) -> bool:
        return self.unique == bool(unique) and (self.partial_filter or None) == (
            dict(partial_filter) if partial_filter else None
        )

    def matches_keys(self, index_info: dict[str, Any]) -> bool:
        return normalize_key_pattern(index_info["key"]) == list(self.key_pattern)

    def matches_options(self, index_info: dict[str, Any]) -> bool:
        """
        True when the existing index enforces exactly the declared constraint.

        Options the declaration never sets (collation, sparse, TTL, hidden,
        ...) change what the index enforces, so their presence is a mismatch.
        """
        return not self.undeclared_options(index_info) and self.same_options(
            index_info.get("unique", False),
            index_info.get("partialFilterExpression"),
        )

    @staticmethod
    def undeclared_options(index_info: dict[str, Any]) -> dict[str, Any]:
        """Options of an `index_information()` entry a declaration cannot express."""
        return {
            option: value
            for option, value in index_info.items()
            if option not in DECLARABLE_INDEX_FIELDS
        }

    def migration_record(self, outcome: ApplyOutcome, applied_at: datetime) -> dict[str, Any]:
        """Fields stored in the applied-migrations collection."""
        return {
            "collection": self.collection,
            "index_name": self.index_name,
            "keys": [[field, direction] for field, direction in self.key_pattern],
            "unique": self.unique,
            "partial_filter": self.partial_filter,
            "description": self.description,
            "outcome": outcome.value,
            "applied_at": applied_at,
        }

    def __str__(self) -> str:
        keys = ", ".join(f"{field}: {direction}" for field, direction in self.key_pattern)
        return f"#{self.migration_id} {self.database}.{self.collection} {{{keys}}}"


class ApplyResult(BaseModel):
    """Result of applying a single declaration."""
    declaration: IndexDeclaration
    outcome: ApplyOutcome
