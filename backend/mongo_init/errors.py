"""
Errors raised while loading or applying index declarations.

Every error names the offending (database, collection, key pattern) so the
operator can find the declaration and the data it collides with.
"""
from typing import Any, Optional


def format_key_pattern(key_pattern) -> str:
    """Render a key pattern the way the mongo shell prints it."""
    fields = ", ".join(f"{field}: {direction}" for field, direction in key_pattern)
    return "{" + fields + "}"


class IndexInitError(Exception):
    """Base class for index initialisation failures."""


class DeclarationError(IndexInitError):
    """The declaration set itself is invalid (detected at load time)."""


class ConnectionFailure(IndexInitError):
    """The target MongoDB deployment is unreachable."""


class IndexDefinitionError(IndexInitError):
    """Failure tied to a single (database, collection, key pattern)."""

    def __init__(self, database: str, collection: str, key_pattern, reason: str):
        self.database = database
        self.collection = collection
        self.key_pattern = list(key_pattern)
        self.reason = reason
        super().__init__(
            f"{database}.{collection} {format_key_pattern(self.key_pattern)}: {reason}"
        )


class ConflictingIndexDefinition(IndexDefinitionError):
    """An index on the same key(s) or name exists, or is declared, with different options."""

    def __init__(
        self,
        database: str,
        collection: str,
        key_pattern,
        reason: str,
        existing: Optional[dict[str, Any]] = None,
    ):
        self.existing = existing
        super().__init__(database, collection, key_pattern, reason)


class UniquenessViolationOnCreate(IndexDefinitionError):
    """Existing active documents already violate the new unique index."""

    def __init__(
        self,
        database: str,
        collection: str,
        key_pattern,
        key_value: Optional[dict[str, Any]] = None,
    ):
        self.key_value = key_value
        reason = "existing documents violate the unique constraint"
        if key_value:
            reason += f" (duplicate key: {key_value})"
        super().__init__(database, collection, key_pattern, reason)
