"""
Pydantic models for index declarations and apply results.
"""
from mongo_init.models.index_declaration import (
    ACTIVE_RECORDS_FILTER,
    ApplyOutcome,
    ApplyResult,
    IndexDeclaration,
    normalize_key_pattern,
)

__all__ = [
    "ACTIVE_RECORDS_FILTER",
    "ApplyOutcome",
    "ApplyResult",
    "IndexDeclaration",
    "normalize_key_pattern",
]
