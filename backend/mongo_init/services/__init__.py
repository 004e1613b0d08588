"""
Service layer for applying index declarations.
"""
from mongo_init.services.index_applier import IndexApplier, MigrationLog

__all__ = [
    "IndexApplier",
    "MigrationLog",
]
