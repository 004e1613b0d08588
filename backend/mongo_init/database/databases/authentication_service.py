"""
Authentication service database configuration.
Stores customer and staff credentials.

Staff carries two unique declarations that overlap: `{email, restaurant_id}`
(one staff account per restaurant) and `{email}` alone (one staff account
platform-wide). They were shipped as two scripts both numbered 003 and
neither states which one is authoritative, so they stay unresolved here:
loading this database raises ConflictingIndexDefinition until one of them
declares `supersedes`.
"""
from mongo_init.models import ACTIVE_RECORDS_FILTER

DB_NAME = "authentication_service"


class Collections:
    """Collection names in authentication_service."""
    CUSTOMERS = "customers"
    STAFF = "staff"

    # Index declarations, ordered by migration id
    INDEXES = [
        {
            "migration_id": 1,
            "collection": "customers",
            "keys": [("email", 1)],
            "unique": True,
            "partialFilterExpression": ACTIVE_RECORDS_FILTER,
            "description": "One active customer account per email",
        },
        {
            "migration_id": 3,
            "collection": "staff",
            "keys": [("email", 1), ("restaurant_id", 1)],
            "unique": True,
            "partialFilterExpression": ACTIVE_RECORDS_FILTER,
            "description": "One active staff account per email and restaurant",
        },
        {
            "migration_id": 4,
            "collection": "staff",
            "keys": [("email", 1)],
            "unique": True,
            "partialFilterExpression": ACTIVE_RECORDS_FILTER,
            "description": "One active staff account per email",
        },
    ]


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Customer and staff authentication",
    "collections": [Collections.CUSTOMERS, Collections.STAFF],
    "indexes": Collections.INDEXES,
}
