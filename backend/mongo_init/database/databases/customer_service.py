"""
Customer service database configuration.
Stores customer profiles.
"""
from mongo_init.models import ACTIVE_RECORDS_FILTER

DB_NAME = "customer_service"


class Collections:
    """Collection names in customer_service."""
    CUSTOMERS = "customers"

    INDEXES = [
        {
            "migration_id": 1,
            "collection": "customers",
            "keys": [("email", 1)],
            "unique": True,
            "partialFilterExpression": ACTIVE_RECORDS_FILTER,
            "description": "One active customer profile per email",
        },
    ]


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Customer profiles",
    "collections": [Collections.CUSTOMERS],
    "indexes": Collections.INDEXES,
}
