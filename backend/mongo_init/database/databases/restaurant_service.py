"""
Restaurant service database configuration.
Stores restaurants, keyed for uniqueness by VAT code.
"""
from mongo_init.models import ACTIVE_RECORDS_FILTER

DB_NAME = "restaurant_service"


class Collections:
    """Collection names in restaurant_service."""
    # Restaurants are stored in the "customers" collection of this database
    CUSTOMERS = "customers"

    INDEXES = [
        {
            "migration_id": 1,
            "collection": "customers",
            "keys": [("vat_code", 1)],
            "unique": True,
            "partialFilterExpression": ACTIVE_RECORDS_FILTER,
            "description": "One active restaurant per VAT code",
        },
    ]


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Restaurant registrations",
    "collections": [Collections.CUSTOMERS],
    "indexes": Collections.INDEXES,
}
