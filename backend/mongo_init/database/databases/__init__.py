"""
Database definitions and index declarations, one module per service database.
"""
from mongo_init.database.databases import (
    authentication_service,
    customer_service,
    restaurant_service,
)

__all__ = ["authentication_service", "customer_service", "restaurant_service"]
