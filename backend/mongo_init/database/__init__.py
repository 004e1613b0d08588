"""
Database module - MongoDB connection and index declarations per database.
"""
from mongo_init.database.connections import (
    get_mongo_client,
    close_connections,
    ping,
)
from mongo_init.database.databases import (
    authentication_service,
    customer_service,
    restaurant_service,
)
from mongo_init.database.registry import load_declarations, validate_declarations

__all__ = [
    "get_mongo_client",
    "close_connections",
    "ping",
    "authentication_service",
    "customer_service",
    "restaurant_service",
    "load_declarations",
    "validate_declarations",
]
