"""Database layer for the index."""

from pindex.index._internal.db.database import Database
from pindex.index._internal.db.indexes import create_additional_indexes

__all__ = [
    "Database",
    "create_additional_indexes",
]
