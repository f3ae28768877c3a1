"""
Repositories package - Data access layer.
"""

from repositories.base import DataBackend
from repositories.in_memory_backend import InMemoryBackend
from repositories.postgres_backend import PostgresBackend
from repositories.query_builder import DEFAULT_LIMIT, MAX_LIMIT, QueryBuilder

__all__ = [
    "DataBackend",
    "InMemoryBackend",
    "PostgresBackend",
    "QueryBuilder",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
]
