"""Collaborator interfaces and the PostgreSQL connection provider.

Usage:
    from schema_diff.adapters import ConnectionProvider, SchemaExtractor
    from schema_diff.adapters import PostgresConnectionProvider
"""

from schema_diff.adapters.base import ConnectionProvider, SchemaExtractor
from schema_diff.adapters.postgres import PostgresConnectionProvider

__all__ = [
    "ConnectionProvider",
    "SchemaExtractor",
    "PostgresConnectionProvider",
]
