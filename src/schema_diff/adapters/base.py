"""Collaborator protocols consumed by the comparison engine.

Defines the ``ConnectionProvider`` and ``SchemaExtractor`` Protocols. The
default PostgreSQL implementations are ``PostgresConnectionProvider`` and
``SchemaIntrospector``; tests substitute in-memory fakes.

Usage:
    from schema_diff.adapters.base import ConnectionProvider, SchemaExtractor

    def snapshot(
        connections: ConnectionProvider, extractor: SchemaExtractor
    ) -> list[Table]:
        with connections.connect("prod", "app") as conn:
            return extractor.extract_tables(conn, "public")
"""

from contextlib import AbstractContextManager
from typing import Any, Protocol

from schema_diff.schema.models import Function, Sequence, Table, TypeDefinition, View


class ConnectionProvider(Protocol):
    """Opens connections to configured instances.

    Each call yields a connection owned by the caller alone; it is closed when
    the context exits, independently of any other connection.
    """

    def connect(
        self, instance: str, database: str | None = None
    ) -> AbstractContextManager[Any]:
        """Open a scoped connection.

        Args:
            instance: Configured instance name.
            database: Database on that instance.  None means the database
                named in the instance URL.

        Returns:
            Context manager yielding a live connection.

        Raises:
            InstanceNotFoundError: If the instance is not configured.
            ConnectionFailedError: If the connection cannot be opened.

        Example:
            with provider.connect("staging", "reports") as conn:
                ...
        """
        ...


class SchemaExtractor(Protocol):
    """Builds structural models from a live connection.

    Every ``extract_*`` method returns a complete snapshot: tables come with
    their columns, constraints, indexes and triggers already nested.
    """

    def extract_tables(self, conn: Any, schema: str) -> list[Table]:
        """Return every ordinary and partitioned table in ``schema``."""
        ...

    def extract_views(self, conn: Any, schema: str) -> list[View]:
        """Return views and materialized views in ``schema``."""
        ...

    def extract_functions(self, conn: Any, schema: str) -> list[Function]:
        """Return functions and procedures in ``schema``."""
        ...

    def extract_sequences(self, conn: Any, schema: str) -> list[Sequence]:
        ...

    def extract_types(self, conn: Any, schema: str) -> list[TypeDefinition]:
        ...

    def extract_extensions(self, conn: Any) -> dict[str, str]:
        """Return installed extensions as ``{name: version}``."""
        ...

    def list_schemas(self, conn: Any) -> list[str]:
        """Return user schema names, excluding system schemas."""
        ...

    def list_databases(self, conn: Any) -> list[str]:
        ...

    def schema_summary(self, conn: Any, schema: str) -> dict[str, int]:
        """Return object counts keyed by kind (``tables``, ``views``, ...)."""
        ...
