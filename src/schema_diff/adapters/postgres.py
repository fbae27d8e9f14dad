"""PostgreSQL connection provider.

Provides ``PostgresConnectionProvider``, the default ``ConnectionProvider``
implementation using psycopg (v3).  Instances are resolved from a
``DiffConfig`` (see ``schema_diff.config``).

Usage:
    from schema_diff.adapters.postgres import PostgresConnectionProvider
    from schema_diff.config import load_diff_config

    provider = PostgresConnectionProvider(load_diff_config())

    with provider.connect("prod", "reports") as conn:
        conn.execute("SELECT 1")
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg
from psycopg import Connection

from schema_diff.config.models import DiffConfig
from schema_diff.exceptions import ConnectionFailedError, InstanceNotFoundError

logger = logging.getLogger(__name__)


def normalize_url(database_url: str) -> str:
    """Normalise the ``postgres://`` alias to ``postgresql://``.

    Example:
        >>> normalize_url("postgres://app@db/app")
        'postgresql://app@db/app'
    """
    if database_url.startswith("postgres://"):
        return "postgresql://" + database_url[len("postgres://"):]
    return database_url


class PostgresConnectionProvider:
    """Opens one psycopg connection per ``connect`` call.

    Connections are opened in autocommit mode, so a failed catalog query does
    not leave the connection in an aborted transaction for the next query.

    Args:
        config: Parsed instance configuration.
    """

    def __init__(self, config: DiffConfig) -> None:
        self._config = config

    def resolve_instance_url(self, instance: str) -> str:
        """Return the connection URL of a configured instance.

        Raises:
            InstanceNotFoundError: If the instance is not configured.
        """
        # Imported here: factory imports this module
        from schema_diff.factory import resolve_url

        if instance not in self._config.instances:
            available = ", ".join(sorted(self._config.instances))
            raise InstanceNotFoundError(
                f"Instance '{instance}' not found in db.toml. "
                f"Available: {available}"
            )
        return normalize_url(resolve_url(self._config.instances[instance]))

    @contextmanager
    def connect(
        self, instance: str, database: str | None = None
    ) -> Iterator[Connection]:
        """Open a connection to ``instance``, optionally to another database.

        Raises:
            InstanceNotFoundError: If the instance is not configured.
            ConnectionFailedError: If psycopg cannot connect.
        """
        url = self.resolve_instance_url(instance)
        kwargs: dict = {
            "autocommit": True,
            "connect_timeout": self._config.comparison.connect_timeout,
        }
        if database:
            # Overrides the database named in the URL
            kwargs["dbname"] = database

        target = f"{instance}:{database}" if database else instance
        try:
            conn = psycopg.connect(url, **kwargs)
        except psycopg.Error as e:
            raise ConnectionFailedError(f"Cannot connect to {target}: {e}") from e

        logger.debug(f"Opened connection to {target}")
        try:
            yield conn
        finally:
            conn.close()
            logger.debug(f"Closed connection to {target}")
