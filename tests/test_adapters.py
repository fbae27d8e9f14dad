"""Tests for PostgresConnectionProvider.

psycopg.connect is patched; no database is contacted.
"""

from unittest.mock import MagicMock, patch

import psycopg
import pytest

from schema_diff.adapters.postgres import PostgresConnectionProvider, normalize_url
from schema_diff.config.models import ComparisonSettings, DiffConfig, InstanceProfile
from schema_diff.exceptions import ConnectionFailedError, InstanceNotFoundError


def _provider() -> PostgresConnectionProvider:
    return PostgresConnectionProvider(
        DiffConfig(
            instances={
                "prod": InstanceProfile(
                    url="postgres://app:[YOUR-PASSWORD]@db:5432/app",
                    db_password="secret",
                ),
                "staging": InstanceProfile(url="postgresql://app@staging/app"),
            },
            comparison=ComparisonSettings(connect_timeout=4),
        )
    )


class TestNormalizeUrl:
    def test_postgres_alias(self) -> None:
        assert normalize_url("postgres://a@b/c") == "postgresql://a@b/c"
        assert normalize_url("postgresql://a@b/c") == "postgresql://a@b/c"


class TestConnect:
    """Test connection opening, database override and release."""

    def test_opens_autocommit_connection(self) -> None:
        conn = MagicMock()
        with patch("schema_diff.adapters.postgres.psycopg.connect", return_value=conn) as connect:
            with _provider().connect("prod") as opened:
                assert opened is conn
                conn.close.assert_not_called()

        connect.assert_called_once_with(
            "postgresql://app:secret@db:5432/app", autocommit=True, connect_timeout=4
        )
        conn.close.assert_called_once()

    def test_database_override(self) -> None:
        with patch("schema_diff.adapters.postgres.psycopg.connect") as connect:
            with _provider().connect("staging", "reports"):
                pass

        assert connect.call_args.kwargs["dbname"] == "reports"

    def test_closed_when_body_raises(self) -> None:
        conn = MagicMock()
        with patch("schema_diff.adapters.postgres.psycopg.connect", return_value=conn):
            with pytest.raises(RuntimeError):
                with _provider().connect("prod"):
                    raise RuntimeError("boom")

        conn.close.assert_called_once()

    def test_connect_failure_wrapped(self) -> None:
        with patch(
            "schema_diff.adapters.postgres.psycopg.connect",
            side_effect=psycopg.OperationalError("connection refused"),
        ):
            with pytest.raises(ConnectionFailedError, match="staging:reports"):
                with _provider().connect("staging", "reports"):
                    pass

    def test_unknown_instance(self) -> None:
        with pytest.raises(InstanceNotFoundError, match="Available: prod, staging"):
            with _provider().connect("dev"):
                pass
