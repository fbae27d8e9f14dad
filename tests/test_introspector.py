"""Tests for SchemaIntrospector.

Catalog queries are answered by a mocked psycopg cursor; each test feeds the
rows returned by successive ``fetchall`` calls.
"""

from unittest.mock import MagicMock

import psycopg
import pytest

from schema_diff.exceptions import ExtractionError
from schema_diff.schema.introspector import (
    SchemaIntrospector,
    _decode_trigger_type,
    _normalize_data_type,
    _trigger_condition,
)
from schema_diff.schema.models import TypeKind


def _conn(*results: list[tuple]) -> tuple[MagicMock, MagicMock]:
    """Return (connection, cursor) where fetchall yields ``results`` in order."""
    conn = MagicMock()
    cur = conn.cursor.return_value.__enter__.return_value
    cur.fetchall.side_effect = list(results)
    return conn, cur


class TestNormalizeDataType:
    """Test data type normalisation."""

    def test_verbose_names_shortened(self) -> None:
        assert _normalize_data_type("timestamp with time zone") == "timestamptz"
        assert _normalize_data_type("character varying") == "varchar"

    def test_modifiers_kept(self) -> None:
        assert _normalize_data_type("character varying(50)") == "varchar(50)"
        assert _normalize_data_type("character(2)") == "char(2)"
        assert _normalize_data_type("numeric(10,2)") == "numeric(10,2)"

    def test_lowercased(self) -> None:
        assert _normalize_data_type("INTEGER") == "integer"


class TestDecodeTriggerType:
    """Test pg_trigger.tgtype decoding."""

    def test_before_row_insert_update(self) -> None:
        assert _decode_trigger_type(1 | 2 | 4 | 16) == ("BEFORE", ["INSERT", "UPDATE"], "ROW")

    def test_after_statement_delete(self) -> None:
        assert _decode_trigger_type(8) == ("AFTER", ["DELETE"], "STATEMENT")

    def test_instead_of(self) -> None:
        timing, events, _ = _decode_trigger_type(1 | 64 | 4)
        assert timing == "INSTEAD OF"
        assert events == ["INSERT"]


class TestTriggerCondition:
    """Test WHEN clause extraction from trigger definitions."""

    def test_condition_extracted(self) -> None:
        definition = (
            "CREATE TRIGGER trg AFTER UPDATE ON public.orders FOR EACH ROW "
            "WHEN ((old.status IS DISTINCT FROM new.status)) EXECUTE FUNCTION log_status()"
        )
        assert _trigger_condition(definition) == "(old.status IS DISTINCT FROM new.status)"

    def test_legacy_execute_procedure(self) -> None:
        definition = "CREATE TRIGGER trg AFTER DELETE ON t FOR EACH ROW WHEN ((old.id > 0)) EXECUTE PROCEDURE f()"
        assert _trigger_condition(definition) == "(old.id > 0)"

    def test_no_condition(self) -> None:
        assert _trigger_condition("CREATE TRIGGER trg AFTER DELETE ON t FOR EACH ROW EXECUTE FUNCTION f()") is None


class TestExtractTables:
    """Test table extraction with nested sub-objects."""

    def test_full_table(self) -> None:
        conn, cur = _conn(
            # tables
            [("orders", "Orders table", "app"), ("schema_migrations", None, "app")],
            # constraints
            [
                ("orders_pkey", "p", ["id"], None, None, [], " ", " ", "PRIMARY KEY (id)"),
                ("fk_customer", "f", ["customer_id"], "public", "customers", ["id"], "a", "c", "FOREIGN KEY"),
                ("fk_region", "f", ["region_id"], "ref", "regions", ["id"], "r", "n", "FOREIGN KEY"),
                ("uq_email", "u", ["email"], None, None, [], " ", " ", "UNIQUE (email)"),
                ("ck_total", "c", ["total"], None, None, [], " ", " ", "CHECK ((total >= 0))"),
            ],
            # columns
            [
                ("id", "integer", False, None, True, False, None),
                ("name", "character varying(50)", True, "'x'::character varying", False, False, "Name"),
            ],
            # indexes
            [
                ("idx_orders_name", "CREATE INDEX idx_orders_name ON public.orders USING btree (name)", ["name"], False, "btree", None),
                ("idx_orders_lower_name", "CREATE INDEX idx_orders_lower_name ON public.orders USING btree (lower((name)::text))", ["lower((name)::text)"], False, "btree", None),
            ],
            # triggers
            [
                (
                    "trg_audit",
                    "CREATE TRIGGER trg_audit BEFORE INSERT OR UPDATE ON public.orders FOR EACH ROW "
                    "WHEN ((new.total > 0)) EXECUTE FUNCTION audit_fn()",
                    23,
                    "audit_fn",
                    "O",
                )
            ],
        )

        tables = SchemaIntrospector().extract_tables(conn, "public")

        assert [t.name for t in tables] == ["orders"]
        table = tables[0]
        assert table.comment == "Orders table"
        assert table.owner == "app"

        assert [c.name for c in table.columns] == ["id", "name"]
        assert table.columns[0].identity
        assert not table.columns[0].nullable
        assert table.columns[1].data_type == "varchar(50)"
        assert table.columns[1].default_value == "'x'::character varying"

        assert table.primary_key is not None
        assert table.primary_key.columns == ["id"]

        same_schema, other_schema = table.foreign_keys
        assert same_schema.referenced_schema is None
        assert same_schema.update_rule == "NO ACTION"
        assert same_schema.delete_rule == "CASCADE"
        assert other_schema.referenced_schema == "ref"
        assert other_schema.update_rule == "RESTRICT"
        assert other_schema.delete_rule == "SET NULL"

        assert table.unique_constraints[0].columns == ["email"]
        assert table.check_constraints[0].expression == "CHECK ((total >= 0))"

        assert table.indexes[0].name == "idx_orders_name"
        assert table.indexes[0].access_method == "btree"
        assert table.indexes[1].columns == ["lower((name)::text)"]
        index_query = cur.execute.call_args_list[3].args[0]
        assert "pg_get_indexdef(ix.indexrelid, k.ord, true)" in index_query

        trigger = table.triggers[0]
        assert (trigger.timing, trigger.events, trigger.level) == ("BEFORE", ["INSERT", "UPDATE"], "ROW")
        assert trigger.function == "audit_fn"
        assert trigger.enabled
        assert trigger.condition == "(new.total > 0)"

        # 1 table query + 4 per-table queries (excluded table is skipped)
        assert cur.execute.call_count == 5
        assert cur.execute.call_args_list[0].args[1] == ("public",)
        assert cur.execute.call_args_list[1].args[1] == ("public", "orders")

    def test_disabled_trigger(self) -> None:
        conn, _ = _conn(
            [("t", None, "app")],
            [],
            [],
            [],
            [("trg", "CREATE TRIGGER trg ...", 8, "fn", "D")],
        )
        table = SchemaIntrospector().extract_tables(conn, "public")[0]
        assert table.primary_key is None
        assert not table.triggers[0].enabled
        assert table.triggers[0].condition is None


class TestExtractOtherKinds:
    """Test views, functions, sequences, types and extensions."""

    def test_views(self) -> None:
        conn, _ = _conn([("v_orders", " SELECT 1;", False), ("mv_totals", " SELECT 2;", True)])
        views = SchemaIntrospector().extract_views(conn, "public")
        assert [(v.name, v.materialized) for v in views] == [("v_orders", False), ("mv_totals", True)]

    def test_functions(self) -> None:
        conn, _ = _conn(
            [
                ("add", "integer, integer", "f", "integer", "sql", "i", True, False, "CREATE FUNCTION add ..."),
                ("cleanup", "", "p", None, "plpgsql", "v", False, True, "CREATE PROCEDURE cleanup ..."),
            ]
        )
        add, cleanup = SchemaIntrospector().extract_functions(conn, "public")

        assert add.identity_key == "add(integer, integer)"
        assert add.volatility == "IMMUTABLE"
        assert add.strict
        assert cleanup.identity_key == "cleanup()"
        assert cleanup.kind == "PROCEDURE"
        assert cleanup.security_definer

    def test_sequences(self) -> None:
        conn, _ = _conn([("order_seq", "bigint", 1, 1, 1, 9223372036854775807, 1, False)])
        seq = SchemaIntrospector().extract_sequences(conn, "public")[0]
        assert seq.name == "order_seq"
        assert seq.max_value == 9223372036854775807

    def test_types(self) -> None:
        conn, _ = _conn(
            [
                (1, "mood", "e", 0, None, None, False),
                (2, "address", "c", 50, None, None, False),
                (3, "positive", "d", 0, "integer", None, True),
                (4, "span", "r", 0, None, None, False),
            ],
            [("sad",), ("happy",)],
            [("street", "text")],
            [("CHECK (VALUE > 0)",)],
            [("integer",)],
        )
        mood, address, positive, span = SchemaIntrospector().extract_types(conn, "public")

        assert mood.kind is TypeKind.ENUM
        assert mood.enum_values == ["sad", "happy"]
        assert address.attributes[0].name == "street"
        assert positive.base_type == "integer"
        assert positive.not_null
        assert positive.check_constraints == ["CHECK (VALUE > 0)"]
        assert span.subtype == "integer"

    def test_extensions(self) -> None:
        conn, _ = _conn([("pgcrypto", "1.3"), ("plpgsql", "1.0")])
        assert SchemaIntrospector().extract_extensions(conn) == {"pgcrypto": "1.3", "plpgsql": "1.0"}


class TestCallerHelpers:
    """Test schema/database listing and summaries."""

    def test_list_schemas(self) -> None:
        conn, _ = _conn([("audit",), ("public",)])
        assert SchemaIntrospector().list_schemas(conn) == ["audit", "public"]

    def test_list_databases(self) -> None:
        conn, _ = _conn([("app",)])
        assert SchemaIntrospector().list_databases(conn) == ["app"]

    def test_schema_summary(self) -> None:
        conn, _ = _conn([(3, 1, 0, 2, 5, 4)])
        assert SchemaIntrospector().schema_summary(conn, "public") == {
            "tables": 3,
            "views": 1,
            "materialized_views": 0,
            "sequences": 2,
            "indexes": 5,
            "functions": 4,
        }


class TestErrorWrapping:
    """psycopg errors surface as ExtractionError naming kind and schema."""

    def test_query_failure(self) -> None:
        conn, cur = _conn()
        cur.execute.side_effect = psycopg.OperationalError("permission denied for pg_proc")

        with pytest.raises(ExtractionError, match="functions in public") as exc_info:
            SchemaIntrospector().extract_functions(conn, "public")

        assert isinstance(exc_info.value.__cause__, psycopg.Error)
