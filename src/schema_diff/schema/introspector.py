"""PostgreSQL schema extraction via pg_catalog.

This module queries a live database to build the structural models compared
by the diff engine:
- Tables with columns, constraints, indexes and triggers
- Views and materialized views
- Functions and procedures (keyed by signature)
- Sequences, user-defined types, installed extensions

Uses psycopg (v3) connections supplied by the caller; the introspector never
opens or closes connections itself.
"""

import logging
import re

import psycopg
from psycopg import Connection

from schema_diff.exceptions import ExtractionError
from schema_diff.schema.models import (
    CheckConstraint,
    Column,
    CompositeAttribute,
    ForeignKey,
    Function,
    Index,
    PrimaryKey,
    Sequence,
    Table,
    Trigger,
    TypeDefinition,
    TypeKind,
    UniqueConstraint,
    View,
)

logger = logging.getLogger(__name__)

# pg_constraint.confupdtype / confdeltype codes
_REFERENTIAL_ACTIONS = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

_VOLATILITY = {"i": "IMMUTABLE", "s": "STABLE", "v": "VOLATILE"}

_TYPE_KINDS = {
    "e": TypeKind.ENUM,
    "c": TypeKind.COMPOSITE,
    "d": TypeKind.DOMAIN,
    "r": TypeKind.RANGE,
}

# pg_trigger.tgtype bits
_TRIGGER_ROW = 1
_TRIGGER_BEFORE = 2
_TRIGGER_INSTEAD = 64
_TRIGGER_EVENTS = ((4, "INSERT"), (8, "DELETE"), (16, "UPDATE"), (32, "TRUNCATE"))

# WHEN clause of pg_get_triggerdef output
_TRIGGER_CONDITION = re.compile(
    r"\sWHEN\s+\((.*)\)\s+EXECUTE\s+(?:FUNCTION|PROCEDURE)\s", re.DOTALL
)


def _normalize_data_type(data_type: str) -> str:
    """Normalize PostgreSQL data type names.

    Maps verbose ``format_type`` names to their short forms, keeping any
    length/precision modifier.
    """
    type_map = {
        "character varying": "varchar",
        "character": "char",
        "timestamp with time zone": "timestamptz",
        "timestamp without time zone": "timestamp",
        "time with time zone": "timetz",
        "time without time zone": "time",
    }
    lowered = data_type.lower()
    if lowered in type_map:
        return type_map[lowered]
    for verbose in ("character varying", "character"):
        if lowered.startswith(verbose + "("):
            return type_map[verbose] + lowered[len(verbose):]
    return lowered


def _decode_trigger_type(tgtype: int) -> tuple[str, list[str], str]:
    """Split ``pg_trigger.tgtype`` into (timing, events, level)."""
    if tgtype & _TRIGGER_INSTEAD:
        timing = "INSTEAD OF"
    elif tgtype & _TRIGGER_BEFORE:
        timing = "BEFORE"
    else:
        timing = "AFTER"
    events = [name for bit, name in _TRIGGER_EVENTS if tgtype & bit]
    level = "ROW" if tgtype & _TRIGGER_ROW else "STATEMENT"
    return timing, events, level



def _trigger_condition(definition: str) -> str | None:
    """Extract the WHEN expression from a trigger definition, if any.

    Example:
        >>> _trigger_condition(
        ...     "CREATE TRIGGER t AFTER UPDATE ON public.orders FOR EACH ROW "
        ...     "WHEN ((old.total > 0)) EXECUTE FUNCTION audit_fn()"
        ... )
        '(old.total > 0)'
    """
    match = _TRIGGER_CONDITION.search(definition)
    return match.group(1) if match else None


class SchemaIntrospector:
    """Builds structural models from PostgreSQL catalogs.

    Implements the ``SchemaExtractor`` protocol. Each public method takes an
    open psycopg connection; catalog failures are raised as
    ``ExtractionError`` naming the object kind and schema.

    Usage:
        introspector = SchemaIntrospector()
        with provider.connect("prod") as conn:
            tables = introspector.extract_tables(conn, "public")
            extensions = introspector.extract_extensions(conn)
    """

    # Tables to exclude from extraction (tooling tables)
    EXCLUDED_TABLES = {
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def _fetchall(
        self, conn: Connection, what: str, query: str, params: tuple | None = None
    ) -> list[tuple]:
        logger.debug(f"Extracting {what}")
        try:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()
        except psycopg.Error as e:
            raise ExtractionError(f"Failed to extract {what}: {e}") from e

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def extract_tables(self, conn: Connection, schema: str) -> list[Table]:
        """Extract all tables in ``schema`` with their sub-objects."""
        query = """
            SELECT
                c.relname,
                obj_description(c.oid, 'pg_class') AS comment,
                pg_get_userbyid(c.relowner) AS owner
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = %s
              AND c.relkind IN ('r', 'p')
            ORDER BY c.relname
        """
        tables = []
        for name, comment, owner in self._fetchall(
            conn, f"tables in {schema}", query, (schema,)
        ):
            if name in self.EXCLUDED_TABLES:
                continue

            primary_key, foreign_keys, uniques, checks = self._get_constraints(
                conn, schema, name
            )
            tables.append(
                Table(
                    name=name,
                    columns=self._get_columns(conn, schema, name),
                    primary_key=primary_key,
                    foreign_keys=foreign_keys,
                    unique_constraints=uniques,
                    check_constraints=checks,
                    indexes=self._get_indexes(conn, schema, name),
                    triggers=self._get_triggers(conn, schema, name),
                    comment=comment,
                    owner=owner,
                )
            )
        return tables

    def _get_columns(self, conn: Connection, schema: str, table: str) -> list[Column]:
        query = """
            SELECT
                a.attname,
                format_type(a.atttypid, a.atttypmod) AS data_type,
                NOT a.attnotnull AS nullable,
                pg_get_expr(d.adbin, d.adrelid) AS default_value,
                a.attidentity <> '' AS is_identity,
                a.attgenerated <> '' AS is_generated,
                col_description(a.attrelid, a.attnum) AS comment
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = %s
              AND c.relname = %s
              AND a.attnum > 0
              AND NOT a.attisdropped
            ORDER BY a.attnum
        """
        columns = []
        for row in self._fetchall(
            conn, f"columns of {schema}.{table}", query, (schema, table)
        ):
            name, data_type, nullable, default, identity, generated, comment = row
            columns.append(
                Column(
                    name=name,
                    data_type=_normalize_data_type(data_type),
                    nullable=nullable,
                    default_value=default,
                    identity=identity,
                    generated=generated,
                    comment=comment,
                )
            )
        return columns

    def _get_constraints(
        self, conn: Connection, schema: str, table: str
    ) -> tuple[
        PrimaryKey | None, list[ForeignKey], list[UniqueConstraint], list[CheckConstraint]
    ]:
        """Get primary key, foreign keys, unique and check constraints."""
        query = """
            SELECT
                con.conname,
                con.contype,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute a
                        ON a.attrelid = con.conrelid AND a.attnum = k.attnum
                    ORDER BY k.ord
                ) AS columns,
                rn.nspname AS referenced_schema,
                rc.relname AS referenced_table,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(con.confkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute a
                        ON a.attrelid = con.confrelid AND a.attnum = k.attnum
                    ORDER BY k.ord
                ) AS referenced_columns,
                con.confupdtype,
                con.confdeltype,
                pg_get_constraintdef(con.oid) AS definition
            FROM pg_constraint con
            JOIN pg_class c ON c.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_class rc ON rc.oid = con.confrelid
            LEFT JOIN pg_namespace rn ON rn.oid = rc.relnamespace
            WHERE n.nspname = %s
              AND c.relname = %s
              AND con.contype IN ('p', 'f', 'u', 'c')
            ORDER BY con.conname
        """
        primary_key = None
        foreign_keys: list[ForeignKey] = []
        uniques: list[UniqueConstraint] = []
        checks: list[CheckConstraint] = []

        for row in self._fetchall(
            conn, f"constraints of {schema}.{table}", query, (schema, table)
        ):
            (
                name,
                contype,
                columns,
                ref_schema,
                ref_table,
                ref_columns,
                update_code,
                delete_code,
                definition,
            ) = row

            if contype == "p":
                primary_key = PrimaryKey(name=name, columns=list(columns))
            elif contype == "f":
                foreign_keys.append(
                    ForeignKey(
                        name=name,
                        columns=list(columns),
                        # Same-schema references stay unqualified
                        referenced_schema=None if ref_schema == schema else ref_schema,
                        referenced_table=ref_table,
                        referenced_columns=list(ref_columns),
                        update_rule=_REFERENTIAL_ACTIONS.get(update_code, "NO ACTION"),
                        delete_rule=_REFERENTIAL_ACTIONS.get(delete_code, "NO ACTION"),
                    )
                )
            elif contype == "u":
                uniques.append(UniqueConstraint(name=name, columns=list(columns)))
            else:
                checks.append(CheckConstraint(name=name, expression=definition))

        return primary_key, foreign_keys, uniques, checks

    def _get_indexes(self, conn: Connection, schema: str, table: str) -> list[Index]:
        """Get indexes for a table (excluding constraint-backed indexes)."""
        query = """
            SELECT
                i.relname AS index_name,
                pg_get_indexdef(ix.indexrelid) AS definition,
                -- Column name or expression text per key column
                ARRAY(
                    SELECT pg_get_indexdef(ix.indexrelid, k.ord, true)
                    FROM generate_series(1, ix.indnkeyatts::int) AS k(ord)
                    ORDER BY k.ord
                ) AS columns,
                ix.indisunique AS is_unique,
                am.amname AS access_method,
                pg_get_expr(ix.indpred, ix.indrelid) AS where_clause
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_am am ON am.oid = i.relam
            WHERE n.nspname = %s
              AND t.relname = %s
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint con
                  WHERE con.conindid = ix.indexrelid
                    AND con.contype IN ('p', 'u', 'x')
              )
            ORDER BY i.relname
        """
        indexes = []
        for row in self._fetchall(
            conn, f"indexes of {schema}.{table}", query, (schema, table)
        ):
            name, definition, columns, is_unique, access_method, where_clause = row
            indexes.append(
                Index(
                    name=name,
                    definition=definition,
                    columns=list(columns),
                    unique=is_unique,
                    access_method=access_method,
                    where_clause=where_clause,
                )
            )
        return indexes

    def _get_triggers(self, conn: Connection, schema: str, table: str) -> list[Trigger]:
        query = """
            SELECT
                t.tgname,
                pg_get_triggerdef(t.oid) AS definition,
                t.tgtype,
                p.proname AS function_name,
                t.tgenabled
            FROM pg_trigger t
            JOIN pg_class c ON c.oid = t.tgrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_proc p ON p.oid = t.tgfoid
            WHERE n.nspname = %s
              AND c.relname = %s
              AND NOT t.tgisinternal
            ORDER BY t.tgname
        """
        triggers = []
        for row in self._fetchall(
            conn, f"triggers of {schema}.{table}", query, (schema, table)
        ):
            name, definition, tgtype, function_name, enabled = row
            timing, events, level = _decode_trigger_type(tgtype)
            triggers.append(
                Trigger(
                    name=name,
                    definition=definition,
                    timing=timing,
                    events=events,
                    level=level,
                    function=function_name,
                    enabled=enabled != "D",
                    condition=_trigger_condition(definition),
                )
            )
        return triggers

    # ------------------------------------------------------------------
    # Views, functions, sequences
    # ------------------------------------------------------------------

    def extract_views(self, conn: Connection, schema: str) -> list[View]:
        query = """
            SELECT
                c.relname,
                pg_get_viewdef(c.oid, true) AS definition,
                c.relkind = 'm' AS materialized
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = %s
              AND c.relkind IN ('v', 'm')
            ORDER BY c.relname
        """
        return [
            View(name=name, definition=definition, materialized=materialized)
            for name, definition, materialized in self._fetchall(
                conn, f"views in {schema}", query, (schema,)
            )
        ]

    def extract_functions(self, conn: Connection, schema: str) -> list[Function]:
        """Extract user-defined functions and procedures.

        Note: prokind 'f' and 'p' only; aggregates and window functions are
        skipped, as are functions installed by extensions.
        """
        query = """
            SELECT
                p.proname,
                oidvectortypes(p.proargtypes) AS argument_types,
                p.prokind,
                pg_get_function_result(p.oid) AS return_type,
                l.lanname AS language,
                p.provolatile,
                p.proisstrict,
                p.prosecdef,
                pg_get_functiondef(p.oid) AS definition
            FROM pg_proc p
            JOIN pg_namespace n ON n.oid = p.pronamespace
            JOIN pg_language l ON l.oid = p.prolang
            WHERE n.nspname = %s
              AND p.prokind IN ('f', 'p')
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = p.oid AND d.deptype = 'e'
              )
            ORDER BY p.proname, argument_types
        """
        functions = []
        for row in self._fetchall(conn, f"functions in {schema}", query, (schema,)):
            (
                name,
                argument_types,
                prokind,
                return_type,
                language,
                volatility,
                strict,
                security_definer,
                definition,
            ) = row
            functions.append(
                Function(
                    name=name,
                    argument_types=argument_types.split(", ") if argument_types else [],
                    kind="PROCEDURE" if prokind == "p" else "FUNCTION",
                    return_type=return_type,
                    language=language,
                    volatility=_VOLATILITY.get(volatility, "VOLATILE"),
                    strict=strict,
                    security_definer=security_definer,
                    definition=definition,
                )
            )
        return functions

    def extract_sequences(self, conn: Connection, schema: str) -> list[Sequence]:
        query = """
            SELECT
                sequencename,
                data_type::text,
                start_value,
                increment_by,
                min_value,
                max_value,
                cache_size,
                cycle
            FROM pg_sequences
            WHERE schemaname = %s
            ORDER BY sequencename
        """
        sequences = []
        for row in self._fetchall(conn, f"sequences in {schema}", query, (schema,)):
            name, data_type, start, increment, min_value, max_value, cache, cycle = row
            sequences.append(
                Sequence(
                    name=name,
                    data_type=data_type,
                    start_value=start,
                    increment=increment,
                    min_value=min_value,
                    max_value=max_value,
                    cache_size=cache,
                    cycle=cycle,
                )
            )
        return sequences

    # ------------------------------------------------------------------
    # Types and extensions
    # ------------------------------------------------------------------

    def extract_types(self, conn: Connection, schema: str) -> list[TypeDefinition]:
        """Extract enum, composite, domain and range types.

        Composite types backing tables/views are skipped; only standalone
        ``CREATE TYPE .. AS (..)`` types are returned.
        """
        query = """
            SELECT
                t.oid,
                t.typname,
                t.typtype,
                t.typrelid,
                format_type(t.typbasetype, t.typtypmod) AS base_type,
                t.typdefault,
                t.typnotnull
            FROM pg_type t
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE n.nspname = %s
              AND t.typtype IN ('e', 'c', 'd', 'r')
              AND (
                  t.typtype <> 'c'
                  OR EXISTS (
                      SELECT 1 FROM pg_class c
                      WHERE c.oid = t.typrelid AND c.relkind = 'c'
                  )
              )
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = t.oid AND d.deptype = 'e'
              )
            ORDER BY t.typname
        """
        types = []
        for row in self._fetchall(conn, f"types in {schema}", query, (schema,)):
            oid, name, typtype, typrelid, base_type, default, not_null = row
            kind = _TYPE_KINDS[typtype]
            label = f"type {schema}.{name}"

            if kind is TypeKind.ENUM:
                type_def = TypeDefinition(
                    name=name,
                    kind=kind,
                    enum_values=[
                        label_row[0]
                        for label_row in self._fetchall(
                            conn,
                            label,
                            "SELECT enumlabel FROM pg_enum "
                            "WHERE enumtypid = %s ORDER BY enumsortorder",
                            (oid,),
                        )
                    ],
                )
            elif kind is TypeKind.COMPOSITE:
                type_def = TypeDefinition(
                    name=name,
                    kind=kind,
                    attributes=[
                        CompositeAttribute(name=attname, data_type=attr_type)
                        for attname, attr_type in self._fetchall(
                            conn,
                            label,
                            "SELECT attname, format_type(atttypid, atttypmod) "
                            "FROM pg_attribute "
                            "WHERE attrelid = %s AND attnum > 0 AND NOT attisdropped "
                            "ORDER BY attnum",
                            (typrelid,),
                        )
                    ],
                )
            elif kind is TypeKind.DOMAIN:
                type_def = TypeDefinition(
                    name=name,
                    kind=kind,
                    base_type=_normalize_data_type(base_type),
                    default_value=default,
                    not_null=not_null,
                    check_constraints=[
                        check_row[0]
                        for check_row in self._fetchall(
                            conn,
                            label,
                            "SELECT pg_get_constraintdef(oid) FROM pg_constraint "
                            "WHERE contypid = %s ORDER BY conname",
                            (oid,),
                        )
                    ],
                )
            else:
                subtype_rows = self._fetchall(
                    conn,
                    label,
                    "SELECT format_type(rngsubtype, NULL) FROM pg_range "
                    "WHERE rngtypid = %s",
                    (oid,),
                )
                type_def = TypeDefinition(
                    name=name,
                    kind=kind,
                    subtype=subtype_rows[0][0] if subtype_rows else None,
                )
            types.append(type_def)
        return types

    def extract_extensions(self, conn: Connection) -> dict[str, str]:
        query = "SELECT extname, extversion FROM pg_extension ORDER BY extname"
        return {
            name: version
            for name, version in self._fetchall(conn, "extensions", query)
        }

    # ------------------------------------------------------------------
    # Caller helpers
    # ------------------------------------------------------------------

    def list_schemas(self, conn: Connection) -> list[str]:
        query = """
            SELECT nspname
            FROM pg_namespace
            WHERE left(nspname, 3) <> 'pg_'
              AND nspname <> 'information_schema'
            ORDER BY nspname
        """
        return [row[0] for row in self._fetchall(conn, "schemas", query)]

    def list_databases(self, conn: Connection) -> list[str]:
        query = """
            SELECT datname
            FROM pg_database
            WHERE NOT datistemplate
              AND datallowconn
            ORDER BY datname
        """
        return [row[0] for row in self._fetchall(conn, "databases", query)]

    def schema_summary(self, conn: Connection, schema: str) -> dict[str, int]:
        """Count objects in ``schema`` by kind."""
        query = """
            SELECT
                COUNT(*) FILTER (WHERE c.relkind IN ('r', 'p')) AS tables,
                COUNT(*) FILTER (WHERE c.relkind = 'v') AS views,
                COUNT(*) FILTER (WHERE c.relkind = 'm') AS materialized_views,
                COUNT(*) FILTER (WHERE c.relkind = 'S') AS sequences,
                COUNT(*) FILTER (WHERE c.relkind = 'i') AS indexes,
                (
                    SELECT COUNT(*)
                    FROM pg_proc p
                    JOIN pg_namespace pn ON pn.oid = p.pronamespace
                    WHERE pn.nspname = %s
                ) AS functions
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = %s
        """
        rows = self._fetchall(conn, f"summary of {schema}", query, (schema, schema))
        if not rows:
            return {}
        tables, views, matviews, sequences, indexes, functions = rows[0]
        return {
            "tables": tables,
            "views": views,
            "materialized_views": matviews,
            "sequences": sequences,
            "indexes": indexes,
            "functions": functions,
        }
