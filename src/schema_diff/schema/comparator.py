"""Schema comparison between two live schemas.

Extracts a structural snapshot of each side, reconciles it kind by kind in a
fixed order (tables, views, functions, sequences, types, extensions) and
collects every difference into one ``SchemaComparisonResult``.

Usage:
    from schema_diff.schema.comparator import DatabaseDiffService, SchemaRef

    service = DatabaseDiffService(provider, SchemaIntrospector())
    result = service.compare(
        SchemaRef("prod", "public"),
        SchemaRef("staging", "public", database="app_v2"),
    )
    if result.success:
        print(result.format_report())
    else:
        print(result.error_message)
"""

import logging
import time
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any

from schema_diff.adapters.base import ConnectionProvider, SchemaExtractor
from schema_diff.schema.filter import ComparisonFilter
from schema_diff.schema.models import Extension, Table
from schema_diff.schema.reconciler import index_by_key, reconcile
from schema_diff.schema.results import ObjectDifference, SchemaComparisonResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaRef:
    """One side of a comparison: instance, optional database, schema."""

    instance: str
    schema: str
    database: str | None = None

    @property
    def identifier(self) -> str:
        if self.database:
            return f"{self.instance}:{self.database}.{self.schema}"
        return f"{self.instance}.{self.schema}"


@dataclass
class _Sides:
    """Open connections and settings shared by every per-kind step."""

    source: SchemaRef
    destination: SchemaRef
    source_conn: Any
    destination_conn: Any
    comparison_filter: ComparisonFilter
    compared: dict[str, int]

    @property
    def target_schema(self) -> str:
        return self.destination.schema

    def count(self, kind: str, source: dict, destination: dict) -> None:
        self.compared[kind] = self.compared.get(kind, 0) + len(
            source.keys() | destination.keys()
        )


# (kind name, filter flag, accessor returning the table's sub-objects, qualify)
_TABLE_ASPECTS: list[tuple[str, str, Callable[[Table], list], bool]] = [
    ("columns", "include_columns", lambda t: t.columns, True),
    (
        "primary_keys",
        "include_primary_keys",
        lambda t: [t.primary_key] if t.primary_key else [],
        True,
    ),
    ("foreign_keys", "include_foreign_keys", lambda t: t.foreign_keys, True),
    (
        "unique_constraints",
        "include_unique_constraints",
        lambda t: t.unique_constraints,
        True,
    ),
    (
        "check_constraints",
        "include_check_constraints",
        lambda t: t.check_constraints,
        True,
    ),
    # Index names are unique per schema, so they are reported unqualified
    ("indexes", "include_indexes", lambda t: t.indexes, False),
    ("triggers", "include_triggers", lambda t: t.triggers, True),
]


class DatabaseDiffService:
    """Compares two schemas, possibly on different instances or databases.

    Holds no per-comparison state, so one service can serve concurrent
    callers. Every ``compare`` call opens its own two connections and
    releases them before returning.

    Args:
        connections: Opens scoped connections by instance/database name.
        extractor: Builds structural models from a connection.
        default_schema: Schema used by ``compare_instances`` when a schema
            name is None.
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        extractor: SchemaExtractor,
        default_schema: str = "public",
    ) -> None:
        self._connections = connections
        self._extractor = extractor
        self._default_schema = default_schema

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def compare(
        self,
        source: SchemaRef,
        destination: SchemaRef,
        comparison_filter: ComparisonFilter | None = None,
    ) -> SchemaComparisonResult:
        """Compare ``source`` (authoritative) against ``destination``.

        Never raises. A connection failure on either side returns
        ``success=False`` with the error message and no differences. A
        failure inside one object kind is logged, recorded in
        ``partial_failures``, and the remaining kinds still run.

        Args:
            source: Schema assumed to be correct.
            destination: Schema checked against the source.
            comparison_filter: Kinds and names to compare (default: all).

        Returns:
            SchemaComparisonResult with differences in kind order.
        """
        if comparison_filter is None:
            comparison_filter = ComparisonFilter()
        result = SchemaComparisonResult(
            source_instance=source.instance,
            destination_instance=destination.instance,
            source_schema=source.schema,
            destination_schema=destination.schema,
            source_database=source.database,
            destination_database=destination.database,
            filter=comparison_filter,
        )
        started = time.monotonic()
        logger.info(f"Comparing {source.identifier} against {destination.identifier}")

        with ExitStack() as stack:
            try:
                source_conn = stack.enter_context(
                    self._connections.connect(source.instance, source.database)
                )
                destination_conn = stack.enter_context(
                    self._connections.connect(
                        destination.instance, destination.database
                    )
                )
            except Exception as e:
                logger.error(f"Comparison {result.description} aborted: {e}")
                result.error_message = str(e)
                result.duration_ms = _elapsed_ms(started)
                return result

            sides = _Sides(
                source=source,
                destination=destination,
                source_conn=source_conn,
                destination_conn=destination_conn,
                comparison_filter=comparison_filter,
                compared={},
            )
            self._compare_kinds(sides, result)

        result.success = True
        result.duration_ms = _elapsed_ms(started)
        logger.info(
            f"Comparison {result.description} finished: "
            f"{result.summary.total_differences} differences in {result.duration_ms} ms"
        )
        return result

    def compare_instances(
        self,
        source_instance: str,
        source_schema: str | None,
        destination_instance: str,
        destination_schema: str | None,
        comparison_filter: ComparisonFilter | None = None,
    ) -> SchemaComparisonResult:
        """Compare two schemas on the instances' default databases.

        A schema name of None means the service's default schema.
        """
        return self.compare(
            SchemaRef(source_instance, source_schema or self._default_schema),
            SchemaRef(
                destination_instance, destination_schema or self._default_schema
            ),
            comparison_filter,
        )

    def _compare_kinds(self, sides: _Sides, result: SchemaComparisonResult) -> None:
        f = sides.comparison_filter
        steps: list[tuple[str, bool, Callable[[_Sides], list[ObjectDifference]]]] = [
            ("tables", f.include_tables, self._compare_tables),
            ("views", f.include_views, self._compare_views),
            ("functions", f.include_functions, self._compare_functions),
            ("sequences", f.include_sequences, self._compare_sequences),
            ("types", f.include_types, self._compare_types),
            ("extensions", f.include_extensions, self._compare_extensions),
        ]

        for kind, enabled, step in steps:
            if not enabled:
                continue
            sides.compared = {}
            try:
                differences = step(sides)
            except Exception as e:
                logger.exception(f"Failed to compare {kind} for {result.description}")
                result.partial_failures[kind] = str(e)
                continue
            result.add_differences(differences)
            for counted_kind, count in sides.compared.items():
                result.summary.record_compared(counted_kind, count)

    def _compare_tables(self, sides: _Sides) -> list[ObjectDifference]:
        f = sides.comparison_filter
        source = index_by_key(
            (
                t
                for t in self._extractor.extract_tables(
                    sides.source_conn, sides.source.schema
                )
                if f.matches_table(t.name)
            ),
            "tables",
        )
        destination = index_by_key(
            (
                t
                for t in self._extractor.extract_tables(
                    sides.destination_conn, sides.destination.schema
                )
                if f.matches_table(t.name)
            ),
            "tables",
        )
        sides.count("tables", source, destination)

        differences = reconcile(
            source, destination, sides.target_schema, compare_common=False
        )

        for key, source_table in source.items():
            destination_table = destination.get(key)
            if destination_table is None:
                continue

            for kind, flag, accessor, qualify in _TABLE_ASPECTS:
                if not getattr(f, flag):
                    continue
                source_items = index_by_key(accessor(source_table), kind)
                destination_items = index_by_key(accessor(destination_table), kind)
                sides.count(kind, source_items, destination_items)
                differences.extend(
                    reconcile(
                        source_items,
                        destination_items,
                        sides.target_schema,
                        parent_name=source_table.name,
                        qualify_names=qualify,
                    )
                )

            # Table-level attributes (comment, owner)
            differences.extend(
                reconcile(
                    {key: source_table},
                    {key: destination_table},
                    sides.target_schema,
                )
            )

        return differences

    def _compare_views(self, sides: _Sides) -> list[ObjectDifference]:
        f = sides.comparison_filter
        source = index_by_key(
            (
                v
                for v in self._extractor.extract_views(
                    sides.source_conn, sides.source.schema
                )
                if f.matches_table(v.name)
            ),
            "views",
        )
        destination = index_by_key(
            (
                v
                for v in self._extractor.extract_views(
                    sides.destination_conn, sides.destination.schema
                )
                if f.matches_table(v.name)
            ),
            "views",
        )
        sides.count("views", source, destination)
        return reconcile(source, destination, sides.target_schema)

    def _compare_functions(self, sides: _Sides) -> list[ObjectDifference]:
        source = index_by_key(
            self._extractor.extract_functions(sides.source_conn, sides.source.schema),
            "functions",
        )
        destination = index_by_key(
            self._extractor.extract_functions(
                sides.destination_conn, sides.destination.schema
            ),
            "functions",
        )
        sides.count("functions", source, destination)
        return reconcile(source, destination, sides.target_schema)

    def _compare_sequences(self, sides: _Sides) -> list[ObjectDifference]:
        source = index_by_key(
            self._extractor.extract_sequences(sides.source_conn, sides.source.schema),
            "sequences",
        )
        destination = index_by_key(
            self._extractor.extract_sequences(
                sides.destination_conn, sides.destination.schema
            ),
            "sequences",
        )
        sides.count("sequences", source, destination)
        return reconcile(source, destination, sides.target_schema)

    def _compare_types(self, sides: _Sides) -> list[ObjectDifference]:
        source = index_by_key(
            self._extractor.extract_types(sides.source_conn, sides.source.schema),
            "types",
        )
        destination = index_by_key(
            self._extractor.extract_types(
                sides.destination_conn, sides.destination.schema
            ),
            "types",
        )
        sides.count("types", source, destination)
        return reconcile(source, destination, sides.target_schema)

    def _compare_extensions(self, sides: _Sides) -> list[ObjectDifference]:
        source = {
            name: Extension(name=name, version=version)
            for name, version in self._extractor.extract_extensions(
                sides.source_conn
            ).items()
        }
        destination = {
            name: Extension(name=name, version=version)
            for name, version in self._extractor.extract_extensions(
                sides.destination_conn
            ).items()
        }
        sides.count("extensions", source, destination)
        return reconcile(source, destination, sides.target_schema)

    # ------------------------------------------------------------------
    # Caller helpers (not used by compare)
    # ------------------------------------------------------------------

    def get_databases(self, instance: str) -> list[str]:
        """List connectable databases on ``instance``; empty on failure."""
        try:
            with self._connections.connect(instance) as conn:
                return self._extractor.list_databases(conn)
        except Exception as e:
            logger.warning(f"Failed to list databases on {instance}: {e}")
            return []

    def get_schemas(self, instance: str, database: str | None = None) -> list[str]:
        """List user schemas; empty on failure."""
        target = f"{instance}:{database}" if database else instance
        try:
            with self._connections.connect(instance, database) as conn:
                return self._extractor.list_schemas(conn)
        except Exception as e:
            logger.warning(f"Failed to get schemas for {target}: {e}")
            return []

    def get_schema_summary(
        self, instance: str, schema: str, database: str | None = None
    ) -> dict[str, int]:
        """Count objects by kind in one schema; empty on failure."""
        ref = SchemaRef(instance, schema, database)
        try:
            with self._connections.connect(instance, database) as conn:
                return self._extractor.schema_summary(conn, schema)
        except Exception as e:
            logger.warning(f"Failed to get schema summary for {ref.identifier}: {e}")
            return {}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
