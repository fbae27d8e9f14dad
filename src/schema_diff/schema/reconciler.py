"""Keyed-set reconciliation of one object kind.

Usage:
    from schema_diff.schema.reconciler import index_by_key, reconcile

    diffs = reconcile(
        index_by_key(source_tables, "tables"),
        index_by_key(destination_tables, "tables"),
        target_schema="public",
    )
"""

import logging
from collections.abc import Iterable, Mapping
from typing import TypeVar

from schema_diff.schema.models import SchemaObject
from schema_diff.schema.results import DifferenceType, ObjectDifference
from schema_diff.schema.severity import classify

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SchemaObject)


def index_by_key(objects: Iterable[T], kind: str) -> dict[str, T]:
    """Map objects by identity key, keeping extractor order.

    Duplicate keys collapse last-write-wins; each collision is logged.
    """
    indexed: dict[str, T] = {}
    for obj in objects:
        key = obj.identity_key
        if key in indexed:
            logger.warning(
                f"Duplicate {kind} key '{key}' from extractor, keeping last definition"
            )
        indexed[key] = obj
    return indexed


def reconcile(
    source: Mapping[str, SchemaObject],
    destination: Mapping[str, SchemaObject],
    target_schema: str,
    parent_name: str | None = None,
    qualify_names: bool = True,
    compare_common: bool = True,
) -> list[ObjectDifference]:
    """Diff two keyed collections of the same object kind.

    Keys only in ``source`` yield MISSING entries carrying the source
    definition, keys only in ``destination`` yield EXTRA entries, and keys in
    both yield a MODIFIED entry when ``differences_from`` reports anything.
    MISSING and MODIFIED entries follow source order, EXTRA entries follow
    destination order.

    Args:
        source: Source-side objects by identity key
        destination: Destination-side objects by identity key
        target_schema: Schema that rendered definitions are written for
        parent_name: Owning table for table sub-objects
        qualify_names: Prefix object names with ``parent_name``
        compare_common: When False only presence is reconciled (no MODIFIED)

    Returns:
        Differences in MISSING, EXTRA, MODIFIED order
    """

    def display_name(obj: SchemaObject) -> str:
        if parent_name and qualify_names:
            return f"{parent_name}.{obj.object_name}"
        return obj.object_name

    differences = []

    for key, obj in source.items():
        if key not in destination:
            differences.append(
                ObjectDifference(
                    object_type=obj.object_type,
                    object_name=display_name(obj),
                    difference_type=DifferenceType.MISSING,
                    severity=classify(obj.object_type, DifferenceType.MISSING),
                    source_definition=obj.render_definition(target_schema),
                    parent_object_name=parent_name,
                )
            )

    for key, obj in destination.items():
        if key not in source:
            differences.append(
                ObjectDifference(
                    object_type=obj.object_type,
                    object_name=display_name(obj),
                    difference_type=DifferenceType.EXTRA,
                    severity=classify(obj.object_type, DifferenceType.EXTRA),
                    parent_object_name=parent_name,
                )
            )

    if not compare_common:
        return differences

    for key, obj in source.items():
        other = destination.get(key)
        if other is None:
            continue
        attribute_differences = obj.differences_from(other)
        if not attribute_differences:
            continue
        differences.append(
            ObjectDifference(
                object_type=obj.object_type,
                object_name=display_name(obj),
                difference_type=DifferenceType.MODIFIED,
                severity=classify(
                    obj.object_type, DifferenceType.MODIFIED, attribute_differences
                ),
                attribute_differences=attribute_differences,
                source_definition=obj.render_definition(target_schema),
                destination_definition=other.render_definition(target_schema),
                parent_object_name=parent_name,
            )
        )

    return differences
