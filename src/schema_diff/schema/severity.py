"""Severity policy for schema differences.

The table below is fixed policy. EXTRA is BREAKING for every kind because the
comparison is directional: anything only the destination has is drift the
source does not know about.

Usage:
    from schema_diff.schema.severity import classify

    severity = classify(ObjectType.COLUMN, DifferenceType.MODIFIED, attrs)
"""

from collections.abc import Sequence

from schema_diff.schema.results import (
    AttributeDifference,
    DifferenceType,
    ObjectType,
    Severity,
)

_MISSING_SEVERITY: dict[ObjectType, Severity] = {
    ObjectType.TABLE: Severity.INFO,
    ObjectType.COLUMN: Severity.INFO,
    ObjectType.CONSTRAINT_PRIMARY: Severity.WARNING,
    ObjectType.CONSTRAINT_FOREIGN: Severity.WARNING,
    ObjectType.CONSTRAINT_UNIQUE: Severity.INFO,
    ObjectType.CONSTRAINT_CHECK: Severity.INFO,
    ObjectType.INDEX: Severity.INFO,
    ObjectType.TRIGGER: Severity.WARNING,
    ObjectType.VIEW: Severity.INFO,
    ObjectType.MATERIALIZED_VIEW: Severity.INFO,
    ObjectType.FUNCTION: Severity.INFO,
    ObjectType.PROCEDURE: Severity.INFO,
    ObjectType.SEQUENCE: Severity.INFO,
    ObjectType.TYPE_ENUM: Severity.INFO,
    ObjectType.TYPE_COMPOSITE: Severity.INFO,
    ObjectType.TYPE_DOMAIN: Severity.INFO,
    ObjectType.TYPE_RANGE: Severity.INFO,
    ObjectType.EXTENSION: Severity.WARNING,
}

# COLUMN is absent: its MODIFIED severity depends on which attribute changed
_MODIFIED_SEVERITY: dict[ObjectType, Severity] = {
    ObjectType.TABLE: Severity.INFO,
    ObjectType.CONSTRAINT_PRIMARY: Severity.WARNING,
    ObjectType.CONSTRAINT_FOREIGN: Severity.WARNING,
    ObjectType.CONSTRAINT_UNIQUE: Severity.INFO,
    ObjectType.CONSTRAINT_CHECK: Severity.INFO,
    ObjectType.INDEX: Severity.INFO,
    ObjectType.TRIGGER: Severity.WARNING,
    ObjectType.VIEW: Severity.WARNING,
    ObjectType.MATERIALIZED_VIEW: Severity.WARNING,
    ObjectType.FUNCTION: Severity.WARNING,
    ObjectType.PROCEDURE: Severity.WARNING,
    ObjectType.SEQUENCE: Severity.INFO,
    ObjectType.TYPE_ENUM: Severity.WARNING,
    ObjectType.TYPE_COMPOSITE: Severity.WARNING,
    ObjectType.TYPE_DOMAIN: Severity.WARNING,
    ObjectType.TYPE_RANGE: Severity.WARNING,
    ObjectType.EXTENSION: Severity.INFO,
}


def _column_modified_severity(
    attribute_differences: Sequence[AttributeDifference],
) -> Severity:
    for attr in attribute_differences:
        if attr.attribute_name == "dataType":
            return Severity.WARNING
        # Source NOT NULL, destination nullable: migrating tightens the column
        if (
            attr.attribute_name == "nullable"
            and attr.source_value == "false"
            and attr.destination_value == "true"
        ):
            return Severity.WARNING
    return Severity.INFO


def classify(
    object_type: ObjectType,
    difference_type: DifferenceType,
    attribute_differences: Sequence[AttributeDifference] = (),
) -> Severity:
    """Return the severity of one difference.

    Args:
        object_type: Kind of the differing object
        difference_type: MISSING, EXTRA or MODIFIED
        attribute_differences: Changed attributes (MODIFIED only)

    Returns:
        Severity from the fixed policy table
    """
    if difference_type is DifferenceType.EXTRA:
        return Severity.BREAKING
    if difference_type is DifferenceType.MISSING:
        return _MISSING_SEVERITY[object_type]
    if object_type is ObjectType.COLUMN:
        return _column_modified_severity(attribute_differences)
    return _MODIFIED_SEVERITY[object_type]
