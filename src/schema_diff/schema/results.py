"""Pydantic models for comparison output.

This module contains the change-set models produced by a comparison run:
- Classification enums: ObjectType, DifferenceType, Severity
- Difference models: AttributeDifference, ObjectDifference
- Run result: ComparisonSummary, SchemaComparisonResult

Structural models (Table, Column, ...) live in schema_diff.schema.models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schema_diff.schema.filter import ComparisonFilter


# ============================================================================
# Classification Enums
# ============================================================================


class ObjectType(str, Enum):
    """Kind of schema object a difference refers to."""

    TABLE = "TABLE"
    COLUMN = "COLUMN"
    INDEX = "INDEX"
    CONSTRAINT_PRIMARY = "CONSTRAINT_PRIMARY"
    CONSTRAINT_FOREIGN = "CONSTRAINT_FOREIGN"
    CONSTRAINT_UNIQUE = "CONSTRAINT_UNIQUE"
    CONSTRAINT_CHECK = "CONSTRAINT_CHECK"
    VIEW = "VIEW"
    MATERIALIZED_VIEW = "MATERIALIZED_VIEW"
    FUNCTION = "FUNCTION"
    PROCEDURE = "PROCEDURE"
    TRIGGER = "TRIGGER"
    SEQUENCE = "SEQUENCE"
    TYPE_ENUM = "TYPE_ENUM"
    TYPE_COMPOSITE = "TYPE_COMPOSITE"
    TYPE_DOMAIN = "TYPE_DOMAIN"
    TYPE_RANGE = "TYPE_RANGE"
    EXTENSION = "EXTENSION"

    @property
    def display_name(self) -> str:
        return _OBJECT_TYPE_NAMES[self]


_OBJECT_TYPE_NAMES: dict[ObjectType, str] = {
    ObjectType.TABLE: "Table",
    ObjectType.COLUMN: "Column",
    ObjectType.INDEX: "Index",
    ObjectType.CONSTRAINT_PRIMARY: "Primary Key",
    ObjectType.CONSTRAINT_FOREIGN: "Foreign Key",
    ObjectType.CONSTRAINT_UNIQUE: "Unique Constraint",
    ObjectType.CONSTRAINT_CHECK: "Check Constraint",
    ObjectType.VIEW: "View",
    ObjectType.MATERIALIZED_VIEW: "Materialized View",
    ObjectType.FUNCTION: "Function",
    ObjectType.PROCEDURE: "Procedure",
    ObjectType.TRIGGER: "Trigger",
    ObjectType.SEQUENCE: "Sequence",
    ObjectType.TYPE_ENUM: "Enum Type",
    ObjectType.TYPE_COMPOSITE: "Composite Type",
    ObjectType.TYPE_DOMAIN: "Domain",
    ObjectType.TYPE_RANGE: "Range Type",
    ObjectType.EXTENSION: "Extension",
}


class DifferenceType(str, Enum):
    """How an object differs between source and destination."""

    MISSING = "MISSING"
    EXTRA = "EXTRA"
    MODIFIED = "MODIFIED"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def description(self) -> str:
        return _DIFFERENCE_TYPE_DESCRIPTIONS[self]


_DIFFERENCE_TYPE_DESCRIPTIONS: dict[DifferenceType, str] = {
    DifferenceType.MISSING: "Object exists in source but not in destination",
    DifferenceType.EXTRA: "Object exists in destination but not in source",
    DifferenceType.MODIFIED: "Object exists in both but differs",
}


class Severity(str, Enum):
    """Impact of a difference on a source-to-destination migration."""

    INFO = "INFO"
    WARNING = "WARNING"
    BREAKING = "BREAKING"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def description(self) -> str:
        return _SEVERITY_DESCRIPTIONS[self]


_SEVERITY_DESCRIPTIONS: dict[Severity, str] = {
    Severity.INFO: "Additive change - safe to apply",
    Severity.WARNING: "Requires review before migrating",
    Severity.BREAKING: "Destination has diverged - cannot be resolved automatically",
}


# ============================================================================
# Difference Models
# ============================================================================


class AttributeDifference(BaseModel):
    """One changed scalar attribute of an object present on both sides.

    Example:
        >>> diff = AttributeDifference(
        ...     attribute_name="deleteRule",
        ...     source_value="CASCADE",
        ...     destination_value="RESTRICT",
        ... )
        >>> diff.summary
        'deleteRule: CASCADE -> RESTRICT'
    """

    model_config = ConfigDict(frozen=True)

    attribute_name: str
    source_value: str | None = None
    destination_value: str | None = None

    @property
    def summary(self) -> str:
        source = self.source_value if self.source_value is not None else "(none)"
        destination = (
            self.destination_value if self.destination_value is not None else "(none)"
        )
        return f"{self.attribute_name}: {source} -> {destination}"

    @property
    def is_added(self) -> bool:
        """True when only the destination has a value."""
        return self.source_value is None and self.destination_value is not None

    @property
    def is_removed(self) -> bool:
        """True when only the source has a value."""
        return self.source_value is not None and self.destination_value is None


class ObjectDifference(BaseModel):
    """A single entry of the change-set.

    MISSING entries carry the source object's rendered definition, MODIFIED
    entries carry both sides' definitions and at least one
    ``AttributeDifference``. Constructing a MODIFIED entry without attribute
    differences raises ``pydantic.ValidationError``.

    Example:
        >>> diff = ObjectDifference(
        ...     object_type=ObjectType.COLUMN,
        ...     object_name="orders.notes",
        ...     difference_type=DifferenceType.EXTRA,
        ...     severity=Severity.BREAKING,
        ... )
        >>> diff.summary
        'Extra Column: orders.notes'
    """

    model_config = ConfigDict(frozen=True)

    object_type: ObjectType
    object_name: str
    difference_type: DifferenceType
    severity: Severity
    attribute_differences: list[AttributeDifference] = Field(default_factory=list)
    source_definition: str | None = None
    destination_definition: str | None = None
    parent_object_name: str | None = None  # owning table for sub-objects

    @model_validator(mode="after")
    def _modified_needs_attributes(self) -> ObjectDifference:
        if (
            self.difference_type is DifferenceType.MODIFIED
            and not self.attribute_differences
        ):
            raise ValueError(
                f"MODIFIED difference for {self.object_name!r} "
                f"requires at least one attribute difference"
            )
        return self

    @property
    def summary(self) -> str:
        return (
            f"{self.difference_type.display_name} "
            f"{self.object_type.display_name}: {self.object_name}"
        )

    @property
    def is_missing(self) -> bool:
        return self.difference_type is DifferenceType.MISSING

    @property
    def is_extra(self) -> bool:
        return self.difference_type is DifferenceType.EXTRA

    @property
    def is_modified(self) -> bool:
        return self.difference_type is DifferenceType.MODIFIED

    @property
    def is_breaking(self) -> bool:
        return self.severity is Severity.BREAKING


# ============================================================================
# Comparison Result
# ============================================================================


class ComparisonSummary(BaseModel):
    """Running counts for one comparison.

    ``compared`` maps a kind name (``"tables"``, ``"columns"``, ...) to the
    number of objects of that kind seen on either side.
    """

    missing_objects: int = 0
    extra_objects: int = 0
    modified_objects: int = 0
    compared: dict[str, int] = Field(default_factory=dict)

    def update_counts(self, diff: ObjectDifference) -> None:
        if diff.difference_type is DifferenceType.MISSING:
            self.missing_objects += 1
        elif diff.difference_type is DifferenceType.EXTRA:
            self.extra_objects += 1
        else:
            self.modified_objects += 1

    def record_compared(self, kind: str, count: int) -> None:
        self.compared[kind] = self.compared.get(kind, 0) + count

    @property
    def total_differences(self) -> int:
        return self.missing_objects + self.extra_objects + self.modified_objects

    @property
    def total_compared(self) -> int:
        return sum(self.compared.values())

    def summary_text(self) -> str:
        if self.total_differences == 0:
            return "Schemas are identical"
        return (
            f"{self.total_differences} differences "
            f"({self.missing_objects} missing, {self.extra_objects} extra, "
            f"{self.modified_objects} modified)"
        )


def _identifier(instance: str, database: str | None, schema: str) -> str:
    """Format ``instance[:database].schema``."""
    if database:
        return f"{instance}:{database}.{schema}"
    return f"{instance}.{schema}"


class SchemaComparisonResult(BaseModel):
    """Result of comparing two schemas.

    Only this model outlives a comparison call; it is plain data and
    serialises with ``model_dump_json()``.

    Example:
        >>> result = SchemaComparisonResult(
        ...     source_instance="prod", destination_instance="staging",
        ...     source_schema="public", destination_schema="public",
        ... )
        >>> result.is_identical
        True
        >>> result.description
        'prod.public vs staging.public'
    """

    comparison_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source_instance: str
    destination_instance: str
    source_schema: str
    destination_schema: str
    source_database: str | None = None
    destination_database: str | None = None
    filter: ComparisonFilter = Field(default_factory=ComparisonFilter)
    compared_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    differences: list[ObjectDifference] = Field(default_factory=list)
    summary: ComparisonSummary = Field(default_factory=ComparisonSummary)
    success: bool = False
    error_message: str | None = None
    partial_failures: dict[str, str] = Field(default_factory=dict)
    duration_ms: int = 0

    def add_difference(self, diff: ObjectDifference) -> None:
        self.differences.append(diff)
        self.summary.update_counts(diff)

    def add_differences(self, diffs: list[ObjectDifference]) -> None:
        for diff in diffs:
            self.add_difference(diff)

    @property
    def source_identifier(self) -> str:
        return _identifier(
            self.source_instance, self.source_database, self.source_schema
        )

    @property
    def destination_identifier(self) -> str:
        return _identifier(
            self.destination_instance,
            self.destination_database,
            self.destination_schema,
        )

    @property
    def description(self) -> str:
        return f"{self.source_identifier} vs {self.destination_identifier}"

    @property
    def is_identical(self) -> bool:
        return not self.differences

    @property
    def is_partial(self) -> bool:
        """True when at least one object kind could not be compared."""
        return bool(self.partial_failures)

    @property
    def has_breaking_changes(self) -> bool:
        return any(d.severity is Severity.BREAKING for d in self.differences)

    @property
    def breaking_count(self) -> int:
        return len(self.differences_by_severity(Severity.BREAKING))

    @property
    def warning_count(self) -> int:
        return len(self.differences_by_severity(Severity.WARNING))

    @property
    def info_count(self) -> int:
        return len(self.differences_by_severity(Severity.INFO))

    def differences_by_severity(self, severity: Severity) -> list[ObjectDifference]:
        return [d for d in self.differences if d.severity is severity]

    def differences_by_object_type(
        self, object_type: ObjectType
    ) -> list[ObjectDifference]:
        return [d for d in self.differences if d.object_type is object_type]

    def differences_by_difference_type(
        self, difference_type: DifferenceType
    ) -> list[ObjectDifference]:
        return [d for d in self.differences if d.difference_type is difference_type]

    def format_report(self) -> str:
        """Format the change-set as a human-readable report."""
        if not self.success:
            return f"Comparison failed: {self.error_message or 'unknown error'}"

        lines = [f"Schema comparison: {self.description}"]
        lines.append(f"  {self.summary.summary_text()}")

        for diff in self.differences:
            lines.append(f"    [{diff.severity.value}] {diff.summary}")
            for attr in diff.attribute_differences:
                lines.append(f"        - {attr.summary}")

        if self.partial_failures:
            lines.append(
                f"\n  Not compared (errors): {', '.join(sorted(self.partial_failures))}"
            )

        return "\n".join(lines)
