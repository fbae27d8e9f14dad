"""Schema structural models, reconciliation, and comparison.

Provides the structural models (``Table``, ``View``, ``Function``, ...),
the change-set models (``ObjectDifference``, ``SchemaComparisonResult``),
the comparison filter, and the ``DatabaseDiffService`` orchestrator with its
default PostgreSQL extractor (``SchemaIntrospector``).

Usage:
    from schema_diff.schema import DatabaseDiffService, SchemaRef
    from schema_diff.schema import ComparisonFilter, FilterPreset
    from schema_diff.schema import reconcile, classify
"""

from schema_diff.schema.filter import ComparisonFilter, FilterPreset
from schema_diff.schema.results import (
    AttributeDifference,
    ComparisonSummary,
    DifferenceType,
    ObjectDifference,
    ObjectType,
    SchemaComparisonResult,
    Severity,
)
from schema_diff.schema.models import (
    CheckConstraint,
    Column,
    CompositeAttribute,
    Extension,
    ForeignKey,
    Function,
    Index,
    PrimaryKey,
    SchemaObject,
    Sequence,
    Table,
    Trigger,
    TypeDefinition,
    TypeKind,
    UniqueConstraint,
    View,
)
from schema_diff.schema.differ import diff_attributes
from schema_diff.schema.severity import classify
from schema_diff.schema.reconciler import index_by_key, reconcile
from schema_diff.schema.comparator import DatabaseDiffService, SchemaRef
from schema_diff.schema.introspector import SchemaIntrospector

__all__ = [
    # Filter
    "ComparisonFilter",
    "FilterPreset",
    # Results
    "AttributeDifference",
    "ComparisonSummary",
    "DifferenceType",
    "ObjectDifference",
    "ObjectType",
    "SchemaComparisonResult",
    "Severity",
    # Structural models
    "SchemaObject",
    "Table",
    "Column",
    "PrimaryKey",
    "ForeignKey",
    "UniqueConstraint",
    "CheckConstraint",
    "Index",
    "Trigger",
    "View",
    "Function",
    "Sequence",
    "TypeDefinition",
    "TypeKind",
    "CompositeAttribute",
    "Extension",
    # Algorithms
    "diff_attributes",
    "classify",
    "index_by_key",
    "reconcile",
    # Orchestration
    "DatabaseDiffService",
    "SchemaRef",
    "SchemaIntrospector",
]
