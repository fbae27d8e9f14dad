"""schema-diff: structural comparison of PostgreSQL schemas.

Extracts a structural model of two schemas (possibly on different instances
or databases), reconciles them object kind by object kind, and returns a
severity-classified change-set.

Usage:
    from schema_diff import get_diff_service, SchemaRef, ComparisonFilter
    from schema_diff import DatabaseDiffService, SchemaComparisonResult
    from schema_diff import load_diff_config, DiffConfig, InstanceProfile
"""

__version__ = "0.1.0"

# Schema (must load before adapters: the adapter protocols reference its models)
from schema_diff.schema.comparator import DatabaseDiffService, SchemaRef
from schema_diff.schema.filter import ComparisonFilter, FilterPreset
from schema_diff.schema.introspector import SchemaIntrospector
from schema_diff.schema.results import (
    AttributeDifference,
    DifferenceType,
    ObjectDifference,
    ObjectType,
    SchemaComparisonResult,
    Severity,
)

# Adapters
from schema_diff.adapters.base import ConnectionProvider, SchemaExtractor
from schema_diff.adapters.postgres import PostgresConnectionProvider

# Config
from schema_diff.config.loader import load_diff_config
from schema_diff.config.models import DiffConfig, InstanceProfile

# Factory
from schema_diff.factory import get_diff_service, resolve_url

# Errors
from schema_diff.exceptions import (
    ConfigurationError,
    ConnectionFailedError,
    ExtractionError,
    InstanceNotFoundError,
    SchemaDiffError,
)

__all__ = [
    # Schema
    "DatabaseDiffService",
    "SchemaRef",
    "ComparisonFilter",
    "FilterPreset",
    "SchemaIntrospector",
    "SchemaComparisonResult",
    "ObjectDifference",
    "AttributeDifference",
    "ObjectType",
    "DifferenceType",
    "Severity",
    # Adapters
    "ConnectionProvider",
    "SchemaExtractor",
    "PostgresConnectionProvider",
    # Config
    "load_diff_config",
    "DiffConfig",
    "InstanceProfile",
    # Factory
    "get_diff_service",
    "resolve_url",
    # Errors
    "SchemaDiffError",
    "ConfigurationError",
    "InstanceNotFoundError",
    "ConnectionFailedError",
    "ExtractionError",
]
