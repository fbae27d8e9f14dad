"""Exceptions raised by schema-diff components.

The comparison entry point (``DatabaseDiffService.compare``) never lets these
escape; they surface as ``success=False`` or as entries in
``SchemaComparisonResult.partial_failures``.
"""


class SchemaDiffError(Exception):
    """Base exception for schema-diff."""

    pass


class ConfigurationError(SchemaDiffError):
    """Raised when db.toml is missing required settings."""

    pass


class InstanceNotFoundError(ConfigurationError):
    """Raised when an instance name is not declared in db.toml."""

    pass


class ConnectionFailedError(SchemaDiffError):
    """Raised when a connection to an instance/database cannot be opened."""

    pass


class ExtractionError(SchemaDiffError):
    """Raised when a catalog query for one object kind fails."""

    pass
