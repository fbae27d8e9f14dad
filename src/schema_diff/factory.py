"""Diff service factory.

Wires the default PostgreSQL collaborators (``PostgresConnectionProvider``,
``SchemaIntrospector``) from a db.toml instance configuration.

Usage:
    from schema_diff.factory import get_diff_service

    service = get_diff_service()
    result = service.compare_instances("prod", "public", "staging", "public")
"""

import logging
from pathlib import Path
from urllib.parse import quote

from schema_diff.adapters.postgres import PostgresConnectionProvider
from schema_diff.config.loader import load_diff_config
from schema_diff.config.models import InstanceProfile
from schema_diff.schema.comparator import DatabaseDiffService
from schema_diff.schema.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)


def resolve_url(profile: InstanceProfile) -> str:
    """Resolve instance URL with password substitution.

    Args:
        profile: Instance profile from config

    Returns:
        Connection URL with password substituted

    Example:
        >>> profile = InstanceProfile(
        ...     url="postgresql://app:[YOUR-PASSWORD]@db:5432/app",
        ...     db_password="p@ss/word",
        ... )
        >>> resolve_url(profile)
        'postgresql://app:p%40ss%2Fword@db:5432/app'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_diff_service(config_path: Path | None = None) -> DatabaseDiffService:
    """Create a diff service for the instances declared in db.toml.

    Args:
        config_path: Path to db.toml (default: $SCHEMA_DIFF_CONFIG, else
            ./db.toml)

    Returns:
        DatabaseDiffService backed by psycopg connections

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If no instances are declared
    """
    config = load_diff_config(config_path)
    logger.debug(f"Configured instances: {', '.join(sorted(config.instances))}")
    return DatabaseDiffService(
        PostgresConnectionProvider(config),
        SchemaIntrospector(),
        default_schema=config.comparison.default_schema,
    )
