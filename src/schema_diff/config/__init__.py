"""Configuration management: instances, TOML loading, and config models.

Usage:
    >>> from schema_diff.config import load_diff_config, InstanceProfile, DiffConfig
"""

from schema_diff.config.loader import load_diff_config
from schema_diff.config.models import ComparisonSettings, DiffConfig, InstanceProfile

__all__ = ["load_diff_config", "DiffConfig", "InstanceProfile", "ComparisonSettings"]
