"""Load instance configuration from db.toml."""

import os
import tomllib
from pathlib import Path

from schema_diff.config.models import ComparisonSettings, DiffConfig, InstanceProfile

CONFIG_ENV_VAR = "SCHEMA_DIFF_CONFIG"


def load_diff_config(config_path: Path | None = None) -> DiffConfig:
    """Load instance configuration from a TOML file.

    Args:
        config_path: Path to db.toml (default: $SCHEMA_DIFF_CONFIG, else
            ./db.toml)

    Returns:
        DiffConfig with all instances

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If no instances are declared
    """
    if config_path is None:
        config_path = Path(os.environ.get(CONFIG_ENV_VAR, "db.toml"))

    if not config_path.exists():
        raise FileNotFoundError(
            f"Instance config not found: {config_path}\n"
            f"Create db.toml with an [instances.<name>] table per server."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    instances = {}
    for name, instance_data in data.get("instances", {}).items():
        instances[name] = InstanceProfile(**instance_data)

    if not instances:
        raise ValueError(f"No [instances.<name>] tables declared in {config_path}")

    return DiffConfig(
        instances=instances,
        comparison=ComparisonSettings(**data.get("comparison", {})),
    )
