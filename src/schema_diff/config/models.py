"""Pydantic models for instance configuration."""

from pydantic import BaseModel, Field


class InstanceProfile(BaseModel):
    """Database instance entry from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class ComparisonSettings(BaseModel):
    """The [comparison] table of db.toml."""

    default_schema: str = "public"
    connect_timeout: int = 10  # seconds


class DiffConfig(BaseModel):
    """Complete schema-diff configuration from db.toml."""

    instances: dict[str, InstanceProfile]
    comparison: ComparisonSettings = Field(default_factory=ComparisonSettings)
