"""Comparison filter: which object kinds and table names take part in a diff.

Usage:
    from schema_diff.schema.filter import ComparisonFilter, FilterPreset

    everything = ComparisonFilter()
    tables_only = ComparisonFilter(include_views=False, include_functions=False)
    no_temp = ComparisonFilter.from_preset(FilterPreset.EXCLUDE_TEMP_TABLES)
    orders = ComparisonFilter(name_pattern="order*")
"""

from __future__ import annotations

import fnmatch
import re
from enum import Enum

from pydantic import BaseModel, Field


class FilterPreset(str, Enum):
    """Named exclude-pattern sets."""

    NONE = "NONE"
    EXCLUDE_TEMP_TABLES = "EXCLUDE_TEMP_TABLES"

    @property
    def patterns(self) -> list[str]:
        return list(_PRESET_PATTERNS[self])


_PRESET_PATTERNS: dict[FilterPreset, tuple[str, ...]] = {
    FilterPreset.NONE: (),
    FilterPreset.EXCLUDE_TEMP_TABLES: (
        "temp_*",
        "tmp_*",
        "*_backup",
        "*_bak",
        "zz_*",
    ),
}


def _matches(name: str, pattern: str, use_regex: bool) -> bool:
    regex = pattern if use_regex else fnmatch.translate(pattern)
    try:
        return re.fullmatch(regex, name, re.IGNORECASE) is not None
    except re.error:
        # Unparsable patterns match nothing
        return False


class ComparisonFilter(BaseModel):
    """Toggles per object kind and per table sub-aspect, plus name patterns.

    ``name_pattern`` and ``exclude_patterns`` apply to table and view names
    only. Patterns are globs unless ``use_regex`` is set; matching is
    case-insensitive and must cover the whole name. An all-false filter is
    legal and produces an empty comparison.
    """

    include_tables: bool = True
    include_views: bool = True
    include_functions: bool = True
    include_sequences: bool = True
    include_types: bool = True
    include_extensions: bool = True

    include_columns: bool = True
    include_primary_keys: bool = True
    include_foreign_keys: bool = True
    include_unique_constraints: bool = True
    include_check_constraints: bool = True
    include_indexes: bool = True
    include_triggers: bool = True

    name_pattern: str | None = None
    use_regex: bool = False
    exclude_patterns: list[str] = Field(default_factory=list)

    @classmethod
    def from_preset(cls, preset: FilterPreset) -> ComparisonFilter:
        return cls(exclude_patterns=preset.patterns)

    @classmethod
    def from_pattern_string(
        cls, patterns: str | None, use_regex: bool = False
    ) -> ComparisonFilter:
        """Build a filter excluding each entry of a comma-separated list.

        Example:
            >>> ComparisonFilter.from_pattern_string("tmp_*, audit_*").exclude_patterns
            ['tmp_*', 'audit_*']
        """
        excludes = [p.strip() for p in (patterns or "").split(",") if p.strip()]
        return cls(exclude_patterns=excludes, use_regex=use_regex)

    def matches_table(self, name: str) -> bool:
        """Return True if a table or view name participates in the comparison."""
        if self.name_pattern and not _matches(name, self.name_pattern, self.use_regex):
            return False
        return not any(
            _matches(name, pattern, self.use_regex)
            for pattern in self.exclude_patterns
        )

    def has_filters(self) -> bool:
        return bool(self.name_pattern) or bool(self.exclude_patterns)

    def summary(self) -> str:
        if not self.has_filters():
            return "No filters"
        mode = "regex" if self.use_regex else "glob"
        parts = []
        if self.name_pattern:
            parts.append(f"include {self.name_pattern}")
        if self.exclude_patterns:
            parts.append(f"exclude {', '.join(self.exclude_patterns)}")
        return f"{'; '.join(parts)} ({mode})"
