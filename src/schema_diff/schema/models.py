"""Pydantic models describing the structure of one schema.

This module contains the structural models built by an extractor:
- Table sub-objects: Column, PrimaryKey, ForeignKey, UniqueConstraint,
  CheckConstraint, Index, Trigger
- Schema objects: Table, View, Function, Sequence, TypeDefinition, Extension

Every model is frozen and implements the ``SchemaObject`` interface used by
the reconciler: an identity key to match source against destination, an
object type, ``differences_from`` for attribute-level comparison, and
``render_definition`` for the text attached to MISSING/MODIFIED entries.

Change-set models (ObjectDifference, SchemaComparisonResult) live in
schema_diff.schema.results.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from schema_diff.schema.differ import diff_attributes
from schema_diff.schema.results import AttributeDifference, ObjectType

PRIMARY_KEY_IDENTITY = "PRIMARY KEY"

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace to one space and strip the ends."""
    return _WHITESPACE.sub(" ", text or "").strip()


def normalize_view_definition(text: str | None) -> str:
    """Normalise a view body for comparison.

    Example:
        >>> normalize_view_definition(" SELECT id\\n  FROM orders;")
        'select id from orders'
    """
    normalized = normalize_whitespace(text)
    if normalized.endswith(";"):
        normalized = normalized[:-1].rstrip()
    return normalized.lower()


def _normalized_or_none(text: str | None) -> str | None:
    return None if text is None else normalize_whitespace(text)


# Header of pg_get_functiondef output, with the optional schema qualifier
_FUNCTION_HEADER = re.compile(
    r'^(\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:FUNCTION|PROCEDURE)\s+)'
    r'((?:"(?:[^"]|"")+"|[^\s."(]+)\.)?',
    re.IGNORECASE,
)


def qualify_function_definition(definition: str, schema: str | None) -> str:
    """Replace the schema qualifier in a function definition's header.

    A ``schema`` of None drops the qualifier.

    Example:
        >>> qualify_function_definition(
        ...     "CREATE OR REPLACE FUNCTION public.add(a integer)", "staging"
        ... )
        'CREATE OR REPLACE FUNCTION staging.add(a integer)'
    """
    prefix = f"{schema}." if schema else ""
    return _FUNCTION_HEADER.sub(lambda m: m.group(1) + prefix, definition, count=1)


def _columns_sql(columns: list[str]) -> str:
    return ", ".join(columns)


@runtime_checkable
class SchemaObject(Protocol):
    """Capability interface shared by every structural model."""

    @property
    def identity_key(self) -> str: ...

    @property
    def object_name(self) -> str: ...

    @property
    def object_type(self) -> ObjectType: ...

    def differences_from(self, other) -> list[AttributeDifference]: ...

    def render_definition(self, target_schema: str) -> str | None: ...


class _StructuralModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str

    @property
    def identity_key(self) -> str:
        return self.name

    @property
    def object_name(self) -> str:
        return self.name


# ============================================================================
# Table Sub-objects
# ============================================================================


class Column(_StructuralModel):
    """A table column.

    Example:
        >>> col = Column(name="total", data_type="numeric", nullable=False)
        >>> col.render_definition("public")
        'numeric NOT NULL'
    """

    data_type: str
    nullable: bool = True
    default_value: str | None = None
    identity: bool = False
    generated: bool = False
    comment: str | None = None

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.COLUMN

    def differences_from(self, other: Column) -> list[AttributeDifference]:
        return diff_attributes(
            [
                ("dataType", self.data_type, other.data_type),
                ("nullable", self.nullable, other.nullable),
                ("defaultValue", self.default_value, other.default_value),
                ("identity", self.identity, other.identity),
                ("generated", self.generated, other.generated),
                ("comment", self.comment, other.comment),
            ]
        )

    def render_definition(self, target_schema: str) -> str:
        parts = [self.data_type]
        if not self.nullable:
            parts.append("NOT NULL")
        if self.default_value is not None:
            parts.append(f"DEFAULT {self.default_value}")
        return " ".join(parts)


class PrimaryKey(_StructuralModel):
    """A table's primary key.

    A table has at most one, so the identity key is constant and a renamed
    primary key shows up as a ``constraintName`` change rather than a
    MISSING/EXTRA pair.
    """

    columns: list[str] = Field(default_factory=list)

    @property
    def identity_key(self) -> str:
        return PRIMARY_KEY_IDENTITY

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.CONSTRAINT_PRIMARY

    def differences_from(self, other: PrimaryKey) -> list[AttributeDifference]:
        return diff_attributes(
            [
                ("constraintName", self.name, other.name),
                ("columns", self.columns, other.columns),
            ]
        )

    def render_definition(self, target_schema: str) -> str:
        return f"PRIMARY KEY ({_columns_sql(self.columns)})"


class ForeignKey(_StructuralModel):
    """A foreign-key constraint.

    ``referenced_schema`` is None when the referenced table lives in the same
    schema as the owning table; rendering then targets the schema being
    migrated.
    """

    columns: list[str] = Field(default_factory=list)
    referenced_schema: str | None = None
    referenced_table: str
    referenced_columns: list[str] = Field(default_factory=list)
    update_rule: str = "NO ACTION"
    delete_rule: str = "NO ACTION"

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.CONSTRAINT_FOREIGN

    def differences_from(self, other: ForeignKey) -> list[AttributeDifference]:
        return diff_attributes(
            [
                ("columns", self.columns, other.columns),
                ("referencedTable", self.referenced_table, other.referenced_table),
                (
                    "referencedColumns",
                    self.referenced_columns,
                    other.referenced_columns,
                ),
                ("updateRule", self.update_rule, other.update_rule),
                ("deleteRule", self.delete_rule, other.delete_rule),
            ]
        )

    def render_definition(self, target_schema: str) -> str:
        schema = self.referenced_schema or target_schema
        sql = (
            f"FOREIGN KEY ({_columns_sql(self.columns)}) "
            f"REFERENCES {schema}.{self.referenced_table} "
            f"({_columns_sql(self.referenced_columns)})"
        )
        if self.update_rule != "NO ACTION":
            sql += f" ON UPDATE {self.update_rule}"
        if self.delete_rule != "NO ACTION":
            sql += f" ON DELETE {self.delete_rule}"
        return sql


class UniqueConstraint(_StructuralModel):
    """A unique constraint. Compared by presence only."""

    columns: list[str] = Field(default_factory=list)

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.CONSTRAINT_UNIQUE

    def differences_from(self, other: UniqueConstraint) -> list[AttributeDifference]:
        return []

    def render_definition(self, target_schema: str) -> str:
        return f"UNIQUE ({_columns_sql(self.columns)})"


class CheckConstraint(_StructuralModel):
    """A check constraint. Compared by presence only."""

    expression: str

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.CONSTRAINT_CHECK

    def differences_from(self, other: CheckConstraint) -> list[AttributeDifference]:
        return []

    def render_definition(self, target_schema: str) -> str:
        return self.expression


class Index(_StructuralModel):
    """A non-constraint index.

    ``definition`` is the stored ``CREATE INDEX`` text. It embeds the schema
    name, so it is rendered but never compared. ``columns`` holds one entry
    per key: the column name, or the expression text for expression keys.
    """

    definition: str
    columns: list[str] = Field(default_factory=list)
    unique: bool = False
    access_method: str = "btree"
    where_clause: str | None = None

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.INDEX

    def differences_from(self, other: Index) -> list[AttributeDifference]:
        return diff_attributes(
            [
                ("accessMethod", self.access_method, other.access_method),
                ("columns", self.columns, other.columns),
                ("unique", self.unique, other.unique),
                (
                    "whereClause",
                    _normalized_or_none(self.where_clause),
                    _normalized_or_none(other.where_clause),
                ),
            ]
        )

    def render_definition(self, target_schema: str) -> str:
        return self.definition


class Trigger(_StructuralModel):
    """A table trigger."""

    definition: str
    timing: str  # BEFORE, AFTER, INSTEAD OF
    events: list[str] = Field(default_factory=list)  # INSERT, UPDATE, ...
    level: str = "ROW"
    function: str = ""
    enabled: bool = True
    condition: str | None = None  # WHEN expression

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.TRIGGER

    def differences_from(self, other: Trigger) -> list[AttributeDifference]:
        return diff_attributes(
            [
                ("timing", self.timing, other.timing),
                ("events", self.events, other.events),
                ("level", self.level, other.level),
                ("function", self.function, other.function),
                ("enabled", self.enabled, other.enabled),
                (
                    "condition",
                    _normalized_or_none(self.condition),
                    _normalized_or_none(other.condition),
                ),
            ]
        )

    def render_definition(self, target_schema: str) -> str:
        return self.definition


# ============================================================================
# Schema Objects
# ============================================================================


class Table(_StructuralModel):
    """A table with all of its sub-objects.

    ``differences_from`` covers the table-level attributes only (comment,
    owner); sub-objects are reconciled separately per aspect.
    """

    columns: list[Column] = Field(default_factory=list)
    primary_key: PrimaryKey | None = None
    foreign_keys: list[ForeignKey] = Field(default_factory=list)
    unique_constraints: list[UniqueConstraint] = Field(default_factory=list)
    check_constraints: list[CheckConstraint] = Field(default_factory=list)
    indexes: list[Index] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    comment: str | None = None
    owner: str | None = None

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.TABLE

    def differences_from(self, other: Table) -> list[AttributeDifference]:
        return diff_attributes(
            [
                ("comment", self.comment, other.comment),
                ("owner", self.owner, other.owner),
            ]
        )

    def render_definition(self, target_schema: str) -> str:
        lines = [
            f"    {col.name} {col.render_definition(target_schema)}"
            for col in self.columns
        ]
        if self.primary_key is not None:
            lines.append(
                f"    CONSTRAINT {self.primary_key.name} "
                f"{self.primary_key.render_definition(target_schema)}"
            )
        constraints = [
            *self.unique_constraints,
            *self.check_constraints,
            *self.foreign_keys,
        ]
        for constraint in constraints:
            lines.append(
                f"    CONSTRAINT {constraint.name} "
                f"{constraint.render_definition(target_schema)}"
            )
        body = ",\n".join(lines)
        return f"CREATE TABLE {target_schema}.{self.name} (\n{body}\n);"


class View(_StructuralModel):
    """A view or materialized view. ``definition`` is the SELECT body."""

    definition: str
    materialized: bool = False

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.MATERIALIZED_VIEW if self.materialized else ObjectType.VIEW

    def differences_from(self, other: View) -> list[AttributeDifference]:
        differences = []
        if normalize_view_definition(self.definition) != normalize_view_definition(
            other.definition
        ):
            differences.append(
                AttributeDifference(
                    attribute_name="definition",
                    source_value=self.definition,
                    destination_value=other.definition,
                )
            )
        differences.extend(
            diff_attributes([("materialized", self.materialized, other.materialized)])
        )
        return differences

    def render_definition(self, target_schema: str) -> str:
        keyword = "MATERIALIZED VIEW" if self.materialized else "VIEW"
        return f"CREATE {keyword} {target_schema}.{self.name} AS\n{self.definition}"


class Function(_StructuralModel):
    """A function or procedure, keyed by its full signature.

    Example:
        >>> fn = Function(name="add", argument_types=["integer", "integer"])
        >>> fn.identity_key
        'add(integer, integer)'
    """

    argument_types: list[str] = Field(default_factory=list)
    kind: str = "FUNCTION"  # FUNCTION or PROCEDURE
    return_type: str | None = None
    language: str = "sql"
    volatility: str = "VOLATILE"
    strict: bool = False
    security_definer: bool = False
    definition: str = ""

    @property
    def signature(self) -> str:
        return f"{self.name}({', '.join(self.argument_types)})"

    @property
    def identity_key(self) -> str:
        return self.signature

    @property
    def object_name(self) -> str:
        return self.signature

    @property
    def object_type(self) -> ObjectType:
        if self.kind == "PROCEDURE":
            return ObjectType.PROCEDURE
        return ObjectType.FUNCTION

    def differences_from(self, other: Function) -> list[AttributeDifference]:
        differences = diff_attributes(
            [
                ("kind", self.kind, other.kind),
                ("returnType", self.return_type, other.return_type),
                ("language", self.language, other.language),
                ("volatility", self.volatility, other.volatility),
                ("strict", self.strict, other.strict),
                ("securityDefiner", self.security_definer, other.security_definer),
            ]
        )
        # The header's schema qualifier is not part of the body
        own_body = qualify_function_definition(self.definition, None)
        other_body = qualify_function_definition(other.definition, None)
        if normalize_whitespace(own_body) != normalize_whitespace(other_body):
            differences.append(
                AttributeDifference(
                    attribute_name="definition",
                    source_value=self.definition,
                    destination_value=other.definition,
                )
            )
        return differences

    def render_definition(self, target_schema: str) -> str:
        return qualify_function_definition(self.definition, target_schema)


class Sequence(_StructuralModel):
    """A standalone sequence."""

    data_type: str = "bigint"
    start_value: int = 1
    increment: int = 1
    min_value: int | None = None
    max_value: int | None = None
    cache_size: int = 1
    cycle: bool = False

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.SEQUENCE

    def differences_from(self, other: Sequence) -> list[AttributeDifference]:
        return diff_attributes(
            [
                ("dataType", self.data_type, other.data_type),
                ("startValue", self.start_value, other.start_value),
                ("increment", self.increment, other.increment),
                ("minValue", self.min_value, other.min_value),
                ("maxValue", self.max_value, other.max_value),
                ("cacheSize", self.cache_size, other.cache_size),
                ("cycle", self.cycle, other.cycle),
            ]
        )

    def render_definition(self, target_schema: str) -> str:
        parts = [
            f"CREATE SEQUENCE {target_schema}.{self.name}",
            f"AS {self.data_type}",
            f"INCREMENT BY {self.increment}",
        ]
        if self.min_value is not None:
            parts.append(f"MINVALUE {self.min_value}")
        if self.max_value is not None:
            parts.append(f"MAXVALUE {self.max_value}")
        parts.append(f"START WITH {self.start_value}")
        parts.append(f"CACHE {self.cache_size}")
        parts.append("CYCLE" if self.cycle else "NO CYCLE")
        return " ".join(parts)


class TypeKind(str, Enum):
    """User-defined type variants."""

    ENUM = "ENUM"
    COMPOSITE = "COMPOSITE"
    DOMAIN = "DOMAIN"
    RANGE = "RANGE"


_TYPE_OBJECT_TYPES: dict[TypeKind, ObjectType] = {
    TypeKind.ENUM: ObjectType.TYPE_ENUM,
    TypeKind.COMPOSITE: ObjectType.TYPE_COMPOSITE,
    TypeKind.DOMAIN: ObjectType.TYPE_DOMAIN,
    TypeKind.RANGE: ObjectType.TYPE_RANGE,
}


class CompositeAttribute(BaseModel):
    """One field of a composite type."""

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str


class TypeDefinition(_StructuralModel):
    """A user-defined type; which fields are meaningful depends on ``kind``."""

    kind: TypeKind
    enum_values: list[str] = Field(default_factory=list)
    attributes: list[CompositeAttribute] = Field(default_factory=list)
    base_type: str | None = None
    default_value: str | None = None
    not_null: bool = False
    check_constraints: list[str] = Field(default_factory=list)
    subtype: str | None = None

    @property
    def object_type(self) -> ObjectType:
        return _TYPE_OBJECT_TYPES[self.kind]

    def differences_from(self, other: TypeDefinition) -> list[AttributeDifference]:
        if self.kind is not other.kind:
            return diff_attributes([("kind", self.kind.value, other.kind.value)])

        if self.kind is TypeKind.ENUM:
            return diff_attributes(
                [("enumValues", self.enum_values, other.enum_values)]
            )
        if self.kind is TypeKind.COMPOSITE:
            return self._composite_differences(other)
        if self.kind is TypeKind.DOMAIN:
            return diff_attributes(
                [
                    ("baseType", self.base_type, other.base_type),
                    ("defaultValue", self.default_value, other.default_value),
                    ("notNull", self.not_null, other.not_null),
                    (
                        "checkConstraints",
                        self.check_constraints,
                        other.check_constraints,
                    ),
                ]
            )
        return diff_attributes([("subtype", self.subtype, other.subtype)])

    def _composite_differences(
        self, other: TypeDefinition
    ) -> list[AttributeDifference]:
        source = {attr.name: attr.data_type for attr in self.attributes}
        destination = {attr.name: attr.data_type for attr in other.attributes}
        names = list(source) + [name for name in destination if name not in source]
        return diff_attributes(
            (f"attribute {name}", source.get(name), destination.get(name))
            for name in names
        )

    def render_definition(self, target_schema: str) -> str:
        qualified = f"{target_schema}.{self.name}"
        if self.kind is TypeKind.ENUM:
            values = ", ".join(f"'{value}'" for value in self.enum_values)
            return f"CREATE TYPE {qualified} AS ENUM ({values})"
        if self.kind is TypeKind.COMPOSITE:
            fields = ", ".join(f"{a.name} {a.data_type}" for a in self.attributes)
            return f"CREATE TYPE {qualified} AS ({fields})"
        if self.kind is TypeKind.DOMAIN:
            parts = [f"CREATE DOMAIN {qualified} AS {self.base_type}"]
            if self.default_value is not None:
                parts.append(f"DEFAULT {self.default_value}")
            if self.not_null:
                parts.append("NOT NULL")
            parts.extend(self.check_constraints)
            return " ".join(parts)
        return f"CREATE TYPE {qualified} AS RANGE (SUBTYPE = {self.subtype})"


class Extension(_StructuralModel):
    """An installed extension. Extensions are database-wide, not per schema."""

    version: str | None = None

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.EXTENSION

    def differences_from(self, other: Extension) -> list[AttributeDifference]:
        return diff_attributes([("version", self.version, other.version)])

    def render_definition(self, target_schema: str) -> str:
        return f"CREATE EXTENSION IF NOT EXISTS {self.name}"
