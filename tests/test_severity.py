"""Tests for the severity policy table."""

import pytest

from schema_diff.schema.results import (
    AttributeDifference,
    DifferenceType,
    ObjectType,
    Severity,
)
from schema_diff.schema.severity import classify


def _attr(name: str, source: str | None, destination: str | None) -> AttributeDifference:
    return AttributeDifference(
        attribute_name=name, source_value=source, destination_value=destination
    )


class TestExtra:
    """EXTRA is BREAKING for every object kind."""

    @pytest.mark.parametrize("object_type", list(ObjectType))
    def test_extra_always_breaking(self, object_type: ObjectType) -> None:
        assert classify(object_type, DifferenceType.EXTRA) is Severity.BREAKING


class TestMissing:
    """MISSING severity scales with how much behaviour the object encodes."""

    @pytest.mark.parametrize(
        "object_type",
        [
            ObjectType.CONSTRAINT_PRIMARY,
            ObjectType.CONSTRAINT_FOREIGN,
            ObjectType.TRIGGER,
            ObjectType.EXTENSION,
        ],
    )
    def test_warning_kinds(self, object_type: ObjectType) -> None:
        assert classify(object_type, DifferenceType.MISSING) is Severity.WARNING

    @pytest.mark.parametrize(
        "object_type",
        [
            ObjectType.TABLE,
            ObjectType.COLUMN,
            ObjectType.INDEX,
            ObjectType.CONSTRAINT_UNIQUE,
            ObjectType.CONSTRAINT_CHECK,
            ObjectType.VIEW,
            ObjectType.FUNCTION,
            ObjectType.SEQUENCE,
            ObjectType.TYPE_ENUM,
            ObjectType.TYPE_RANGE,
        ],
    )
    def test_info_kinds(self, object_type: ObjectType) -> None:
        assert classify(object_type, DifferenceType.MISSING) is Severity.INFO


class TestModified:
    """MODIFIED severity per kind, with the column special cases."""

    def test_column_data_type_change_warns(self) -> None:
        attrs = [_attr("dataType", "int", "bigint")]
        assert classify(ObjectType.COLUMN, DifferenceType.MODIFIED, attrs) is Severity.WARNING

    def test_column_becoming_not_null_warns(self) -> None:
        """Source NOT NULL, destination nullable: migrating tightens the column."""
        attrs = [_attr("nullable", "false", "true")]
        assert classify(ObjectType.COLUMN, DifferenceType.MODIFIED, attrs) is Severity.WARNING

    def test_column_relaxing_null_is_info(self) -> None:
        attrs = [_attr("nullable", "true", "false")]
        assert classify(ObjectType.COLUMN, DifferenceType.MODIFIED, attrs) is Severity.INFO

    def test_column_default_change_is_info(self) -> None:
        attrs = [_attr("defaultValue", "0", None), _attr("comment", "x", "y")]
        assert classify(ObjectType.COLUMN, DifferenceType.MODIFIED, attrs) is Severity.INFO

    @pytest.mark.parametrize(
        ("object_type", "expected"),
        [
            (ObjectType.TABLE, Severity.INFO),
            (ObjectType.CONSTRAINT_PRIMARY, Severity.WARNING),
            (ObjectType.CONSTRAINT_FOREIGN, Severity.WARNING),
            (ObjectType.INDEX, Severity.INFO),
            (ObjectType.TRIGGER, Severity.WARNING),
            (ObjectType.VIEW, Severity.WARNING),
            (ObjectType.MATERIALIZED_VIEW, Severity.WARNING),
            (ObjectType.FUNCTION, Severity.WARNING),
            (ObjectType.PROCEDURE, Severity.WARNING),
            (ObjectType.SEQUENCE, Severity.INFO),
            (ObjectType.TYPE_COMPOSITE, Severity.WARNING),
            (ObjectType.TYPE_DOMAIN, Severity.WARNING),
            (ObjectType.EXTENSION, Severity.INFO),
        ],
    )
    def test_policy_table(self, object_type: ObjectType, expected: Severity) -> None:
        attrs = [_attr("anything", "a", "b")]
        assert classify(object_type, DifferenceType.MODIFIED, attrs) is expected

    def test_index_never_warns(self) -> None:
        """Index differences are INFO or BREAKING only."""
        for difference_type in DifferenceType:
            severity = classify(
                ObjectType.INDEX, difference_type, [_attr("unique", "true", "false")]
            )
            assert severity is not Severity.WARNING
