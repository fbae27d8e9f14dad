"""Tests for the generic attribute differ."""

from schema_diff.schema.differ import diff_attributes, display_value


class TestDisplayValue:
    """Test attribute value rendering."""

    def test_booleans(self) -> None:
        assert display_value(True) == "true"
        assert display_value(False) == "false"

    def test_lists_joined(self) -> None:
        assert display_value(["a", "b"]) == "a, b"
        assert display_value([]) == ""

    def test_numbers_and_none(self) -> None:
        assert display_value(42) == "42"
        assert display_value(None) is None


class TestDiffAttributes:
    """Test pairwise attribute comparison."""

    def test_identical_values_yield_nothing(self) -> None:
        """Equal values produce no differences."""
        assert diff_attributes([("dataType", "int", "int"), ("nullable", True, True)]) == []

    def test_changed_value_reported(self) -> None:
        """A differing value yields one AttributeDifference."""
        diffs = diff_attributes([("deleteRule", "CASCADE", "RESTRICT")])
        assert len(diffs) == 1
        assert diffs[0].attribute_name == "deleteRule"
        assert diffs[0].source_value == "CASCADE"
        assert diffs[0].destination_value == "RESTRICT"

    def test_one_side_null(self) -> None:
        """Present vs absent is a difference."""
        diffs = diff_attributes([("comment", "orders", None)])
        assert diffs[0].source_value == "orders"
        assert diffs[0].destination_value is None

    def test_null_and_empty_string_distinct(self) -> None:
        """None and "" are not equal."""
        diffs = diff_attributes([("defaultValue", "", None)])
        assert len(diffs) == 1

    def test_case_sensitive(self) -> None:
        """Comparison is exact."""
        assert len(diff_attributes([("owner", "App", "app")])) == 1

    def test_preserves_order(self) -> None:
        """Differences follow the order of the input triples."""
        diffs = diff_attributes(
            [("b", 1, 2), ("same", "x", "x"), ("a", False, True)]
        )
        assert [d.attribute_name for d in diffs] == ["b", "a"]
        assert diffs[1].summary == "a: false -> true"
