"""Tests for ComparisonFilter name matching, presets and summaries."""

from schema_diff.schema.filter import ComparisonFilter, FilterPreset


class TestDefaults:
    """Test the default (everything enabled) filter."""

    def test_all_kinds_enabled(self) -> None:
        """Every include flag defaults to True."""
        f = ComparisonFilter()
        flags = {name: value for name, value in f.model_dump().items() if name.startswith("include_")}
        assert len(flags) == 13
        assert all(flags.values())

    def test_no_pattern_matches_everything(self) -> None:
        """Absent pattern matches any name."""
        assert ComparisonFilter().matches_table("anything_at_all")
        assert not ComparisonFilter().has_filters()
        assert ComparisonFilter().summary() == "No filters"


class TestGlobPatterns:
    """Test glob matching (the default mode)."""

    def test_star_and_question_mark(self) -> None:
        """* matches any run, ? matches one character."""
        f = ComparisonFilter(name_pattern="order?_*")
        assert f.matches_table("orders_2024")
        assert not f.matches_table("order_2024")

    def test_case_insensitive(self) -> None:
        """Matching ignores case."""
        assert ComparisonFilter(name_pattern="ORDERS").matches_table("orders")

    def test_full_match_required(self) -> None:
        """A glob without wildcards must match the whole name."""
        f = ComparisonFilter(name_pattern="orders")
        assert not f.matches_table("orders_archive")

    def test_regex_metacharacters_are_literal(self) -> None:
        """Dots in globs match only dots."""
        f = ComparisonFilter(name_pattern="a.b")
        assert not f.matches_table("axb")
        assert f.matches_table("a.b")

    def test_character_class(self) -> None:
        """[...] matches one character from the set."""
        f = ComparisonFilter(name_pattern="log_202[34]")
        assert f.matches_table("log_2023")
        assert f.matches_table("LOG_2024")
        assert not f.matches_table("log_2025")

    def test_unbalanced_bracket_is_literal(self) -> None:
        """An unclosed [ matches itself rather than raising."""
        assert ComparisonFilter(name_pattern="a[b").matches_table("a[b")


class TestRegexPatterns:
    """Test regex mode."""

    def test_regex_match(self) -> None:
        """Regex patterns are used as-is."""
        f = ComparisonFilter(name_pattern=r"order(s|_items)", use_regex=True)
        assert f.matches_table("orders")
        assert f.matches_table("ORDER_ITEMS")
        assert not f.matches_table("customers")

    def test_malformed_regex_matches_nothing(self) -> None:
        """An unparsable pattern never raises and matches no name."""
        f = ComparisonFilter(name_pattern="orders(", use_regex=True)
        assert not f.matches_table("orders(")
        assert not f.matches_table("orders")


class TestExcludePatterns:
    """Test exclude patterns and presets."""

    def test_exclude_wins_over_include(self) -> None:
        """A name matching an exclude pattern is dropped."""
        f = ComparisonFilter(name_pattern="orders*", exclude_patterns=["*_bak"])
        assert f.matches_table("orders")
        assert not f.matches_table("orders_bak")

    def test_temp_tables_preset(self) -> None:
        """EXCLUDE_TEMP_TABLES drops scratch and backup tables."""
        f = ComparisonFilter.from_preset(FilterPreset.EXCLUDE_TEMP_TABLES)
        for name in ("temp_import", "tmp_x", "orders_backup", "orders_bak", "zz_old"):
            assert not f.matches_table(name), name
        assert f.matches_table("orders")

    def test_none_preset(self) -> None:
        """NONE preset has no patterns."""
        assert not ComparisonFilter.from_preset(FilterPreset.NONE).has_filters()

    def test_from_pattern_string(self) -> None:
        """Comma list becomes exclude patterns, blanks dropped."""
        f = ComparisonFilter.from_pattern_string(" audit_*, ,log_* ")
        assert f.exclude_patterns == ["audit_*", "log_*"]
        assert not f.matches_table("audit_events")
        assert f.matches_table("orders")

    def test_from_empty_pattern_string(self) -> None:
        """None or empty input yields no filters."""
        assert ComparisonFilter.from_pattern_string(None).exclude_patterns == []
        assert ComparisonFilter.from_pattern_string("").exclude_patterns == []

    def test_summary(self) -> None:
        """Summary names include/exclude patterns and the mode."""
        f = ComparisonFilter(name_pattern="orders*", exclude_patterns=["tmp_*"])
        assert f.summary() == "include orders*; exclude tmp_* (glob)"
