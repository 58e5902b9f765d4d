"""Tests for line classification."""

import pytest

from conftest import (
    END_LINE,
    FORMAT_LINE,
    PENULTIMATE_LINE,
    START_LINE,
    VERSION_LINE,
    entry_line,
    exit_line,
)
from line_patterns import LineKind, LinePatternRegistry, get_registry


@pytest.mark.unit
class TestClassify:
    """Each line shape maps to exactly one kind."""

    @pytest.mark.parametrize(
        "line, expected",
        [
            (VERSION_LINE, LineKind.VERSION),
            ("Xdebug Version: 2.9.8 (something)\n", LineKind.VERSION),
            (FORMAT_LINE, LineKind.FORMAT),
            (START_LINE, LineKind.START),
            (entry_line(0, 1, "0.001", 1000, "foo", 1, "inc.php", "main.php", 10),
             LineKind.FUNCTION_ENTRY),
            (exit_line(0, 1, "0.002", 1100), LineKind.FUNCTION_EXIT),
            ("0\t1\t1\t0.002\t1100\textra\tstuff\n", LineKind.FUNCTION_EXIT),
            (PENULTIMATE_LINE, LineKind.PENULTIMATE),
            ("    0.5000\t1024\n", LineKind.PENULTIMATE),
            (END_LINE, LineKind.END),
            ("TRACE END [2023-04-01 10:00:00.124356]", LineKind.END),
        ],
    )
    def test_known_shapes(self, registry, line, expected):
        assert registry.classify(line) is expected

    @pytest.mark.parametrize(
        "line",
        [
            "garbage line with no structure\n",
            "1\t2\tR\t\t\t3\n",
            "File format: four\n",
            "TRACE START [yesterday]\n",
            "0\t1\t2\t0.1\t100\n",
            "",
        ],
    )
    def test_unknown_shapes(self, registry, line):
        assert registry.classify(line) is None

    def test_entry_with_empty_include_file(self, registry):
        line = "0\t1\t0\t0.000200\t393680\t{main}\t1\t\t/var/www/index.php\t0\t0\n"
        assert registry.classify(line) is LineKind.FUNCTION_ENTRY

    def test_entry_type_tag_must_be_zero_or_one(self, registry):
        line = "0\t1\t0\t0.1\t100\tfoo\t2\t\tmain.php\t1\t0\n"
        assert registry.classify(line) is None

    def test_entry_with_tab_in_a_text_column(self, registry):
        # The extra column pushes "main.php" into the line number slot
        line = "0\t1\t0\t0.1\t10\tfoo\t1\tinc\textra\tmain.php\t10\t0\n"
        assert registry.classify(line) is None

    def test_entry_with_many_argument_columns(self, registry):
        args = [str(i) if i % 2 else f"'s{i}'" for i in range(200)]
        line = entry_line(0, 1, "0.1", 10, "foo", 1, "", "main.php", 5, args)
        assert registry.classify(line) is LineKind.FUNCTION_ENTRY
        assert registry.classify(line.replace("\tfoo\t", "\t\t\t", 1)) is None


@pytest.mark.unit
class TestDeclarationOrder:
    """Ties go to the kind declared first, not the most specific one."""

    def test_version_text_inside_entry_wins(self, registry):
        line = entry_line(0, 1, "0.1", 10, "foo", 1, "", "Version: 1.2.3", 1)
        assert registry.classify(line) is LineKind.VERSION

    def test_version_text_inside_exit_wins(self, registry):
        assert registry.classify("0\t1\t1\t0.1\t10\tVersion: 1.2.3\n") is LineKind.VERSION

    def test_kinds_follow_declaration_order(self, registry):
        assert registry.kinds == sorted(LineKind, key=lambda kind: kind.value)

    def test_custom_pattern_order(self):
        custom = LinePatternRegistry({
            LineKind.FORMAT: r'^File',
            LineKind.VERSION: r'format',
        })
        assert custom.classify("File format: 4") is LineKind.VERSION


@pytest.mark.unit
class TestRegistry:

    def test_shared_registry_is_cached(self):
        assert get_registry() is get_registry()

    def test_match_exposes_named_groups(self, registry):
        match = registry.match(LineKind.START, START_LINE)
        assert match.group('start') == "2023-04-01 10:00:00.123456"

    def test_match_returns_none_for_other_kind(self, registry):
        assert registry.match(LineKind.FORMAT, VERSION_LINE) is None
