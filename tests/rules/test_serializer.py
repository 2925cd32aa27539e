"""Tests for turning rules and edits back into rule-file lines."""
import os
from unittest.mock import MagicMock, patch

import pytest

from filtertree.core.constants import FilterState
from filtertree.rules.overlay import Overlay
from filtertree.rules.resolver import FilterResolver
from filtertree.rules.ruleset import load_rule_file, parse_rule_lines
from filtertree.rules.serializer import (
    SaveResult,
    format_rule,
    pattern_directory,
    save_rule_file,
    serialize_rules,
    should_insert_before,
)


def overlay_of(entries):
    overlay = Overlay()
    for pattern, state in entries:
        overlay.set(pattern, state)
    return overlay


class TestFormatRule:
    """Tests for format_rule()."""

    def test_include(self):
        assert format_rule("dir1/**", FilterState.INCLUDE) == "+ dir1/**"

    def test_exclude(self):
        assert format_rule("*.log", FilterState.EXCLUDE) == "- *.log"

    def test_unset_has_no_line(self):
        assert format_rule("x", FilterState.UNSET) is None


class TestPatternDirectory:
    """Tests for pattern_directory()."""

    @pytest.mark.parametrize(
        "pattern,expected",
        [
            ("TV/**", "TV"),
            ("dir1/sub1/**", "dir1/sub1"),
            ("TV/Show/*.mkv", "TV"),
            ("*.log", "*.log"),
            ("/temp/**", "temp"),
            ("*", "*"),
        ],
    )
    def test_pattern_directory(self, pattern, expected):
        assert pattern_directory(pattern) == expected


class TestShouldInsertBefore:
    """Tests for should_insert_before()."""

    def test_anything_precedes_catch_all(self):
        assert should_insert_before("temp", "*")
        assert should_insert_before("a/b/c", "**")

    def test_subdirectory_precedes_parent(self):
        assert should_insert_before("dir1/sub3/**", "dir1/**")

    def test_sibling_does_not_precede(self):
        assert not should_insert_before("dir1/sub3/**", "dir1/sub1/**")
        assert not should_insert_before("dir2/subdir/**", "dir1/**")

    def test_same_directory_longer_precedes(self):
        assert should_insert_before("TV/Show/**", "TV")

    def test_same_directory_path_precedes_non_recursive(self):
        assert should_insert_before("a/b", "a/c")

    def test_same_directory_shorter_recursive_does_not_precede(self):
        assert not should_insert_before("TV/x", "TV/long/**")

    def test_covering_glob_precedes(self):
        assert should_insert_before("important.log", "*.log")
        assert should_insert_before("build-x/a.o", "build*")

    def test_glob_not_covering_does_not_precede(self):
        assert not should_insert_before("important.txt", "*.log")
        assert not should_insert_before("*.log", "important.log")


class TestSerializeRules:
    """Tests for serialize_rules()."""

    def test_no_overlay_returns_rules_unchanged(self):
        rules = parse_rule_lines(["- a", "+ b/**", "- a"])
        assert serialize_rules(rules, None) == ["- a", "+ b/**", "- a"]

    def test_unchanged_overlay_round_trips(self):
        lines = ["- dir1/sub1/**", "+ dir1/**", "- *"]
        rules = parse_rule_lines(lines)
        assert serialize_rules(rules, Overlay.from_rule_set(rules)) == lines

    def test_new_rules_inserted_before_what_they_refine(self):
        rules = parse_rule_lines(
            [
                "- dir1/sub1/**",
                "- dir1/sub2/**",
                "+ dir1/**",
                "+ dir2/**",
                "+ dir3/**",
                "- *",
            ]
        )
        overlay = Overlay.from_rule_set(rules)
        overlay.set("dir1/sub3/**", FilterState.EXCLUDE)
        overlay.set("dir2/subdir/**", FilterState.EXCLUDE)
        overlay.set("temp", FilterState.EXCLUDE)

        assert serialize_rules(rules, overlay) == [
            "- dir1/sub1/**",
            "- dir1/sub2/**",
            "- dir1/sub3/**",
            "+ dir1/**",
            "- dir2/subdir/**",
            "+ dir2/**",
            "+ dir3/**",
            "- temp",
            "- *",
        ]

    def test_directory_and_file_edits(self):
        rules = parse_rule_lines(["+ dir1/**", "- *"])
        overlay = Overlay.from_rule_set(rules)
        overlay.set("dir1/subdir/**", FilterState.EXCLUDE)
        overlay.set("file.txt", FilterState.EXCLUDE)

        assert serialize_rules(rules, overlay) == [
            "- dir1/subdir/**",
            "+ dir1/**",
            "- file.txt",
            "- *",
        ]

    def test_changed_state_keeps_position(self):
        rules = parse_rule_lines(["+ a/**", "- b/**"])
        overlay = Overlay.from_rule_set(rules)
        overlay.set("a/**", FilterState.EXCLUDE)
        assert serialize_rules(rules, overlay) == ["- a/**", "- b/**"]

    def test_removed_rules_are_omitted(self):
        rules = parse_rule_lines(["+ a/**", "- b/**", "- *"])
        overlay = Overlay.from_rule_set(rules)
        overlay.set("b/**", FilterState.UNSET)
        assert serialize_rules(rules, overlay) == ["+ a/**", "- *"]

    def test_duplicate_original_emitted_once(self):
        rules = parse_rule_lines(["- a", "+ b", "+ a"])
        overlay = Overlay.from_rule_set(rules)
        assert serialize_rules(rules, overlay) == ["- a", "+ b"]

    def test_unrelated_new_rules_appended(self):
        rules = parse_rule_lines(["+ dir1/**"])
        overlay = Overlay.from_rule_set(rules)
        overlay.set("notes.md", FilterState.INCLUDE)
        assert serialize_rules(rules, overlay) == ["+ dir1/**", "+ notes.md"]

    def test_same_slot_longest_first(self):
        rules = parse_rule_lines(["- *"])
        overlay = Overlay.from_rule_set(rules)
        overlay.set("a/**", FilterState.INCLUDE)
        overlay.set("a/deeper/**", FilterState.EXCLUDE)
        assert serialize_rules(rules, overlay) == ["- a/deeper/**", "+ a/**", "- *"]

    def test_exception_precedes_covering_glob(self):
        rules = parse_rule_lines(["- *.log"])
        overlay = Overlay.from_rule_set(rules)
        overlay.set("important.log", FilterState.INCLUDE)
        assert serialize_rules(rules, overlay) == ["+ important.log", "- *.log"]

    def test_untouched_rules_kept_with_unseeded_overlay(self):
        rules = parse_rule_lines(["+ a/**", "- b/**", "- *"])
        overlay = overlay_of([("c/**", FilterState.INCLUDE)])
        overlay.remove("b/**")
        assert serialize_rules(rules, overlay) == ["+ a/**", "+ c/**", "- *"]

    def test_edits_without_original_rules(self):
        overlay = overlay_of([("x/**", FilterState.EXCLUDE)])
        assert serialize_rules(parse_rule_lines([]), overlay) == ["- x/**"]

    def test_round_trip_preserves_effective_states(self):
        rules = parse_rule_lines(
            ["- dir1/sub1/**", "- dir1/sub2/**", "+ dir1/**", "+ dir2/**", "- *"]
        )
        overlay = Overlay.from_rule_set(rules)
        overlay.set("dir1/other/**", FilterState.EXCLUDE)
        overlay.set("dir1/sub2/**", FilterState.INCLUDE)
        overlay.set("1.txt", FilterState.INCLUDE)
        editing = FilterResolver(rules, overlay)

        reloaded = FilterResolver(parse_rule_lines(serialize_rules(rules, overlay)))

        paths = [
            "/.",
            "/1.txt",
            "/2.txt",
            "/dir1",
            "/dir1/sub1",
            "/dir1/sub1/a.txt",
            "/dir1/sub2",
            "/dir1/sub2/b.txt",
            "/dir1/other",
            "/dir1/other/c.txt",
            "/dir2",
            "/dir2/d.txt",
        ]
        for path in paths:
            assert reloaded.resolve(path) == editing.resolve(path), path

    def test_round_trip_with_file_exception_to_glob(self):
        rules = parse_rule_lines(["- *.log", "+ *"])
        overlay = Overlay.from_rule_set(rules)
        overlay.set("important.log", FilterState.INCLUDE)
        overlay.set("debug.txt", FilterState.EXCLUDE)
        editing = FilterResolver(rules, overlay)

        reloaded = FilterResolver(parse_rule_lines(serialize_rules(rules, overlay)))

        for path in ["/important.log", "/other.log", "/debug.txt", "/notes.txt"]:
            assert reloaded.resolve(path) == editing.resolve(path), path
        assert reloaded.resolve("/important.log") == FilterState.INCLUDE

    def test_round_trip_with_removed_rule(self):
        rules = parse_rule_lines(
            ["- dir1/sub1/**", "- dir1/sub2/**", "+ dir1/**", "+ dir2/**", "- *"]
        )
        overlay = Overlay.from_rule_set(rules)
        overlay.set("dir2/**", FilterState.UNSET)
        editing = FilterResolver(rules, overlay)

        reloaded = FilterResolver(parse_rule_lines(serialize_rules(rules, overlay)))

        for path in ["/dir2", "/dir2/x.txt", "/dir1/other/c.txt", "/1.txt"]:
            assert reloaded.resolve(path) == editing.resolve(path), path
        assert reloaded.resolve("/dir2/x.txt") == FilterState.UNSET


class TestSaveRuleFile:
    """Tests for save_rule_file()."""

    def test_writes_lines(self, temp_dir):
        path = temp_dir / "filter.txt"
        result = save_rule_file(path, ["+ a/**", "- *"])

        assert isinstance(result, SaveResult)
        assert result.success is True
        assert result.error is None
        assert result.path == str(path)
        assert path.read_text(encoding="utf-8") == "+ a/**\n- *\n"

    def test_overwrites_and_reloads(self, temp_dir, write_rules):
        path = write_rules(["- old"])
        save_rule_file(path, ["+ new (copy)/**"])
        assert load_rule_file(path).patterns() == ["new (copy)/**"]

    def test_no_temp_files_left(self, temp_dir):
        save_rule_file(temp_dir / "filter.txt", ["- *"])
        assert sorted(os.listdir(temp_dir)) == ["filter.txt"]

    def test_missing_directory_fails(self, temp_dir):
        logger = MagicMock()
        result = save_rule_file(temp_dir / "missing" / "filter.txt", ["- *"], logger=logger)
        assert result.success is False
        assert result.error
        logger.error.assert_called_once()

    def test_replace_failure_keeps_old_file(self, temp_dir, write_rules):
        path = write_rules(["- old"])
        with patch("filtertree.rules.serializer.os.replace", side_effect=PermissionError("denied")):
            result = save_rule_file(path, ["+ new"], logger=MagicMock())

        assert result.success is False
        assert "denied" in result.error
        assert result.lines == ["+ new"]
        assert path.read_text() == "- old\n"
        assert sorted(os.listdir(temp_dir)) == ["filter.txt"]
