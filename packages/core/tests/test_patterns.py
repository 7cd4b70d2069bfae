"""Tests for correlation key extraction and post-review output parsing."""

import re

from rblink_core.utils.patterns import (
    HTTP_ERROR_PATTERN,
    REVIEW_ID_PATTERN,
    ValueType,
    compile_key_pattern,
    extract_key,
    match_pattern,
)

JIRA = compile_key_pattern("[A-Z]+-[0-9]+")


# ---------------------------------------------------------------------------
# match_pattern
# ---------------------------------------------------------------------------


class TestMatchPattern:
    def test_review_id_from_success_line(self):
        assert match_pattern("Review request #36 posted.", REVIEW_ID_PATTERN, 1) == 36

    def test_error_code_from_failure_line(self):
        assert match_pattern("Error 123: Invalid 400", HTTP_ERROR_PATTERN, 1) == 123

    def test_error_line_without_trailing_status(self):
        assert match_pattern("Error 42: Not Found", HTTP_ERROR_PATTERN, 1) == 42

    def test_second_error_group(self):
        assert match_pattern("Error 123: Invalid 400", HTTP_ERROR_PATTERN, 2) == 400

    def test_success_line_does_not_match_error_pattern(self):
        assert match_pattern("Review request #36 posted.", HTTP_ERROR_PATTERN, 1) is None

    def test_unrelated_output_returns_none(self):
        assert match_pattern("Uploading diff...", REVIEW_ID_PATTERN, 1) is None

    def test_match_is_anchored_at_start(self):
        assert match_pattern("#36 posted.", REVIEW_ID_PATTERN, 1) is None

    def test_blank_text_returns_none(self):
        assert match_pattern("   ", REVIEW_ID_PATTERN, 1) is None
        assert match_pattern(None, REVIEW_ID_PATTERN, 1) is None

    def test_group_beyond_pattern_returns_none(self):
        assert match_pattern("Review request #36 posted.", REVIEW_ID_PATTERN, 2) is None

    def test_non_numeric_group_returns_none(self):
        assert match_pattern("id=abc", re.compile(r"id=(\w+)"), 1) is None

    def test_string_value_type(self):
        assert match_pattern("id=abc", re.compile(r"id=(\w+)"), 1, ValueType.STRING) == "abc"

    def test_optional_group_not_taking_part_returns_none(self):
        assert match_pattern("Error 42: Not Found", HTTP_ERROR_PATTERN, 2) is None


# ---------------------------------------------------------------------------
# compile_key_pattern / extract_key
# ---------------------------------------------------------------------------


class TestExtractKey:
    def test_key_at_start_of_message(self):
        assert extract_key("ABC-1 Fix login redirect", JIRA) == "ABC-1"

    def test_leading_whitespace_is_ignored(self):
        assert extract_key("   ABC-12 Fix login redirect\n", JIRA) == "ABC-12"

    def test_key_not_at_start_returns_none(self):
        assert extract_key("Fix login redirect ABC-1", JIRA) is None

    def test_no_pattern_returns_none(self):
        assert extract_key("ABC-1 Fix login redirect", None) is None

    def test_empty_message_returns_none(self):
        assert extract_key("", JIRA) is None
        assert extract_key(None, JIRA) is None

    def test_pattern_with_own_groups_returns_whole_key(self):
        pattern = compile_key_pattern("([A-Z]+)-([0-9]+)")
        assert extract_key("ABC-7 Tidy up", pattern) == "ABC-7"

    def test_first_match_only_not_full_match(self):
        assert extract_key("ABC-1ABC-2 both", JIRA) == "ABC-1"

    def test_invalid_expression_compiles_to_none(self):
        assert compile_key_pattern("[A-Z") is None

    def test_empty_expression_compiles_to_none(self):
        assert compile_key_pattern("") is None
        assert compile_key_pattern(None) is None
