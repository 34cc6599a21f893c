"""
Tests for lenient LLM JSON parsing.
"""

import pytest

from kbgraph.utils import parse_json_response, repair_truncated_json, strip_code_fences
from kbgraph.utils.exceptions import JSONParseError


@pytest.mark.unit
class TestStripCodeFences:
    """Test markdown fence removal."""

    def test_json_fence(self):
        """Test a ```json fence is removed."""
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        """Test a bare ``` fence is removed."""
        assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"

    def test_no_fence(self):
        """Test plain content is only trimmed."""
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


@pytest.mark.unit
class TestRepairTruncatedJson:
    """Test closing of truncated JSON documents."""

    def test_closes_open_containers(self):
        """Test missing closers are appended in nesting order."""
        assert repair_truncated_json('{"a": [1, 2') == '{"a": [1, 2]}'

    def test_drops_trailing_comma(self):
        """Test a trailing comma is removed before closing."""
        assert repair_truncated_json('{"a": 1,') == '{"a": 1}'

    def test_closes_dangling_string(self):
        """Test an unterminated string is closed."""
        assert repair_truncated_json('{"a": "hel') == '{"a": "hel"}'

    def test_drops_incomplete_pair(self):
        """Test a key without a value is dropped."""
        assert repair_truncated_json('{"a": 1, "b":') == '{"a": 1}'

    def test_ignores_brackets_inside_strings(self):
        """Test brackets in string literals do not count."""
        assert repair_truncated_json('{"a": "[{"') == '{"a": "[{"}'


@pytest.mark.unit
class TestParseJsonResponse:
    """Test the full parse path."""

    def test_valid_json(self):
        """Test valid JSON parses directly."""
        assert parse_json_response('{"entities": [{"name": "Acme"}]}') == {
            "entities": [{"name": "Acme"}]
        }

    def test_fenced_json(self):
        """Test fenced JSON parses."""
        assert parse_json_response('```json\n{"ok": true}\n```') == {"ok": True}

    def test_truncated_json_recovered(self):
        """Test a truncated response is repaired."""
        assert parse_json_response('{"relationships": [{"id": "r1"}, {"id": "r2"') == {
            "relationships": [{"id": "r1"}, {"id": "r2"}]
        }

    def test_unrecoverable(self):
        """Test garbage raises JSONParseError with a preview."""
        with pytest.raises(JSONParseError) as exc_info:
            parse_json_response("I cannot help with that.")

        assert exc_info.value.preview == "I cannot help with that."
